"""
Shared test fixtures and configuration.
"""

import textwrap
from pathlib import Path

import pytest

from lspinstall.core.config.loader import Settings
from lspinstall.core.services.server_install.orchestration.engine import (
    LoggingPrompter,
    ResolutionEngine,
)


PYLS_EL = textwrap.dedent("""\
    ;;; lsp-pyls.el --- pyls client -*- lexical-binding: t; -*-

    (require 'lsp-mode)

    (defgroup lsp-pyls nil
      "Settings for pyls."
      :group 'lsp-mode
      :link '(url-link "https://github.com/palantir/python-language-server"))

    (defcustom lsp-clients-python-command '("pyls")
      "Command to start pyls."
      :type '(repeat string)
      :group 'lsp-pyls)

    (lsp-register-client
     (make-lsp-client :new-connection (lsp-stdio-connection
                                       (lambda () lsp-clients-python-command))
                      :major-modes '(python-mode)
                      :priority -1
                      :server-id 'pyls))

    (provide 'lsp-pyls)
""")


MISC_EL = textwrap.dedent("""\
    ;;; lsp-misc.el --- assorted clients -*- lexical-binding: t; -*-

    (defgroup lsp-bash nil
      "Bash support."
      :group 'lsp-mode)

    (lsp-register-client
     (make-lsp-client :new-connection (lsp-stdio-connection '("bash-language-server" "start"))
                      :major-modes '(sh-mode)
                      :server-id 'bash-ls))

    (defgroup lsp-xls nil
      "X support."
      :group 'lsp-mode
      :link '(url-link "https://example.com/xls"))

    (lsp-register-client
     (make-lsp-client :new-connection (lsp-stdio-connection "xls")
                      :server-id 'xls))

    (defvar lsp-foo-server "foo-server"
      "Path to the foo server.")

    (lsp-register-client
     (make-lsp-client :new-connection (lsp-tcp-connection
                                       (lambda (port)
                                         (list lsp-foo-server "--port" (number-to-string port))))
                      :server-id 'foo-ls))

    (defcustom lsp-rls-command "rls"
      "RLS command."
      :type 'string)

    (lsp-register-client
     (make-lsp-client :new-connection (lsp-stdio-connection lsp-rls-command)
                      :server-id 'rls))

    (defun lsp-gopls--command ()
      "Build the gopls command line."
      (list (or (executable-find "gopls") "gopls") "serve"))

    (lsp-register-client
     (make-lsp-client :new-connection (lsp-stdio-connection #'lsp-gopls--command)
                      :server-id 'gopls))

    (defgroup lsp-weird nil
      "Weird support."
      :group 'lsp-mode
      :link '(url-link :tag "Docs" "https://example.com/weird"))

    (lsp-register-client
     (make-lsp-client :new-connection (lsp-stdio-connection
                                       (lambda () (weird--compute-command)))
                      :server-id 'weird-ls))

    (defgroup lsp-yls nil
      "Y support."
      :group 'lsp-mode)

    (lsp-register-client
     (make-lsp-client :new-connection (lsp-stdio-connection
                                       (lambda () (yls--launcher)))
                      :server-id 'yls))
""")


README_ORG = textwrap.dedent("""\
    #+TITLE: lsp-mode

    * Overview
    Some text with a | pipe that is not a table.

    * Supported languages
    Install the servers you need.

    | Language | Language Server      | Installation command                        |
    |----------+----------------------+---------------------------------------------|
    | Python   | pyls                 | pip install 'python-language-server[all]'   |
    | Bash     | bash-language-server | =npm i -g bash-language-server=             |
    | X        | xls                  | npm install -g xls-server                   |
    | Rust     | rls                  | rustup component add rls                    |
    | Go       | gopls                | go install golang.org/x/tools/gopls@latest  |
    | Foo      | foo-server           |                                             |

    * Contributing
    | not | this | table |
""")


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def lsp_tree(tmp_path: Path) -> Path:
    """A minimal lsp-mode checkout: marker file, client modules, README.org."""
    root = tmp_path / "lsp-mode"
    (root / "clients").mkdir(parents=True)
    (root / "lsp-mode.el").write_text(";;; lsp-mode.el\n")
    (root / "clients" / "lsp-pyls.el").write_text(PYLS_EL)
    (root / "clients" / "lsp-misc.el").write_text(MISC_EL)
    (root / "README.org").write_text(README_ORG)
    return root


@pytest.fixture
def settings(lsp_tree: Path) -> Settings:
    return Settings(config_root=lsp_tree)


class RecordingInstaller:
    """Installer double that records every call."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, object]] = []

    def install_npm_packages(self, packages: list[str]) -> dict:
        self.calls.append(("npm", list(packages)))
        return {"ok": True}

    def run_shell_command(self, command: str) -> dict:
        self.calls.append(("shell", command))
        return {"ok": True}

    def browse_url(self, url: str) -> dict:
        self.calls.append(("browse", url))
        return {"ok": True}


class RecordingPrompter(LoggingPrompter):
    """Prompter double that records messages and questions."""

    def __init__(self, answer: bool = True) -> None:
        super().__init__(answer)
        self.messages: list[str] = []
        self.questions: list[str] = []

    def message(self, text: str) -> None:
        self.messages.append(text)

    def confirm(self, question: str) -> bool:
        self.questions.append(question)
        return self.answer


@pytest.fixture
def installer() -> RecordingInstaller:
    return RecordingInstaller()


@pytest.fixture
def prompter() -> RecordingPrompter:
    return RecordingPrompter()


@pytest.fixture
def make_engine(settings: Settings, installer: RecordingInstaller, prompter: RecordingPrompter):
    """Factory for engines where nothing is on PATH unless listed."""

    def _make(on_path: dict[str, str] | None = None, **overrides) -> ResolutionEngine:
        found = dict(on_path or {})
        cfg = settings.model_copy(update=overrides) if overrides else settings
        return ResolutionEngine(
            cfg,
            installer=installer,
            prompter=prompter,
            which=found.get,
        )

    return _make
