"""
L5 Orchestration — Resolution engine.

Drives one server id through the decision chain::

    static spec? ──yes──▶ act on spec                           (terminal)
        │no
    extract descriptor ─▶ resolve executable
        │executable                         │none / ResolutionError
    on PATH? ──yes──▶ "already installed"   group with one link?
        │no                                   │yes ─▶ browse      (terminal)
    docs table ─▶ classify ─▶ installer       │no  ─▶ NoInformationError

Every action is confirmed through the ``Prompter`` first.  The engine
owns the ``LibraryIndex``; nothing else caches between requests.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Any, Callable, Protocol

from lspinstall.core.config.loader import Settings
from lspinstall.core.models.install import NpmInstall, ResolutionOutcome
from lspinstall.core.services.server_install.detection.descriptor_extractor import (
    Extraction,
    extract_descriptor,
)
from lspinstall.core.services.server_install.detection.doc_table import find_install_command
from lspinstall.core.services.server_install.detection.library_index import (
    GroupRegistry,
    LibraryIndex,
    LoadPathRegistry,
)
from lspinstall.core.services.server_install.domain.classify import classify
from lspinstall.core.services.server_install.domain.static_spec import (
    ErrorSpec,
    FunctionSpec,
    StaticSpec,
    parse_static_spec,
)
from lspinstall.core.services.server_install.errors import (
    NoInformationError,
    NotFoundError,
    ResolutionError,
)
from lspinstall.core.services.server_install.execution.installer import Installer
from lspinstall.core.services.server_install.resolver.evaluator import Evaluator
from lspinstall.core.services.server_install.resolver.executable import resolve_executable

logger = logging.getLogger(__name__)


class Prompter(Protocol):
    def message(self, text: str) -> None: ...

    def confirm(self, question: str) -> bool: ...


class LoggingPrompter:
    """Non-interactive prompter: logs messages, answers every question the same."""

    def __init__(self, answer: bool = True) -> None:
        self.answer = answer

    def message(self, text: str) -> None:
        logger.info(text)

    def confirm(self, question: str) -> bool:
        logger.info("%s → %s", question, "yes" if self.answer else "no")
        return self.answer


@dataclass
class _Decision:
    outcome: ResolutionOutcome
    action: Callable[[], Any] | None = None
    question: str = ""


class ResolutionEngine:
    """Resolve how to install the executable behind a client id.

    Args:
        settings: Loaded ``lspinstall.yml``.
        installer: Collaborator that performs the final action.
        prompter: Collaborator for status messages and confirmations.
        which: ``shutil.which``-compatible PATH lookup.
        registry: Group registry; defaults to ``settings.groups`` on
            ``settings.load_path``.
    """

    def __init__(
        self,
        settings: Settings,
        installer: Installer,
        prompter: Prompter | None = None,
        which: Callable[[str], str | None] = shutil.which,
        registry: GroupRegistry | None = None,
    ) -> None:
        self.settings = settings
        self.installer = installer
        self.prompter = prompter or LoggingPrompter()
        self.which = which
        if registry is None:
            registry = LoadPathRegistry(settings.groups, settings.load_path_dirs())
        self.index = LibraryIndex(
            settings.module_paths,
            registry=registry,
            notify=self.prompter.message,
        )

    # ── Index ───────────────────────────────────────────────────

    def server_ids(self) -> list[str]:
        return sorted(self.index.entries())

    def reindex(self) -> dict[str, Path]:
        self.index.invalidate()
        return self.index.build()

    # ── Public flow ─────────────────────────────────────────────

    def resolve(self, server_id: str) -> ResolutionOutcome:
        """Run the full flow, asking before acting.

        Raises:
            NoInformationError: No way to install ``server_id`` was found.
            UnsupportedSpecError: Its static spec is malformed.
        """
        decision = self._decide(server_id)
        if decision.action is None:
            return decision.outcome

        if not self.prompter.confirm(decision.question):
            logger.info("User declined: %s", decision.question)
            return decision.outcome.model_copy(update={"status": "declined"})

        decision.action()
        return decision.outcome

    def plan(self, server_id: str) -> ResolutionOutcome:
        """Same decisions as ``resolve()`` but nothing is confirmed or run."""
        decision = self._decide(server_id)
        if decision.action is None:
            return decision.outcome
        return decision.outcome.model_copy(update={"status": "planned"})

    def static_spec(self, server_id: str) -> StaticSpec | None:
        raw = self.settings.install_specs.get(server_id)
        if raw is None:
            return None
        return parse_static_spec(server_id, raw)

    def extract(self, server_id: str) -> Extraction:
        return extract_descriptor(server_id, self.index, self.settings.fallback_path())

    def resolve_executable(self, extraction: Extraction) -> str | None:
        """Executable of an extracted client, or ``None`` if unknown."""
        server_id = extraction.server_id
        if server_id in self.settings.skip:
            logger.info("%s is on the skip list, not resolving its executable", server_id)
            return None
        if extraction.descriptor is None:
            return None

        evaluator = Evaluator(
            bindings=extraction.bindings,
            overrides=self.settings.variables,
            which=self.which,
        )
        try:
            return resolve_executable(
                extraction.descriptor,
                evaluator,
                port=self.settings.tcp_placeholder_port,
            )
        except ResolutionError as e:
            logger.warning("Cannot resolve executable of %s: %s", server_id, e)
            return None

    def describe(self, server_id: str) -> dict[str, Any]:
        """Everything the chain can learn about ``server_id``, without side effects."""
        info: dict[str, Any] = {"server_id": server_id}

        spec = self.settings.install_specs.get(server_id)
        if spec is not None:
            info["static_spec"] = spec

        extraction = self.extract(server_id)
        info["file"] = str(extraction.path) if extraction.path else None
        if extraction.descriptor is not None:
            info["connection"] = extraction.descriptor.connection_type.value
            info["command_spec"] = type(extraction.descriptor.command_spec).__name__
        if extraction.group is not None:
            info["group"] = extraction.group.name
            info["links"] = list(extraction.group.links)

        executable = self.resolve_executable(extraction)
        info["executable"] = executable
        if executable:
            info["installed_at"] = self.which(executable)
            try:
                command = find_install_command(executable, self.settings.docs_path())
                info["install_command"] = command
                info["instruction"] = classify(command).model_dump()
            except NotFoundError as e:
                info["docs_error"] = str(e)
        return info

    # ── Decision chain ──────────────────────────────────────────

    def _decide(self, server_id: str) -> _Decision:
        spec = self.static_spec(server_id)
        if spec is not None:
            return self._decide_from_spec(server_id, spec)

        extraction = self.extract(server_id)
        executable = self.resolve_executable(extraction)

        if executable:
            found = self.which(executable)
            if found:
                self.prompter.message(f"{executable} is already installed ({found})")
                return _Decision(ResolutionOutcome(
                    server_id=server_id,
                    status="already_installed",
                    executable=executable,
                    message=f"{executable} found at {found}",
                ))
            return self._decide_from_docs(server_id, executable)

        group = extraction.group
        url = group.single_link if group is not None else None
        if url:
            return _Decision(
                ResolutionOutcome(
                    server_id=server_id,
                    status="browse_requested",
                    url=url,
                    message=f"No install information for {server_id}; see {url}",
                ),
                action=partial(self.installer.browse_url, url),
                question=f"No install information for {server_id}. Browse {url}?",
            )

        raise NoInformationError(server_id)

    def _decide_from_spec(self, server_id: str, spec: StaticSpec) -> _Decision:
        if isinstance(spec, ErrorSpec):
            raise NoInformationError(server_id, spec.message)

        if isinstance(spec, FunctionSpec):
            func = spec.load()
            return _Decision(
                ResolutionOutcome(
                    server_id=server_id,
                    status="from_spec",
                    message=f"custom installer {spec.target}",
                ),
                action=partial(func, server_id),
                question=f"Install {server_id} with {spec.target}?",
            )

        return _Decision(
            ResolutionOutcome(server_id=server_id, status="from_spec", instruction=spec),
            action=partial(self.installer.install_npm_packages, list(spec.packages)),
            question=f"Install {server_id} with `{spec.describe()}`?",
        )

    def _decide_from_docs(self, server_id: str, executable: str) -> _Decision:
        try:
            command = find_install_command(executable, self.settings.docs_path())
        except NotFoundError as e:
            raise NoInformationError(server_id, f"No information on {server_id}: {e}") from e

        instruction = classify(command)
        action: Callable[[], Any]
        if isinstance(instruction, NpmInstall):
            action = partial(self.installer.install_npm_packages, list(instruction.packages))
        else:
            action = partial(self.installer.run_shell_command, instruction.command)

        return _Decision(
            ResolutionOutcome(
                server_id=server_id,
                status="install_requested",
                executable=executable,
                instruction=instruction,
            ),
            action=action,
            question=f"{executable} is not installed. Install it with `{instruction.describe()}`?",
        )
