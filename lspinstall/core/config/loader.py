"""
Configuration loader — reads lspinstall.yml into a ``Settings`` model.

The file is optional.  Without one, defaults apply and paths are
resolved from the current directory.

Example::

    base_marker: lsp-mode.el
    modules:
      - clients/*.el
    load_path:
      - ~/.emacs.d/elpa/lsp-mode
    groups:
      - lsp-rust
    skip:
      - lsp-clangd
    install_specs:
      ts-ls: [npm, typescript-language-server, typescript]
    variables:
      lsp-clients-python-command: ["pylsp"]
"""

from __future__ import annotations

import glob
import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

SETTINGS_FILE = "lspinstall.yml"


class ConfigError(Exception):
    """Raised when lspinstall.yml is invalid or cannot be read."""


class Settings(BaseModel):
    """Validated contents of lspinstall.yml."""

    # ── Where things live ────────────────────────────────────────
    base_dir: str | None = None          # explicit base directory; else discovered
    base_marker: str = "lsp-mode.el"     # file that marks the base directory
    modules: list[str] = Field(default_factory=lambda: ["clients/*.el"])
    load_path: list[str] = Field(default_factory=list)
    groups: list[str] = Field(default_factory=list)
    fallback_module: str = "lsp-clients.el"
    docs_file: str = "README.org"

    # ── Behaviour ────────────────────────────────────────────────
    skip: list[str] = Field(default_factory=list)
    install_specs: dict[str, Any] = Field(default_factory=dict)
    variables: dict[str, Any] = Field(default_factory=dict)
    npm_command: list[str] = Field(default_factory=lambda: ["npm"])
    tcp_placeholder_port: int = 0

    # Directory relative paths are resolved against (set by the loader)
    config_root: Path = Field(default_factory=Path.cwd, exclude=True)

    def _path(self, raw: str) -> Path:
        path = Path(raw).expanduser()
        return path if path.is_absolute() else self.config_root / path

    def resolve_base_dir(self) -> Path:
        """The directory module globs and the docs file are relative to."""
        if self.base_dir:
            return self._path(self.base_dir).resolve()
        found = find_base_dir(self.config_root, self.base_marker)
        return found if found is not None else self.config_root.resolve()

    def module_paths(self) -> list[Path]:
        """Expand ``modules`` globs into existing files, in declaration order."""
        base = self.resolve_base_dir()
        paths: list[Path] = []
        for pattern in self.modules:
            full = Path(pattern).expanduser()
            if not full.is_absolute():
                full = base / full
            matches = sorted(glob.glob(str(full)))
            if not matches:
                logger.debug("Module pattern %s matched nothing", pattern)
            paths.extend(Path(m) for m in matches if Path(m).is_file())
        return paths

    def load_path_dirs(self) -> list[Path]:
        return [self._path(p) for p in self.load_path]

    def docs_path(self) -> Path:
        return self.resolve_base_dir() / self.docs_file

    def fallback_path(self) -> Path:
        return self.resolve_base_dir() / self.fallback_module


def find_base_dir(start_dir: Path, marker: str) -> Path | None:
    """Walk upward from ``start_dir`` to the first directory holding ``marker``."""
    current = start_dir.resolve()
    for _ in range(20):  # safety limit
        if (current / marker).is_file():
            return current
        parent = current.parent
        if parent == current:
            break
        current = parent
    return None


def find_settings_file(start_dir: Path | None = None) -> Path | None:
    """Search for lspinstall.yml starting from ``start_dir``, walking up."""
    current = (start_dir or Path.cwd()).resolve()
    for _ in range(20):
        candidate = current / SETTINGS_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break
        current = parent
    return None


def load_settings(path: Path | None = None) -> Settings:
    """Load and validate lspinstall.yml.

    Args:
        path: Explicit settings file.  If None, searches upward from the
            current directory and falls back to defaults.

    Raises:
        ConfigError: The explicit file is missing, or any file is invalid.
    """
    if path is None:
        path = find_settings_file()
        if path is None:
            logger.debug("No %s found, using defaults", SETTINGS_FILE)
            return Settings()
    elif not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading settings from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        settings = Settings.model_validate({**data, "config_root": path.parent.resolve()})
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e

    logger.info(
        "Loaded settings from %s (%d module patterns, %d static specs)",
        path, len(settings.modules), len(settings.install_specs),
    )
    return settings
