"""
L3 Detection — Library index.

Maps each client id to the configuration module that registers it.
Built lazily from two sources:

    - the configured base modules (``modules:`` globs)
    - modules discovered through a ``GroupRegistry`` (``groups:`` names
      resolved along ``load_path``, the way ``locate-library`` does)

The index lives for the life of its owner and is only rebuilt through
``invalidate()`` / ``build()``.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Callable, Iterable, Protocol

from lspinstall.core.services.server_install.errors import IndexUnavailable

logger = logging.getLogger(__name__)

SERVER_ID_RE = re.compile(r":server-id\s+'([^\s()']+)")


class GroupRegistry(Protocol):
    """Source of configuration groups whose modules should be indexed."""

    def group_names(self) -> Iterable[str]: ...

    def locate(self, name: str) -> Path:
        """Return the module file of group ``name``.

        Raises:
            IndexUnavailable: No module could be found.
        """
        ...


class LoadPathRegistry:
    """Resolve ``<group>.el`` against an ordered list of directories."""

    def __init__(self, groups: Iterable[str], load_path: Iterable[Path]) -> None:
        self._groups = list(groups)
        self._load_path = list(load_path)

    def group_names(self) -> list[str]:
        return list(self._groups)

    def locate(self, name: str) -> Path:
        for directory in self._load_path:
            candidate = directory / f"{name}.el"
            if candidate.is_file():
                return candidate
        raise IndexUnavailable(f"No module for group {name} on the load path")


class LibraryIndex:
    """Cache of ``server id → module file``.

    Args:
        base_modules: Callable returning the statically configured modules.
        registry: Optional group registry for discovered modules.
        notify: Called with human-readable progress messages.
    """

    def __init__(
        self,
        base_modules: Callable[[], Iterable[Path]],
        registry: GroupRegistry | None = None,
        notify: Callable[[str], None] | None = None,
    ) -> None:
        self._base_modules = base_modules
        self._registry = registry
        self._notify = notify or (lambda _msg: None)
        self._entries: dict[str, Path] | None = None

    @property
    def is_built(self) -> bool:
        return self._entries is not None

    def get(self, server_id: str) -> Path | None:
        """File registering ``server_id``, building the index on first use."""
        return self.entries().get(server_id)

    def entries(self) -> dict[str, Path]:
        if self._entries is None:
            return self.build()
        return dict(self._entries)

    def invalidate(self) -> None:
        self._entries = None

    def build(self) -> dict[str, Path]:
        """Scan every module and replace the cached index."""
        files = self._collect_files()
        self._notify(f"Indexing {len(files)} configuration modules...")

        entries: dict[str, Path] = {}
        for path in files:
            for server_id in scan_server_ids(path):
                existing = entries.setdefault(server_id, path)
                if existing != path:
                    logger.debug(
                        "%s declared again in %s (keeping %s)", server_id, path, existing,
                    )

        self._entries = entries
        self._notify(f"Indexed {len(entries)} clients from {len(files)} modules")
        logger.info("Library index built: %d clients, %d files", len(entries), len(files))
        return dict(entries)

    def _collect_files(self) -> list[Path]:
        candidates: list[Path] = list(self._base_modules())

        if self._registry is not None:
            for name in self._registry.group_names():
                try:
                    candidates.append(self._registry.locate(name))
                except IndexUnavailable as e:
                    logger.warning("Skipping group %s: %s", name, e)

        seen: set[tuple[int, int]] = set()
        files: list[Path] = []
        for path in candidates:
            try:
                st = path.stat()
            except OSError as e:
                logger.warning("Skipping %s: %s", path, e)
                continue
            identity = (st.st_dev, st.st_ino)
            if identity in seen:
                continue
            seen.add(identity)
            files.append(path)
        return files


def scan_server_ids(path: Path) -> list[str]:
    """Every id declared with ``:server-id 'ID`` in ``path``, in file order."""
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        logger.warning("Cannot read %s: %s", path, e)
        return []
    return SERVER_ID_RE.findall(text)
