"""
Error kinds raised along the resolution chain.

Propagation rules:
    - ``IndexUnavailable``      absorbed by the indexer (logged, scan goes on)
    - ``ResolutionError``       absorbed by the engine (falls back to group link)
    - ``NotFoundError``         ends the attempt; surfaced as ``NoInformationError``
    - ``UnsupportedSpecError``  surfaced immediately
    - ``NoInformationError``    terminal, shown to the user
"""

from __future__ import annotations


class ServerInstallError(Exception):
    """Base class for every error raised by the server-install service."""


class IndexUnavailable(ServerInstallError):
    """A configuration module could not be located for indexing."""


class ResolutionError(ServerInstallError):
    """The executable name of a client could not be computed."""


class SexpSyntaxError(ResolutionError):
    """Lisp source text could not be read."""

    def __init__(self, message: str, offset: int) -> None:
        super().__init__(f"{message} (at offset {offset})")
        self.offset = offset


class NotFoundError(ServerInstallError):
    """The documentation file, section, table or row is missing."""


class UnsupportedSpecError(ServerInstallError):
    """A static install specification has a shape we do not understand."""


class NoInformationError(ServerInstallError):
    """Every fallback is exhausted — nothing tells us how to install the server."""

    def __init__(self, server_id: str, message: str | None = None) -> None:
        super().__init__(message or f"No information on {server_id}")
        self.server_id = server_id
