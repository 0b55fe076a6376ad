"""
Logging configuration for the ``lspinstall`` command.

``main.py`` calls ``setup_logging()`` once per invocation; modules log
through ``logging.getLogger(__name__)`` and never add handlers.

Console level, highest precedence first:
    --debug / --verbose / --quiet  >  LSPI_LOG_LEVEL  >  WARNING

``LSPI_LOG_FILE`` adds a file handler, at ``LSPI_LOG_FILE_LEVEL`` when set.
"""

from __future__ import annotations

import logging
import sys

# Console format per level; anything above INFO prints the bare message
_CONSOLE_FORMATS: dict[int, tuple[str, str | None]] = {
    logging.DEBUG: ("%(asctime)s %(levelname)-5s %(name)s:%(lineno)d: %(message)s", "%H:%M:%S"),
    logging.INFO: ("%(asctime)s %(levelname)-5s %(message)s", "%H:%M:%S"),
}
_PLAIN_FORMAT: tuple[str, str | None] = ("%(message)s", None)

_FILE_FORMAT = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d: %(message)s"
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Replace the root logger's handlers.

    Args:
        level: Console level name.
        log_file: Also write records to this file.
        log_file_level: Level for the file handler; defaults to ``level``.
    """
    console_level = parse_level(level)
    handlers: list[logging.Handler] = [_console_handler(console_level)]

    if log_file:
        handlers.append(_file_handler(log_file, parse_level(log_file_level or level)))

    root = logging.getLogger()
    root.handlers[:] = handlers
    root.setLevel(min(h.level for h in handlers))

    # A closed stream (e.g. after a test runner swaps stderr) must not crash the CLI
    logging.raiseExceptions = False


def parse_level(level: str | None) -> int:
    """Level name → numeric level; unknown or empty names mean WARNING."""
    numeric = getattr(logging, (level or "").upper(), None)
    return numeric if isinstance(numeric, int) else logging.WARNING


def _console_handler(level: int) -> logging.Handler:
    fmt, datefmt = next(
        (f for threshold, f in sorted(_CONSOLE_FORMATS.items()) if level <= threshold),
        _PLAIN_FORMAT,
    )
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    return handler


def _file_handler(path: str, level: int) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_FILE_DATEFMT))
    return handler
