"""
L3 Detection — "Supported languages" table lookup.

Reads the Org documentation file and finds the install command for an
executable::

    * Supported languages
    | Language | Server        | Installation command                          |
    |----------+---------------+-----------------------------------------------|
    | Python   | pyls          | pip install 'python-language-server[all]'     |
    | Bash     | bash-language-server | npm i -g bash-language-server          |

The command column is the first header cell mentioning "install"; with
no header row the last column is used.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

from lspinstall.core.services.server_install.errors import NotFoundError

logger = logging.getLogger(__name__)

SECTION_RE = re.compile(r"^\*+\s+Supported languages\b", re.IGNORECASE)
_HEADING_RE = re.compile(r"^(\*+)\s")
_SEPARATOR_RE = re.compile(r"^\|[-+|\s]*\|?$")
_VERBATIM_RE = re.compile(r"^([=~])((?:(?!\1).)+)\1$")


@dataclass(frozen=True)
class TableRow:
    """One body row of the table."""
    line_number: int             # 1-based line in the docs file
    cells: tuple[str, ...]

    @property
    def text(self) -> str:
        return " | ".join(self.cells)


def split_row(line: str) -> tuple[str, ...]:
    """``| a | b |`` → ``("a", "b")``."""
    body = line.strip()
    if body.startswith("|"):
        body = body[1:]
    if body.endswith("|"):
        body = body[:-1]
    return tuple(cell.strip() for cell in body.split("|"))


def _strip_markup(cell: str) -> str:
    cell = cell.strip()
    match = _VERBATIM_RE.match(cell)
    return match.group(2).strip() if match else cell


def read_table(lines: list[str]) -> tuple[tuple[str, ...] | None, list[TableRow]]:
    """Locate the first table under the "Supported languages" heading.

    Returns:
        ``(header, rows)``; ``header`` is ``None`` when the table has no
        separator row.

    Raises:
        NotFoundError: Section or table missing.
    """
    section = next((i for i, line in enumerate(lines) if SECTION_RE.match(line)), None)
    if section is None:
        raise NotFoundError("No 'Supported languages' section in the documentation")

    # Subheadings belong to the section; a sibling or parent heading ends it
    depth = len(lines[section]) - len(lines[section].lstrip("*"))
    start = None
    for i in range(section + 1, len(lines)):
        stripped = lines[i].lstrip()
        heading = _HEADING_RE.match(lines[i])
        if heading and len(heading.group(1)) <= depth:
            break
        if stripped.startswith("|"):
            start = i
            break
    if start is None:
        raise NotFoundError("No table under 'Supported languages'")

    raw: list[tuple[int, str]] = []
    for i in range(start, len(lines)):
        stripped = lines[i].strip()
        if not stripped.startswith("|"):
            break
        raw.append((i + 1, stripped))

    header: tuple[str, ...] | None = None
    body = raw
    if len(raw) >= 2 and _SEPARATOR_RE.match(raw[1][1]):
        header = split_row(raw[0][1])
        body = raw[2:]

    rows = [
        TableRow(line_number=n, cells=split_row(line))
        for n, line in body
        if not _SEPARATOR_RE.match(line)
    ]
    return header, rows


def command_column(header: tuple[str, ...] | None) -> int:
    """Index of the install-command column (``-1`` = last)."""
    if header:
        for i, name in enumerate(header):
            if "install" in name.lower():
                return i
    return -1


def find_install_command(executable: str, docs_path: Path) -> str:
    """Return the documented install command for ``executable``.

    Raises:
        NotFoundError: The file, section, table, row, or command is missing.
    """
    if not docs_path.is_file():
        raise NotFoundError(f"Documentation file not found: {docs_path}")

    try:
        with docs_path.open(encoding="utf-8", errors="replace") as fh:
            lines = fh.read().splitlines()
    except OSError as e:
        raise NotFoundError(f"Cannot read {docs_path}: {e}") from e

    header, rows = read_table(lines)
    column = command_column(header)

    for row in rows:
        if executable not in row.text:
            continue
        try:
            command = _strip_markup(row.cells[column])
        except IndexError:
            command = ""
        logger.debug("Row %d of %s matches %s", row.line_number, docs_path, executable)
        if not command:
            raise NotFoundError(f"No install command documented for {executable}")
        return command

    raise NotFoundError(f"{executable} is not listed in {docs_path.name}")
