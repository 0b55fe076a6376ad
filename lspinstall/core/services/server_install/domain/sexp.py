"""
L1 Domain — Emacs-Lisp s-expression reader.

Turns client configuration source into plain Python values.  Never
evaluates anything.

Value mapping:
    symbol / keyword   → ``Symbol``  (keywords keep their leading ``:``)
    "string"           → ``str``
    123 / 1.5          → ``int`` / ``float``
    ?a                 → ``int`` (character code, as Emacs does)
    (a b c)            → ``list``
    (a b . c)          → ``DottedList``
    [a b]              → ``tuple``
    'x  `x  ,x  ,@x    → ``[quote x]`` ``[backquote x]`` ``[comma x]`` ``[comma-at x]``
    #'f                → ``[function f]``

Public API:
    read_form(text, pos)          → (value, end_offset)
    read_all(text)                → list of values
    iter_toplevel(text)           → Form records for column-0 forms
    form_at(forms, pos)           → the form in ``forms`` enclosing ``pos``
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Iterable, Iterator

from lspinstall.core.services.server_install.errors import SexpSyntaxError

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════
#  Value types
# ═══════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class Symbol:
    """An interned Lisp symbol."""
    name: str

    @property
    def is_keyword(self) -> bool:
        return self.name.startswith(":")

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class DottedList:
    """An improper list ``(a b . tail)``."""
    items: tuple
    tail: Any


@dataclass(frozen=True)
class Form:
    """A top-level form and its character span in the source text."""
    value: Any
    start: int
    end: int


NIL = Symbol("nil")
T = Symbol("t")
QUOTE = Symbol("quote")
FUNCTION = Symbol("function")
BACKQUOTE = Symbol("backquote")
COMMA = Symbol("comma")
COMMA_AT = Symbol("comma-at")

_DELIMITERS = frozenset(" \t\r\n\f()[]\";'`,")
_INT_RE = re.compile(r"^[+-]?\d+\.?$")
_FLOAT_RE = re.compile(r"^[+-]?(\d+\.\d*|\.\d+|\d+)(e[+-]?\d+)?$", re.IGNORECASE)
_TOPLEVEL_RE = re.compile(r"^\(", re.MULTILINE)

_STRING_ESCAPES = {
    "n": "\n", "t": "\t", "r": "\r", "e": "\x1b",
    "a": "\a", "f": "\f", "s": " ", "d": "\x7f",
}


# ═══════════════════════════════════════════════════════════════════
#  Reader
# ═══════════════════════════════════════════════════════════════════


class _Reader:
    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def _skip_blank(self) -> None:
        text = self.text
        while self.pos < len(text):
            ch = text[self.pos]
            if ch == ";":
                nl = text.find("\n", self.pos)
                self.pos = len(text) if nl < 0 else nl + 1
            elif ch.isspace():
                self.pos += 1
            else:
                return

    def at_end(self) -> bool:
        self._skip_blank()
        return self.pos >= len(self.text)

    def read(self) -> Any:
        self._skip_blank()
        if self.pos >= len(self.text):
            raise SexpSyntaxError("Unexpected end of input", self.pos)

        ch = self.text[self.pos]
        if ch == "(":
            self.pos += 1
            return self._read_list(")")
        if ch == "[":
            self.pos += 1
            return tuple(self._read_list("]"))
        if ch in ")]":
            raise SexpSyntaxError(f"Unbalanced '{ch}'", self.pos)
        if ch == '"':
            return self._read_string()
        if ch == "?":
            return self._read_char()
        if ch == "'":
            self.pos += 1
            return [QUOTE, self.read()]
        if ch == "`":
            self.pos += 1
            return [BACKQUOTE, self.read()]
        if ch == ",":
            self.pos += 1
            if self.text.startswith("@", self.pos):
                self.pos += 1
                return [COMMA_AT, self.read()]
            return [COMMA, self.read()]
        if ch == "#":
            if self.text.startswith("#'", self.pos):
                self.pos += 2
                return [FUNCTION, self.read()]
            raise SexpSyntaxError("Unsupported '#' reader syntax", self.pos)
        return self._read_atom()

    def _read_list(self, close: str) -> Any:
        items: list[Any] = []
        while True:
            self._skip_blank()
            if self.pos >= len(self.text):
                raise SexpSyntaxError(f"Missing '{close}'", self.pos)
            ch = self.text[self.pos]
            if ch == close:
                self.pos += 1
                return items
            if ch in ")]":
                raise SexpSyntaxError(f"Expected '{close}', got '{ch}'", self.pos)

            value = self.read()
            if value == Symbol(".") and close == ")" and items:
                tail = self.read()
                self._skip_blank()
                if not self.text.startswith(")", self.pos):
                    raise SexpSyntaxError("Malformed dotted list", self.pos)
                self.pos += 1
                return DottedList(tuple(items), tail)
            items.append(value)

    def _read_string(self) -> str:
        start = self.pos
        self.pos += 1
        out: list[str] = []
        text = self.text
        while self.pos < len(text):
            ch = text[self.pos]
            if ch == '"':
                self.pos += 1
                return "".join(out)
            if ch == "\\":
                self.pos += 1
                if self.pos >= len(text):
                    break
                esc = text[self.pos]
                if esc == "\n":
                    pass  # line continuation
                else:
                    out.append(_STRING_ESCAPES.get(esc, esc))
                self.pos += 1
                continue
            out.append(ch)
            self.pos += 1
        raise SexpSyntaxError("Unterminated string", start)

    def _read_char(self) -> int:
        start = self.pos
        self.pos += 1
        if self.pos >= len(self.text):
            raise SexpSyntaxError("Bad character literal", start)
        ch = self.text[self.pos]
        self.pos += 1
        if ch == "\\":
            if self.pos >= len(self.text):
                raise SexpSyntaxError("Bad character literal", start)
            esc = self.text[self.pos]
            self.pos += 1
            return ord(_STRING_ESCAPES.get(esc, esc))
        return ord(ch)

    def _read_atom(self) -> Any:
        start = self.pos
        out: list[str] = []
        text = self.text
        while self.pos < len(text) and text[self.pos] not in _DELIMITERS:
            if text[self.pos] == "\\" and self.pos + 1 < len(text):
                self.pos += 1
            out.append(text[self.pos])
            self.pos += 1
        token = "".join(out)
        if not token:
            raise SexpSyntaxError(f"Unexpected character {text[start]!r}", start)
        if _INT_RE.match(token):
            return int(token.rstrip("."))
        if _FLOAT_RE.match(token) and any(c.isdigit() for c in token):
            return float(token)
        return Symbol(token)


def read_form(text: str, pos: int = 0) -> tuple[Any, int]:
    """Read one form starting at ``pos``.

    Returns:
        ``(value, end)`` where ``end`` is the offset just past the form.

    Raises:
        SexpSyntaxError: The text at ``pos`` is not a complete form.
    """
    reader = _Reader(text)
    reader.pos = pos
    value = reader.read()
    return value, reader.pos


def read_all(text: str) -> list[Any]:
    """Read every form in ``text``."""
    reader = _Reader(text)
    forms = []
    while not reader.at_end():
        forms.append(reader.read())
    return forms


def iter_toplevel(text: str) -> Iterator[Form]:
    """Yield every top-level form that opens in column 0.

    Forms that fail to read are logged and skipped; the scan resumes at
    the next column-0 paren.
    """
    resume = 0
    for match in _TOPLEVEL_RE.finditer(text):
        start = match.start()
        if start < resume:
            continue
        try:
            value, end = read_form(text, start)
        except SexpSyntaxError as e:
            logger.debug("Skipping unreadable form at %d: %s", start, e)
            continue
        resume = end
        yield Form(value, start, end)


def form_at(forms: Iterable[Form], offset: int) -> Form | None:
    """Return the form whose span contains ``offset``."""
    return next((f for f in forms if f.start <= offset < f.end), None)


def is_call(value: Any, *names: str) -> bool:
    """Whether ``value`` is a list form whose head symbol is one of ``names``."""
    return (
        isinstance(value, list)
        and bool(value)
        and isinstance(value[0], Symbol)
        and value[0].name in names
    )


def plist_get(items: list, key: str, default: Any = None) -> Any:
    """Look up ``:key`` in a flat keyword/value argument list."""
    for i in range(len(items) - 1):
        item = items[i]
        if isinstance(item, Symbol) and item.name == key:
            return items[i + 1]
    return default
