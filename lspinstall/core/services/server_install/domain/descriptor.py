"""
L1 Domain — Client descriptors.

Recognises the shape of a ``:new-connection`` value and turns it into a
``ClientDescriptor``.  Interpreting the shape is the resolver's job.

    (lsp-stdio-connection "pyls")                       → LiteralCommand
    (lsp-stdio-connection '("pyls" "--stdio"))          → LiteralCommand
    (lsp-stdio-connection (lambda () ...))              → DeferredCommand
    (lsp-tcp-connection (lambda (port) ...))            → DeferredCommand
    (lsp-stdio-connection lsp-foo-command)              → SymbolCommand
    (lsp-stdio-connection (-const "foo"))               → ExpressionCommand
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Iterator

from lspinstall.core.services.server_install.domain.sexp import (
    NIL,
    DottedList,
    Symbol,
    is_call,
    plist_get,
)


class ConnectionType(enum.Enum):
    STDIO = "stdio"
    TCP = "tcp"


CONNECTION_CONSTRUCTORS: dict[str, ConnectionType] = {
    "lsp-stdio-connection": ConnectionType.STDIO,
    "lsp-tramp-connection": ConnectionType.STDIO,
    "lsp-tcp-connection": ConnectionType.TCP,
    "lsp-tcp-server": ConnectionType.TCP,
    "lsp-tcp-server-command": ConnectionType.TCP,
}

REGISTRATION_CONSTRUCTOR = "make-lsp-client"


# ═══════════════════════════════════════════════════════════════════
#  Command spec variants
# ═══════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class LiteralCommand:
    """A string, or a list of strings whose head is the executable."""
    value: str | tuple[Any, ...]


@dataclass(frozen=True)
class DeferredCommand:
    """A ``lambda`` that computes the command when called."""
    params: tuple[Symbol, ...]
    body: tuple[Any, ...]


@dataclass(frozen=True)
class SymbolCommand:
    """A variable whose current value is the command."""
    name: str


@dataclass(frozen=True)
class ExpressionCommand:
    """Any other form; evaluated to find the command."""
    expr: Any


CommandSpec = LiteralCommand | DeferredCommand | SymbolCommand | ExpressionCommand


@dataclass(frozen=True)
class ClientDescriptor:
    """Parsed ``:new-connection`` of one client registration."""
    connection_type: ConnectionType
    command_spec: CommandSpec


@dataclass(frozen=True)
class ConfigGroup:
    """The ``defgroup`` a client lives in."""
    name: str
    links: tuple[str, ...] = field(default_factory=tuple)

    @property
    def single_link(self) -> str | None:
        return self.links[0] if len(self.links) == 1 else None


# ═══════════════════════════════════════════════════════════════════
#  Parsing
# ═══════════════════════════════════════════════════════════════════


def parse_command_spec(value: Any) -> CommandSpec:
    """Classify the command argument of a connection constructor."""
    if isinstance(value, str):
        return LiteralCommand(value)

    if isinstance(value, Symbol) and value != NIL and not value.is_keyword:
        return SymbolCommand(value.name)

    if is_call(value, "quote") and len(value) == 2:
        quoted = value[1]
        if isinstance(quoted, list) and quoted and all(isinstance(v, str) for v in quoted):
            return LiteralCommand(tuple(quoted))
        if isinstance(quoted, Symbol):
            # 'foo passed as a function name
            return ExpressionCommand([Symbol("function"), quoted])

    if is_call(value, "list") and len(value) > 1 and all(isinstance(v, str) for v in value[1:]):
        return LiteralCommand(tuple(value[1:]))

    lam = _unwrap_lambda(value)
    if lam is not None:
        params = lam[1] if len(lam) > 1 and isinstance(lam[1], list) else []
        return DeferredCommand(
            params=tuple(p for p in params if isinstance(p, Symbol)),
            body=tuple(lam[2:]),
        )

    return ExpressionCommand(value)


def _unwrap_lambda(value: Any) -> list | None:
    """Return the ``(lambda ...)`` form, looking through ``#'`` quoting."""
    if is_call(value, "function") and len(value) == 2:
        value = value[1]
    if is_call(value, "lambda"):
        return value
    return None


def iter_registrations(form: Any) -> Iterator[list]:
    """Depth-first walk yielding every ``make-lsp-client`` call inside ``form``."""
    if is_call(form, REGISTRATION_CONSTRUCTOR):
        yield form
        return
    if isinstance(form, list):
        children = form
    elif isinstance(form, DottedList):
        children = list(form.items) + [form.tail]
    else:
        return
    for child in children:
        yield from iter_registrations(child)


def registration_server_id(registration: list) -> str | None:
    """The id in ``:server-id 'ID``, if the call declares one."""
    value = plist_get(registration[1:], ":server-id")
    if is_call(value, "quote") and len(value) == 2 and isinstance(value[1], Symbol):
        return value[1].name
    return None


def parse_descriptor(registration: list) -> ClientDescriptor | None:
    """Build a descriptor from a ``(make-lsp-client ...)`` call.

    Returns:
        ``None`` if the call has no recognisable ``:new-connection``.
    """
    connection = plist_get(registration[1:], ":new-connection")
    if not isinstance(connection, list) or not connection:
        return None

    head = connection[0]
    if not isinstance(head, Symbol) or head.name not in CONNECTION_CONSTRUCTORS:
        return None
    if len(connection) < 2:
        return None

    return ClientDescriptor(
        connection_type=CONNECTION_CONSTRUCTORS[head.name],
        command_spec=parse_command_spec(connection[1]),
    )


def parse_defgroup(form: Any) -> ConfigGroup | None:
    """Build a ``ConfigGroup`` from a ``(defgroup NAME MEMBERS DOC ...)`` form."""
    if not is_call(form, "defgroup") or len(form) < 2 or not isinstance(form[1], Symbol):
        return None

    links: list[str] = []
    options = form[4:] if len(form) > 4 else []
    for i in range(0, len(options) - 1, 2):
        key, value = options[i], options[i + 1]
        if key != Symbol(":link"):
            continue
        url = _link_url(value)
        if url:
            links.append(url)
    return ConfigGroup(name=form[1].name, links=tuple(links))


def _link_url(value: Any) -> str | None:
    """Pull the URL out of ``'(url-link "...")``."""
    if is_call(value, "quote", "backquote") and len(value) == 2:
        value = value[1]
    if not isinstance(value, list) or len(value) < 2:
        return None
    if value[0] != Symbol("url-link"):
        return None
    # (url-link :tag "Docs" "https://..."): the URL is the last string
    strings = [v for v in value[1:] if isinstance(v, str)]
    return strings[-1] if strings else None

