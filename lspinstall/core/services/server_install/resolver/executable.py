"""
L2 Resolver — Executable name resolution.

Walks a ``ClientDescriptor``'s command spec down to the name of the
binary the client will exec.  Order of specificity:

    1. literal string or string list       → the (first) string
    2. lambda                              → call it, classify the result
    3. variable                            → its value, classify the result
    4. any other expression                → evaluate, classify the result

"Classify" means: a string ends the walk; a list or cons yields its
head; a callable is invoked (no arguments for stdio, a placeholder port
for tcp); a symbol is looked up.  Everything else is a ``ResolutionError``.
"""

from __future__ import annotations

import logging
from typing import Any

from lspinstall.core.services.server_install.domain.descriptor import (
    ClientDescriptor,
    ConnectionType,
    DeferredCommand,
    ExpressionCommand,
    LiteralCommand,
    SymbolCommand,
)
from lspinstall.core.services.server_install.domain.sexp import NIL, T, DottedList, Symbol
from lspinstall.core.services.server_install.errors import ResolutionError
from lspinstall.core.services.server_install.resolver.evaluator import (
    Closure,
    Evaluator,
    is_callable,
)

logger = logging.getLogger(__name__)

# Port handed to tcp command functions; only the command's head matters.
PLACEHOLDER_PORT = 0

_MAX_HOPS = 16


def resolve_executable(
    descriptor: ClientDescriptor,
    evaluator: Evaluator | None = None,
    *,
    port: int = PLACEHOLDER_PORT,
) -> str:
    """Compute the executable a client launches.

    Args:
        descriptor: Parsed ``:new-connection`` of the client.
        evaluator: Evaluator bound to the owning file's definitions.
        port: Placeholder passed to tcp command functions.

    Returns:
        The executable name (as written; may be a path).

    Raises:
        ResolutionError: The command cannot be computed.
    """
    evaluator = evaluator or Evaluator()
    spec = descriptor.command_spec
    walk = _Walk(evaluator, descriptor.connection_type, port)

    if isinstance(spec, LiteralCommand):
        value: Any = list(spec.value) if isinstance(spec.value, tuple) else spec.value
    elif isinstance(spec, DeferredCommand):
        value = Closure(params=spec.params, body=spec.body)
    elif isinstance(spec, SymbolCommand):
        value = evaluator.lookup(spec.name)
    elif isinstance(spec, ExpressionCommand):
        value = evaluator.eval(spec.expr)
    else:
        raise ResolutionError(f"Unknown command spec: {spec!r}")

    executable = walk.classify(value)
    logger.debug("Resolved %s command to %r", type(spec).__name__, executable)
    return executable


class _Walk:
    def __init__(self, evaluator: Evaluator, connection_type: ConnectionType, port: int) -> None:
        self.evaluator = evaluator
        self.connection_type = connection_type
        self.port = port

    def invoke(self, fn: Any) -> Any:
        args = [] if self.connection_type is ConnectionType.STDIO else [self.port]
        return self.evaluator.call(fn, args)

    def classify(self, value: Any) -> str:
        for _ in range(_MAX_HOPS):
            if isinstance(value, str):
                if not value.strip():
                    raise ResolutionError("Command resolved to an empty string")
                return value
            if is_callable(value):
                value = self.invoke(value)
            elif isinstance(value, list) and value:
                value = value[0]
            elif isinstance(value, tuple) and value:
                value = value[0]
            elif isinstance(value, DottedList):
                value = value.items[0]
            elif isinstance(value, Symbol) and value not in (NIL, T) and not value.is_keyword:
                value = self.evaluator.lookup(value.name)
            else:
                raise ResolutionError(f"Command did not resolve to a string: {value!r}")
        raise ResolutionError("Command resolution did not converge")
