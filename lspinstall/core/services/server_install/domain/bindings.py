"""
L1 Domain — Top-level bindings of a configuration module.

Collects what a client registration may refer to: variables declared
with ``defcustom`` / ``defvar`` / ``defconst`` and helper functions
declared with ``defun``.  Values are kept unevaluated; the resolver
evaluates them on demand.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

from lspinstall.core.services.server_install.domain.sexp import Form, Symbol, is_call

_VARIABLE_DEFINERS = ("defcustom", "defvar", "defconst", "defvar-local")
_FUNCTION_DEFINERS = ("defun", "defsubst", "cl-defun")


@dataclass(frozen=True)
class FunctionDef:
    name: str
    params: tuple[Symbol, ...]
    body: tuple[Any, ...]


@dataclass
class FileBindings:
    """Variables and functions defined at the top level of one file."""
    variables: dict[str, Any] = field(default_factory=dict)   # name → init form
    functions: dict[str, FunctionDef] = field(default_factory=dict)


def collect_bindings(forms: Iterable[Form]) -> FileBindings:
    bindings = FileBindings()
    for form in forms:
        _collect(form.value, bindings)
    return bindings


def _collect(value: Any, bindings: FileBindings) -> None:
    if is_call(value, "progn", "eval-and-compile", "eval-when-compile"):
        for child in value[1:]:
            _collect(child, bindings)
        return

    if is_call(value, *_VARIABLE_DEFINERS) and len(value) >= 2 and isinstance(value[1], Symbol):
        name = value[1].name
        # (defvar foo) only declares the variable
        if len(value) >= 3 and name not in bindings.variables:
            bindings.variables[name] = value[2]
        return

    if is_call(value, *_FUNCTION_DEFINERS) and len(value) >= 3 and isinstance(value[1], Symbol):
        params = value[2] if isinstance(value[2], list) else []
        body = list(value[3:])
        if body and isinstance(body[0], str) and len(body) > 1:
            body = body[1:]  # docstring
        body = [b for b in body if not is_call(b, "declare", "interactive")]
        bindings.functions.setdefault(
            value[1].name,
            FunctionDef(
                name=value[1].name,
                params=tuple(p for p in params if isinstance(p, Symbol)),
                body=tuple(body),
            ),
        )
