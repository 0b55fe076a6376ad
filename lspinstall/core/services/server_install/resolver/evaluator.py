"""
L2 Resolver — Bounded Lisp evaluator.

Evaluates the small subset of Emacs Lisp that client registrations use
to compute their command line.  Nothing outside the subset is ever run:
an unknown function, a void variable or excessive nesting raises
``ResolutionError``.

Supported:
    special forms   quote function lambda progn if when unless cond
                    or and let let* backquote
    builtins        see ``_BUILTINS`` below
    user code       ``defun``s and variables of the owning file,
                    plus user overrides from ``lspinstall.yml``
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from typing import Any, Callable

from lspinstall.core.services.server_install.domain.bindings import FileBindings
from lspinstall.core.services.server_install.domain.sexp import (
    NIL,
    T,
    DottedList,
    Symbol,
)
from lspinstall.core.services.server_install.errors import ResolutionError

logger = logging.getLogger(__name__)

MAX_DEPTH = 64

_OPTIONAL = Symbol("&optional")
_REST = Symbol("&rest")


# ═══════════════════════════════════════════════════════════════════
#  Runtime values
# ═══════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class Closure:
    """A ``lambda`` together with the lexical scope it closed over."""
    params: tuple[Symbol, ...]
    body: tuple[Any, ...]
    scope: dict[str, Any] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class FunctionRef:
    """A named function, as produced by ``#'name``."""
    name: str


def is_callable(value: Any) -> bool:
    return isinstance(value, (Closure, FunctionRef))


def truthy(value: Any) -> bool:
    return not (value == NIL or value == [])


def _bool(value: bool) -> Symbol:
    return T if value else NIL


def _as_list(value: Any, fn: str) -> list:
    if value == NIL:
        return []
    if isinstance(value, list):
        return value
    if isinstance(value, tuple):
        return list(value)
    raise ResolutionError(f"{fn}: expected a list, got {value!r}")


def _as_str(value: Any, fn: str) -> str:
    if isinstance(value, str):
        return value
    raise ResolutionError(f"{fn}: expected a string, got {value!r}")


# ═══════════════════════════════════════════════════════════════════
#  Builtins: pure, argument-evaluated functions
# ═══════════════════════════════════════════════════════════════════


def _cons(head: Any, tail: Any) -> Any:
    if tail == NIL:
        return [head]
    if isinstance(tail, list):
        return [head] + tail
    return DottedList((head,), tail)


def _car(value: Any) -> Any:
    if isinstance(value, DottedList):
        return value.items[0]
    items = _as_list(value, "car")
    return items[0] if items else NIL


def _cdr(value: Any) -> Any:
    if isinstance(value, DottedList):
        rest = value.items[1:]
        return DottedList(rest, value.tail) if rest else value.tail
    items = _as_list(value, "cdr")
    return items[1:] if len(items) > 1 else NIL


def _append(*lists: Any) -> Any:
    out: list = []
    for item in lists:
        out.extend(_as_list(item, "append"))
    return out or NIL


def _concat(*parts: Any) -> str:
    return "".join("" if p == NIL else _as_str(p, "concat") for p in parts)


_FORMAT_RE = re.compile(r"%([sSdx%])")


def _format(fmt: Any, *args: Any) -> str:
    template = _as_str(fmt, "format")
    queue = list(args)

    def _sub(match: re.Match) -> str:
        spec = match.group(1)
        if spec == "%":
            return "%"
        if not queue:
            raise ResolutionError("format: not enough arguments")
        arg = queue.pop(0)
        if spec == "d":
            return str(int(arg))
        if spec == "x":
            return format(int(arg), "x")
        return str(arg)

    return _FORMAT_RE.sub(_sub, template)


def _number_to_string(value: Any) -> str:
    if isinstance(value, (int, float)):
        return str(value)
    raise ResolutionError(f"number-to-string: expected a number, got {value!r}")


def _expand_file_name(name: Any, directory: Any = NIL) -> str:
    path = os.path.expanduser(_as_str(name, "expand-file-name"))
    if directory != NIL and not os.path.isabs(path):
        path = os.path.join(os.path.expanduser(_as_str(directory, "expand-file-name")), path)
    return os.path.normpath(path)


def _f_join(*parts: Any) -> str:
    return os.path.join(*[_as_str(p, "f-join") for p in parts])


def _file_name_nondirectory(name: Any) -> str:
    return os.path.basename(_as_str(name, "file-name-nondirectory"))


def _equal(a: Any, b: Any) -> Symbol:
    return _bool(a == b)


def _string_eq(a: Any, b: Any) -> Symbol:
    if isinstance(a, Symbol):
        a = a.name
    if isinstance(b, Symbol):
        b = b.name
    return _bool(a == b)


_BUILTINS: dict[str, Callable[..., Any]] = {
    "list": lambda *args: list(args) or NIL,
    "cons": _cons,
    "car": _car,
    "cdr": _cdr,
    "append": _append,
    "concat": _concat,
    "format": _format,
    "number-to-string": _number_to_string,
    "expand-file-name": _expand_file_name,
    "f-join": _f_join,
    "file-name-nondirectory": _file_name_nondirectory,
    "identity": lambda value: value,
    "not": lambda value: _bool(not truthy(value)),
    "null": lambda value: _bool(not truthy(value)),
    "eq": _equal,
    "equal": _equal,
    "string=": _string_eq,
    "string-equal": _string_eq,
}


# ═══════════════════════════════════════════════════════════════════
#  Evaluator
# ═══════════════════════════════════════════════════════════════════


class Evaluator:
    """Evaluate forms against one file's bindings.

    Args:
        bindings: Top-level definitions of the file that owns the client.
        overrides: User-set variable values (already Python values).
        which: ``shutil.which``-compatible lookup backing ``executable-find``.
    """

    def __init__(
        self,
        bindings: FileBindings | None = None,
        overrides: dict[str, Any] | None = None,
        which: Callable[[str], str | None] | None = None,
    ) -> None:
        self.bindings = bindings or FileBindings()
        self.overrides = {
            name: NIL if value is None else value
            for name, value in (overrides or {}).items()
        }
        self.which = which or (lambda _name: None)
        self._values: dict[str, Any] = {}
        self._pending: set[str] = set()

    # ── Variables ───────────────────────────────────────────────

    def lookup(self, name: str, scope: dict[str, Any] | None = None, depth: int = 0) -> Any:
        """Current value of variable ``name``."""
        if name == "nil":
            return NIL
        if name == "t" or name.startswith(":"):
            return Symbol(name)
        if scope and name in scope:
            return scope[name]
        if name in self.overrides:
            return self.overrides[name]
        if name in self._values:
            return self._values[name]
        if name not in self.bindings.variables:
            raise ResolutionError(f"Void variable: {name}")
        if name in self._pending:
            raise ResolutionError(f"Circular definition of {name}")

        self._pending.add(name)
        try:
            value = self.eval(self.bindings.variables[name], None, depth + 1)
        finally:
            self._pending.discard(name)
        self._values[name] = value
        return value

    # ── Evaluation ──────────────────────────────────────────────

    def eval(self, expr: Any, scope: dict[str, Any] | None = None, depth: int = 0) -> Any:
        if depth > MAX_DEPTH:
            raise ResolutionError("Evaluation nested too deeply")

        if isinstance(expr, (str, int, float, tuple, Closure, FunctionRef, DottedList)):
            return expr
        if isinstance(expr, Symbol):
            return self.lookup(expr.name, scope, depth)
        if not isinstance(expr, list):
            raise ResolutionError(f"Cannot evaluate {expr!r}")
        if not expr:
            return NIL

        head, args = expr[0], expr[1:]
        if not isinstance(head, Symbol):
            raise ResolutionError(f"Invalid function: {head!r}")

        special = _SPECIAL_FORMS.get(head.name)
        if special is not None:
            return special(self, args, scope, depth + 1)

        values = [self.eval(a, scope, depth + 1) for a in args]
        return self.call(FunctionRef(head.name), values, depth + 1)

    def progn(self, body: Any, scope: dict[str, Any] | None, depth: int) -> Any:
        result = NIL
        for form in body:
            result = self.eval(form, scope, depth)
        return result

    # ── Calls ───────────────────────────────────────────────────

    def call(self, fn: Any, args: list[Any], depth: int = 0) -> Any:
        """Apply a callable value to already-evaluated ``args``."""
        if depth > MAX_DEPTH:
            raise ResolutionError("Evaluation nested too deeply")

        if isinstance(fn, Symbol):
            fn = FunctionRef(fn.name)

        if isinstance(fn, Closure):
            scope = dict(fn.scope)
            scope.update(_bind_params(fn.params, args, "lambda"))
            return self.progn(fn.body, scope, depth + 1)

        if not isinstance(fn, FunctionRef):
            raise ResolutionError(f"Invalid function: {fn!r}")

        name = fn.name
        if name == "funcall":
            if not args:
                raise ResolutionError("funcall: missing function")
            return self.call(args[0], args[1:], depth + 1)
        if name == "executable-find":
            found = self.which(_as_str(args[0], name)) if args else None
            return found if found else NIL
        if name == "symbol-value":
            if not args or not isinstance(args[0], Symbol):
                raise ResolutionError("symbol-value: expected a symbol")
            return self.lookup(args[0].name, None, depth + 1)
        if name == "-const":
            if len(args) != 1:
                raise ResolutionError("-const: expected one argument")
            return Closure(params=(_REST, Symbol("_")), body=([Symbol("quote"), args[0]],))

        builtin = _BUILTINS.get(name)
        if builtin is not None:
            try:
                return builtin(*args)
            except (TypeError, ValueError) as e:
                raise ResolutionError(f"{name}: {e}") from e

        defun = self.bindings.functions.get(name)
        if defun is not None:
            scope = _bind_params(defun.params, args, name)
            return self.progn(defun.body, scope, depth + 1)

        logger.debug("Refusing to call %s: not in the evaluable subset", name)
        raise ResolutionError(f"Unsupported function: {name}")


def _bind_params(params: tuple[Symbol, ...], args: list[Any], fn: str) -> dict[str, Any]:
    scope: dict[str, Any] = {}
    optional = False
    remaining = list(args)
    it = iter(params)
    for param in it:
        if param == _OPTIONAL:
            optional = True
            continue
        if param == _REST:
            rest = next(it, None)
            if rest is not None:
                scope[rest.name] = remaining or NIL
            remaining = []
            break
        if remaining:
            scope[param.name] = remaining.pop(0)
        elif optional:
            scope[param.name] = NIL
        else:
            raise ResolutionError(f"{fn}: wrong number of arguments ({len(args)})")
    if remaining:
        raise ResolutionError(f"{fn}: wrong number of arguments ({len(args)})")
    return scope


# ═══════════════════════════════════════════════════════════════════
#  Special forms: arguments arrive unevaluated
# ═══════════════════════════════════════════════════════════════════


def _sf_quote(ev: Evaluator, args: list, scope: dict | None, depth: int) -> Any:
    if len(args) != 1:
        raise ResolutionError("quote: expected one argument")
    return args[0]


def _sf_function(ev: Evaluator, args: list, scope: dict | None, depth: int) -> Any:
    if len(args) != 1:
        raise ResolutionError("function: expected one argument")
    target = args[0]
    if isinstance(target, Symbol):
        return FunctionRef(target.name)
    if isinstance(target, list) and target and target[0] == Symbol("lambda"):
        return _sf_lambda(ev, target[1:], scope, depth)
    raise ResolutionError(f"function: invalid argument {target!r}")


def _sf_lambda(ev: Evaluator, args: list, scope: dict | None, depth: int) -> Closure:
    params = args[0] if args and isinstance(args[0], list) else []
    return Closure(
        params=tuple(p for p in params if isinstance(p, Symbol)),
        body=tuple(args[1:]),
        scope=dict(scope or {}),
    )


def _sf_progn(ev: Evaluator, args: list, scope: dict | None, depth: int) -> Any:
    return ev.progn(args, scope, depth)


def _sf_if(ev: Evaluator, args: list, scope: dict | None, depth: int) -> Any:
    if len(args) < 2:
        raise ResolutionError("if: expected a condition and a branch")
    if truthy(ev.eval(args[0], scope, depth)):
        return ev.eval(args[1], scope, depth)
    return ev.progn(args[2:], scope, depth)


def _sf_when(ev: Evaluator, args: list, scope: dict | None, depth: int) -> Any:
    if args and truthy(ev.eval(args[0], scope, depth)):
        return ev.progn(args[1:], scope, depth)
    return NIL


def _sf_unless(ev: Evaluator, args: list, scope: dict | None, depth: int) -> Any:
    if args and not truthy(ev.eval(args[0], scope, depth)):
        return ev.progn(args[1:], scope, depth)
    return NIL


def _sf_cond(ev: Evaluator, args: list, scope: dict | None, depth: int) -> Any:
    for clause in args:
        if not isinstance(clause, list) or not clause:
            raise ResolutionError(f"cond: invalid clause {clause!r}")
        test = ev.eval(clause[0], scope, depth)
        if truthy(test):
            return ev.progn(clause[1:], scope, depth) if len(clause) > 1 else test
    return NIL


def _sf_or(ev: Evaluator, args: list, scope: dict | None, depth: int) -> Any:
    for form in args:
        value = ev.eval(form, scope, depth)
        if truthy(value):
            return value
    return NIL


def _sf_and(ev: Evaluator, args: list, scope: dict | None, depth: int) -> Any:
    value: Any = T
    for form in args:
        value = ev.eval(form, scope, depth)
        if not truthy(value):
            return NIL
    return value


def _let(ev: Evaluator, args: list, scope: dict | None, depth: int, sequential: bool) -> Any:
    if not args or not isinstance(args[0], (list, Symbol)):
        raise ResolutionError("let: malformed bindings")
    specs = args[0] if isinstance(args[0], list) else []
    inner = dict(scope or {})
    for spec in specs:
        if isinstance(spec, Symbol):
            name, value = spec.name, NIL
        elif isinstance(spec, list) and spec and isinstance(spec[0], Symbol):
            source = inner if sequential else scope
            value = ev.eval(spec[1], source, depth) if len(spec) > 1 else NIL
            name = spec[0].name
        else:
            raise ResolutionError(f"let: malformed binding {spec!r}")
        inner[name] = value
    return ev.progn(args[1:], inner, depth)


def _sf_backquote(ev: Evaluator, args: list, scope: dict | None, depth: int) -> Any:
    if len(args) != 1:
        raise ResolutionError("backquote: expected one argument")
    return _unquote(ev, args[0], scope, depth)


def _unquote(ev: Evaluator, template: Any, scope: dict | None, depth: int) -> Any:
    if not isinstance(template, list):
        return template
    if template and template[0] == Symbol("comma"):
        return ev.eval(template[1], scope, depth)
    out: list = []
    for item in template:
        if isinstance(item, list) and item and item[0] == Symbol("comma-at"):
            out.extend(_as_list(ev.eval(item[1], scope, depth), "backquote"))
        else:
            out.append(_unquote(ev, item, scope, depth))
    return out


_SPECIAL_FORMS: dict[str, Callable[[Evaluator, list, dict | None, int], Any]] = {
    "quote": _sf_quote,
    "function": _sf_function,
    "lambda": _sf_lambda,
    "progn": _sf_progn,
    "if": _sf_if,
    "when": _sf_when,
    "unless": _sf_unless,
    "cond": _sf_cond,
    "or": _sf_or,
    "and": _sf_and,
    "let": lambda ev, args, scope, depth: _let(ev, args, scope, depth, sequential=False),
    "let*": lambda ev, args, scope, depth: _let(ev, args, scope, depth, sequential=True),
    "backquote": _sf_backquote,
}
