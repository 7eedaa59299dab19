"""
Restricted builtins and import guard for the embedded interpreter.
"""

from __future__ import annotations

import builtins
from collections.abc import Iterable
from typing import Any, Callable

# Builtins exposed to generated code. BLOCKED: open, eval, exec, compile,
# input, breakpoint, globals, locals, vars, help, exit, quit
SAFE_BUILTIN_NAMES = frozenset(
    {
        # Constants
        "Ellipsis",
        "NotImplemented",
        # Type constructors
        "int",
        "float",
        "complex",
        "str",
        "bool",
        "list",
        "dict",
        "tuple",
        "set",
        "frozenset",
        "bytes",
        "bytearray",
        "memoryview",
        "object",
        "type",
        "slice",
        "range",
        # Classes
        "__build_class__",
        "super",
        "property",
        "staticmethod",
        "classmethod",
        # Iterables
        "enumerate",
        "zip",
        "map",
        "filter",
        "sorted",
        "reversed",
        "iter",
        "next",
        "aiter",
        "anext",
        "all",
        "any",
        # Math/comparison
        "len",
        "min",
        "max",
        "sum",
        "abs",
        "round",
        "pow",
        "divmod",
        "hash",
        # String/char
        "chr",
        "ord",
        "repr",
        "ascii",
        "format",
        "bin",
        "hex",
        "oct",
        # Introspection
        "isinstance",
        "issubclass",
        "hasattr",
        "getattr",
        "setattr",
        "delattr",
        "callable",
        "id",
        "dir",
        # IO (stdout only)
        "print",
    }
)


def _exception_builtins() -> dict[str, Any]:
    return {
        name: value
        for name, value in vars(builtins).items()
        if isinstance(value, type) and issubclass(value, BaseException)
    }


def make_import_guard(
    blocked_modules: Iterable[str],
    real_import: Callable[..., Any] = builtins.__import__,
) -> Callable[..., Any]:
    """Return an ``__import__`` replacement that rejects *blocked_modules*."""
    blocked = frozenset(blocked_modules)

    def guarded_import(name, globals=None, locals=None, fromlist=(), level=0):
        if level == 0 and name.split(".", 1)[0] in blocked:
            raise ImportError(f"Import of '{name}' is not permitted in the sandbox")
        return real_import(name, globals, locals, fromlist, level)

    return guarded_import


def build_builtins(blocked_modules: Iterable[str] = ()) -> dict[str, Any]:
    """Build the ``__builtins__`` mapping for a sandboxed namespace."""
    table = _exception_builtins()
    for name in SAFE_BUILTIN_NAMES:
        table[name] = getattr(builtins, name)
    table["__import__"] = make_import_guard(blocked_modules)
    return table
