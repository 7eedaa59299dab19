"""
Embedded interpreter for generated source.

``EmbeddedInterpreter`` hosts a persistent, sandboxed Python namespace and
provides the operations the pipeline needs from a runtime:

- capability/package loading by name
- synchronous statement execution (``run``)
- asynchronous evaluation yielding the value of a trailing expression
  (``evaluate``), with top-level ``await`` support
- injection of host helpers into the global namespace (``inject``)
- redirection of standard output into a host-readable buffer

Evaluation honours a ``CancellationToken``. The token is checked on every
line executed from generated source and bounds awaited coroutines, so a
Python-level runaway loop is interrupted once its deadline passes.
"""

from __future__ import annotations

import ast
import asyncio
import importlib
import inspect
import sys
import time
from collections.abc import Iterable, Iterator
from contextlib import contextmanager, redirect_stdout
from contextvars import ContextVar
from types import CodeType, ModuleType
from typing import Any, Callable

from .sandbox import build_builtins

SOURCE_FILENAME = "<codecanvas-source>"

_COMPILE_FLAGS = ast.PyCF_ALLOW_TOP_LEVEL_AWAIT


class ExecutionCancelled(BaseException):
    """Raised inside generated code when its cancellation token fires.

    Derives from ``BaseException`` so ``except Exception`` blocks in the
    generated code cannot swallow it.
    """


class CancellationToken:
    """Cooperative cancellation signal with an optional deadline."""

    def __init__(
        self,
        timeout: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._clock = clock
        self.timeout = timeout
        self.deadline = None if timeout is None else clock() + timeout
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        if self._cancelled:
            return True
        return self.deadline is not None and self._clock() >= self.deadline

    def remaining(self) -> float | None:
        """Seconds left before the deadline, ``None`` when unbounded."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - self._clock())

    def check(self) -> None:
        if self.cancelled:
            raise ExecutionCancelled()


class OutputBuffer:
    """Text sink that stands in for ``sys.stdout`` during evaluation."""

    encoding = "utf-8"

    def __init__(self) -> None:
        self.content = ""

    def write(self, text: str) -> int:
        self.content += text
        return len(text)

    def flush(self) -> None:
        pass

    def isatty(self) -> bool:
        return False

    def getvalue(self) -> str:
        return self.content

    def reset(self) -> None:
        self.content = ""


_active_buffer: ContextVar[OutputBuffer | None] = ContextVar("codecanvas_stdout", default=None)


class StdoutRouter:
    """
    ``sys.stdout`` stand-in that writes to the buffer of the current context.

    Tasks started before an evaluation keep writing to *fallback* while the
    evaluation awaits; tasks the evaluated source starts inherit its buffer.
    """

    def __init__(self, fallback: Any) -> None:
        self.fallback = fallback

    def _target(self) -> Any:
        buffer = _active_buffer.get()
        return self.fallback if buffer is None else buffer

    def write(self, text: str) -> int:
        return self._target().write(text)

    def flush(self) -> None:
        self._target().flush()

    def __getattr__(self, name: str) -> Any:
        return getattr(self._target(), name)


def compile_source(source: str) -> tuple[CodeType, CodeType | None]:
    """
    Compile *source* into a statement body and an optional trailing expression.

    The trailing expression is split off so its value can be returned, unless
    the source ends with ``;``, which suppresses it.

    Raises:
        SyntaxError: If the source does not parse.
    """
    tree = compile(
        source,
        SOURCE_FILENAME,
        "exec",
        flags=ast.PyCF_ONLY_AST | _COMPILE_FLAGS,
        dont_inherit=True,
    )
    last_expr = None
    if tree.body and isinstance(tree.body[-1], ast.Expr) and not source.rstrip().endswith(";"):
        last_expr = ast.Expression(body=tree.body.pop().value)

    body = compile(tree, SOURCE_FILENAME, "exec", flags=_COMPILE_FLAGS, dont_inherit=True)
    expr = None
    if last_expr is not None:
        expr = compile(last_expr, SOURCE_FILENAME, "eval", flags=_COMPILE_FLAGS, dont_inherit=True)
    return body, expr


class EmbeddedInterpreter:
    """Persistent sandboxed namespace in which generated source is evaluated."""

    def __init__(
        self,
        blocked_modules: Iterable[str] = (),
        importer: Callable[[str], ModuleType] = importlib.import_module,
    ) -> None:
        self._importer = importer
        self.packages: dict[str, ModuleType] = {}
        self.globals: dict[str, Any] = {
            "__builtins__": build_builtins(blocked_modules),
            "__name__": "__main__",
        }

    # ── Capabilities ──────────────────────────────────────────────────

    def load_package(self, name: str) -> ModuleType:
        """Import a capability package by name and remember it."""
        module = self._importer(name)
        self.packages[name] = module
        return module

    def inject(self, name: str, value: Any) -> None:
        """Expose a host object under *name* in the global namespace."""
        self.globals[name] = value

    # ── Execution ─────────────────────────────────────────────────────

    def run(self, source: str) -> None:
        """Execute statements synchronously in the global namespace."""
        code = compile(source, SOURCE_FILENAME, "exec", dont_inherit=True)
        exec(code, self.globals)

    async def evaluate(self, source: str, token: CancellationToken | None = None) -> Any:
        """
        Evaluate *source* and return the value of its trailing expression.

        Exceptions raised by the source propagate unchanged.

        Raises:
            ExecutionCancelled: If *token* fires before evaluation completes.
        """
        token = token or CancellationToken()
        body, expr = compile_source(source)
        await self._run_code(body, token)
        if expr is None:
            return None
        return await self._run_code(expr, token)

    @contextmanager
    def redirect_stdout(self, buffer: OutputBuffer) -> Iterator[OutputBuffer]:
        """Send standard output written from the current context into *buffer*."""
        router = sys.stdout if isinstance(sys.stdout, StdoutRouter) else StdoutRouter(sys.stdout)
        token = _active_buffer.set(buffer)
        try:
            with redirect_stdout(router):
                yield buffer
        finally:
            _active_buffer.reset(token)

    # ── Internal helpers ──────────────────────────────────────────────

    async def _run_code(self, code: CodeType, token: CancellationToken) -> Any:
        token.check()
        with self._traced(token):
            result = eval(code, self.globals)
            if code.co_flags & inspect.CO_COROUTINE:
                try:
                    result = await asyncio.wait_for(result, token.remaining())
                except asyncio.TimeoutError:
                    if token.cancelled:
                        raise ExecutionCancelled() from None
                    raise
        return result

    @contextmanager
    def _traced(self, token: CancellationToken) -> Iterator[None]:
        """Check *token* on every line executed from generated source."""

        def tracer(frame, event, arg):
            if frame.f_code.co_filename != SOURCE_FILENAME:
                return None
            if event in ("call", "line"):
                token.check()
            return tracer

        previous = sys.gettrace()
        sys.settrace(tracer)
        try:
            yield
        finally:
            sys.settrace(previous)
