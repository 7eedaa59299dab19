"""
Runtime session owning the embedded interpreter.

A ``RuntimeSession`` holds the interpreter handle, the set of loaded
capability packages and the stdout capture buffer. ``initialize()`` is
idempotent; ``run_source()`` evaluates generated source (or passes markup
straight through) and reports an ``ExecutionOutcome``.
"""

from __future__ import annotations

import asyncio
import importlib
import logging
import time
from types import ModuleType
from typing import Callable

from ..classifier import looks_like_markup
from ..core.config import RuntimeConfig
from ..core.exceptions import (
    ExecutionTimeoutError,
    RuntimeInitializationError,
    RuntimeUninitializedError,
)
from ..results import ExecutionOutcome
from .interpreter import CancellationToken, EmbeddedInterpreter, ExecutionCancelled, OutputBuffer
from .prelude import install_prelude

logger = logging.getLogger(__name__)


class RuntimeSession:
    """Process-wide embedded runtime with lazy, idempotent initialization."""

    _shared: "RuntimeSession | None" = None

    def __init__(
        self,
        config: RuntimeConfig | None = None,
        importer: Callable[[str], ModuleType] = importlib.import_module,
    ) -> None:
        self.config = config or RuntimeConfig()
        self.interpreter: EmbeddedInterpreter | None = None
        self.loaded_capabilities: set[str] = set()
        self.initialized = False
        self.output_buffer = OutputBuffer()
        self._importer = importer
        self._init_lock = asyncio.Lock()

    @classmethod
    def shared(cls, config: RuntimeConfig | None = None) -> "RuntimeSession":
        """Get or create the process-wide session."""
        if cls._shared is None:
            cls._shared = cls(config)
        return cls._shared

    # ── Lifecycle ─────────────────────────────────────────────────────

    async def initialize(self) -> "RuntimeSession":
        """
        Load capability packages and install the prelude.

        Safe to call repeatedly and from overlapping tasks; only the first
        call does any work.

        Raises:
            RuntimeInitializationError: If a capability package fails to load.
        """
        if self.initialized:
            return self

        async with self._init_lock:
            if self.initialized:
                return self

            start = time.perf_counter()
            interpreter = EmbeddedInterpreter(
                blocked_modules=self.config.blocked_modules,
                importer=self._importer,
            )
            loaded: set[str] = set()
            for name in self.config.capabilities:
                logger.info(f"Loading capability: {name}")
                try:
                    await asyncio.to_thread(interpreter.load_package, name)
                except Exception as e:
                    logger.error(f"Capability '{name}' failed to load: {e}")
                    raise RuntimeInitializationError(name, str(e)) from e
                loaded.add(name)

            try:
                install_prelude(interpreter, loaded)
            except Exception as e:
                logger.error(f"Prelude installation failed: {e}")
                raise RuntimeInitializationError("prelude", str(e)) from e

            self.interpreter = interpreter
            self.loaded_capabilities = loaded
            self.initialized = True
            logger.info(f"Runtime initialized in {time.perf_counter() - start:.2f}s")
        return self

    def shutdown(self) -> None:
        """Drop the interpreter; a later ``initialize()`` starts fresh."""
        self.interpreter = None
        self.loaded_capabilities = set()
        self.initialized = False
        self.output_buffer.reset()

    # ── Execution ─────────────────────────────────────────────────────

    async def run_source(self, source_text: str, timeout: float | None = None) -> ExecutionOutcome:
        """
        Run *source_text* and report what happened.

        Markup documents and fragments are returned as-is without evaluation.
        Exceptions raised by the source, including ``SystemExit`` and other
        ``BaseException`` subclasses, are reported in the outcome, never raised.

        Args:
            source_text: Generated source or markup
            timeout: Evaluation deadline in seconds (defaults to the configured one)

        Raises:
            RuntimeUninitializedError: If ``initialize()`` has not completed.
            ExecutionTimeoutError: If evaluation outlives its deadline.
        """
        if not self.initialized or self.interpreter is None:
            raise RuntimeUninitializedError()

        self.output_buffer.reset()

        if looks_like_markup(source_text):
            logger.info("Markup source detected, skipping evaluation")
            return ExecutionOutcome(raw_value=source_text, markup=True)

        if timeout is None:
            timeout = self.config.timeout_seconds
        token = CancellationToken(timeout)

        start = time.perf_counter()
        try:
            with self.interpreter.redirect_stdout(self.output_buffer):
                value = await self.interpreter.evaluate(source_text, token)
        except ExecutionCancelled:
            logger.error(f"Evaluation cancelled after {time.perf_counter() - start:.2f}s")
            raise ExecutionTimeoutError(timeout or 0.0) from None
        except asyncio.CancelledError:
            raise
        except BaseException as e:
            elapsed = time.perf_counter() - start
            message = f"{type(e).__name__}: {e}"
            logger.warning(f"Generated code raised {message}")
            return ExecutionOutcome(
                captured_output=self._captured(),
                threw=True,
                error_message=message,
                execution_time=elapsed,
            )

        elapsed = time.perf_counter() - start
        logger.debug(f"Evaluation finished in {elapsed:.3f}s, value type {type(value).__name__}")
        return ExecutionOutcome(
            raw_value=value,
            captured_output=self._captured(),
            execution_time=elapsed,
        )

    def _captured(self) -> str:
        output = self.output_buffer.getvalue()
        if len(output) > self.config.max_output_chars:
            output = output[: self.config.max_output_chars] + "... [truncated]"
        return output
