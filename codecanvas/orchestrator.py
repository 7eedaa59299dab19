"""
Orchestrator for the generate -> execute -> classify -> render cycle.

One request may be in flight at a time. Each cycle walks the state machine

    idle -> generating -> executing -> rendering -> idle

and any failure moves it to ``error``, which accepts the next request. The
trigger control is disabled for the whole cycle and re-enabled in ``finally``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from .classifier import classify
from .console import ConsoleLog
from .core.config import CodeCanvasConfig
from .core.exceptions import (
    CodeCanvasError,
    RenderError,
    ScriptEvaluationError,
    format_error_message,
)
from .models.generation import CodeGenerator, build_generator
from .rendering.renderer import SandboxRenderer
from .rendering.surface import RenderContainer
from .results import ExecutionResult, ResultKind
from .runtime.session import RuntimeSession

logger = logging.getLogger(__name__)


class OrchestratorState(str, Enum):
    IDLE = "idle"
    GENERATING = "generating"
    EXECUTING = "executing"
    RENDERING = "rendering"
    ERROR = "error"


_TRANSITIONS = {
    OrchestratorState.IDLE: {OrchestratorState.GENERATING},
    OrchestratorState.GENERATING: {OrchestratorState.EXECUTING, OrchestratorState.ERROR},
    OrchestratorState.EXECUTING: {OrchestratorState.RENDERING, OrchestratorState.ERROR},
    OrchestratorState.RENDERING: {OrchestratorState.IDLE, OrchestratorState.ERROR},
    OrchestratorState.ERROR: {OrchestratorState.GENERATING, OrchestratorState.IDLE},
}

_BUSY_STATES = frozenset(
    {OrchestratorState.GENERATING, OrchestratorState.EXECUTING, OrchestratorState.RENDERING}
)

_RESULT_LABELS = {
    ResultKind.PLOT: "Plot",
    ResultKind.MARKUP: "HTML",
    ResultKind.STRUCTURED: "JSON",
    ResultKind.TEXT: "Text output",
    ResultKind.EMPTY: "Empty result",
}


class StatusLevel(str, Enum):
    INFO = "info"
    LOADING = "loading"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass(slots=True)
class Status:
    message: str
    level: StatusLevel = StatusLevel.INFO


@dataclass(slots=True)
class TriggerControl:
    """The control that starts a cycle (a run button, a prompt line)."""

    enabled: bool = True

    def disable(self) -> None:
        self.enabled = False

    def enable(self) -> None:
        self.enabled = True


@dataclass(slots=True)
class CycleReport:
    """What one cycle produced."""

    prompt: str
    code: str
    result: ExecutionResult
    state: OrchestratorState
    elapsed_ms: float | None = None
    error: Exception | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


class Orchestrator:
    """Sequences generation, execution, classification and rendering."""

    def __init__(
        self,
        session: RuntimeSession,
        generator: CodeGenerator,
        renderer: SandboxRenderer | None = None,
        container: RenderContainer | None = None,
        console_log: ConsoleLog | None = None,
        trigger: TriggerControl | None = None,
        pre_request_delay: float = 0.0,
        execution_timeout: float | None = None,
        on_status: Callable[[Status], None] | None = None,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.session = session
        self.generator = generator
        self.renderer = renderer or SandboxRenderer()
        self.container = container or RenderContainer()
        self.console_log = console_log or ConsoleLog()
        self.trigger = trigger or TriggerControl()
        self.pre_request_delay = pre_request_delay
        self.execution_timeout = execution_timeout
        self.on_status = on_status
        self._clock = clock

        self.state = OrchestratorState.IDLE
        self.state_history: list[OrchestratorState] = []
        self.status = Status("Ready")
        self.generated_code = ""
        self.elapsed_ms: float | None = None

    @classmethod
    def from_config(
        cls,
        config: CodeCanvasConfig,
        session: RuntimeSession | None = None,
        generator: CodeGenerator | None = None,
        **kwargs,
    ) -> "Orchestrator":
        """Wire an orchestrator from configuration."""
        if "renderer" not in kwargs:
            kwargs["renderer"] = SandboxRenderer(config=config.render)
        return cls(
            session=session or RuntimeSession.shared(config.runtime),
            generator=generator or build_generator(config.generation),
            pre_request_delay=config.generation.pre_request_delay_seconds,
            execution_timeout=config.runtime.timeout_seconds,
            **kwargs,
        )

    @property
    def busy(self) -> bool:
        return self.state in _BUSY_STATES or not self.trigger.enabled

    # ── Lifecycle ─────────────────────────────────────────────────────

    async def prepare(self) -> bool:
        """Initialize the runtime session, reporting progress in the status."""
        self._set_status("Initializing Python runtime...", StatusLevel.LOADING)
        try:
            await self.session.initialize()
        except CodeCanvasError as exc:
            message = format_error_message(exc)
            self.console_log.error(message)
            self._set_status(f"Error: {message}", StatusLevel.ERROR)
            return False
        self._set_status("Ready", StatusLevel.SUCCESS)
        return True

    def clear_all(self) -> None:
        """Reset output, console, generated code, timing and status."""
        self.renderer.show_waiting(self.container)
        self.console_log.clear()
        self.generated_code = ""
        self.elapsed_ms = None
        if self.state is OrchestratorState.ERROR:
            self._transition(OrchestratorState.IDLE)
        self._set_status("Ready", StatusLevel.INFO)

    # ── Cycle ─────────────────────────────────────────────────────────

    async def run(self, prompt: str) -> CycleReport | None:
        """
        Run one full cycle for *prompt*.

        Returns ``None`` when the prompt is empty or another cycle is in
        flight. Failures never raise; they are reported in the returned
        ``CycleReport`` and shown as an error placeholder.
        """
        prompt = (prompt or "").strip()
        if not prompt:
            self._set_status("Enter a request", StatusLevel.WARNING)
            return None
        if self.busy:
            self._set_status("A request is already running", StatusLevel.WARNING)
            return None

        self.trigger.disable()
        self.state_history = []
        code = ""
        try:
            self._transition(OrchestratorState.GENERATING)
            self.console_log.clear()
            self.renderer.show_waiting(self.container)
            self.generated_code = ""
            self.elapsed_ms = None
            self._set_status("Generating code...", StatusLevel.LOADING)
            start = self._clock()

            if self.pre_request_delay > 0:
                await asyncio.sleep(self.pre_request_delay)
            self.console_log.info("Requesting code...")
            code = await self.generator.generate(prompt)
            self.generated_code = code
            self.console_log.debug(f"Received {len(code)} characters of code")

            self._transition(OrchestratorState.EXECUTING)
            self._set_status("Executing code...", StatusLevel.LOADING)
            self.console_log.info("Executing code...")
            outcome = await self.session.run_source(code, timeout=self.execution_timeout)
            if outcome.markup:
                self.console_log.info("HTML detected, rendering without execution")
            result = classify(outcome)
            self.console_log.debug(f"Result kind: {result.kind.value}")
            if result.kind is ResultKind.ERROR:
                raise ScriptEvaluationError(result.content)

            self._transition(OrchestratorState.RENDERING)
            shown = self.renderer.render(self.container, result)
            if shown.kind is ResultKind.ERROR:
                raise RenderError(shown.content)

            self.elapsed_ms = (self._clock() - start) * 1000
            self.console_log.success(
                f"{_RESULT_LABELS[result.kind]} ready in {self.elapsed_ms:.1f} ms"
            )
            self._set_status("Done", StatusLevel.SUCCESS)
            self._transition(OrchestratorState.IDLE)
            return CycleReport(
                prompt=prompt,
                code=code,
                result=result,
                state=self.state,
                elapsed_ms=self.elapsed_ms,
            )
        except Exception as exc:
            return self._fail(prompt, code, exc)
        finally:
            if self.state in _BUSY_STATES:
                logger.error(f"Cycle aborted in {self.state.value}")
                self._transition(OrchestratorState.ERROR)
                self._set_status("Error: Request aborted", StatusLevel.ERROR)
            self.trigger.enable()

    # ── Internal helpers ──────────────────────────────────────────────

    def _fail(self, prompt: str, code: str, exc: Exception) -> CycleReport:
        if isinstance(exc, CodeCanvasError):
            logger.error(f"Cycle failed in {self.state.value}: {exc}")
        else:
            logger.exception(f"Unexpected failure in {self.state.value}")

        message = format_error_message(exc)
        self.console_log.error(message)
        if self.state is not OrchestratorState.ERROR:
            self._transition(OrchestratorState.ERROR)
        self._set_status(f"Error: {message}", StatusLevel.ERROR)
        result = self.renderer.render(self.container, ExecutionResult.error(message))
        return CycleReport(
            prompt=prompt,
            code=code,
            result=result,
            state=self.state,
            error=exc,
        )

    def _transition(self, state: OrchestratorState) -> None:
        if state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Invalid transition {self.state.value} -> {state.value}")
        logger.debug(f"State {self.state.value} -> {state.value}")
        self.state = state
        self.state_history.append(state)

    def _set_status(self, message: str, level: StatusLevel = StatusLevel.INFO) -> None:
        self.status = Status(message, level)
        if self.on_status is not None:
            self.on_status(self.status)
