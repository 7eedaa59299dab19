"""
CodeCanvas: natural-language requests turned into code, executed in an
embedded sandboxed Python runtime, and rendered by result kind.
"""

from .classifier import classify
from .console import ConsoleLog, ConsoleLogEntry, LogLevel
from .orchestrator import CycleReport, Orchestrator, OrchestratorState
from .rendering import RenderContainer, SandboxRenderer
from .results import ExecutionOutcome, ExecutionResult, ResultKind
from .runtime import RuntimeSession

__version__ = "0.1.0"

__all__ = [
    "ConsoleLog",
    "ConsoleLogEntry",
    "CycleReport",
    "ExecutionOutcome",
    "ExecutionResult",
    "LogLevel",
    "Orchestrator",
    "OrchestratorState",
    "RenderContainer",
    "ResultKind",
    "RuntimeSession",
    "SandboxRenderer",
    "classify",
]
