"""
Result types flowing through the execution pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

EMPTY_RESULT_MESSAGE = "Code executed successfully. No output."


@dataclass(slots=True)
class ExecutionOutcome:
    """
    Raw outcome of one ``RuntimeSession.run_source`` call.

    Attributes:
        raw_value:       Value of the trailing expression, or the source text
                         itself when it was passed through as markup.
        captured_output: Standard output written during evaluation.
        threw:           Whether the evaluated source raised.
        error_message:   Human-readable error when ``threw`` is set.
        markup:          Source was markup and was not evaluated.
        execution_time:  Seconds spent evaluating.
    """

    raw_value: Any = None
    captured_output: str = ""
    threw: bool = False
    error_message: str | None = None
    markup: bool = False
    execution_time: float = 0.0


class ResultKind(str, Enum):
    """Content kinds a result can be rendered as."""

    PLOT = "plot"
    MARKUP = "markup"
    STRUCTURED = "structured"
    TEXT = "text"
    EMPTY = "empty"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class ExecutionResult:
    """Tagged result handed to the renderer. Exactly one kind is active."""

    kind: ResultKind
    content: str
    is_full_document: bool = False

    @classmethod
    def plot(cls, payload: str) -> "ExecutionResult":
        return cls(ResultKind.PLOT, payload)

    @classmethod
    def markup(cls, text: str, is_full_document: bool = False) -> "ExecutionResult":
        return cls(ResultKind.MARKUP, text, is_full_document)

    @classmethod
    def structured(cls, text: str) -> "ExecutionResult":
        return cls(ResultKind.STRUCTURED, text)

    @classmethod
    def text(cls, text: str) -> "ExecutionResult":
        return cls(ResultKind.TEXT, text)

    @classmethod
    def empty(cls, message: str = EMPTY_RESULT_MESSAGE) -> "ExecutionResult":
        return cls(ResultKind.EMPTY, message)

    @classmethod
    def error(cls, message: str) -> "ExecutionResult":
        return cls(ResultKind.ERROR, message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "content": self.content,
            "is_full_document": self.is_full_document,
        }
