"""
Embedded interpreter runtime.
"""

from .interpreter import (
    CancellationToken,
    EmbeddedInterpreter,
    ExecutionCancelled,
    OutputBuffer,
    compile_source,
)
from .prelude import PLOT_MARKER, install_prelude
from .sandbox import build_builtins
from .session import RuntimeSession

__all__ = [
    "CancellationToken",
    "EmbeddedInterpreter",
    "ExecutionCancelled",
    "OutputBuffer",
    "PLOT_MARKER",
    "RuntimeSession",
    "build_builtins",
    "compile_source",
    "install_prelude",
]
