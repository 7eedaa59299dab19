"""
Core functionality for CodeCanvas.
"""

from .config import (
    CodeCanvasConfig,
    GenerationConfig,
    RenderConfig,
    RuntimeConfig,
    load_config,
)
from .exceptions import (
    CodeCanvasError,
    ConfigurationError,
    ExecutionTimeoutError,
    GenerationError,
    RenderError,
    RuntimeInitializationError,
    RuntimeUninitializedError,
    ScriptEvaluationError,
    format_error_message,
)
from .logging import setup_logging

__all__ = [
    "CodeCanvasConfig",
    "CodeCanvasError",
    "ConfigurationError",
    "ExecutionTimeoutError",
    "GenerationConfig",
    "GenerationError",
    "RenderConfig",
    "RenderError",
    "RuntimeConfig",
    "RuntimeInitializationError",
    "RuntimeUninitializedError",
    "ScriptEvaluationError",
    "format_error_message",
    "load_config",
    "setup_logging",
]
