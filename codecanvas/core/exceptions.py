"""
Custom exceptions for CodeCanvas.

Provides specific exception types for better error handling and user feedback.
"""


class CodeCanvasError(Exception):
    """Base exception for CodeCanvas errors."""

    user_message: str = "Something went wrong."
    recovery_hint: str | None = None


class ConfigurationError(CodeCanvasError):
    """Error in configuration."""

    def __init__(self, message: str):
        super().__init__(message)
        self.user_message = message
        self.recovery_hint = "Check the configuration file and try again."


# Runtime Errors


class RuntimeSessionError(CodeCanvasError):
    """Base exception for embedded runtime errors."""


class RuntimeInitializationError(RuntimeSessionError):
    """A capability package failed to load."""

    def __init__(self, capability: str, reason: str):
        super().__init__(f"Failed to load capability '{capability}': {reason}")
        self.capability = capability
        self.user_message = f"The Python runtime could not load '{capability}'."
        self.recovery_hint = "Install the missing package and initialize the runtime again."


class RuntimeUninitializedError(RuntimeSessionError):
    """Source was submitted before the runtime finished initializing."""

    def __init__(self):
        super().__init__("Runtime session is not initialized")
        self.user_message = "The Python runtime is not ready yet."
        self.recovery_hint = "Wait for initialization to finish and try again."


# Execution Errors


class ExecutionError(CodeCanvasError):
    """Base exception for execution errors."""


class ScriptEvaluationError(ExecutionError):
    """The evaluated source raised an exception."""

    def __init__(self, message: str):
        super().__init__(f"Code execution failed: {message}")
        self.user_message = f"Code execution failed: {message}"
        self.recovery_hint = "Rephrase the request or try again."


class ExecutionTimeoutError(ExecutionError):
    """Code execution exceeded time limit."""

    def __init__(self, timeout: float):
        super().__init__(f"Execution exceeded {timeout:g}s timeout")
        self.timeout = timeout
        self.user_message = f"Code execution took longer than {timeout:g} seconds."
        self.recovery_hint = "Ask for a smaller computation or raise runtime.timeout_seconds."


# Generation Errors


class GenerationError(CodeCanvasError):
    """The generation collaborator was unreachable, malformed or rate-limited."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        rate_limited: bool = False,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.rate_limited = rate_limited
        self.user_message = message
        if rate_limited:
            self.recovery_hint = "Wait 1-2 minutes before the next request."
        else:
            self.recovery_hint = "Check the generation endpoint and try again."


# Rendering Errors


class RenderError(CodeCanvasError):
    """A result could not be rendered."""

    def __init__(self, message: str):
        super().__init__(message)
        self.user_message = f"Render failed: {message}"


def format_error_message(error: Exception) -> str:
    """
    Format an error message for display to user.

    Args:
        error: Exception to format

    Returns:
        Formatted error message with recovery hints
    """
    if isinstance(error, CodeCanvasError):
        message = error.user_message
        if error.recovery_hint:
            message += f" {error.recovery_hint}"
        return message
    return str(error) or type(error).__name__
