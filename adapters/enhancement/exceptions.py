"""Structured exceptions for enhancement adapters."""


class EnhancementError(Exception):
    """Base exception for enhancement adapter errors."""

    code: str = "ENHANCEMENT_ERROR"

    def __init__(self, message: str = ""):
        self.message = message
        super().__init__(message)


class InvalidInputError(EnhancementError):
    """Raised when input fails validation before execution."""

    code: str = "INVALID_INPUT"

    def __init__(self, adapter_name: str, reason: str | None = None):
        self.adapter_name = adapter_name
        self.reason = reason
        message = f"Input validation failed for '{adapter_name}'"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class AdapterUnavailableError(EnhancementError):
    """Raised when an adapter cannot be initialized or reports unavailable."""

    code: str = "ADAPTER_UNAVAILABLE"

    def __init__(self, adapter_name: str, reason: str = "adapter is not available"):
        self.adapter_name = adapter_name
        super().__init__(f"Adapter '{adapter_name}' unavailable: {reason}")


class ExecutionFailureError(EnhancementError):
    """Raised when a stage fails while executing."""

    code: str = "EXECUTION_FAILURE"


class StageTimeoutError(EnhancementError):
    """Raised when a stage exceeds its time budget."""

    code: str = "TIMEOUT"

    def __init__(self, adapter_name: str, timeout_seconds: float):
        self.adapter_name = adapter_name
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"Stage '{adapter_name}' timed out after {timeout_seconds:g} seconds"
        )


class BackendError(EnhancementError):
    """Raised when the enrichment backend returns an error or bad payload."""

    code: str = "BACKEND_ERROR"
