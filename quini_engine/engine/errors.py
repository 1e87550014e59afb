"""Engine exception types."""


class QuiniEngineError(Exception):
    """Base class for engine errors."""


class PreconditionViolation(QuiniEngineError, ValueError):
    """Input rejected before any computation: empty history, malformed
    combination, undersized base set, number outside the domain."""


class JudgeServiceError(QuiniEngineError):
    """The external judge failed. ``retryable`` tells the retry policy whether
    another attempt makes sense."""

    def __init__(self, message: str, retryable: bool = False, status_code: int | None = None):
        super().__init__(message)
        self.retryable = retryable
        self.status_code = status_code
