"""
Error types for the job tracker service.

Two kinds only: MalformedInput (caller sent something we refuse to store)
and IOFailure (the backing file could not be read or written).
"""


class TrackerError(Exception):
    """Base class for job tracker errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class MalformedInput(TrackerError):
    """Raised when a body or uploaded file fails structural validation."""


class IOFailure(TrackerError):
    """Raised when the backing file cannot be read or written."""


# Name used by the store contract
ValidationError = MalformedInput
