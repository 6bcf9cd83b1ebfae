"""Exceptions raised by the upload orchestrator."""
from typing import Optional


class UploaderError(Exception):
    """Base class for uploader errors."""


class TransportError(UploaderError):
    """Raised when the storage transport fails a transfer."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TransferTimeoutError(TransportError):
    """Raised when a transfer does not finish within the upload timeout."""


class UploadFailedError(UploaderError):
    """Raised when a file could not be uploaded after every retry attempt."""

    def __init__(self, file_name: str, attempts: int, last_error: Exception):
        super().__init__(
            f"Upload of {file_name} failed after {attempts} attempt(s): {last_error}"
        )
        self.file_name = file_name
        self.attempts = attempts
        self.last_error = last_error


class InvalidTransitionError(UploaderError):
    """Raised when an upload task is moved to a state it cannot reach."""


class APIError(UploaderError):
    """Raised when the gallery API answers with an error status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
