"""Exception types shared by the backend client, the form engine and the API layer."""

from typing import Optional


class BackendError(Exception):
    """Base class for failures talking to the coaching backend."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class NetworkError(BackendError):
    """No response was received from the backend."""

    def __init__(self, message: str = "Network connection failed. Please check your internet connection and try again."):
        super().__init__(message)


class BackendHTTPError(BackendError):
    """The backend answered with a non-2xx status."""


class AuthenticationError(BackendHTTPError):
    """The backend rejected the bearer token (401)."""


class EnvelopeError(BackendError):
    """A 2xx response whose envelope reports failure or carries no data."""


class ConfigurationNotFoundError(Exception):
    def __init__(self, config_id: str, message: Optional[str] = None):
        super().__init__(message or f"Form configuration {config_id} not found")
        self.config_id = config_id
        self.message = message or f"Form configuration {config_id} not found"


class SubmissionError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidTransitionError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class PDFExportError(Exception):
    def __init__(self, message: str = "Failed to generate PDF. Please try again."):
        super().__init__(message)
        self.message = message


class DocumentValidationError(Exception):
    """An uploaded file does not satisfy its document requirement."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
