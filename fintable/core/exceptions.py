"""Custom exception hierarchy."""

from typing import Optional


class AppError(Exception):
    """Base exception for application errors."""
    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class APIClientError(AppError):
    """Raised when a call to the generative-AI service fails."""
    pass


class APITimeoutError(APIClientError):
    """Raised when a call to the generative-AI service times out."""
    pass


class ConfigurationError(AppError):
    """Raised when configuration is invalid or missing."""
    pass


class InvalidDocumentError(AppError):
    """Raised when an uploaded file is not a readable PDF."""
    pass


class InvalidTransitionError(AppError):
    """Raised when a session operation is not allowed in the current state."""

    def __init__(self, operation: str, state: str):
        super().__init__(f"Cannot {operation} while session is in state '{state}'")
        self.operation = operation
        self.state = state


class SessionNotFoundError(AppError):
    """Raised when a session id is unknown."""
    pass


class PipelineError(AppError):
    """Base exception for pipeline errors."""
    pass


class ExtractionError(PipelineError):
    """Step 1: page-to-HTML extraction failed."""
    pass


class StructuringError(PipelineError):
    """Step 2: HTML-to-JSON structuring failed."""
    pass
