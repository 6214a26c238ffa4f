"""
Defines custom exceptions for the application to allow for more specific error handling.
"""

from typing import Optional


class MediaConvError(Exception):
    """Base exception for all application-specific errors."""


class ValidationError(MediaConvError):
    """Raised when a submission is rejected before any job is created."""


class PreviewError(MediaConvError):
    """Raised when the metadata lookup for a preview fails."""


class TransferError(MediaConvError):
    """
    Raised when the conversion request fails, either on the network or because
    the backend reported an error.

    Attributes:
        detail: The server-supplied error message, if the backend sent one.
        status: The HTTP status code, if a response was received.
        timed_out: True when the request exceeded the configured timeout.
    """

    def __init__(
        self,
        message: str,
        detail: Optional[str] = None,
        status: Optional[int] = None,
        timed_out: bool = False,
    ):
        super().__init__(message)
        self.detail = detail
        self.status = status
        self.timed_out = timed_out


class ConfigurationError(MediaConvError):
    """Raised for issues related to configuration loading or validation."""


class SaveError(MediaConvError):
    """Raised when the converted file cannot be fetched or written to disk."""
