from typing import Dict, Optional


class PortalError(Exception):
    """Base class for every error raised by the portal engine."""


class StorageError(PortalError):
    """Local storage could not be read or written (quota, serialization, database)."""


class NetworkError(PortalError):
    """The remote endpoint could not be reached or timed out."""


class TokenError(PortalError):
    """The anti-forgery token is missing, could not be fetched, or was rejected."""


class RemoteError(PortalError):
    """The endpoint answered but reported a failure."""

    def __init__(self, message: str, status_code: Optional[int] = None, error_code: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code


class ValidationError(PortalError):
    """Input failed validation. `errors` maps field keys to messages."""

    def __init__(self, message: str, errors: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.errors = errors or {}


class FileValidationError(ValidationError):
    """A selected file is too large or of a type the slot does not accept."""
