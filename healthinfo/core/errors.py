"""
Service-level exceptions mapped to HTTP responses by the handlers in main.
"""
from typing import Dict, List, Optional

FieldErrors = Dict[str, List[str]]


class ServiceError(Exception):
    """Base class for errors surfaced to API callers."""
    status_code = 500

    def __init__(self, message: str, errors: Optional[FieldErrors] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors


class ValidationError(ServiceError):
    """Malformed input shape."""
    status_code = 400


class NotFoundError(ServiceError):
    status_code = 404


class ConflictError(ServiceError):
    """Duplicate or still-referenced record."""
    status_code = 409


class AuthenticationFailure(ServiceError):
    """Bad credentials or an invalid, expired or revoked token."""
    status_code = 401


class EncryptionFailure(ServiceError):
    """A required field could not be encrypted; the write is aborted."""
    status_code = 500


class StorageError(ServiceError):
    """Persistence unavailable or rejected the write. Not retried."""
    status_code = 500


class DuplicateTokenError(StorageError):
    """The refresh token string is already stored."""
