"""Typed failures raised by the service layer.

Each class carries the HTTP status the transport layer answers with; the
exception handler in ``main.py`` does the translation.
"""

from fastapi import status


class ClinicError(Exception):
    """Base exception for the clinic backend."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class AuthenticationError(ClinicError):
    """Raised when no valid caller identity is present."""
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class AuthorizationError(ClinicError):
    """Raised when the caller lacks the required permission."""
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message)


class ResourceNotFoundError(ClinicError):
    """Raised when a requested resource is not found."""
    status_code = status.HTTP_404_NOT_FOUND


class ResourceConflictError(ClinicError):
    """Raised on uniqueness violations, stale writes and illegal transitions."""
    status_code = status.HTTP_409_CONFLICT


class ValidationError(ClinicError):
    """Raised when input validation fails."""
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
