"""
Base exception classes for the PathPal backend.

Each module should define its own exceptions that inherit from these bases.
This enables consistent error handling across the application.
"""

from typing import Optional, Any


class PathPalError(Exception):
    """
    Base exception for all PathPal errors.

    All custom exceptions should inherit from this class.
    """

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(PathPalError):
    """Input validation failed."""

    status_code = 400


class AuthenticationError(PathPalError):
    """Authentication failed (invalid or missing credentials)."""

    status_code = 401


class AuthorizationError(PathPalError):
    """Authorization failed (insufficient permissions)."""

    status_code = 403


class NotFoundError(PathPalError):
    """Resource not found."""

    status_code = 404


class ConflictError(PathPalError):
    """Resource already exists."""

    status_code = 409


class InternalError(PathPalError):
    """
    Server-side failure.

    The message is logged but never returned to clients.
    """

    status_code = 500
