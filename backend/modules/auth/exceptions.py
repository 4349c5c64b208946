"""
Authentication module exceptions.

These exceptions are raised by the auth module and mapped to HTTP
responses by the API error handlers.
"""

from typing import Any, Optional

from shared.exceptions import (
    AuthenticationError,
    ConflictError,
    InternalError,
    NotFoundError,
    ValidationError,
)


class InvalidInputError(ValidationError):
    """Raised when required fields are missing or malformed."""

    def __init__(
        self,
        message: str = "Invalid request",
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code="INVALID_INPUT", details=details)


class EmailAlreadyExistsError(ConflictError):
    """Raised when registering or changing to an email that is taken."""

    def __init__(self, message: str = "Email already exists"):
        super().__init__(message, code="EMAIL_ALREADY_EXISTS")


class InvalidCredentialsError(AuthenticationError):
    """
    Raised when login fails.

    Used for both unknown email and wrong password.
    """

    def __init__(self):
        super().__init__("Invalid credentials", code="INVALID_CREDENTIALS")


class MissingSessionError(AuthenticationError):
    """Raised when no session cookie is presented."""

    def __init__(self, message: str = "No session cookie"):
        super().__init__(message, code="MISSING_SESSION")


class InvalidSessionError(AuthenticationError):
    """Raised when the session token is unknown, revoked or expired."""

    def __init__(self, message: str = "Invalid session"):
        super().__init__(message, code="INVALID_SESSION")


class UserNotFoundError(NotFoundError):
    """Raised when a session resolves to a user that no longer exists."""

    def __init__(self, user_id: str):
        super().__init__(
            "User not found",
            code="USER_NOT_FOUND",
            details={"user_id": user_id},
        )


class PasswordHashingError(InternalError):
    """Raised when bcrypt fails to produce a hash."""

    def __init__(self, message: str = "Failed to hash password"):
        super().__init__(message, code="PASSWORD_HASHING_FAILED")
