"""
Authentication module.

Handles registration, credential checks and opaque server-side sessions.

Public API:
- IAuthService: Interface for auth operations
- ICredentialStore: Interface for user and session persistence
- PublicUser, UserRole: User-facing models
- Auth exceptions: InvalidCredentialsError, InvalidSessionError, etc.
"""

from .interfaces import IAuthService, ICredentialStore
from .models import (
    ActiveSession,
    IssuedSession,
    LoginResult,
    LogoutResult,
    PublicUser,
    User,
    UserRole,
)
from .exceptions import (
    InvalidInputError,
    EmailAlreadyExistsError,
    InvalidCredentialsError,
    MissingSessionError,
    InvalidSessionError,
    UserNotFoundError,
    PasswordHashingError,
)

__all__ = [
    # Interfaces
    "IAuthService",
    "ICredentialStore",
    # Models
    "ActiveSession",
    "IssuedSession",
    "LoginResult",
    "LogoutResult",
    "PublicUser",
    "User",
    "UserRole",
    # Exceptions
    "InvalidInputError",
    "EmailAlreadyExistsError",
    "InvalidCredentialsError",
    "MissingSessionError",
    "InvalidSessionError",
    "UserNotFoundError",
    "PasswordHashingError",
]
