"""
Authentication module interfaces.

Other modules should depend on IAuthService, not the concrete implementation.
The service in turn depends on ICredentialStore, which has a PostgreSQL
implementation for production and an in-memory one for tests.
"""

from datetime import datetime
from typing import Any, Iterator, Protocol, Optional, runtime_checkable

from .models import (
    ActiveSession,
    LoginResult,
    LogoutResult,
    ProfileFields,
    PublicUser,
    RegisterRequest,
    UpdateProfileRequest,
    User,
)


@runtime_checkable
class ICredentialStore(Protocol):
    """
    Data-access contract for users and sessions.

    Implementations are synchronous; the service moves calls off the
    event loop. Emails arrive already normalized.
    """

    def create_user(self, email: str, password_hash: str, profile: ProfileFields) -> User:
        """
        Insert a user row.

        Raises:
            EmailAlreadyExistsError: If the email is taken
        """
        ...

    def find_user_by_email(self, email: str) -> Optional[User]:
        """Return the full user record (with password hash) or None."""
        ...

    def find_user_by_id(self, user_id: str) -> Optional[PublicUser]:
        """Return the public profile or None."""
        ...

    def update_user(self, user_id: str, changes: dict[str, Any]) -> Optional[PublicUser]:
        """
        Apply column changes to a user.

        Raises:
            EmailAlreadyExistsError: If `changes` moves to a taken email
        """
        ...

    def delete_user(self, user_id: str) -> int:
        """Delete a user and, by cascade, their sessions. Returns rows affected."""
        ...

    def create_session(self, user_id: str, token_digest: str, expires_at: datetime) -> str:
        """Insert a session row and return its ID."""
        ...

    def list_active_sessions(self, now: datetime) -> Iterator[ActiveSession]:
        """Yield every session with expires_at > now."""
        ...

    def find_active_session(self, token_digest: str, now: datetime) -> Optional[ActiveSession]:
        """Point lookup of a non-expired session by token digest."""
        ...

    def delete_session(self, session_id: str) -> int:
        """Delete one session. Returns rows affected."""
        ...

    def delete_user_sessions(self, user_id: str) -> int:
        """Delete every session of a user. Returns rows affected."""
        ...

    def count_expired_sessions(self, now: datetime) -> int:
        """Count sessions with expires_at <= now, i.e. what a purge would delete."""
        ...

    def purge_expired_sessions(self, now: datetime) -> int:
        """Delete sessions with expires_at <= now. Returns rows affected."""
        ...

    def ping(self) -> bool:
        """Return True if the store is reachable."""
        ...


@runtime_checkable
class IAuthService(Protocol):
    """
    Interface for authentication operations.

    This protocol defines the contract that the auth module exposes
    to the API layer. Implementations must provide all these methods.
    """

    async def register(self, request: RegisterRequest) -> PublicUser:
        """
        Create an account. Does not log the user in.

        Raises:
            InvalidInputError: Missing field, unknown role, malformed email
            EmailAlreadyExistsError: Email already registered
        """
        ...

    async def login(self, email: str, password: str) -> LoginResult:
        """
        Verify credentials and issue a session.

        Raises:
            InvalidCredentialsError: Unknown email or wrong password
        """
        ...

    async def get_current_session(self, token: Optional[str]) -> PublicUser:
        """
        Resolve a session token to its user's profile.

        Raises:
            MissingSessionError: No token presented
            InvalidSessionError: Token unknown, revoked or expired
            UserNotFoundError: Session outlived its user
        """
        ...

    async def logout(self, token: Optional[str]) -> LogoutResult:
        """Revoke the session behind `token`. Idempotent."""
        ...

    async def update_profile(self, user_id: str, request: UpdateProfileRequest) -> PublicUser:
        """Change profile fields, email or password of a user."""
        ...

    async def delete_account(self, user_id: str) -> None:
        """Delete a user together with all of their sessions."""
        ...

    async def revoke_all_sessions(self, user_id: str) -> int:
        """Sign a user out everywhere. Returns the number of sessions removed."""
        ...

    async def purge_expired_sessions(self) -> int:
        """Delete expired session rows. Returns the number removed."""
        ...

    async def check_store(self) -> bool:
        """Return True if the credential store is reachable."""
        ...
