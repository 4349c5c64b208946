"""
Authentication service implementation.

Registers accounts, verifies credentials, issues and revokes opaque
server-side sessions. Blocking work (store queries, bcrypt) runs in a
worker thread under a per-call deadline so the event loop stays free.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Optional, TypeVar

from email_validator import EmailNotValidError, validate_email
from pydantic import ValidationError as PydanticValidationError

from shared.config import Settings, get_settings
from shared.database import StoreUnavailableError
from shared.exceptions import PathPalError

from .exceptions import (
    InvalidCredentialsError,
    InvalidInputError,
    InvalidSessionError,
    MissingSessionError,
    UserNotFoundError,
)
from .hashing import PasswordHasher
from .interfaces import IAuthService, ICredentialStore
from .models import (
    LoginResult,
    LogoutResult,
    ProfileFields,
    PublicUser,
    RegisterRequest,
    UpdateProfileRequest,
    UserRole,
)
from .sessions import SessionIssuer, SessionValidator, utc_now

logger = logging.getLogger(__name__)

T = TypeVar("T")


def normalize_email(email: Optional[str]) -> str:
    """Emails are compared case-insensitively: strip and lower-case."""
    return (email or "").strip().lower()


def _validated_email(email: str) -> str:
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        raise InvalidInputError("Invalid email address", details={"field": "email"})
    return email


def _validated_role(role: str) -> UserRole:
    try:
        return UserRole(role.strip())
    except ValueError:
        raise InvalidInputError(
            "Invalid user role",
            details={"field": "role", "allowed": [r.value for r in UserRole]},
        )


def _check_coordinates(home_long: Optional[float], home_lat: Optional[float]) -> None:
    if home_long is not None and not -180 <= home_long <= 180:
        raise InvalidInputError("Longitude must be between -180 and 180", details={"field": "home_long"})
    if home_lat is not None and not -90 <= home_lat <= 90:
        raise InvalidInputError("Latitude must be between -90 and 90", details={"field": "home_lat"})


class AuthService(IAuthService):
    """
    Implementation of the authentication service.

    Holds no per-user state: every call re-reads the credential store.
    """

    def __init__(
        self,
        store: ICredentialStore,
        hasher: Optional[PasswordHasher] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._settings = settings or get_settings()
        self._store = store
        self._hasher = hasher or PasswordHasher(rounds=self._settings.bcrypt_rounds)
        self._clock = clock
        self._issuer = SessionIssuer(store, ttl=self._settings.session_ttl, clock=clock)
        self._validator = SessionValidator(store, clock=clock)

    async def _run(self, func: Callable[..., T], *args: Any) -> T:
        """Run a blocking call in a thread, bounded by store_call_timeout."""
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(func, *args),
                timeout=self._settings.store_call_timeout,
            )
        except asyncio.TimeoutError:
            logger.error(
                "%s timed out after %.1fs",
                getattr(func, "__qualname__", func),
                self._settings.store_call_timeout,
            )
            raise StoreUnavailableError("Credential store timed out")

    # -------------------------------------------------------------------------
    # Core flows
    # -------------------------------------------------------------------------

    async def register(self, request: RegisterRequest) -> PublicUser:
        email = normalize_email(request.email)
        name = request.name.strip()
        role = request.role.strip()

        missing = [
            field
            for field, value in (
                ("email", email),
                ("password", request.password),
                ("name", name),
                ("role", role),
            )
            if not value
        ]
        if missing:
            raise InvalidInputError("All fields are required", details={"missing": missing})

        _validated_email(email)
        _check_coordinates(request.home_long, request.home_lat)
        try:
            profile = ProfileFields(
                name=name,
                role=_validated_role(role),
                birth_date=request.birth_date,
                home_long=request.home_long,
                home_lat=request.home_lat,
            )
        except PydanticValidationError as e:
            raise InvalidInputError("Invalid profile fields") from e

        password_hash = await self._run(self._hasher.hash, request.password)
        user = await self._run(self._store.create_user, email, password_hash, profile)

        logger.info("Registered user %s (%s)", user.user_id, user.role.value)
        return user.to_public()

    async def login(self, email: str, password: str) -> LoginResult:
        email = normalize_email(email)
        if not email or not password:
            raise InvalidInputError("Email and password are required")

        user = await self._run(self._store.find_user_by_email, email)
        if user is None:
            # Burn the same bcrypt cost as a real check
            await self._run(self._hasher.verify_dummy, password)
            logger.warning("Login failed: unknown email")
            raise InvalidCredentialsError()

        if not await self._run(self._hasher.verify, password, user.password_hash):
            logger.warning("Login failed: wrong password for user %s", user.user_id)
            raise InvalidCredentialsError()

        session = await self._run(self._issuer.issue, user.user_id)
        logger.info("User %s logged in (session %s)", user.user_id, session.session_id)
        return LoginResult(user=user.to_public(), session=session)

    async def get_current_session(self, token: Optional[str]) -> PublicUser:
        if not token:
            raise MissingSessionError()

        session = await self._run(self._validator.validate, token)
        if session is None:
            raise InvalidSessionError()

        user = await self._run(self._store.find_user_by_id, session.user_id)
        if user is None:
            logger.warning("Session %s points to missing user %s", session.session_id, session.user_id)
            raise UserNotFoundError(session.user_id)
        return user

    async def logout(self, token: Optional[str]) -> LogoutResult:
        if not token:
            return LogoutResult(logged_out=False, message="Not logged in")

        session = await self._run(self._validator.validate, token)
        if session is not None:
            await self._run(self._store.delete_session, session.session_id)
            logger.info("User %s logged out (session %s)", session.user_id, session.session_id)

        return LogoutResult(logged_out=True, message="Logged out successfully")

    # -------------------------------------------------------------------------
    # Account management
    # -------------------------------------------------------------------------

    async def update_profile(self, user_id: str, request: UpdateProfileRequest) -> PublicUser:
        changes: dict[str, Any] = {}

        if request.email is not None:
            email = normalize_email(request.email)
            if not email:
                raise InvalidInputError("Email cannot be empty", details={"field": "email"})
            changes["email"] = _validated_email(email)
        if request.name is not None:
            if not request.name.strip():
                raise InvalidInputError("Name cannot be empty", details={"field": "name"})
            changes["name"] = request.name.strip()
        if request.role is not None:
            changes["role"] = _validated_role(request.role).value
        if request.birth_date is not None:
            changes["birth_date"] = request.birth_date

        _check_coordinates(request.home_long, request.home_lat)
        if request.home_long is not None:
            changes["home_long"] = request.home_long
        if request.home_lat is not None:
            changes["home_lat"] = request.home_lat

        if request.password is not None:
            changes["password_hash"] = await self._run(self._hasher.hash, request.password)

        user = await self._run(self._store.update_user, user_id, changes)
        if user is None:
            raise UserNotFoundError(user_id)

        logger.info("Updated user %s (%s)", user_id, ", ".join(sorted(changes)) or "no changes")
        return user

    async def delete_account(self, user_id: str) -> None:
        deleted = await self._run(self._store.delete_user, user_id)
        if not deleted:
            raise UserNotFoundError(user_id)
        logger.info("Deleted user %s", user_id)

    async def revoke_all_sessions(self, user_id: str) -> int:
        revoked = await self._run(self._store.delete_user_sessions, user_id)
        logger.info("Revoked %d session(s) for user %s", revoked, user_id)
        return revoked

    async def purge_expired_sessions(self) -> int:
        purged = await self._run(self._store.purge_expired_sessions, self._clock())
        logger.info("Purged %d expired session(s)", purged)
        return purged

    async def check_store(self) -> bool:
        """Return True if the credential store answers a ping."""
        try:
            return await self._run(self._store.ping)
        except PathPalError:
            return False
