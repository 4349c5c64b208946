"""
Session token issuance and validation.

A session token is an opaque random string handed to the client. The
store only ever sees its SHA-256 digest, which is also the key used to
find the session again, so validation is a single indexed lookup rather
than a scan over every active session.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from .hashing import generate_session_token, hash_session_token, token_matches
from .interfaces import ICredentialStore
from .models import ActiveSession, IssuedSession

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TTL = timedelta(days=7)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SessionIssuer:
    """Creates session rows and hands back the raw token."""

    def __init__(
        self,
        store: ICredentialStore,
        ttl: timedelta = DEFAULT_SESSION_TTL,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._store = store
        self._ttl = ttl
        self._clock = clock

    def issue(self, user_id: str) -> IssuedSession:
        """
        Issue a new session for a user.

        Returns:
            IssuedSession carrying the raw token. This is the only place
            the raw token exists on the server side.
        """
        token = generate_session_token()
        expires_at = self._clock() + self._ttl
        session_id = self._store.create_session(user_id, hash_session_token(token), expires_at)
        logger.debug("Issued session %s for user %s", session_id, user_id)
        return IssuedSession(token=token, session_id=session_id, expires_at=expires_at)


class SessionValidator:
    """Resolves a presented token to its live session row."""

    def __init__(
        self,
        store: ICredentialStore,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._store = store
        self._clock = clock

    def validate(self, token: Optional[str]) -> Optional[ActiveSession]:
        """
        Look up the session behind a raw token.

        Returns None for a missing, unknown, revoked or expired token;
        callers cannot tell these cases apart.
        """
        if not token:
            return None

        now = self._clock()
        session = self._store.find_active_session(hash_session_token(token), now)
        if session is None or session.expires_at <= now:
            return None
        if not token_matches(token, session.token_digest):
            return None
        return session
