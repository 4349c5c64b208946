"""
Password and session-token hashing.

Passwords go through bcrypt with a deployment-wide work factor.
Session tokens are 256-bit random values; their stored form is a SHA-256
digest, which doubles as the lookup key for the session row.
"""

import hashlib
import hmac
import logging
import secrets
from typing import Optional

import bcrypt

from .exceptions import InvalidInputError, PasswordHashingError

logger = logging.getLogger(__name__)

# 32 random bytes, hex-encoded to 64 characters
SESSION_TOKEN_BYTES = 32

DEFAULT_BCRYPT_ROUNDS = 12
BCRYPT_MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """
    Salted, adaptive password hashing backed by bcrypt.

    bcrypt only considers the first 72 bytes of its input, so longer
    passwords are rejected rather than silently truncated.
    """

    def __init__(self, rounds: int = DEFAULT_BCRYPT_ROUNDS):
        if not 4 <= rounds <= 31:
            raise ValueError(f"bcrypt rounds must be between 4 and 31, got {rounds}")
        self._rounds = rounds
        self._dummy_hash: Optional[bytes] = None

    @property
    def rounds(self) -> int:
        return self._rounds

    def hash(self, plaintext: str) -> str:
        """
        Hash a password.

        Raises:
            InvalidInputError: If the password is empty, not valid UTF-8
                or longer than bcrypt accepts
            PasswordHashingError: If bcrypt fails
        """
        if not plaintext:
            raise InvalidInputError("Password is required")
        try:
            password = plaintext.encode("utf-8")
        except UnicodeEncodeError:
            raise InvalidInputError("Password must be valid UTF-8")
        if len(password) > BCRYPT_MAX_PASSWORD_BYTES:
            raise InvalidInputError(
                f"Password must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes"
            )
        try:
            digest = bcrypt.hashpw(password, bcrypt.gensalt(rounds=self._rounds))
        except (ValueError, TypeError) as e:
            logger.error("bcrypt failed to hash password: %s", e)
            raise PasswordHashingError() from e
        return digest.decode("utf-8")

    def verify(self, plaintext: str, digest: str) -> bool:
        """Check a password against a stored bcrypt digest."""
        if not plaintext or not digest:
            return False
        try:
            password = plaintext.encode("utf-8")
        except UnicodeEncodeError:
            # Unencodable input can never match; still pay one bcrypt check
            return self.verify_dummy("")
        try:
            return bcrypt.checkpw(password, digest.encode("utf-8"))
        except ValueError:
            # Not a bcrypt hash, or a password bcrypt refuses to take
            return False

    def verify_dummy(self, plaintext: str) -> bool:
        """
        Spend one verify against a throwaway hash and return False.

        Keeps an unknown-email login as slow as a wrong-password login.
        Never raises for any password a client can send.
        """
        if self._dummy_hash is None:
            self._dummy_hash = bcrypt.hashpw(
                secrets.token_bytes(16), bcrypt.gensalt(rounds=self._rounds)
            )
        try:
            password = (plaintext or "").encode("utf-8")[:BCRYPT_MAX_PASSWORD_BYTES]
        except UnicodeEncodeError:
            password = b"x"
        bcrypt.checkpw(password, self._dummy_hash)
        return False


def generate_session_token() -> str:
    """Return a new opaque session token (64 hex characters)."""
    return secrets.token_hex(SESSION_TOKEN_BYTES)


def hash_session_token(token: str) -> str:
    """Return the SHA-256 hex digest stored in place of a raw token."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def token_matches(token: str, digest: str) -> bool:
    """Constant-time check that `digest` belongs to `token`."""
    return hmac.compare_digest(hash_session_token(token), digest)
