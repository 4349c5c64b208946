"""
Credential store implementations.

CredentialRepository keeps users and sessions in PostgreSQL:
- users
- sessions (user_id REFERENCES users ON DELETE CASCADE)

InMemoryCredentialRepository implements the same contract with plain
dictionaries, for tests and local development.
"""

import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Iterator, Optional

from psycopg2 import errors as pg_errors
from psycopg2 import sql

from shared.repository import BaseRepository
from .exceptions import EmailAlreadyExistsError
from .models import ActiveSession, ProfileFields, PublicUser, User

logger = logging.getLogger(__name__)

PUBLIC_USER_COLUMNS = (
    "user_id", "email", "name", "role", "birth_date", "home_long", "home_lat", "created_at"
)

# Columns update_user() is allowed to touch
UPDATABLE_USER_COLUMNS = frozenset(
    {"email", "password_hash", "name", "role", "birth_date", "home_long", "home_lat"}
)


def _check_columns(changes: dict[str, Any]) -> None:
    unknown = set(changes) - UPDATABLE_USER_COLUMNS
    if unknown:
        raise ValueError(f"Cannot update user columns: {sorted(unknown)}")


class CredentialRepository(BaseRepository[User]):
    """
    PostgreSQL credential store.

    Every method borrows one pooled connection for a single statement.
    Session lookups go through the unique index on sessions.token_digest.
    """

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    def create_user(self, email: str, password_hash: str, profile: ProfileFields) -> User:
        query = """
            INSERT INTO users (email, password_hash, name, role, birth_date, home_long, home_lat)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            RETURNING user_id, email, password_hash, name, role, birth_date,
                      home_long, home_lat, created_at
        """
        params = (
            email,
            password_hash,
            profile.name,
            profile.role.value,
            profile.birth_date,
            profile.home_long,
            profile.home_lat,
        )
        with self._cursor() as cur:
            try:
                cur.execute(query, params)
            except pg_errors.UniqueViolation:
                raise EmailAlreadyExistsError()
            row = cur.fetchone()
        return self._map_to_user(row)

    def find_user_by_email(self, email: str) -> Optional[User]:
        with self._cursor() as cur:
            cur.execute(
                """
                SELECT user_id, email, password_hash, name, role, birth_date,
                       home_long, home_lat, created_at
                FROM users WHERE email = %s
                """,
                (email,),
            )
            row = cur.fetchone()
        return self._map_to_user(row) if row else None

    def find_user_by_id(self, user_id: str) -> Optional[PublicUser]:
        query = sql.SQL("SELECT {} FROM users WHERE user_id = %s").format(
            sql.SQL(", ").join(map(sql.Identifier, PUBLIC_USER_COLUMNS))
        )
        with self._cursor() as cur:
            cur.execute(query, (user_id,))
            row = cur.fetchone()
        return self._map_to_public_user(row) if row else None

    def update_user(self, user_id: str, changes: dict[str, Any]) -> Optional[PublicUser]:
        if not changes:
            return self.find_user_by_id(user_id)
        _check_columns(changes)

        columns = sorted(changes)
        query = sql.SQL("UPDATE users SET {} WHERE user_id = %s RETURNING {}").format(
            sql.SQL(", ").join(
                sql.SQL("{} = %s").format(sql.Identifier(col)) for col in columns
            ),
            sql.SQL(", ").join(map(sql.Identifier, PUBLIC_USER_COLUMNS)),
        )
        params = [changes[col] for col in columns] + [user_id]
        with self._cursor() as cur:
            try:
                cur.execute(query, params)
            except pg_errors.UniqueViolation:
                raise EmailAlreadyExistsError()
            row = cur.fetchone()
        return self._map_to_public_user(row) if row else None

    def delete_user(self, user_id: str) -> int:
        with self._cursor() as cur:
            cur.execute("DELETE FROM users WHERE user_id = %s", (user_id,))
            return cur.rowcount

    # -------------------------------------------------------------------------
    # Sessions
    # -------------------------------------------------------------------------

    def create_session(self, user_id: str, token_digest: str, expires_at: datetime) -> str:
        with self._cursor() as cur:
            cur.execute(
                """
                INSERT INTO sessions (user_id, token_digest, expires_at)
                VALUES (%s, %s, %s)
                RETURNING session_id
                """,
                (user_id, token_digest, expires_at),
            )
            row = cur.fetchone()
        return str(row["session_id"])

    def list_active_sessions(self, now: datetime) -> Iterator[ActiveSession]:
        with self._cursor() as cur:
            cur.execute(
                """
                SELECT session_id, user_id, token_digest, expires_at
                FROM sessions WHERE expires_at > %s
                """,
                (now,),
            )
            for row in cur:
                yield self._map_to_session(row)

    def find_active_session(self, token_digest: str, now: datetime) -> Optional[ActiveSession]:
        with self._cursor() as cur:
            cur.execute(
                """
                SELECT session_id, user_id, token_digest, expires_at
                FROM sessions WHERE token_digest = %s AND expires_at > %s
                """,
                (token_digest, now),
            )
            row = cur.fetchone()
        return self._map_to_session(row) if row else None

    def delete_session(self, session_id: str) -> int:
        with self._cursor() as cur:
            cur.execute("DELETE FROM sessions WHERE session_id = %s", (session_id,))
            return cur.rowcount

    def delete_user_sessions(self, user_id: str) -> int:
        with self._cursor() as cur:
            cur.execute("DELETE FROM sessions WHERE user_id = %s", (user_id,))
            return cur.rowcount

    def count_expired_sessions(self, now: datetime) -> int:
        with self._cursor() as cur:
            cur.execute("SELECT COUNT(*) AS expired FROM sessions WHERE expires_at <= %s", (now,))
            return cur.fetchone()["expired"]

    def purge_expired_sessions(self, now: datetime) -> int:
        with self._cursor() as cur:
            cur.execute("DELETE FROM sessions WHERE expires_at <= %s", (now,))
            return cur.rowcount

    def ping(self) -> bool:
        with self._cursor() as cur:
            cur.execute("SELECT 1 AS ok")
            return cur.fetchone()["ok"] == 1

    # -------------------------------------------------------------------------
    # Row mapping
    # -------------------------------------------------------------------------

    def _map_to_public_user(self, row: dict[str, Any]) -> PublicUser:
        data = {col: row[col] for col in PUBLIC_USER_COLUMNS}
        data["user_id"] = str(row["user_id"])
        return PublicUser(**data)

    def _map_to_user(self, row: dict[str, Any]) -> User:
        public = self._map_to_public_user(row)
        return User(**public.model_dump(), password_hash=row["password_hash"])

    def _map_to_session(self, row: dict[str, Any]) -> ActiveSession:
        return ActiveSession(
            session_id=str(row["session_id"]),
            user_id=str(row["user_id"]),
            token_digest=row["token_digest"],
            expires_at=row["expires_at"],
        )


class InMemoryCredentialRepository:
    """
    Credential store with in-memory storage.

    For testing and development. Use CredentialRepository for production.
    Deleting a user removes their sessions, as the foreign key does in
    PostgreSQL.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._users: dict[str, User] = {}
        self._sessions: dict[str, ActiveSession] = {}

    def create_user(self, email: str, password_hash: str, profile: ProfileFields) -> User:
        with self._lock:
            if self._find_by_email(email) is not None:
                raise EmailAlreadyExistsError()
            user = User(
                user_id=str(uuid.uuid4()),
                email=email,
                password_hash=password_hash,
                created_at=datetime.now(timezone.utc),
                **profile.model_dump(),
            )
            self._users[user.user_id] = user
            return user

    def find_user_by_email(self, email: str) -> Optional[User]:
        with self._lock:
            return self._find_by_email(email)

    def find_user_by_id(self, user_id: str) -> Optional[PublicUser]:
        with self._lock:
            user = self._users.get(user_id)
            return user.to_public() if user else None

    def update_user(self, user_id: str, changes: dict[str, Any]) -> Optional[PublicUser]:
        _check_columns(changes)
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return None
            email = changes.get("email")
            if email is not None and email != user.email and self._find_by_email(email):
                raise EmailAlreadyExistsError()
            updated = User.model_validate(
                {**user.model_dump(), "password_hash": user.password_hash, **changes}
            )
            self._users[user_id] = updated
            return updated.to_public()

    def delete_user(self, user_id: str) -> int:
        with self._lock:
            if self._users.pop(user_id, None) is None:
                return 0
            self._delete_sessions_where(lambda s: s.user_id == user_id)
            return 1

    def create_session(self, user_id: str, token_digest: str, expires_at: datetime) -> str:
        session = ActiveSession(
            session_id=str(uuid.uuid4()),
            user_id=user_id,
            token_digest=token_digest,
            expires_at=expires_at,
        )
        with self._lock:
            if user_id not in self._users:
                raise ValueError(f"Unknown user: {user_id}")
            self._sessions[session.session_id] = session
        return session.session_id

    def list_active_sessions(self, now: datetime) -> Iterator[ActiveSession]:
        with self._lock:
            active = [s for s in self._sessions.values() if s.expires_at > now]
        yield from active

    def find_active_session(self, token_digest: str, now: datetime) -> Optional[ActiveSession]:
        with self._lock:
            for session in self._sessions.values():
                if session.token_digest == token_digest and session.expires_at > now:
                    return session
        return None

    def delete_session(self, session_id: str) -> int:
        with self._lock:
            return 1 if self._sessions.pop(session_id, None) else 0

    def delete_user_sessions(self, user_id: str) -> int:
        return self._delete_sessions_where(lambda s: s.user_id == user_id)

    def count_expired_sessions(self, now: datetime) -> int:
        with self._lock:
            return sum(1 for s in self._sessions.values() if s.expires_at <= now)

    def purge_expired_sessions(self, now: datetime) -> int:
        return self._delete_sessions_where(lambda s: s.expires_at <= now)

    def ping(self) -> bool:
        return True

    def _find_by_email(self, email: str) -> Optional[User]:
        for user in self._users.values():
            if user.email == email:
                return user
        return None

    def _delete_sessions_where(self, predicate) -> int:
        with self._lock:
            doomed = [sid for sid, s in self._sessions.items() if predicate(s)]
            for sid in doomed:
                del self._sessions[sid]
            return len(doomed)
