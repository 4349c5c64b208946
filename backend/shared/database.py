"""
PostgreSQL connection pool for the credential store.

The pool is created explicitly at application startup and closed at
shutdown. Callers borrow a connection for the duration of a single
operation via the connection() context manager.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

import psycopg2
from psycopg2.extensions import connection as PGConnection
from psycopg2.pool import PoolError, ThreadedConnectionPool

from .config import Settings, get_settings
from .exceptions import InternalError

logger = logging.getLogger(__name__)


class StoreUnavailableError(InternalError):
    """Raised when the database cannot be reached or the pool is exhausted."""

    def __init__(self, message: str = "Credential store unavailable"):
        super().__init__(message, code="STORE_UNAVAILABLE")


class ConnectionPool:
    """
    Bounded, thread-safe pool of PostgreSQL connections.

    Wraps psycopg2's ThreadedConnectionPool so that every acquisition is
    scoped: the connection is committed on success, rolled back on error
    and always returned to the pool.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self._settings = settings or get_settings()
        self._pool: Optional[ThreadedConnectionPool] = None

    @property
    def is_open(self) -> bool:
        return self._pool is not None and not self._pool.closed

    def open(self) -> None:
        """Create the underlying pool. Safe to call more than once."""
        if self.is_open:
            return

        settings = self._settings
        if not settings.database_url:
            raise RuntimeError(
                "Database configuration missing. "
                "Set the PATHPAL_DATABASE_URL environment variable."
            )

        try:
            self._pool = ThreadedConnectionPool(
                settings.db_pool_min_size,
                settings.db_pool_max_size,
                dsn=settings.database_url,
                connect_timeout=settings.db_connect_timeout,
                options=f"-c statement_timeout={settings.db_statement_timeout_ms}",
            )
        except psycopg2.Error as e:
            logger.error("Could not open database pool: %s", e)
            raise StoreUnavailableError() from e

        logger.info(
            "Database pool opened (min=%d, max=%d)",
            settings.db_pool_min_size,
            settings.db_pool_max_size,
        )

    def close(self) -> None:
        """Close every pooled connection."""
        if self.is_open:
            self._pool.closeall()
            logger.info("Database pool closed")
        self._pool = None

    @contextmanager
    def connection(self) -> Iterator[PGConnection]:
        """
        Borrow a connection for one operation.

        Usage:
            with pool.connection() as conn:
                with conn.cursor() as cur:
                    cur.execute("SELECT 1")
        """
        if not self.is_open:
            raise StoreUnavailableError("Database pool is not open")

        try:
            conn = self._pool.getconn()
        except (PoolError, psycopg2.Error) as e:
            logger.error("Could not acquire database connection: %s", e)
            raise StoreUnavailableError() from e

        try:
            yield conn
            conn.commit()
        except Exception:
            if not conn.closed:
                conn.rollback()
            raise
        finally:
            self._pool.putconn(conn, close=bool(conn.closed))


# Module-level pool cache
_pool: Optional[ConnectionPool] = None


def get_connection_pool() -> ConnectionPool:
    """Get the shared connection pool (not opened until open() is called)."""
    global _pool
    if _pool is None:
        _pool = ConnectionPool()
    return _pool


def reset_connection_pool() -> None:
    """
    Close and forget the shared pool.

    Useful for testing or when configuration changes.
    """
    global _pool
    if _pool is not None:
        _pool.close()
    _pool = None
