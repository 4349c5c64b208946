"""
Base repository class for database access.

Provides a common abstraction layer for all repositories, encapsulating
connection pool access and translating driver errors into PathPal errors.
"""

import logging
from contextlib import contextmanager
from typing import Any, Iterator, TypeVar, Generic

import psycopg2
from psycopg2.extras import RealDictCursor

from .database import ConnectionPool, StoreUnavailableError


T = TypeVar("T")

logger = logging.getLogger(__name__)


class BaseRepository(Generic[T]):
    """
    Base class for all repositories.

    Provides common functionality for database operations:
    - Connection pool access via self._pool
    - A scoped dict cursor via self._cursor()
    - Generic type parameter for model type hints

    Subclasses should implement domain-specific data access methods
    and handle row-to-Pydantic model mapping internally.

    Example:
        class UserRepository(BaseRepository[User]):
            def get_by_id(self, user_id: str) -> Optional[User]:
                with self._cursor() as cur:
                    cur.execute("SELECT * FROM users WHERE user_id = %s", (user_id,))
                    row = cur.fetchone()
                return self._map_to_user(row) if row else None
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize the repository with a connection pool.

        Args:
            pool: Connection pool shared by all repositories.
        """
        self._pool = pool

    @contextmanager
    def _cursor(self) -> Iterator[Any]:
        """
        Yield a RealDictCursor on a pooled connection.

        psycopg2 errors not handled by the subclass surface as
        StoreUnavailableError so that callers never see driver internals.
        """
        try:
            with self._pool.connection() as conn:
                with conn.cursor(cursor_factory=RealDictCursor) as cur:
                    yield cur
        except psycopg2.Error as e:
            logger.error("Database error in %s: %s", self.__class__.__name__, e)
            raise StoreUnavailableError() from e
