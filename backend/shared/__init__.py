"""
Shared infrastructure for PathPal backend.

This package contains cross-cutting concerns that are used by multiple modules:
- config: Centralized settings management
- database: PostgreSQL connection pool
- exceptions: Base exception classes
- repository: Base class for pooled data access

Note: Business logic should NOT go here. This is for infrastructure only.
"""

from .config import Settings, get_settings
from .database import (
    ConnectionPool,
    StoreUnavailableError,
    get_connection_pool,
    reset_connection_pool,
)
from .exceptions import (
    PathPalError,
    ValidationError,
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    ConflictError,
    InternalError,
)
from .repository import BaseRepository

__all__ = [
    "Settings",
    "get_settings",
    "ConnectionPool",
    "StoreUnavailableError",
    "get_connection_pool",
    "reset_connection_pool",
    "PathPalError",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "ConflictError",
    "InternalError",
    "BaseRepository",
]
