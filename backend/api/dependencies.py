"""
Dependency injection setup for FastAPI.

This module provides the "container" that wires together the connection
pool, the credential store and the auth service. Routes depend on the
IAuthService interface; the container decides which implementation and
which store back it.
"""

import logging
from typing import TYPE_CHECKING

from shared.config import get_settings
from shared.database import ConnectionPool, get_connection_pool

# Type checking imports for interfaces (avoids circular imports)
if TYPE_CHECKING:
    from modules.auth.interfaces import IAuthService, ICredentialStore

logger = logging.getLogger(__name__)


class ServiceContainer:
    """
    Container for all service instances.

    This class manages the lifecycle of service instances and their
    dependencies. Services are created lazily on first access.

    All services are cached as singletons within the container.
    Use reset() to clear all cached services for testing.
    """

    def __init__(self) -> None:
        self._pool: "ConnectionPool | None" = None
        self._credential_store: "ICredentialStore | None" = None
        self._auth_service: "IAuthService | None" = None

    @property
    def uses_database(self) -> bool:
        return get_settings().storage_backend == "postgres"

    @property
    def pool(self) -> ConnectionPool:
        """Get the connection pool (opened by startup())."""
        if self._pool is None:
            self._pool = get_connection_pool()
        return self._pool

    @property
    def credential_store(self) -> "ICredentialStore":
        """Get the credential store for the configured backend."""
        if self._credential_store is None:
            if self.uses_database:
                from modules.auth.repository import CredentialRepository
                self._credential_store = CredentialRepository(self.pool)
            else:
                from modules.auth.repository import InMemoryCredentialRepository
                logger.warning("Using in-memory credential store; data is not persisted")
                self._credential_store = InMemoryCredentialRepository()
        return self._credential_store

    @property
    def auth(self) -> "IAuthService":
        """Get the auth service instance."""
        if self._auth_service is None:
            from modules.auth.service import AuthService
            self._auth_service = AuthService(self.credential_store)
        return self._auth_service

    def startup(self) -> None:
        """Open external resources. Called from the app lifespan."""
        if self.uses_database:
            self.pool.open()

    def shutdown(self) -> None:
        """Release external resources. Called from the app lifespan."""
        if self._pool is not None:
            self._pool.close()

    def reset(self) -> None:
        """
        Reset all cached services.

        This is primarily for testing - allows tests to get fresh
        service instances with different mock dependencies.
        """
        self.shutdown()
        self._pool = None
        self._credential_store = None
        self._auth_service = None


# Module-level container singleton
_container: ServiceContainer | None = None


def get_container() -> ServiceContainer:
    """Get the singleton service container."""
    global _container
    if _container is None:
        _container = ServiceContainer()
    return _container


def reset_container() -> None:
    """
    Reset the service container.

    This clears the cached container, so the next call to get_container()
    will create a fresh container with new service instances.

    Primarily used for testing.
    """
    global _container
    if _container is not None:
        _container.reset()
    _container = None


# FastAPI dependency functions
# These are the functions that should be used in route Depends() calls


def get_auth_service() -> "IAuthService":
    """FastAPI dependency for auth service."""
    return get_container().auth
