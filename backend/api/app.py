"""
FastAPI application factory.

Creates and configures the FastAPI application instance.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shared.config import get_settings
from shared.exceptions import InternalError, PathPalError

from .dependencies import get_container
from .models.errors import GENERIC_ERROR_MESSAGE, ErrorResponse
from .routes import health, users
from modules.auth.routes import router as auth_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Opens the credential store pool on startup and closes it on shutdown.
    """
    # Startup
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    container = get_container()
    container.startup()
    logger.info("Starting %s on %s:%s", settings.app_name, settings.host, settings.port)
    try:
        yield
    finally:
        # Shutdown
        container.shutdown()
        logger.info("Shutting down %s", settings.app_name)


async def pathpal_error_handler(request: Request, exc: PathPalError) -> JSONResponse:
    """Map a PathPalError to its status code and stable error code."""
    if isinstance(exc, InternalError):
        logger.error(
            "%s %s failed: %s (%s)",
            request.method,
            request.url.path,
            exc.message,
            exc.code,
            exc_info=exc,
        )
    body = ErrorResponse.from_error(exc)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies are client errors: 400 INVALID_INPUT."""
    fields = [".".join(str(part) for part in err.get("loc", ())) for err in exc.errors()]
    body = ErrorResponse(
        error="INVALID_INPUT",
        message="Invalid request format",
        details={"fields": fields},
    )
    return JSONResponse(status_code=400, content=body.model_dump())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort: log the traceback, return a generic 500."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    body = ErrorResponse(error="INTERNAL_ERROR", message=GENERIC_ERROR_MESSAGE)
    return JSONResponse(status_code=500, content=body.model_dump())


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI instance
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Account and session API for the PathPal companion-safety app",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    # Error handlers
    app.add_exception_handler(PathPalError, pathpal_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # Register routes
    app.include_router(health.router, tags=["health"])
    app.include_router(auth_router, tags=["auth"])
    app.include_router(users.router, prefix="/users", tags=["users"])

    return app


# Application instance for uvicorn
app = create_app()
