"""
Authentication API endpoints.

POST /register, POST /login, GET /session and DELETE /session.
Errors raised by the service are turned into responses by the
application-level exception handlers, except on logout, which must
clear the cookie even when it fails.
"""

import logging

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from api.dependencies import get_auth_service
from api.middleware.auth import get_current_user
from api.models.errors import ErrorResponse
from shared.exceptions import PathPalError

from .cookies import clear_session_cookie, read_session_token, set_session_cookie
from .interfaces import IAuthService
from .models import LoginRequest, MessageResponse, PublicUser, RegisterRequest

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/register", response_model=PublicUser, status_code=201)
async def register(
    request: RegisterRequest,
    service: IAuthService = Depends(get_auth_service),
) -> PublicUser:
    """
    Create an account.

    Does not log the user in; call /login afterwards.
    """
    return await service.register(request)


@router.post("/login", response_model=PublicUser)
async def login(
    request: LoginRequest,
    response: Response,
    service: IAuthService = Depends(get_auth_service),
) -> PublicUser:
    """
    Verify credentials and start a session.

    The session token is returned only in the Set-Cookie header.
    """
    result = await service.login(request.email, request.password)
    set_session_cookie(response, result.session.token, result.session.expires_at)
    return result.user


@router.get("/session", response_model=PublicUser)
async def get_session(user: PublicUser = Depends(get_current_user)) -> PublicUser:
    """Return the profile of the user behind the session cookie."""
    return user


@router.delete("/session", response_model=MessageResponse)
async def logout(
    request: Request,
    response: Response,
    service: IAuthService = Depends(get_auth_service),
):
    """
    End the current session.

    Always clears the cookie, also when revoking the session fails.
    """
    try:
        result = await service.logout(read_session_token(request))
    except PathPalError as e:
        logger.error("Logout failed: %s (%s)", e.message, e.code, exc_info=e)
        failure = JSONResponse(
            status_code=e.status_code,
            content=ErrorResponse.from_error(e).model_dump(),
        )
        clear_session_cookie(failure)
        return failure

    clear_session_cookie(response)
    return MessageResponse(message=result.message)
