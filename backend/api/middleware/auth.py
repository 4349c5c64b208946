"""
Session cookie authentication.

Resolves the session cookie to the signed-in user's profile.
"""

from typing import Optional
from fastapi import Depends, Request

from modules.auth.cookies import read_session_token
from modules.auth.interfaces import IAuthService
from modules.auth.models import PublicUser

from ..dependencies import get_auth_service


async def get_session_token(request: Request) -> Optional[str]:
    """Dependency returning the raw session token, if any."""
    return read_session_token(request)


async def get_current_user(
    token: Optional[str] = Depends(get_session_token),
    service: IAuthService = Depends(get_auth_service),
) -> PublicUser:
    """
    Dependency that requires authentication.

    Use this for endpoints that require a logged-in user.

    Usage:
        @router.get("/protected")
        async def protected_route(user: PublicUser = Depends(get_current_user)):
            return {"user_id": user.user_id}
    """
    return await service.get_current_session(token)
