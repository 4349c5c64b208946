"""
User-related endpoints.

Provides endpoints for the signed-in user's profile and account.
"""

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel

from modules.auth.cookies import clear_session_cookie
from modules.auth.interfaces import IAuthService
from modules.auth.models import PublicUser, UpdateProfileRequest
from ..dependencies import get_auth_service
from ..middleware.auth import get_current_user

router = APIRouter()


class AccountDeletedResponse(BaseModel):
    """Response for DELETE /users/me."""

    message: str
    user_id: str


class SessionsRevokedResponse(BaseModel):
    """Response for POST /users/me/sessions/revoke."""

    message: str
    revoked: int


@router.get("/me", response_model=PublicUser)
async def get_current_user_profile(
    user: PublicUser = Depends(get_current_user),
) -> PublicUser:
    """
    Get the current user's profile.

    Requires authentication.
    """
    return user


@router.patch("/me", response_model=PublicUser)
async def update_current_user_profile(
    request: UpdateProfileRequest,
    user: PublicUser = Depends(get_current_user),
    service: IAuthService = Depends(get_auth_service),
) -> PublicUser:
    """
    Update the current user's profile.

    Only the fields present in the body are changed. A new password is
    hashed before it is stored.
    """
    return await service.update_profile(user.user_id, request)


@router.delete("/me", response_model=AccountDeletedResponse)
async def delete_current_user(
    response: Response,
    user: PublicUser = Depends(get_current_user),
    service: IAuthService = Depends(get_auth_service),
) -> AccountDeletedResponse:
    """
    Delete the current user's account and every session they hold.
    """
    await service.delete_account(user.user_id)
    clear_session_cookie(response)
    return AccountDeletedResponse(message="User deleted", user_id=user.user_id)


@router.post("/me/sessions/revoke", response_model=SessionsRevokedResponse)
async def revoke_all_sessions(
    response: Response,
    user: PublicUser = Depends(get_current_user),
    service: IAuthService = Depends(get_auth_service),
) -> SessionsRevokedResponse:
    """
    Sign out everywhere by revoking all of the current user's sessions.
    """
    revoked = await service.revoke_all_sessions(user.user_id)
    clear_session_cookie(response)
    return SessionsRevokedResponse(message="All sessions revoked", revoked=revoked)
