"""
Authentication module data models.

These models define the data structures used by the auth module
and exposed to other modules through the interface.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class UserRole(str, Enum):
    """The two kinds of PathPal account."""

    CANE_USER = "CaneUser"
    CAREGIVER = "Caregiver"


class ProfileFields(BaseModel):
    """Profile attributes supplied at registration."""

    name: str
    role: UserRole
    birth_date: Optional[date] = None
    home_long: Optional[float] = Field(None, ge=-180, le=180)
    home_lat: Optional[float] = Field(None, ge=-90, le=90)


class PublicUser(BaseModel):
    """
    User profile as returned to clients.

    Never carries the password hash.
    """

    user_id: str = Field(..., description="User ID (UUID)")
    email: str = Field(..., description="Normalized (lower-case) email address")
    name: str = Field(..., description="Display name")
    role: UserRole = Field(..., description="Account role")
    birth_date: Optional[date] = Field(None, description="Birth date")
    home_long: Optional[float] = Field(None, description="Home longitude")
    home_lat: Optional[float] = Field(None, description="Home latitude")
    created_at: datetime = Field(..., description="Account creation time")

    model_config = {"frozen": True}


class User(PublicUser):
    """
    Full user record as held by the credential store.

    The password hash is excluded from serialization so a User can never
    leak it through model_dump() or a response model.
    """

    password_hash: str = Field(..., exclude=True, repr=False)

    def to_public(self) -> PublicUser:
        """Drop the password hash."""
        return PublicUser(**self.model_dump())


class ActiveSession(BaseModel):
    """A stored, not yet expired session row."""

    session_id: str
    user_id: str
    token_digest: str = Field(..., repr=False)
    expires_at: datetime

    model_config = {"frozen": True}


class IssuedSession(BaseModel):
    """
    A freshly issued session.

    `token` is the raw bearer value. It exists only here and in the
    client's cookie; the store keeps its digest.
    """

    token: str = Field(..., repr=False)
    session_id: str
    expires_at: datetime


class LoginResult(BaseModel):
    """Outcome of a successful login."""

    user: PublicUser
    session: IssuedSession


class LogoutResult(BaseModel):
    """Outcome of a logout call."""

    logged_out: bool
    message: str


# Request bodies. Required fields default to empty so that a missing field
# reaches the service and is reported as INVALID_INPUT.


class RegisterRequest(BaseModel):
    """Body of POST /register."""

    email: str = ""
    password: str = ""
    name: str = ""
    role: str = ""
    birth_date: Optional[date] = None
    home_long: Optional[float] = None
    home_lat: Optional[float] = None


class LoginRequest(BaseModel):
    """Body of POST /login."""

    email: str = ""
    password: str = ""


class UpdateProfileRequest(BaseModel):
    """Body of PATCH /users/me. Omitted fields are left unchanged."""

    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None
    role: Optional[str] = None
    birth_date: Optional[date] = None
    home_long: Optional[float] = None
    home_lat: Optional[float] = None


class MessageResponse(BaseModel):
    """Plain acknowledgement."""

    message: str
