"""
Session cookie transport.

The raw session token travels only in this cookie. Attributes are fixed
by settings: Path=/, Secure, SameSite=Lax and HttpOnly by default.
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import Request, Response

from shared.config import Settings, get_settings

# Expiry used to tell the browser to drop the cookie
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def read_session_token(request: Request, settings: Optional[Settings] = None) -> Optional[str]:
    """Return the session token from the request cookie, or None."""
    settings = settings or get_settings()
    return request.cookies.get(settings.session_cookie_name) or None


def set_session_cookie(
    response: Response,
    token: str,
    expires_at: datetime,
    settings: Optional[Settings] = None,
) -> None:
    """Attach the session cookie, expiring together with the session."""
    settings = settings or get_settings()
    max_age = max(0, int((expires_at - datetime.now(timezone.utc)).total_seconds()))
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=max_age,
        expires=expires_at.astimezone(timezone.utc),
        path="/",
        secure=settings.session_cookie_secure,
        httponly=settings.session_cookie_httponly,
        samesite=settings.session_cookie_samesite,
    )


def clear_session_cookie(response: Response, settings: Optional[Settings] = None) -> None:
    """Overwrite the session cookie with an empty, already expired one."""
    settings = settings or get_settings()
    response.set_cookie(
        key=settings.session_cookie_name,
        value="",
        max_age=0,
        expires=EPOCH,
        path="/",
        secure=settings.session_cookie_secure,
        httponly=settings.session_cookie_httponly,
        samesite=settings.session_cookie_samesite,
    )
