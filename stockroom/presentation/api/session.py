"""Access-token cookie carrying the logged-in session."""

from typing import Optional

from fastapi import Depends, Request, Response

from ...application.services.credential_service import CredentialService
from ...core.config import Settings
from ...core.dependencies import get_credential_service, get_settings
from ...domain.errors import Unauthenticated
from ...domain.models import User


def set_session_cookie(response: Response, settings: Settings, token: str) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_max_age_seconds,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
        path="/",
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        key=settings.session_cookie_name,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
        path="/",
    )


def get_current_user(
    request: Request,
    credential_service: CredentialService = Depends(get_credential_service),
    settings: Settings = Depends(get_settings),
) -> User:
    """Dependency resolving the session cookie to a user; 401 when absent or invalid."""
    token = request.cookies.get(settings.session_cookie_name)
    if not token:
        raise Unauthenticated()
    return credential_service.authenticate_token(token)


def get_optional_user(
    request: Request,
    credential_service: CredentialService = Depends(get_credential_service),
    settings: Settings = Depends(get_settings),
) -> Optional[User]:
    """Like get_current_user, but None instead of 401."""
    token = request.cookies.get(settings.session_cookie_name)
    if not token:
        return None
    try:
        return credential_service.authenticate_token(token)
    except Unauthenticated:
        return None
