"""API router for registration, login and password recovery."""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Response, status

from ....application.services.credential_service import CredentialService
from ....core.config import Settings
from ....core.dependencies import get_credential_service, get_settings
from ....domain.errors import ValidationError
from ....domain.models import User
from ....domain.results import Authenticated, ChallengeRequired, SetPasswordRequired
from ..schemas.auth import (
    EmailPayload,
    ExternalLoginPayload,
    LoginPayload,
    RegisterPayload,
    ResetPasswordPayload,
    UserIdPayload,
    VerifyCodePayload,
)
from ..session import (
    clear_session_cookie,
    get_current_user,
    get_optional_user,
    set_session_cookie,
)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def serialize_user(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "isVerified": user.is_verified,
        "hasPassword": user.has_password,
        "createdAt": user.created_at.isoformat(),
    }


@router.post("/email")
def check_email(
    payload: EmailPayload,
    service: CredentialService = Depends(get_credential_service),
) -> Dict[str, Any]:
    availability = service.check_email(payload.email)
    return {"available": availability.available, "isPending": availability.pending}


@router.post("/register/initiate", status_code=status.HTTP_201_CREATED)
def register_initiate(
    payload: RegisterPayload,
    service: CredentialService = Depends(get_credential_service),
) -> Dict[str, Any]:
    user = service.register(payload.name, payload.email, payload.password)
    return {"userId": user.id}


@router.post("/register/verify")
def register_verify(
    payload: VerifyCodePayload,
    service: CredentialService = Depends(get_credential_service),
) -> Dict[str, Any]:
    user = service.complete_registration(payload.user_id, payload.otp)
    return {"user": serialize_user(user)}


@router.post("/register/resend")
def register_resend(
    payload: EmailPayload,
    service: CredentialService = Depends(get_credential_service),
) -> Dict[str, Any]:
    service.resend_registration(payload.email)
    return {}


@router.post("/login")
def login(
    payload: LoginPayload,
    response: Response,
    service: CredentialService = Depends(get_credential_service),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    result = service.login(payload.email, payload.password)
    if isinstance(result, Authenticated):
        set_session_cookie(response, settings, result.token)
        return {"user": serialize_user(result.user)}
    if isinstance(result, ChallengeRequired):
        return {
            "userId": result.user_id,
            "email": result.email,
            "action": "complete-verification",
        }
    raise TypeError(f"Unhandled login result: {result!r}")


@router.post("/google")
def google_login(
    payload: ExternalLoginPayload,
    response: Response,
    service: CredentialService = Depends(get_credential_service),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    result = service.login_with_external_identity(payload.provider, payload.token)
    if isinstance(result, Authenticated):
        set_session_cookie(response, settings, result.token)
        return {"user": serialize_user(result.user)}
    if isinstance(result, SetPasswordRequired):
        set_session_cookie(response, settings, result.token)
        return {
            "userId": result.user_id,
            "action": "set-password",
            "message": "Choose a password to finish setting up your account",
            "user": serialize_user(result.user),
        }
    raise TypeError(f"Unhandled external login result: {result!r}")


@router.post("/forgot/initiate")
def forgot_initiate(
    payload: EmailPayload,
    service: CredentialService = Depends(get_credential_service),
) -> Dict[str, Any]:
    started = service.start_password_reset(payload.email)
    body: Dict[str, Any] = {"userId": started.user_id, "email": started.email}
    if started.set_password:
        body["action"] = "verify-otp-set-password"
        body["message"] = "Your account has no password yet. Enter the code we sent to set one"
    else:
        body["message"] = "We sent a reset code to your email"
    return body


@router.post("/forgot/verify")
def forgot_verify(
    payload: VerifyCodePayload,
    service: CredentialService = Depends(get_credential_service),
) -> Dict[str, Any]:
    service.verify_password_reset(payload.user_id, payload.otp)
    return {}


@router.post("/forgot/resend")
def forgot_resend(
    payload: UserIdPayload,
    service: CredentialService = Depends(get_credential_service),
) -> Dict[str, Any]:
    return {"userId": service.resend_password_reset(payload.user_id)}


@router.post("/forgot/reset")
def forgot_reset(
    payload: ResetPasswordPayload,
    service: CredentialService = Depends(get_credential_service),
    current_user: Optional[User] = Depends(get_optional_user),
) -> Dict[str, Any]:
    if payload.otp:
        service.reset_password(payload.user_id, payload.password, payload.otp)
        return {"message": "Your password has been reset successfully"}
    # Without a code only the signed-in owner may set a first password.
    if current_user is None or current_user.id != payload.user_id:
        raise ValidationError("Verification code is required")
    service.set_initial_password(current_user, payload.password)
    return {"message": "Your password has been set successfully"}


@router.post("/logout")
def logout(response: Response, settings: Settings = Depends(get_settings)) -> Dict[str, Any]:
    clear_session_cookie(response, settings)
    return {}


@router.get("/me")
def me(user: User = Depends(get_current_user)) -> Dict[str, Any]:
    return {"user": serialize_user(user)}
