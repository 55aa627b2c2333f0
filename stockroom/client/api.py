"""HTTP client for the auth endpoints, returning tagged results."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol, Union

import requests

from .responses import (
    Accepted,
    ApiError,
    Authenticated,
    ResetStarted,
    SetPasswordRequired,
    VerificationRequired,
)

logger = logging.getLogger(__name__)

NETWORK_ERROR_MESSAGE = "Please check your network and try again"


class HttpSession(Protocol):
    def get(self, url: str, **kwargs: Any) -> Any:
        ...

    def post(self, url: str, **kwargs: Any) -> Any:
        ...


class AuthApiClient:
    """Thin wrapper over `/api/auth/*`; never raises for HTTP or network failures."""

    def __init__(
        self,
        base_url: str = "",
        session: Optional[HttpSession] = None,
        timeout: float = 10.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        self._timeout = timeout

    # Registration ---------------------------------------------------------
    def check_email(self, email: str) -> Union[Accepted, ApiError]:
        data = self._post("email", {"email": email})
        if isinstance(data, ApiError):
            return data
        return Accepted(data)

    def register(
        self, name: str, email: str, password: str
    ) -> Union[VerificationRequired, ApiError]:
        data = self._post(
            "register/initiate", {"name": name, "email": email, "password": password}
        )
        if isinstance(data, ApiError):
            return data
        return VerificationRequired(user_id=int(data["userId"]), email=email)

    def verify_registration(self, user_id: int, otp: str) -> Union[Accepted, ApiError]:
        data = self._post("register/verify", {"userId": user_id, "otp": otp})
        if isinstance(data, ApiError):
            return data
        return Accepted(data)

    def resend_registration(self, email: str) -> Union[Accepted, ApiError]:
        data = self._post("register/resend", {"email": email})
        if isinstance(data, ApiError):
            return data
        return Accepted(data)

    # Login ------------------------------------------------------------------
    def login(
        self, email: str, password: str
    ) -> Union[Authenticated, VerificationRequired, ApiError]:
        data = self._post("login", {"email": email, "password": password})
        if isinstance(data, ApiError):
            return data
        if data.get("action") == "complete-verification":
            return VerificationRequired(
                user_id=int(data["userId"]), email=data.get("email") or email
            )
        return Authenticated(user=data["user"])

    def google_login(
        self, token: str
    ) -> Union[Authenticated, SetPasswordRequired, ApiError]:
        data = self._post("google", {"provider": "google", "token": token})
        if isinstance(data, ApiError):
            return data
        if data.get("action") == "set-password":
            return SetPasswordRequired(
                user_id=int(data["userId"]),
                user=data.get("user"),
                message=data.get("message", ""),
            )
        return Authenticated(user=data["user"])

    def me(self) -> Union[Authenticated, ApiError]:
        data = self._request("get", "me")
        if isinstance(data, ApiError):
            return data
        return Authenticated(user=data["user"])

    def logout(self) -> Union[Accepted, ApiError]:
        data = self._post("logout", {})
        if isinstance(data, ApiError):
            return data
        return Accepted(data)

    # Password recovery ----------------------------------------------------
    def forgot_initiate(self, email: str) -> Union[ResetStarted, ApiError]:
        data = self._post("forgot/initiate", {"email": email})
        if isinstance(data, ApiError):
            return data
        return ResetStarted(
            user_id=int(data["userId"]),
            email=data.get("email") or email,
            set_password=data.get("action") == "verify-otp-set-password",
            message=data.get("message", ""),
        )

    def forgot_verify(self, user_id: int, otp: str) -> Union[Accepted, ApiError]:
        data = self._post("forgot/verify", {"userId": user_id, "otp": otp})
        if isinstance(data, ApiError):
            return data
        return Accepted(data)

    def forgot_resend(self, user_id: int) -> Union[Accepted, ApiError]:
        data = self._post("forgot/resend", {"userId": user_id})
        if isinstance(data, ApiError):
            return data
        return Accepted(data)

    def forgot_reset(
        self, user_id: int, password: str, otp: str = ""
    ) -> Union[Accepted, ApiError]:
        data = self._post(
            "forgot/reset", {"userId": user_id, "password": password, "otp": otp}
        )
        if isinstance(data, ApiError):
            return data
        return Accepted(data)

    # Transport --------------------------------------------------------------
    def _post(self, path: str, body: Dict[str, Any]) -> Union[Dict[str, Any], ApiError]:
        return self._request("post", path, json=body)

    def _request(
        self, method: str, path: str, **kwargs: Any
    ) -> Union[Dict[str, Any], ApiError]:
        url = f"{self._base_url}/api/auth/{path}"
        try:
            response = getattr(self._session, method)(url, timeout=self._timeout, **kwargs)
        except requests.RequestException as exc:
            logger.warning("Request to %s failed: %s", url, exc)
            return ApiError(NETWORK_ERROR_MESSAGE)

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}
        if response.status_code >= 400:
            return ApiError(data.get("error") or "Something went wrong", response.status_code)
        return data
