"""Step machine driving a user through register, login and password recovery.

The flow owns the transient state a UI would hold (current step, pending
user id, the code that was just verified) and turns every tagged response
from AuthApiClient into a step change plus a notification.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Any, Dict, Optional

from .api import NETWORK_ERROR_MESSAGE, AuthApiClient
from .notifications import NotificationCenter
from .responses import (
    Accepted,
    ApiError,
    AuthResponse,
    Authenticated,
    ResetStarted,
    SetPasswordRequired,
    VerificationRequired,
)

logger = logging.getLogger(__name__)


class FlowStep(str, Enum):
    LOGIN = "login"
    REGISTER = "register"
    OTP = "otp"
    FORGOT = "forgot"
    FORGOT_OTP = "forgot-otp"
    RESET = "reset"
    SET_PASSWORD = "set-password"
    AUTHENTICATED = "authenticated"


class AuthFlow:
    def __init__(
        self,
        api: AuthApiClient,
        notifications: NotificationCenter,
        initial: FlowStep = FlowStep.REGISTER,
    ) -> None:
        self._api = api
        self._notifications = notifications
        self.step = initial
        self.user_id: Optional[int] = None
        self.email = ""
        self.user: Optional[Dict[str, Any]] = None
        self._verified_code = ""
        self._submit_lock = threading.Lock()
        self._resend_lock = threading.Lock()

    # Navigation -----------------------------------------------------------
    def toggle_mode(self) -> FlowStep:
        self.step = FlowStep.REGISTER if self.step is FlowStep.LOGIN else FlowStep.LOGIN
        return self.step

    def open_forgot(self) -> FlowStep:
        self.step = FlowStep.FORGOT
        return self.step

    def back_to_login(self) -> FlowStep:
        self._reset_state()
        self.step = FlowStep.LOGIN
        return self.step

    # Registration ---------------------------------------------------------
    def check_email(self, email: str) -> bool:
        """Return True when email can be used for a new account."""
        if not email:
            return False
        result = self._api.check_email(email)
        if isinstance(result, ApiError):
            self._report(result, "Email Check Failed")
            return False
        if isinstance(result, Accepted):
            if result.data.get("available"):
                return True
            if result.data.get("isPending"):
                self._notifications.info(
                    "Verification Pending",
                    "This email is awaiting verification. Log in to finish it",
                )
            else:
                self._notifications.alert("Email Taken", "This email is already registered")
            return False
        return self._unhandled(result)

    def register(self, name: str, email: str, password: str) -> FlowStep:
        result = self._api.register(name, email, password)
        if isinstance(result, VerificationRequired):
            self._await_code(result, FlowStep.OTP)
            self._notifications.success(
                "Almost there!", f"We sent a verification code to {result.email}"
            )
        elif isinstance(result, ApiError):
            self._report(result, "Registration Failed")
        else:
            self._unhandled(result)
        return self.step

    # Login ------------------------------------------------------------------
    def login(self, email: str, password: str) -> FlowStep:
        result = self._api.login(email, password)
        if isinstance(result, Authenticated):
            self._authenticate(result.user)
            name = result.user.get("name") or result.user.get("email", "")
            self._notifications.success("Login Successful", f"Welcome back, {name}!")
        elif isinstance(result, VerificationRequired):
            self._await_code(result, FlowStep.OTP)
            self._notifications.info(
                "Verification Required", "Please verify your email to continue"
            )
        elif isinstance(result, ApiError):
            self._report(result, "Login Failed")
        else:
            self._unhandled(result)
        return self.step

    def google_login(self, credential: Optional[str]) -> FlowStep:
        if not credential:
            self._notifications.alert("Google Login Failed", "Unable to connect with Google")
            return self.step
        result = self._api.google_login(credential)
        if isinstance(result, Authenticated):
            self._authenticate(result.user)
            self._notifications.success("Login Successful", "Signed in with Google")
        elif isinstance(result, SetPasswordRequired):
            self.user_id = result.user_id
            self.user = result.user
            self.step = FlowStep.SET_PASSWORD
            self._notifications.info(
                "One Last Step", result.message or "Choose a password for your account"
            )
        elif isinstance(result, ApiError):
            self._report(result, "Google Login Failed")
        else:
            self._unhandled(result)
        return self.step

    def logout(self) -> FlowStep:
        result = self._api.logout()
        if isinstance(result, ApiError):
            self._report(result, "Logout Failed")
            return self.step
        self.back_to_login()
        self._notifications.info("Signed Out", "You have been logged out")
        return self.step

    # Password recovery ----------------------------------------------------
    def forgot(self, email: str) -> FlowStep:
        result = self._api.forgot_initiate(email)
        if isinstance(result, ResetStarted):
            self.user_id = result.user_id
            self.email = result.email
            self.step = FlowStep.FORGOT_OTP
            if result.set_password:
                self._notifications.info("Security Check", result.message)
            else:
                self._notifications.success(
                    "Reset Code Sent", result.message or f"Check {result.email} for your code"
                )
        elif isinstance(result, ApiError):
            self._report(result, "Reset Failed")
        else:
            self._unhandled(result)
        return self.step

    def reset_password(self, password: str, confirm: Optional[str] = None) -> FlowStep:
        if confirm is not None and password != confirm:
            self._notifications.alert("Password Mismatch", "Passwords do not match")
            return self.step
        if self.step not in (FlowStep.RESET, FlowStep.SET_PASSWORD) or self.user_id is None:
            self._notifications.alert("Reset Failed", "Verify your code before choosing a password")
            return self.step

        result = self._api.forgot_reset(self.user_id, password, self._verified_code)
        if isinstance(result, Accepted):
            if self.step is FlowStep.SET_PASSWORD:
                self.step = FlowStep.AUTHENTICATED
                self._verified_code = ""
                self._notifications.success("Password Set!", "Your account is ready")
            else:
                self.back_to_login()
                self._notifications.success(
                    "Password Updated!",
                    result.data.get("message") or "Log in with your new password",
                )
        elif isinstance(result, ApiError):
            self._report(result, "Reset Failed")
        else:
            self._unhandled(result)
        return self.step

    # Codes ------------------------------------------------------------------
    def verify_code(self, otp: str) -> FlowStep:
        """Submit a code for the current step; ignored while a submission is in flight."""
        if not self._submit_lock.acquire(blocking=False):
            logger.debug("Verification already in flight; ignoring %s", self.step.value)
            return self.step
        try:
            return self._verify_code(otp.strip())
        finally:
            self._submit_lock.release()

    def resend_code(self) -> bool:
        """Ask for a fresh code. Returns False when nothing was sent."""
        if not self._resend_lock.acquire(blocking=False):
            logger.debug("Resend already in flight; ignoring")
            return False
        try:
            return self._resend_code()
        finally:
            self._resend_lock.release()

    def _verify_code(self, otp: str) -> FlowStep:
        if self.user_id is None or self.step not in (FlowStep.OTP, FlowStep.FORGOT_OTP):
            self._notifications.alert("Verification Failed", "There is no code to verify")
            return self.step
        if not otp:
            self._notifications.alert("Verification Failed", "Enter the code we sent you")
            return self.step

        if self.step is FlowStep.OTP:
            result = self._api.verify_registration(self.user_id, otp)
            if isinstance(result, Accepted):
                self._reset_state()
                self.step = FlowStep.LOGIN
                self._notifications.success(
                    "Verified!", "Your email has been verified. You can now log in"
                )
            elif isinstance(result, ApiError):
                self._report(result, "Verification Failed")
            else:
                self._unhandled(result)
        else:
            result = self._api.forgot_verify(self.user_id, otp)
            if isinstance(result, Accepted):
                self._verified_code = otp
                self.step = FlowStep.RESET
                self._notifications.success("Verified!", "Now choose a new password")
            elif isinstance(result, ApiError):
                self._report(result, "Verification Failed")
            else:
                self._unhandled(result)
        return self.step

    def _resend_code(self) -> bool:
        if self.step is FlowStep.OTP and self.email:
            result: AuthResponse = self._api.resend_registration(self.email)
        elif self.step is FlowStep.FORGOT_OTP and self.user_id is not None:
            result = self._api.forgot_resend(self.user_id)
        else:
            self._notifications.alert("Resend Failed", "There is no code to resend")
            return False

        if isinstance(result, Accepted):
            self._notifications.success("New Code Sent", "Check your email for the new code")
            return True
        if isinstance(result, ApiError):
            self._report(result, "Resend Failed")
            return False
        return self._unhandled(result)

    # Internal helpers --------------------------------------------------
    def _await_code(self, result: VerificationRequired, step: FlowStep) -> None:
        self.user_id = result.user_id
        self.email = result.email
        self.step = step

    def _authenticate(self, user: Dict[str, Any]) -> None:
        self.user = user
        self.user_id = user.get("id")
        self.email = user.get("email", "")
        self._verified_code = ""
        self.step = FlowStep.AUTHENTICATED

    def _reset_state(self) -> None:
        self.user_id = None
        self.email = ""
        self.user = None
        self._verified_code = ""

    def _report(self, error: ApiError, title: str) -> None:
        if error.status_code is None:
            self._notifications.alert("Connection Error", error.message or NETWORK_ERROR_MESSAGE)
        else:
            self._notifications.alert(title, error.message)

    @staticmethod
    def _unhandled(result: object) -> Any:
        raise TypeError(f"Unhandled auth response: {result!r}")
