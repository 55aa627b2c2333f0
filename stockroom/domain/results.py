"""Tagged outcomes returned by the account services.

Each login-style operation has more than one successful outcome; callers
dispatch on the concrete type instead of probing response fields.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .models import User


@dataclass(slots=True)
class Authenticated:
    user: User
    token: str


@dataclass(slots=True)
class ChallengeRequired:
    """Credentials were right but the email still needs OTP verification."""

    user_id: int
    email: str


@dataclass(slots=True)
class SetPasswordRequired:
    """Logged in through an external identity; no local password exists yet."""

    user: User
    token: str

    @property
    def user_id(self) -> int:
        return self.user.id


@dataclass(slots=True)
class PasswordResetStarted:
    user_id: int
    email: str
    set_password: bool = False


@dataclass(slots=True)
class EmailAvailability:
    available: bool
    pending: bool


LoginResult = Union[Authenticated, ChallengeRequired]
ExternalLoginResult = Union[Authenticated, SetPasswordRequired]
