"""Tagged results for every auth endpoint response the client can receive."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union


@dataclass(slots=True)
class Authenticated:
    user: Dict[str, Any]


@dataclass(slots=True)
class VerificationRequired:
    user_id: int
    email: str


@dataclass(slots=True)
class SetPasswordRequired:
    user_id: int
    user: Optional[Dict[str, Any]] = None
    message: str = ""


@dataclass(slots=True)
class ResetStarted:
    user_id: int
    email: str
    set_password: bool = False
    message: str = ""


@dataclass(slots=True)
class Accepted:
    """The request succeeded and carries nothing the flow needs to branch on."""

    data: Dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class ApiError:
    message: str
    status_code: Optional[int] = None


AuthResponse = Union[
    Authenticated,
    VerificationRequired,
    SetPasswordRequired,
    ResetStarted,
    Accepted,
    ApiError,
]
