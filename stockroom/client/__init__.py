from .api import AuthApiClient
from .flow import AuthFlow, FlowStep
from .notifications import Notification, NotificationCenter, NotificationType
from .responses import (
    Accepted,
    ApiError,
    Authenticated,
    AuthResponse,
    ResetStarted,
    SetPasswordRequired,
    VerificationRequired,
)

__all__ = [
    "Accepted",
    "ApiError",
    "AuthApiClient",
    "AuthFlow",
    "AuthResponse",
    "Authenticated",
    "FlowStep",
    "Notification",
    "NotificationCenter",
    "NotificationType",
    "ResetStarted",
    "SetPasswordRequired",
    "VerificationRequired",
]
