"""Error taxonomy shared by services and the HTTP layer."""

from typing import Optional


class StockroomError(Exception):
    """Base class for business-rule failures; carries the HTTP status to report."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(StockroomError):
    status_code = 400
    default_message = "Invalid request"


class WeakPassword(ValidationError):
    default_message = (
        "Password must be at least 8 characters and mix upper-case, lower-case and digits"
    )


class InvalidReference(ValidationError):
    default_message = "Invalid reference id format"


class InvalidCode(ValidationError):
    default_message = "The code you entered is incorrect"


class ChallengeExpired(ValidationError):
    default_message = "The verification code has expired. Please request a new one"


class Unauthenticated(StockroomError):
    status_code = 401
    default_message = "Unauthorized"


class InvalidCredentials(Unauthenticated):
    default_message = "Invalid email or password"


class InvalidToken(Unauthenticated):
    default_message = "Invalid or expired token"


class Forbidden(StockroomError):
    status_code = 403
    default_message = "Forbidden"


class ChallengeNotAuthorized(Forbidden):
    default_message = "Verify the reset code before choosing a new password"


class NotFound(StockroomError):
    status_code = 404
    default_message = "Not found"


class ChallengeNotFound(NotFound):
    default_message = "No verification in progress. Please request a new code"


class Conflict(StockroomError):
    status_code = 409
    default_message = "Conflict"


class EmailAlreadyRegistered(Conflict):
    default_message = "This email is already registered"


class EmailPendingVerification(Conflict):
    default_message = "This email has a pending verification. Please check your inbox"


class ChallengeAlreadyUsed(Conflict):
    default_message = "This code has already been used"


class RateLimited(StockroomError):
    status_code = 429
    default_message = "Too many requests"

    def __init__(self, message: Optional[str] = None, retry_after: Optional[int] = None):
        self.retry_after = retry_after
        super().__init__(message)


class ResendTooSoon(RateLimited):
    default_message = "Please wait before requesting another code"


class UpstreamUnavailable(StockroomError):
    """A database, identity provider or mail server call failed or timed out; retryable."""

    status_code = 503
    default_message = "Service temporarily unavailable, please retry"


class Internal(StockroomError):
    status_code = 500
