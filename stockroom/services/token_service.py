"""Signed, time-limited session tokens."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt

from ..domain.errors import InvalidToken
from ..domain.models import User

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TokenPayload:
    user_id: int
    email: str
    issued_at: datetime
    expires_at: datetime


class TokenService:
    """Issues and verifies HS256 JWTs; holds no server-side state."""

    def __init__(
        self,
        secret_key: str,
        lifetime: timedelta = timedelta(days=7),
        algorithm: str = "HS256",
    ) -> None:
        if not secret_key:
            raise RuntimeError("ACCESS_TOKEN_SECRET is not configured.")
        if secret_key == "change-me":
            logger.warning(
                "ACCESS_TOKEN_SECRET is using the default value. Configure a real secret in production."
            )
        self._secret_key = secret_key
        self._lifetime = lifetime
        self._algorithm = algorithm

    def issue(self, user: User) -> str:
        """
        Create a session token for user.

        Args:
            user: Authenticated user

        Returns:
            Encoded JWT string
        """
        now = datetime.now(tz=timezone.utc)
        payload = {
            "sub": str(user.id),
            "email": user.email,
            "iat": now,
            "exp": now + self._lifetime,
        }
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

    def verify(self, token: str) -> TokenPayload:
        """
        Decode a session token.

        Raises:
            InvalidToken: If the token is malformed, tampered with or expired
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
                options={"require": ["sub", "exp", "iat"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise InvalidToken("Session expired") from exc
        except jwt.InvalidTokenError as exc:
            raise InvalidToken() from exc
        try:
            user_id = int(payload["sub"])
        except (TypeError, ValueError) as exc:
            raise InvalidToken() from exc
        return TokenPayload(
            user_id=user_id,
            email=payload.get("email", ""),
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
