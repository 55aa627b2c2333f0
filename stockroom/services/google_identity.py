"""Google ID token verification through the tokeninfo endpoint."""

import logging
from typing import Any, Dict, Optional

import requests

from ..domain.errors import InvalidToken, UpstreamUnavailable
from ..domain.ports.identity import ExternalIdentity

logger = logging.getLogger(__name__)

TOKENINFO_URL = "https://oauth2.googleapis.com/tokeninfo"
_ISSUERS = ("accounts.google.com", "https://accounts.google.com")


class GoogleIdentityVerifier:
    """Checks a Google Sign-In credential and returns the identity it asserts."""

    provider = "google"

    def __init__(
        self,
        client_id: Optional[str],
        timeout: float = 5.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._client_id = client_id
        self._timeout = timeout
        self._session = session or requests.Session()

    def verify(self, token: str) -> ExternalIdentity:
        if not self._client_id:
            raise UpstreamUnavailable("Google login is not configured")
        try:
            response = self._session.get(
                TOKENINFO_URL,
                params={"id_token": token},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            logger.warning("Google tokeninfo request failed: %s", exc)
            raise UpstreamUnavailable("Google is not reachable right now, please retry") from exc

        if response.status_code >= 500:
            raise UpstreamUnavailable("Google is not reachable right now, please retry")
        if response.status_code != 200:
            raise InvalidToken("Invalid Google credential")

        try:
            data: Dict[str, Any] = response.json()
        except ValueError as exc:
            logger.warning("Google tokeninfo returned a non-JSON body")
            raise UpstreamUnavailable("Google is not reachable right now, please retry") from exc
        if not isinstance(data, dict):
            raise UpstreamUnavailable("Google is not reachable right now, please retry")
        if data.get("aud") != self._client_id:
            logger.warning("Rejected Google token issued for audience %s", data.get("aud"))
            raise InvalidToken("Invalid Google credential")
        if data.get("iss") not in _ISSUERS:
            raise InvalidToken("Invalid Google credential")
        subject = data.get("sub")
        email = data.get("email")
        if not subject or not email:
            raise InvalidToken("Google account has no email address")

        return ExternalIdentity(
            provider=self.provider,
            subject=str(subject),
            email=str(email).lower(),
            name=str(data.get("name") or ""),
            email_verified=str(data.get("email_verified", "")).lower() == "true",
        )
