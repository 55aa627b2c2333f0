from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient

from stockroom.application.services.credential_service import CredentialService
from stockroom.application.services.verification_service import VerificationService
from stockroom.core.app_factory import create_application
from stockroom.core.config import Settings
from stockroom.domain.errors import InvalidToken
from stockroom.domain.models import ChallengePurpose
from stockroom.domain.ports.identity import ExternalIdentity
from stockroom.infrastructure.persistence.sqlite import SQLitePersistence
from stockroom.services.token_service import TokenService

SECRET = "test-secret"


class RecordingDelivery:
    """Keeps every code it is asked to send instead of emailing it."""

    def __init__(self) -> None:
        self.sent: List[Tuple[str, ChallengePurpose, str]] = []

    def send_code(self, user, purpose, code, expires_minutes) -> None:
        self.sent.append((user.email, purpose, code))

    def last_code(self, email: str, purpose: Optional[ChallengePurpose] = None) -> str:
        for sent_to, sent_purpose, code in reversed(self.sent):
            if sent_to == email and (purpose is None or sent_purpose is purpose):
                return code
        raise AssertionError(f"No code was sent to {email}")


class FakeGoogleVerifier:
    provider = "google"

    def __init__(self) -> None:
        self.identities = {}

    def add(self, token: str, email: str, name: str = "", verified: bool = True) -> None:
        self.identities[token] = ExternalIdentity(
            provider="google",
            subject=f"sub-{token}",
            email=email,
            name=name,
            email_verified=verified,
        )

    def verify(self, token: str) -> ExternalIdentity:
        try:
            return self.identities[token]
        except KeyError as exc:
            raise InvalidToken("Invalid Google credential") from exc


class MutableClock:
    def __init__(self) -> None:
        self.now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def delivery() -> RecordingDelivery:
    return RecordingDelivery()


@pytest.fixture
def google() -> FakeGoogleVerifier:
    return FakeGoogleVerifier()


@pytest.fixture
def clock() -> MutableClock:
    return MutableClock()


@pytest.fixture
def persistence(tmp_path: Path):
    store = SQLitePersistence(tmp_path / "stockroom.db")
    yield store
    store.close()


@pytest.fixture
def verification(persistence, delivery, clock) -> VerificationService:
    return VerificationService(persistence, delivery, code_secret=SECRET, clock=clock)


@pytest.fixture
def tokens() -> TokenService:
    return TokenService(SECRET)


@pytest.fixture
def credentials(persistence, verification, tokens, google) -> CredentialService:
    return CredentialService(persistence, verification, tokens, {"google": google})


@pytest.fixture
def settings(tmp_path: Path, monkeypatch) -> Settings:
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "api.db"))
    monkeypatch.setenv("ACCESS_TOKEN_SECRET", SECRET)
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    return Settings()


@pytest.fixture
def client(settings, delivery, google, clock):
    app = create_application(
        settings,
        code_delivery=delivery,
        identity_verifiers={"google": google},
        clock=clock,
    )
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def signup(client, delivery):
    """Register, verify and log in an account; the client keeps its session cookie."""

    def _signup(name: str, email: str, password: str = "P@ssw0rd1") -> dict:
        res = client.post(
            "/api/auth/register/initiate",
            json={"name": name, "email": email, "password": password},
        )
        assert res.status_code == 201, res.text
        user_id = res.json()["userId"]
        code = delivery.last_code(email, ChallengePurpose.REGISTER)
        res = client.post("/api/auth/register/verify", json={"userId": user_id, "otp": code})
        assert res.status_code == 200, res.text
        res = client.post("/api/auth/login", json={"email": email, "password": password})
        assert res.status_code == 200, res.text
        return res.json()["user"]

    return _signup
