import base64
import json
from datetime import timedelta

import jwt
import pytest

from stockroom.domain.errors import (
    ChallengeNotAuthorized,
    EmailAlreadyRegistered,
    EmailPendingVerification,
    Forbidden,
    InvalidCredentials,
    InvalidToken,
    ValidationError,
    WeakPassword,
)
from stockroom.domain.models import ChallengePurpose
from stockroom.domain.results import Authenticated, ChallengeRequired, SetPasswordRequired
from stockroom.services.token_service import TokenService

PASSWORD = "P@ssw0rd1"


def register_verified(credentials, delivery, email="alice@example.com", name="Alice"):
    user = credentials.register(name, email, PASSWORD)
    return credentials.complete_registration(user.id, delivery.last_code(email))


def test_register_rejects_duplicate_emails(credentials, delivery):
    credentials.register("Alice", "alice@example.com", PASSWORD)
    with pytest.raises(EmailPendingVerification):
        credentials.register("Alice", "ALICE@example.com", PASSWORD)

    register_verified(credentials, delivery, email="bob@example.com", name="Bob")
    with pytest.raises(EmailAlreadyRegistered):
        credentials.register("Bob", "bob@example.com", PASSWORD)


def test_weak_password_creates_nothing(credentials, persistence, delivery):
    with pytest.raises(WeakPassword):
        credentials.register("Alice", "alice@example.com", "password")

    assert persistence.get_user_by_email("alice@example.com") is None
    assert delivery.sent == []


def test_login_returns_token_for_verified_user(credentials, delivery, tokens):
    user = register_verified(credentials, delivery)

    result = credentials.login("alice@example.com", PASSWORD)

    assert isinstance(result, Authenticated)
    assert tokens.verify(result.token).user_id == user.id


def test_login_wrong_password(credentials, delivery):
    register_verified(credentials, delivery)

    with pytest.raises(InvalidCredentials):
        credentials.login("alice@example.com", "Wr0ngPassword")
    with pytest.raises(InvalidCredentials):
        credentials.login("nobody@example.com", PASSWORD)


def test_unverified_login_reuses_open_challenge(credentials, delivery, clock):
    credentials.register("Alice", "alice@example.com", PASSWORD)

    result = credentials.login("alice@example.com", PASSWORD)
    assert isinstance(result, ChallengeRequired)
    assert len(delivery.sent) == 1

    clock.advance(minutes=11)
    credentials.login("alice@example.com", PASSWORD)
    assert len(delivery.sent) == 2


def test_unknown_email_still_pays_for_a_password_check(credentials, monkeypatch):
    checked = []
    monkeypatch.setattr(
        "stockroom.application.services.credential_service.spend_password_check",
        checked.append,
    )

    with pytest.raises(InvalidCredentials):
        credentials.login("nobody@example.com", PASSWORD)
    assert checked == [PASSWORD]


def test_resend_for_unknown_email_is_silent(credentials, delivery):
    credentials.resend_registration("ghost@example.com")
    assert delivery.sent == []


def test_password_reset_flow(credentials, delivery):
    user = register_verified(credentials, delivery)
    started = credentials.start_password_reset("alice@example.com")
    assert started.user_id == user.id
    assert not started.set_password

    code = delivery.last_code("alice@example.com", ChallengePurpose.FORGOT_PASSWORD)
    credentials.verify_password_reset(user.id, code)

    with pytest.raises(WeakPassword):
        credentials.reset_password(user.id, "short", code)
    credentials.reset_password(user.id, "N3wPassword", code)

    assert isinstance(credentials.login("alice@example.com", "N3wPassword"), Authenticated)
    with pytest.raises(InvalidCredentials):
        credentials.login("alice@example.com", PASSWORD)


def test_reset_without_verified_code_is_refused(credentials, delivery):
    user = register_verified(credentials, delivery)
    credentials.start_password_reset("alice@example.com")

    with pytest.raises(ChallengeNotAuthorized):
        credentials.reset_password(user.id, "N3wPassword", "123456")


def test_google_login_creates_passwordless_user(credentials, google):
    google.add("tok-gina", "gina@example.com", name="Gina")

    result = credentials.login_with_external_identity("google", "tok-gina")

    assert isinstance(result, SetPasswordRequired)
    assert result.user.is_verified
    assert not result.user.has_password

    credentials.set_initial_password(result.user, "Ch00sePassword")
    assert isinstance(credentials.login("gina@example.com", "Ch00sePassword"), Authenticated)

    with pytest.raises(Forbidden):
        credentials.set_initial_password(result.user, "An0therPassword")


def test_google_login_links_verified_account(credentials, delivery, google):
    existing = register_verified(credentials, delivery)
    google.add("tok-alice", "alice@example.com")

    result = credentials.login_with_external_identity("google", "tok-alice")

    assert isinstance(result, Authenticated)
    assert result.user.id == existing.id
    assert result.user.google_id == "sub-tok-alice"
    assert isinstance(credentials.login("alice@example.com", PASSWORD), Authenticated)


def test_google_login_drops_password_of_pending_account(credentials, google):
    squatter = credentials.register("Mallory", "victim@example.com", "Squatter1")
    google.add("tok-victim", "victim@example.com")

    result = credentials.login_with_external_identity("google", "tok-victim")

    assert isinstance(result, SetPasswordRequired)
    assert result.user.id == squatter.id
    assert result.user.is_verified
    assert not result.user.has_password
    with pytest.raises(InvalidCredentials):
        credentials.login("victim@example.com", "Squatter1")


def test_google_login_rejects_unverified_email(credentials, google):
    google.add("tok-x", "x@example.com", verified=False)

    with pytest.raises(InvalidCredentials):
        credentials.login_with_external_identity("google", "tok-x")


def test_google_login_unknown_provider(credentials):
    with pytest.raises(ValidationError):
        credentials.login_with_external_identity("github", "token")


def test_token_round_trip(tokens, credentials, delivery):
    user = register_verified(credentials, delivery)
    payload = tokens.verify(tokens.issue(user))

    assert payload.user_id == user.id
    assert payload.email == "alice@example.com"
    assert payload.expires_at - payload.issued_at == timedelta(days=7)


def test_token_rejects_tampering_and_foreign_secret(tokens, credentials, delivery):
    user = register_verified(credentials, delivery)
    token = tokens.issue(user)
    forged = jwt.encode({"sub": str(user.id), "iat": 0, "exp": 2**31}, "other", algorithm="HS256")

    header, _, signature = token.split(".")
    claims = json.dumps({"sub": "999", "iat": 0, "exp": 2**31}).encode("utf-8")
    body = base64.urlsafe_b64encode(claims).rstrip(b"=").decode("ascii")

    with pytest.raises(InvalidToken):
        tokens.verify(".".join([header, body, signature]))
    with pytest.raises(InvalidToken):
        tokens.verify(forged)
    with pytest.raises(InvalidToken):
        TokenService("another-secret").verify(token)


def test_expired_token(credentials, delivery):
    user = register_verified(credentials, delivery)
    expired = TokenService("test-secret", lifetime=timedelta(minutes=-1)).issue(user)

    with pytest.raises(InvalidToken, match="Session expired"):
        TokenService("test-secret").verify(expired)
