import threading

import pytest

from stockroom.application.services.verification_service import VerificationService
from stockroom.domain.errors import (
    ChallengeAlreadyUsed,
    ChallengeExpired,
    ChallengeNotAuthorized,
    InvalidCode,
    RateLimited,
    ResendTooSoon,
    UpstreamUnavailable,
)
from stockroom.domain.models import ChallengePurpose, ChallengeStatus

REGISTER = ChallengePurpose.REGISTER
FORGOT = ChallengePurpose.FORGOT_PASSWORD


@pytest.fixture
def alice(persistence):
    return persistence.create_user(email="alice@example.com", name="Alice", password_hash="x")


def test_correct_code_consumes_registration_challenge(verification, delivery, alice):
    verification.initiate(alice, REGISTER)
    code = delivery.last_code(alice.email)

    challenge = verification.verify(alice.id, REGISTER, code)

    assert challenge.status is ChallengeStatus.CONSUMED
    with pytest.raises(ChallengeAlreadyUsed):
        verification.verify(alice.id, REGISTER, code)


def test_code_expires_after_ttl(verification, delivery, clock, alice):
    verification.initiate(alice, REGISTER)
    clock.advance(minutes=10)

    with pytest.raises(ChallengeExpired):
        verification.verify(alice.id, REGISTER, delivery.last_code(alice.email))


def test_resend_waits_for_cooldown_and_replaces_code(verification, delivery, clock, alice):
    codes = iter(["111111", "222222"])
    verification._generate_code = lambda: next(codes)
    verification.initiate(alice, REGISTER)

    with pytest.raises(ResendTooSoon) as excinfo:
        verification.resend(alice.id, REGISTER)
    assert excinfo.value.retry_after == 60

    clock.advance(seconds=61)
    verification.resend(alice.id, REGISTER)
    assert delivery.last_code(alice.email) == "222222"

    with pytest.raises(InvalidCode):
        verification.verify(alice.id, REGISTER, "111111")
    assert verification.verify(alice.id, REGISTER, "222222").status is ChallengeStatus.CONSUMED


def test_resend_count_is_capped_within_window(persistence, delivery, clock, alice):
    service = VerificationService(
        persistence,
        delivery,
        code_secret="s",
        resend_cooldown_seconds=0,
        max_resends=2,
        clock=clock,
    )
    service.initiate(alice, REGISTER)
    service.resend(alice.id, REGISTER)
    service.resend(alice.id, REGISTER)

    with pytest.raises(RateLimited) as excinfo:
        service.resend(alice.id, REGISTER)
    assert not isinstance(excinfo.value, ResendTooSoon)

    clock.advance(minutes=10)
    assert service.resend(alice.id, REGISTER).resend_count == 1


def test_wrong_codes_exhaust_challenge(persistence, delivery, clock, alice):
    service = VerificationService(
        persistence, delivery, code_secret="s", max_attempts=3, clock=clock
    )
    service._generate_code = lambda: "123456"
    service.initiate(alice, REGISTER)

    with pytest.raises(InvalidCode, match="2 attempt"):
        service.verify(alice.id, REGISTER, "000000")
    with pytest.raises(InvalidCode, match="1 attempt"):
        service.verify(alice.id, REGISTER, "000000")
    with pytest.raises(ChallengeExpired, match="Too many"):
        service.verify(alice.id, REGISTER, "000000")

    # Even the right code is refused once the challenge is exhausted.
    with pytest.raises(ChallengeExpired):
        service.verify(alice.id, REGISTER, "123456")
    assert persistence.get_challenge(alice.id, REGISTER).status is ChallengeStatus.EXHAUSTED


def test_concurrent_verification_has_single_winner(verification, delivery, alice):
    verification.initiate(alice, REGISTER)
    code = delivery.last_code(alice.email)
    barrier = threading.Barrier(8)
    outcomes = []
    lock = threading.Lock()

    def attempt():
        barrier.wait()
        try:
            verification.verify(alice.id, REGISTER, code)
            result = "ok"
        except ChallengeAlreadyUsed:
            result = "used"
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=attempt) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert outcomes.count("ok") == 1
    assert outcomes.count("used") == 7


def test_password_reset_challenge_is_authorized_then_consumed(verification, delivery, alice):
    verification.initiate(alice, FORGOT)
    code = delivery.last_code(alice.email, FORGOT)

    assert verification.verify(alice.id, FORGOT, code).status is ChallengeStatus.AUTHORIZED
    verification.complete(alice.id, FORGOT, code)

    with pytest.raises(ChallengeNotAuthorized):
        verification.complete(alice.id, FORGOT, code)


def test_authorized_reset_window_expires(verification, delivery, clock, alice):
    verification.initiate(alice, FORGOT)
    code = delivery.last_code(alice.email, FORGOT)
    verification.verify(alice.id, FORGOT, code)
    clock.advance(minutes=11)

    with pytest.raises(ChallengeExpired):
        verification.complete(alice.id, FORGOT, code)


def test_complete_requires_the_verified_code(verification, delivery, alice):
    verification._generate_code = lambda: "123456"
    verification.initiate(alice, FORGOT)
    verification.verify(alice.id, FORGOT, "123456")

    for code in ("", "654321"):
        with pytest.raises(InvalidCode):
            verification.complete(alice.id, FORGOT, code)

    verification.complete(alice.id, FORGOT, "123456")


def test_complete_requires_prior_verification(verification, delivery, alice):
    verification.initiate(alice, FORGOT)

    with pytest.raises(ChallengeNotAuthorized):
        verification.complete(alice.id, FORGOT, delivery.last_code(alice.email, FORGOT))


def test_failed_delivery_leaves_no_open_challenge(persistence, clock, alice):
    class BrokenDelivery:
        def send_code(self, user, purpose, code, expires_minutes):
            raise UpstreamUnavailable("SMTP down")

    service = VerificationService(persistence, BrokenDelivery(), code_secret="s", clock=clock)

    with pytest.raises(UpstreamUnavailable):
        service.initiate(alice, REGISTER)

    assert persistence.get_challenge(alice.id, REGISTER).status is ChallengeStatus.EXHAUSTED
    assert not service.has_open_challenge(alice.id, REGISTER)
