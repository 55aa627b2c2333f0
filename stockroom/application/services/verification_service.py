from __future__ import annotations

import hashlib
import hmac
import logging
import math
import secrets
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from ...domain.errors import (
    ChallengeAlreadyUsed,
    ChallengeExpired,
    ChallengeNotAuthorized,
    ChallengeNotFound,
    InvalidCode,
    RateLimited,
    ResendTooSoon,
)
from ...domain.models import Challenge, ChallengePurpose, ChallengeStatus, User
from ...domain.ports.delivery import CodeDelivery
from ...domain.ports.persistence import PersistenceGateway

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VerificationService:
    """Owns the one-time-code lifecycle for email verification and password reset.

    register:        pending -> consumed
    forgot-password: pending -> authorized -> consumed

    Every forward move is a conditional update on the challenge row, so when
    several requests race on the same code exactly one of them wins.
    """

    def __init__(
        self,
        persistence: PersistenceGateway,
        delivery: CodeDelivery,
        *,
        code_secret: str,
        code_length: int = 6,
        ttl_minutes: int = 10,
        resend_cooldown_seconds: int = 60,
        max_attempts: int = 5,
        max_resends: int = 5,
        clock: Clock = utcnow,
    ) -> None:
        self._persistence = persistence
        self._delivery = delivery
        self._code_secret = code_secret.encode("utf-8")
        self._code_length = code_length
        self._ttl_minutes = ttl_minutes
        self._ttl = timedelta(minutes=ttl_minutes)
        self._cooldown = timedelta(seconds=resend_cooldown_seconds)
        self._max_attempts = max_attempts
        self._max_resends = max_resends
        self._clock = clock

    # ------------------------------------------------------------------
    def initiate(self, user: User, purpose: ChallengePurpose) -> Challenge:
        """Issue a fresh code for user, replacing any earlier challenge for the same purpose."""
        return self._issue(user, purpose, resend_count=0)

    def resend(self, user_id: int, purpose: ChallengePurpose) -> Challenge:
        challenge = self._persistence.get_challenge(user_id, purpose)
        user = self._persistence.get_user_by_id(user_id)
        if challenge is None or user is None:
            raise ChallengeNotFound()
        if challenge.status in (ChallengeStatus.CONSUMED, ChallengeStatus.AUTHORIZED):
            raise ChallengeAlreadyUsed("This code has already been verified")

        now = self._clock()
        if challenge.status is ChallengeStatus.PENDING:
            ready_at = challenge.last_sent_at + self._cooldown
            if now < ready_at:
                raise ResendTooSoon(retry_after=self._seconds_until(now, ready_at))

        resend_count = challenge.resend_count
        window_end = challenge.last_sent_at + self._ttl
        if now >= window_end:
            resend_count = 0
        elif resend_count >= self._max_resends:
            logger.warning("Resend limit reached for user %s (%s)", user_id, purpose.value)
            raise RateLimited(
                "Too many codes requested. Please try again later",
                retry_after=self._seconds_until(now, window_end),
            )
        return self._issue(user, purpose, resend_count=resend_count + 1)

    def verify(self, user_id: int, purpose: ChallengePurpose, code: str) -> Challenge:
        """Check a submitted code and move the challenge forward on a match."""
        challenge = self._persistence.get_challenge(user_id, purpose)
        if challenge is None:
            raise ChallengeNotFound()
        self._ensure_pending(challenge)

        now = self._clock()
        if challenge.is_expired(now):
            raise ChallengeExpired()

        if not self._matches(challenge, code):
            updated = self._persistence.record_failed_attempt(challenge.id, self._max_attempts)
            if updated is None:
                raise ChallengeExpired("This code was replaced. Please use the latest code")
            if updated.status is ChallengeStatus.EXHAUSTED:
                logger.warning("Challenge %s exhausted after %s attempts", updated.id, updated.attempts)
                raise ChallengeExpired("Too many incorrect attempts. Please request a new code")
            self._ensure_pending(updated)
            remaining = self._max_attempts - updated.attempts
            raise InvalidCode(
                f"The code you entered is incorrect. {remaining} attempt(s) left"
            )

        if purpose is ChallengePurpose.FORGOT_PASSWORD:
            target = ChallengeStatus.AUTHORIZED
            expires_at: Optional[datetime] = now + self._ttl
        else:
            target = ChallengeStatus.CONSUMED
            expires_at = None
        if not self._persistence.transition_challenge(
            challenge.id, ChallengeStatus.PENDING, target, expires_at=expires_at
        ):
            raise ChallengeAlreadyUsed()
        logger.info("Challenge %s for user %s moved to %s", challenge.id, user_id, target.value)
        return self._reload(user_id, purpose)

    def complete(self, user_id: int, purpose: ChallengePurpose, code: str) -> None:
        """Consume an authorized challenge; the verified code must be presented again.

        Callers may wrap this in a wider transaction.
        """
        challenge = self._persistence.get_challenge(user_id, purpose)
        if challenge is None or challenge.status is not ChallengeStatus.AUTHORIZED:
            raise ChallengeNotAuthorized()
        if challenge.is_expired(self._clock()):
            raise ChallengeExpired("The reset window has expired. Please start again")
        if not self._matches(challenge, code):
            raise InvalidCode()
        if not self._persistence.transition_challenge(
            challenge.id, ChallengeStatus.AUTHORIZED, ChallengeStatus.CONSUMED
        ):
            raise ChallengeAlreadyUsed()

    def has_open_challenge(self, user_id: int, purpose: ChallengePurpose) -> bool:
        challenge = self._persistence.get_challenge(user_id, purpose)
        return (
            challenge is not None
            and challenge.status is ChallengeStatus.PENDING
            and not challenge.is_expired(self._clock())
        )

    # Internal helpers --------------------------------------------------
    def _issue(self, user: User, purpose: ChallengePurpose, resend_count: int) -> Challenge:
        code = self._generate_code()
        now = self._clock()
        challenge = self._persistence.save_challenge(
            user.id,
            purpose,
            self._hash(user.id, purpose, code),
            ChallengeStatus.PENDING,
            expires_at=now + self._ttl,
            sent_at=now,
            resend_count=resend_count,
        )
        try:
            self._delivery.send_code(user, purpose, code, self._ttl_minutes)
        except Exception:
            # An undelivered code must not be verifiable nor hold the resend cooldown.
            self._persistence.transition_challenge(
                challenge.id, ChallengeStatus.PENDING, ChallengeStatus.EXHAUSTED
            )
            raise
        logger.info("Issued %s code for user %s", purpose.value, user.id)
        return challenge

    def _reload(self, user_id: int, purpose: ChallengePurpose) -> Challenge:
        challenge = self._persistence.get_challenge(user_id, purpose)
        if challenge is None:
            raise ChallengeNotFound()
        return challenge

    @staticmethod
    def _ensure_pending(challenge: Challenge) -> None:
        if challenge.status in (ChallengeStatus.CONSUMED, ChallengeStatus.AUTHORIZED):
            raise ChallengeAlreadyUsed()
        if challenge.status is ChallengeStatus.EXHAUSTED:
            raise ChallengeExpired("Too many incorrect attempts. Please request a new code")

    def _generate_code(self) -> str:
        return f"{secrets.randbelow(10 ** self._code_length):0{self._code_length}d}"

    def _hash(self, user_id: int, purpose: ChallengePurpose, code: str) -> str:
        message = f"{user_id}:{purpose.value}:{code}".encode("utf-8")
        return hmac.new(self._code_secret, message, hashlib.sha256).hexdigest()

    def _matches(self, challenge: Challenge, code: str) -> bool:
        candidate = self._hash(challenge.user_id, challenge.purpose, (code or "").strip())
        return hmac.compare_digest(candidate, challenge.code_hash)

    @staticmethod
    def _seconds_until(now: datetime, moment: datetime) -> int:
        return max(1, math.ceil((moment - now).total_seconds()))
