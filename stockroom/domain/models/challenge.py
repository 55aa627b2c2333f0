from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class ChallengePurpose(str, Enum):
    REGISTER = "register"
    FORGOT_PASSWORD = "forgot-password"


class ChallengeStatus(str, Enum):
    PENDING = "pending"
    AUTHORIZED = "authorized"
    CONSUMED = "consumed"
    EXHAUSTED = "exhausted"


@dataclass(slots=True)
class Challenge:
    id: int
    user_id: int
    purpose: ChallengePurpose
    code_hash: str
    status: ChallengeStatus
    attempts: int
    resend_count: int
    expires_at: datetime
    last_sent_at: datetime
    created_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at
