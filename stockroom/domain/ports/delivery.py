from __future__ import annotations

from typing import Protocol

from ..models import ChallengePurpose, User


class CodeDelivery(Protocol):
    """Out-of-band channel that hands one-time codes to their owner."""

    def send_code(
        self,
        user: User,
        purpose: ChallengePurpose,
        code: str,
        expires_minutes: int,
    ) -> None:
        ...
