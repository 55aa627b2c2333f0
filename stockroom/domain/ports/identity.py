from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(slots=True)
class ExternalIdentity:
    provider: str
    subject: str
    email: str
    name: str
    email_verified: bool


class IdentityVerifier(Protocol):
    """Validates a credential issued by an external identity provider."""

    provider: str

    def verify(self, token: str) -> ExternalIdentity:
        ...
