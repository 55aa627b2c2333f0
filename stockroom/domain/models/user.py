"""User domain model for shop owners."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class UserStatus(str, Enum):
    PENDING = "pending"
    VERIFIED = "verified"


class User:
    """
    User entity representing a shop owner account.

    Attributes:
        id: Unique identifier
        email: User email address (unique, lower-cased)
        name: Display name
        password_hash: bcrypt hash, None for accounts created through Google
        status: Email verification status
        google_id: Linked Google subject identifier
        created_at: Account creation timestamp
        updated_at: Last update timestamp
    """

    def __init__(
        self,
        id: int,
        email: str,
        name: str,
        password_hash: Optional[str] = None,
        status: UserStatus = UserStatus.PENDING,
        google_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ):
        self.id = id
        self.email = email
        self.name = name
        self.password_hash = password_hash
        self.status = UserStatus(status)
        self.google_id = google_id
        self.created_at = created_at or datetime.now(timezone.utc)
        self.updated_at = updated_at or datetime.now(timezone.utc)

    @property
    def is_verified(self) -> bool:
        return self.status is UserStatus.VERIFIED

    @property
    def has_password(self) -> bool:
        return bool(self.password_hash)

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email} status={self.status.value}>"
