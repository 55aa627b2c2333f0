from __future__ import annotations

from contextlib import AbstractContextManager
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol

from ..models import Challenge, ChallengePurpose, ChallengeStatus, Product, Shop, User


class UserRepository(Protocol):
    """Persistence functions related to owner accounts."""

    def get_user_by_email(self, email: str) -> Optional[User]:
        ...

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        ...

    def get_user_by_google_id(self, google_id: str) -> Optional[User]:
        ...

    def create_user(
        self,
        email: str,
        name: str,
        password_hash: Optional[str],
        *,
        verified: bool = False,
        google_id: Optional[str] = None,
    ) -> User:
        ...

    def update_user(
        self,
        user_id: int,
        *,
        name: Optional[str] = None,
        password_hash: Optional[str] = None,
        verified: Optional[bool] = None,
        google_id: Optional[str] = None,
        clear_password: bool = False,
    ) -> User:
        ...


class ChallengeRepository(Protocol):
    """Storage for OTP challenges, one row per (user, purpose)."""

    def get_challenge(self, user_id: int, purpose: ChallengePurpose) -> Optional[Challenge]:
        ...

    def save_challenge(
        self,
        user_id: int,
        purpose: ChallengePurpose,
        code_hash: str,
        status: ChallengeStatus,
        expires_at: datetime,
        sent_at: datetime,
        resend_count: int = 0,
    ) -> Challenge:
        ...

    def record_failed_attempt(self, challenge_id: int, max_attempts: int) -> Optional[Challenge]:
        ...

    def transition_challenge(
        self,
        challenge_id: int,
        from_status: ChallengeStatus,
        to_status: ChallengeStatus,
        *,
        expires_at: Optional[datetime] = None,
    ) -> bool:
        ...


class ShopRepository(Protocol):
    def create_shop(
        self,
        owner_id: int,
        name: str,
        *,
        description: Optional[str] = None,
        domain: Optional[str] = None,
        contact_email: Optional[str] = None,
        address: Optional[str] = None,
        parent_id: Optional[int] = None,
    ) -> Shop:
        ...

    def get_shop(self, shop_id: int) -> Optional[Shop]:
        ...

    def get_shops_by_owner(self, owner_id: int) -> List[Shop]:
        ...


class ProductRepository(Protocol):
    def create_product(self, shop_id: int, name: str, price: float, **fields: Any) -> Product:
        ...

    def get_product(self, product_id: int) -> Optional[Product]:
        ...

    def get_products_by_shop(self, shop_id: int) -> List[Product]:
        ...

    def update_product(self, product_id: int, fields: Dict[str, Any]) -> Product:
        ...

    def delete_product(self, product_id: int) -> None:
        ...


class PersistenceGateway(
    UserRepository,
    ChallengeRepository,
    ShopRepository,
    ProductRepository,
    Protocol,
):
    """Composite gateway combining every persistence concern used by the app."""

    def atomic(self) -> AbstractContextManager[Any]:
        """Group several calls into one transaction under the store lock."""
        ...

    def close(self) -> None:
        ...
