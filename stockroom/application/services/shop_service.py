from __future__ import annotations

import logging
from typing import Any, List, Optional

from ...domain.errors import Forbidden, InvalidReference, NotFound, ValidationError
from ...domain.models import Shop
from ...domain.ports.persistence import PersistenceGateway

logger = logging.getLogger(__name__)


def parse_reference(value: Any, label: str = "id") -> int:
    """Turn a client-supplied id into a positive int or raise InvalidReference."""
    if isinstance(value, bool):
        raise InvalidReference(f"Invalid {label} format")
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str) and value.strip().isdigit():
        parsed = int(value.strip())
    else:
        raise InvalidReference(f"Invalid {label} format")
    if parsed <= 0:
        raise InvalidReference(f"Invalid {label} format")
    return parsed


class ShopService:
    """Creates and looks up shops, enforcing that nested shops stay with one owner."""

    def __init__(self, persistence: PersistenceGateway) -> None:
        self._persistence = persistence

    def create_shop(
        self,
        owner_id: int,
        name: str,
        *,
        description: Optional[str] = None,
        domain: Optional[str] = None,
        contact_email: Optional[str] = None,
        address: Optional[str] = None,
        parent: Any = None,
    ) -> Shop:
        clean_name = (name or "").strip()
        if not clean_name:
            raise ValidationError("Shop name is required")
        parent_id = None
        if parent not in (None, ""):
            parent_id = parse_reference(parent, "parent ID")

        # Parent checks and the insert share one transaction under the store lock.
        with self._persistence.atomic():
            if parent_id is not None:
                parent_shop = self._persistence.get_shop(parent_id)
                if parent_shop is None:
                    raise NotFound("Parent shop not found")
                if parent_shop.owner_id != owner_id:
                    logger.warning(
                        "User %s tried to nest a shop under shop %s owned by %s",
                        owner_id,
                        parent_id,
                        parent_shop.owner_id,
                    )
                    raise Forbidden("Parent shop does not belong to you")
            shop = self._persistence.create_shop(
                owner_id,
                clean_name,
                description=description,
                domain=domain,
                contact_email=contact_email,
                address=address,
                parent_id=parent_id,
            )
        logger.info("Shop %s created by user %s", shop.id, owner_id)
        return shop

    def list_shops(self, owner_id: int) -> List[Shop]:
        return self._persistence.get_shops_by_owner(owner_id)

    def get_shop(self, owner_id: int, shop_id: Any) -> Shop:
        shop = self._persistence.get_shop(parse_reference(shop_id, "shop ID"))
        if shop is None:
            raise NotFound("Shop not found")
        if shop.owner_id != owner_id:
            raise Forbidden("Shop does not belong to you")
        return shop
