from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from ...domain.errors import NotFound, ValidationError
from ...domain.models import Product
from ...domain.ports.persistence import PersistenceGateway
from .shop_service import ShopService, parse_reference

logger = logging.getLogger(__name__)


class ProductService:
    """Product CRUD scoped to shops the caller owns."""

    def __init__(self, persistence: PersistenceGateway, shop_service: ShopService) -> None:
        self._persistence = persistence
        self._shops = shop_service

    def create_product(
        self,
        owner_id: int,
        shop_id: Any,
        name: Optional[str],
        price: Optional[float],
        **fields: Any,
    ) -> Product:
        clean_name = (name or "").strip()
        if shop_id in (None, "") or not clean_name or price is None:
            raise ValidationError("Missing required fields")
        self._validate_numbers(price=price, **fields)
        shop = self._shops.get_shop(owner_id, shop_id)
        product = self._persistence.create_product(shop.id, clean_name, price, **fields)
        logger.info("Product %s created in shop %s", product.id, shop.id)
        return product

    def list_products(self, owner_id: int, shop_id: Any) -> List[Product]:
        if shop_id in (None, ""):
            raise ValidationError("shopId is required")
        shop = self._shops.get_shop(owner_id, shop_id)
        return self._persistence.get_products_by_shop(shop.id)

    def update_product(self, owner_id: int, product_id: Any, changes: Dict[str, Any]) -> Product:
        product = self._owned_product(owner_id, product_id)
        if "name" in changes:
            changes["name"] = (changes["name"] or "").strip()
            if not changes["name"]:
                raise ValidationError("Product name cannot be empty")
        for key in ("price", "stock"):
            if key in changes and changes[key] is None:
                raise ValidationError(f"{key} cannot be empty")
        self._validate_numbers(**changes)
        return self._persistence.update_product(product.id, changes)

    def delete_product(self, owner_id: int, product_id: Any) -> None:
        product = self._owned_product(owner_id, product_id)
        self._persistence.delete_product(product.id)
        logger.info("Product %s deleted from shop %s", product.id, product.shop_id)

    def _owned_product(self, owner_id: int, product_id: Any) -> Product:
        product = self._persistence.get_product(parse_reference(product_id, "product ID"))
        if product is None:
            raise NotFound("Product not found")
        self._shops.get_shop(owner_id, product.shop_id)
        return product

    @staticmethod
    def _validate_numbers(**values: Any) -> None:
        for key in ("price", "stock", "tax_rate"):
            value = values.get(key)
            if value is not None and value < 0:
                raise ValidationError(f"{key} cannot be negative")
