"""API router for products inside a shop."""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, status

from ....application.services.product_service import ProductService
from ....core.dependencies import get_product_service
from ....domain.models import Product, User
from ..schemas.product import ProductCreatePayload, ProductUpdatePayload
from ..session import get_current_user

router = APIRouter(prefix="/api/product", tags=["products"])


def serialize_product(product: Product) -> Dict[str, Any]:
    return {
        "id": product.id,
        "shop": product.shop_id,
        "name": product.name,
        "sku": product.sku,
        "price": product.price,
        "stock": product.stock,
        "unit": product.unit,
        "taxRate": product.tax_rate,
        "description": product.description,
        "createdAt": product.created_at.isoformat(),
        "updatedAt": product.updated_at.isoformat(),
    }


@router.post("/create", status_code=status.HTTP_201_CREATED)
def create_product(
    payload: ProductCreatePayload,
    user: User = Depends(get_current_user),
    service: ProductService = Depends(get_product_service),
) -> Dict[str, Any]:
    product = service.create_product(
        user.id,
        payload.shop_id,
        payload.name,
        payload.price,
        sku=payload.sku,
        stock=payload.stock,
        unit=payload.unit,
        tax_rate=payload.tax_rate,
        description=payload.description,
    )
    return {"success": True, "product": serialize_product(product)}


@router.get("/list")
def list_products(
    shop_id: Optional[str] = Query(default=None, alias="shopId"),
    user: User = Depends(get_current_user),
    service: ProductService = Depends(get_product_service),
) -> Dict[str, Any]:
    items = [serialize_product(item) for item in service.list_products(user.id, shop_id)]
    return {"items": items, "count": len(items)}


@router.put("/{product_id}")
def update_product(
    product_id: str,
    payload: ProductUpdatePayload,
    user: User = Depends(get_current_user),
    service: ProductService = Depends(get_product_service),
) -> Dict[str, Any]:
    changes = payload.model_dump(exclude_unset=True)
    product = service.update_product(user.id, product_id, changes)
    return {"success": True, "product": serialize_product(product)}


@router.delete("/{product_id}")
def delete_product(
    product_id: str,
    user: User = Depends(get_current_user),
    service: ProductService = Depends(get_product_service),
) -> Dict[str, Any]:
    service.delete_product(user.id, product_id)
    return {"success": True}
