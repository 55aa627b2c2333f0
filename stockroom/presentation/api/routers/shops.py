"""API router for shop management."""

from typing import Any, Dict

from fastapi import APIRouter, Depends, status

from ....application.services.shop_service import ShopService
from ....core.dependencies import get_shop_service
from ....domain.models import Shop, User
from ..schemas.shop import ShopCreatePayload
from ..session import get_current_user

router = APIRouter(prefix="/api/shop", tags=["shops"])


def serialize_shop(shop: Shop) -> Dict[str, Any]:
    return {
        "id": shop.id,
        "owner": shop.owner_id,
        "name": shop.name,
        "description": shop.description,
        "domain": shop.domain,
        "contactEmail": shop.contact_email,
        "address": shop.address,
        "parent": shop.parent_id,
        "createdAt": shop.created_at.isoformat(),
        "updatedAt": shop.updated_at.isoformat(),
    }


@router.post("/create", status_code=status.HTTP_201_CREATED)
def create_shop(
    payload: ShopCreatePayload,
    user: User = Depends(get_current_user),
    service: ShopService = Depends(get_shop_service),
) -> Dict[str, Any]:
    shop = service.create_shop(
        user.id,
        payload.name or "",
        description=payload.description,
        domain=payload.domain,
        contact_email=payload.contact_email,
        address=payload.address,
        parent=payload.parent,
    )
    return {"success": True, "shop": serialize_shop(shop)}


@router.get("/list")
def list_shops(
    user: User = Depends(get_current_user),
    service: ShopService = Depends(get_shop_service),
) -> Dict[str, Any]:
    items = [serialize_shop(shop) for shop in service.list_shops(user.id)]
    return {"items": items, "count": len(items)}


@router.get("/{shop_id}")
def get_shop(
    shop_id: str,
    user: User = Depends(get_current_user),
    service: ShopService = Depends(get_shop_service),
) -> Dict[str, Any]:
    return {"shop": serialize_shop(service.get_shop(user.id, shop_id))}
