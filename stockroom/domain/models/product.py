from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(slots=True)
class Product:
    id: int
    shop_id: int
    name: str
    sku: Optional[str]
    price: float
    stock: int
    unit: Optional[str]
    tax_rate: Optional[float]
    description: Optional[str]
    created_at: datetime
    updated_at: datetime
