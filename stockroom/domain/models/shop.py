from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(slots=True)
class Shop:
    id: int
    owner_id: int
    name: str
    description: Optional[str]
    domain: Optional[str]
    contact_email: Optional[str]
    address: Optional[str]
    parent_id: Optional[int]
    created_at: datetime
    updated_at: datetime
