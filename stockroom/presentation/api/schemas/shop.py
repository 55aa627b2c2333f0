from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ShopCreatePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = Field(default=None, max_length=120)
    description: Optional[str] = None
    domain: Optional[str] = None
    contact_email: Optional[str] = Field(default=None, alias="contactEmail")
    address: Optional[str] = None
    parent: Optional[Union[int, str]] = None
