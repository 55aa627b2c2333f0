from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ProductFields(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = Field(default=None, max_length=200)
    sku: Optional[str] = None
    price: Optional[float] = None
    stock: Optional[int] = None
    unit: Optional[str] = None
    tax_rate: Optional[float] = Field(default=None, alias="taxRate")
    description: Optional[str] = None


class ProductCreatePayload(ProductFields):
    shop_id: Optional[Union[int, str]] = Field(default=None, alias="shopId")


class ProductUpdatePayload(ProductFields):
    pass
