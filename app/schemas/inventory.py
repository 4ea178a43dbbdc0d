from datetime import datetime

from pydantic import BaseModel, Field


class ShopCreate(BaseModel):
    code: str = Field(min_length=2, max_length=64)
    name: str = Field(min_length=2, max_length=120)
    location: str | None = Field(default=None, max_length=255)


class ShopUpdate(BaseModel):
    code: str | None = Field(default=None, min_length=2, max_length=64)
    name: str | None = Field(default=None, min_length=2, max_length=120)
    location: str | None = Field(default=None, max_length=255)
    is_active: bool | None = None


class ShopOut(BaseModel):
    id: int
    code: str
    name: str
    location: str | None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class SaleCreateRequest(BaseModel):
    shop_id: int
    product_code: str = Field(min_length=1, max_length=64)
    color: str = Field(min_length=1, max_length=64)
    size: str = Field(min_length=1, max_length=32)
    quantity: int = Field(gt=0)
    sold_at: datetime | None = None


class SaleOut(BaseModel):
    id: int
    shop_id: int
    product_code: str
    color: str
    size: str
    quantity: int
    sold_at: datetime

    model_config = {"from_attributes": True}


class SaleReturnCreateRequest(BaseModel):
    quantity: int = Field(gt=0)
    note: str | None = Field(default=None, max_length=255)


class SaleReturnOut(BaseModel):
    id: int
    sale_id: int
    shop_id: int
    quantity: int
    note: str | None
    returned_at: datetime

    model_config = {"from_attributes": True}


class FactoryStockUpsertRequest(BaseModel):
    product_code: str = Field(min_length=1, max_length=64)
    color: str = Field(min_length=1, max_length=64)
    size: str = Field(min_length=1, max_length=32)
    quantity_on_hand: int = Field(ge=0)


class FactoryStockOut(BaseModel):
    id: int
    product_code: str
    color: str
    size: str
    quantity_on_hand: int
    updated_at: datetime

    model_config = {"from_attributes": True}
