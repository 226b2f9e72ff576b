from decimal import Decimal
from pydantic import BaseModel, Field
from datetime import datetime


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: str | None = None

    price: Decimal = Field(
        ...,
        ge=0,
        lt=100_000_000,
        decimal_places=2,
        description="Unit price, below 100 million"
    )

    stock_quantity: int = Field(0, ge=0)
    category_id: int | None = None


class ProductUpdate(BaseModel):
    name: str | None = Field(None, min_length=1)
    description: str | None = None
    price: Decimal | None = Field(None, ge=0, lt=100_000_000, decimal_places=2)
    stock_quantity: int | None = Field(None, ge=0)
    category_id: int | None = None


class ProductResponse(BaseModel):
    id: int
    name: str
    description: str | None
    price: Decimal
    stock_quantity: int
    category_id: int | None
    created_at: datetime

    class Config:
        from_attributes = True
