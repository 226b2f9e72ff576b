from decimal import Decimal
from pydantic import BaseModel, Field
from datetime import date


class LossCreate(BaseModel):
    product_id: int | None = None
    category_id: int | None = None
    quantity: Decimal = Field(..., gt=0, decimal_places=2)
    loss_date: date | None = None
    description: str | None = None


class LossUpdate(BaseModel):
    product_id: int | None = None
    category_id: int | None = None
    quantity: Decimal | None = Field(None, gt=0, decimal_places=2)
    loss_date: date | None = None
    description: str | None = None


class LossResponse(BaseModel):
    id: int
    product_id: int | None
    category_id: int | None
    registered_by: int | None
    quantity: Decimal
    loss_date: date
    description: str | None

    class Config:
        from_attributes = True
