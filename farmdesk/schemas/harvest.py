from pydantic import BaseModel, Field
from datetime import datetime


class HarvestCreate(BaseModel):
    product_id: int
    quantity: int = Field(..., gt=0)
    category_id: int | None = None


class HarvestUpdate(BaseModel):
    quantity: int | None = Field(None, gt=0)
    category_id: int | None = None


class HarvestResponse(BaseModel):
    id: int
    product_id: int
    category_id: int | None
    user_id: int
    quantity: int
    harvest_date: datetime

    class Config:
        from_attributes = True
