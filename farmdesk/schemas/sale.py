# schemas/sale.py

from pydantic import BaseModel, Field
from datetime import datetime
from typing import List
from decimal import Decimal

# Upper bound of the INTEGER id and quantity columns
MAX_DB_INT = 2**31 - 1

class SaleItemCreate(BaseModel):
    product_id: int = Field(..., gt=0, le=MAX_DB_INT)
    # Non-positive quantities are rejected by the finalization service
    quantity: int = Field(..., le=MAX_DB_INT)

class SaleCreate(BaseModel):
    customer_id: int | None = Field(None, gt=0, le=MAX_DB_INT)
    items: List[SaleItemCreate] = Field(default_factory=list)

class SaleFinalizeResponse(BaseModel):
    success: bool = True
    message: str
    sale_id: int
    total_amount: Decimal

class SaleItemResponse(BaseModel):
    product_id: int | None
    product_name: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal

    class Config:
        from_attributes = True

class SaleCustomer(BaseModel):
    id: int
    name: str
    email: str | None = None
    phone: str | None = None

    class Config:
        from_attributes = True

class SaleOperator(BaseModel):
    id: int
    username: str

    class Config:
        from_attributes = True

class SaleResponse(BaseModel):
    id: int
    customer_id: int | None
    user_id: int
    total_amount: Decimal
    status: str
    sale_date: datetime
    customer: SaleCustomer | None = None
    user: SaleOperator | None = None
    items: List[SaleItemResponse]

    class Config:
        from_attributes = True
