# schemas/report.py

from pydantic import BaseModel
from datetime import date, datetime
from decimal import Decimal
from typing import List, Literal


class ProductSalesSummary(BaseModel):
    product_name: str
    quantity: int
    amount: Decimal


class ProductLossSummary(BaseModel):
    product_name: str
    quantity: Decimal
    estimated_value: Decimal


class SettlementSummary(BaseModel):
    total_sales_amount: Decimal
    total_losses_value: Decimal
    net_result: Decimal
    profit_margin: Decimal


class SettlementResponse(BaseModel):
    start_date: date | None
    end_date: date | None
    total_sales: int
    sales_total_amount: Decimal
    sales_total_quantity: int
    sales_by_product: List[ProductSalesSummary]
    losses_total_quantity: Decimal
    losses_total_value: Decimal
    losses_by_product: List[ProductLossSummary]
    summary: SettlementSummary


class SalesChartResponse(BaseModel):
    labels: List[str]
    data: List[Decimal]
    period: Literal["daily", "monthly", "yearly"]


class ActivityEntry(BaseModel):
    type: Literal["sale", "harvest", "loss"]
    id: int
    date: datetime
    description: str
    value: Decimal | None = None
    user: str


class HistoryResponse(BaseModel):
    page: int
    type: str
    activities: List[ActivityEntry]
