# =========================================================
# REPORTS ROUTER (ADMIN / MANAGER)
#
# Sales totals grouped per day, month or year for charting.
# Unknown periods fall back to daily.
# =========================================================

from collections import OrderedDict
from decimal import Decimal

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from farmdesk.database import get_db
from farmdesk.core.auth import require_roles
from farmdesk.models.sales import Sale
from farmdesk.schemas.report import SalesChartResponse

router = APIRouter(prefix="/reports", tags=["Reports"])

PERIOD_FORMATS = {
    "daily": "%Y-%m-%d",
    "monthly": "%Y-%m",
    "yearly": "%Y",
}


@router.get("/sales-data", response_model=SalesChartResponse)
def sales_chart_data(
    period: str = "daily",
    db: Session = Depends(get_db),
    current_user=Depends(require_roles("admin", "manager")),
):
    if period not in PERIOD_FORMATS:
        period = "daily"

    label_format = PERIOD_FORMATS[period]

    rows = (
        db.query(Sale.sale_date, Sale.total_amount)
        .order_by(Sale.sale_date.asc())
        .all()
    )

    totals = OrderedDict()

    for sale_date, total_amount in rows:
        label = sale_date.strftime(label_format)
        totals[label] = totals.get(label, Decimal("0.00")) + Decimal(total_amount or 0)

    return {
        "labels": list(totals.keys()),
        "data": list(totals.values()),
        "period": period,
    }
