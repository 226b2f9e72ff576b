# =========================================================
# SETTLEMENT ROUTER
#
# Reconciles sales against losses for a period:
# - Sales total, quantity sold, breakdown per product
# - Losses quantity, estimated value (quantity x current price)
# - Net result and profit margin %
#
# Amounts always come back as Decimal (never None)
# =========================================================

from collections import OrderedDict
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session, joinedload

from farmdesk.database import get_db
from farmdesk.core.auth import get_current_user
from farmdesk.models.losses import Loss
from farmdesk.models.sales import Sale
from farmdesk.schemas.report import SettlementResponse

router = APIRouter(prefix="/settlement", tags=["Settlement"])

UNKNOWN_PRODUCT = "Product not found"


def _calculate_settlement(
    db: Session,
    start_date: Optional[date],
    end_date: Optional[date],
):
    sales_query = db.query(Sale).options(joinedload(Sale.items))
    losses_query = db.query(Loss).options(joinedload(Loss.product))

    if start_date:
        sales_query = sales_query.filter(Sale.sale_date >= datetime.combine(start_date, time.min))
        losses_query = losses_query.filter(Loss.loss_date >= start_date)

    if end_date:
        sales_query = sales_query.filter(
            Sale.sale_date < datetime.combine(end_date + timedelta(days=1), time.min)
        )
        losses_query = losses_query.filter(Loss.loss_date <= end_date)

    sales = sales_query.order_by(Sale.sale_date.desc()).all()
    losses = losses_query.order_by(Loss.loss_date.desc()).all()

    # SALES
    sales_total_amount = Decimal("0.00")
    sales_total_quantity = 0
    sales_by_product = OrderedDict()

    for sale in sales:
        sales_total_amount += Decimal(sale.total_amount or 0)

        for item in sale.items:
            sales_total_quantity += item.quantity

            entry = sales_by_product.setdefault(
                item.product_name or UNKNOWN_PRODUCT,
                {"quantity": 0, "amount": Decimal("0.00")},
            )
            entry["quantity"] += item.quantity
            entry["amount"] += Decimal(item.subtotal or 0)

    # LOSSES
    losses_total_quantity = Decimal("0.00")
    losses_total_value = Decimal("0.00")
    losses_by_product = OrderedDict()

    for loss in losses:
        quantity = Decimal(loss.quantity or 0)
        losses_total_quantity += quantity

        name = loss.product.name if loss.product else UNKNOWN_PRODUCT
        entry = losses_by_product.setdefault(
            name,
            {"quantity": Decimal("0.00"), "estimated_value": Decimal("0.00")},
        )
        entry["quantity"] += quantity

        if loss.product and loss.product.price:
            value = (quantity * Decimal(loss.product.price)).quantize(Decimal("0.01"))
            entry["estimated_value"] += value
            losses_total_value += value

    net_result = sales_total_amount - losses_total_value

    #  PROFIT MARGIN %
    if sales_total_amount == 0:
        profit_margin = Decimal("0.00")
    else:
        profit_margin = ((net_result / sales_total_amount) * 100).quantize(Decimal("0.01"))

    return {
        "start_date": start_date,
        "end_date": end_date,
        "total_sales": len(sales),
        "sales_total_amount": sales_total_amount,
        "sales_total_quantity": sales_total_quantity,
        "sales_by_product": [
            {"product_name": name, **values} for name, values in sales_by_product.items()
        ],
        "losses_total_quantity": losses_total_quantity,
        "losses_total_value": losses_total_value,
        "losses_by_product": [
            {"product_name": name, **values} for name, values in losses_by_product.items()
        ],
        "summary": {
            "total_sales_amount": sales_total_amount,
            "total_losses_value": losses_total_value,
            "net_result": net_result,
            "profit_margin": profit_margin,
        },
    }


@router.get("", response_model=SettlementResponse)
def settlement(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    if start_date and end_date and end_date < start_date:
        raise HTTPException(status_code=400, detail="end_date cannot be before start_date")

    return _calculate_settlement(db, start_date, end_date)
