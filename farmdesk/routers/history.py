# =========================================================
# HISTORY ROUTER
#
# Merged activity feed (sales, harvests, losses), newest first,
# PAGE_SIZE entries per page.
# =========================================================

from datetime import date, datetime, time, timezone

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session, joinedload

from farmdesk.database import get_db
from farmdesk.core.auth import get_current_user
from farmdesk.models.harvests import Harvest
from farmdesk.models.losses import Loss
from farmdesk.models.sales import Sale
from farmdesk.schemas.report import HistoryResponse

router = APIRouter(prefix="/history", tags=["History"])

PAGE_SIZE = 20
ACTIVITY_TYPES = ("all", "sales", "harvests", "losses")
UNKNOWN_USER = "Unknown user"


def _as_utc(value) -> datetime:
    if isinstance(value, date) and not isinstance(value, datetime):
        value = datetime.combine(value, time.min)

    if value.tzinfo is None or value.utcoffset() is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _sale_entries(db: Session, limit: int):
    sales = (
        db.query(Sale)
        .options(joinedload(Sale.customer), joinedload(Sale.user))
        .order_by(Sale.sale_date.desc(), Sale.id.desc())
        .limit(limit)
        .all()
    )

    return [
        {
            "type": "sale",
            "id": sale.id,
            "date": _as_utc(sale.sale_date),
            "description": f"Sale to {sale.customer.name if sale.customer else 'walk-in customer'}",
            "value": sale.total_amount,
            "user": sale.user.username if sale.user else UNKNOWN_USER,
        }
        for sale in sales
    ]


def _harvest_entries(db: Session, limit: int):
    harvests = (
        db.query(Harvest)
        .options(joinedload(Harvest.product), joinedload(Harvest.user))
        .order_by(Harvest.harvest_date.desc(), Harvest.id.desc())
        .limit(limit)
        .all()
    )

    return [
        {
            "type": "harvest",
            "id": harvest.id,
            "date": _as_utc(harvest.harvest_date),
            "description": f"Harvest of {harvest.quantity} x {harvest.product.name if harvest.product else 'unknown product'}",
            "value": None,
            "user": harvest.user.username if harvest.user else UNKNOWN_USER,
        }
        for harvest in harvests
    ]


def _loss_entries(db: Session, limit: int):
    losses = (
        db.query(Loss)
        .options(joinedload(Loss.product), joinedload(Loss.user))
        .order_by(Loss.loss_date.desc(), Loss.id.desc())
        .limit(limit)
        .all()
    )

    return [
        {
            "type": "loss",
            "id": loss.id,
            "date": _as_utc(loss.loss_date),
            "description": f"Loss of {loss.quantity} x {loss.product.name if loss.product else 'unknown product'}",
            "value": None,
            "user": loss.user.username if loss.user else UNKNOWN_USER,
        }
        for loss in losses
    ]


@router.get("", response_model=HistoryResponse)
def history(
    type: str = Query("all"),
    page: int = Query(1, ge=1),
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    if type not in ACTIVITY_TYPES:
        type = "all"

    offset = (page - 1) * PAGE_SIZE
    # Newest offset+PAGE_SIZE of each kind is enough to fill the requested page
    window = offset + PAGE_SIZE

    activities = []

    if type in ("all", "sales"):
        activities.extend(_sale_entries(db, window))

    if type in ("all", "harvests"):
        activities.extend(_harvest_entries(db, window))

    if type in ("all", "losses"):
        activities.extend(_loss_entries(db, window))

    activities.sort(key=lambda a: (a["date"], a["id"]), reverse=True)

    return {
        "page": page,
        "type": type,
        "activities": activities[offset:offset + PAGE_SIZE],
    }
