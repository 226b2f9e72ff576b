# =========================================================
# SALES ROUTER (POINT OF SALE)
#
# - Finalize a cart into a sale (stock checked and decremented atomically)
# - Sales history, newest first
# - Sale receipt (header, customer, operator, items)
#
# Finalization errors propagate as SaleFinalizationError and are
# rendered by the handler registered in main.py
# =========================================================

import time

from fastapi import APIRouter, Depends, HTTPException, Query, status, Request
from sqlalchemy.orm import Session, joinedload

from farmdesk.database import get_db
from farmdesk.core.auth import get_current_user
from farmdesk.core.config import settings
from farmdesk.core.rate_limiter import limiter
from farmdesk.models.sales import Sale
from farmdesk.schemas.sale import SaleCreate, SaleFinalizeResponse, SaleResponse
from farmdesk.services.sale_finalization import CartLine, SaleFinalizationService

router = APIRouter(prefix="/sales", tags=["Sales"])


def get_sale_finalizer(request: Request) -> SaleFinalizationService:
    return request.app.state.sale_finalizer


# =========================================================
# FINALIZE SALE
# =========================================================
@router.post(
    "/finalize",
    response_model=SaleFinalizeResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit("30/minute")
def finalize_sale(
    request: Request,
    sale_data: SaleCreate,
    finalizer: SaleFinalizationService = Depends(get_sale_finalizer),
    current_user=Depends(get_current_user),
):
    deadline = time.monotonic() + settings.SALE_FINALIZE_TIMEOUT_SECONDS

    result = finalizer.finalize_sale(
        actor_id=current_user.id,
        customer_id=sale_data.customer_id,
        lines=[
            CartLine(product_id=item.product_id, quantity=item.quantity)
            for item in sale_data.items
        ],
        deadline=deadline,
    )

    return {
        "success": True,
        "message": "Sale finalized successfully!",
        "sale_id": result.sale_id,
        "total_amount": result.total_amount,
    }


# =========================================================
# LIST SALES
# =========================================================
@router.get("", response_model=list[SaleResponse])
def list_sales(
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    sales = (
        db.query(Sale)
        .options(
            joinedload(Sale.items),
            joinedload(Sale.customer),
            joinedload(Sale.user),
        )
        .order_by(Sale.sale_date.desc(), Sale.id.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )

    return sales


# =========================================================
# SALE DETAILS (RECEIPT)
# =========================================================
@router.get("/{sale_id}", response_model=SaleResponse)
def get_sale(
    sale_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    sale = (
        db.query(Sale)
        .options(
            joinedload(Sale.items),
            joinedload(Sale.customer),
            joinedload(Sale.user),
        )
        .filter(Sale.id == sale_id)
        .first()
    )

    if not sale:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Sale not found",
        )

    return sale
