# farmdesk/routers/losses.py

from datetime import date, datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from farmdesk.database import get_db
from farmdesk.core.auth import get_current_user
from farmdesk.models.losses import Loss
from farmdesk.models.products import Product
from farmdesk.schemas.loss import LossCreate, LossUpdate, LossResponse

router = APIRouter(prefix="/losses", tags=["Losses"])


def _get_loss_or_404(db: Session, loss_id: int) -> Loss:
    loss = db.query(Loss).filter(Loss.id == loss_id).first()

    if not loss:
        raise HTTPException(status_code=404, detail="Loss not found")

    return loss


def _ensure_product_exists(db: Session, product_id: int | None):
    if product_id is not None and not db.query(Product).filter(Product.id == product_id).first():
        raise HTTPException(status_code=404, detail="Product not found")


@router.get("", response_model=list[LossResponse])
def list_losses(
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    query = db.query(Loss)

    if start_date:
        query = query.filter(Loss.loss_date >= start_date)

    if end_date:
        query = query.filter(Loss.loss_date <= end_date)

    return query.order_by(Loss.loss_date.desc(), Loss.id.desc()).all()


# Losses are recorded for the settlement report only; stock is left as is
@router.post("", response_model=LossResponse, status_code=status.HTTP_201_CREATED)
def create_loss(
    loss_data: LossCreate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    _ensure_product_exists(db, loss_data.product_id)

    loss = Loss(
        product_id=loss_data.product_id,
        category_id=loss_data.category_id,
        quantity=loss_data.quantity,
        loss_date=loss_data.loss_date or datetime.now(timezone.utc).date(),
        description=loss_data.description,
        registered_by=current_user.id,
    )

    db.add(loss)
    db.commit()
    db.refresh(loss)

    return loss


@router.put("/{loss_id}", response_model=LossResponse)
def update_loss(
    loss_id: int,
    loss_data: LossUpdate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    loss = _get_loss_or_404(db, loss_id)

    _ensure_product_exists(db, loss_data.product_id)

    for field, value in loss_data.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(loss, field, value)

    db.commit()
    db.refresh(loss)

    return loss


@router.delete("/{loss_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_loss(
    loss_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    loss = _get_loss_or_404(db, loss_id)

    db.delete(loss)
    db.commit()

    return None
