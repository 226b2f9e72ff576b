# =========================================================
# HARVESTS ROUTER
#
# Registering a harvest adds the harvested quantity to the
# product's stock in the same transaction. Editing a harvest
# applies only the quantity delta.
# =========================================================

from datetime import date, datetime, time, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from farmdesk.database import get_db
from farmdesk.core.auth import get_current_user
from farmdesk.models.harvests import Harvest
from farmdesk.models.products import Product
from farmdesk.schemas.harvest import HarvestCreate, HarvestUpdate, HarvestResponse

router = APIRouter(prefix="/harvests", tags=["Harvests"])


def _lock_product(db: Session, product_id: int):
    return (
        db.query(Product)
        .filter(Product.id == product_id)
        .with_for_update()
        .first()
    )


# =========================================================
# REGISTER HARVEST
# =========================================================
@router.post("", response_model=HarvestResponse, status_code=status.HTTP_201_CREATED)
def create_harvest(
    harvest_data: HarvestCreate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    try:
        product = _lock_product(db, harvest_data.product_id)

        if not product:
            raise HTTPException(status_code=404, detail="Product not found")

        harvest = Harvest(
            product_id=product.id,
            category_id=harvest_data.category_id,
            user_id=current_user.id,
            quantity=harvest_data.quantity,
        )
        db.add(harvest)

        product.stock_quantity += harvest_data.quantity

        db.commit()
        db.refresh(harvest)

        return harvest

    except HTTPException:
        db.rollback()
        raise

    except SQLAlchemyError:
        db.rollback()
        raise HTTPException(status_code=500, detail="Unable to register harvest")


# =========================================================
# LIST HARVESTS (OPTIONAL DATE RANGE, END INCLUSIVE)
# =========================================================
@router.get("", response_model=list[HarvestResponse])
def list_harvests(
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    query = db.query(Harvest)

    if start_date:
        query = query.filter(Harvest.harvest_date >= datetime.combine(start_date, time.min))

    if end_date:
        query = query.filter(
            Harvest.harvest_date < datetime.combine(end_date + timedelta(days=1), time.min)
        )

    return query.order_by(Harvest.harvest_date.desc(), Harvest.id.desc()).all()


# =========================================================
# UPDATE HARVEST
# =========================================================
@router.put("/{harvest_id}", response_model=HarvestResponse)
def update_harvest(
    harvest_id: int,
    harvest_data: HarvestUpdate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    harvest = db.query(Harvest).filter(Harvest.id == harvest_id).first()

    if not harvest:
        raise HTTPException(status_code=404, detail="Harvest not found")

    try:
        if harvest_data.quantity is not None and harvest_data.quantity != harvest.quantity:
            product = _lock_product(db, harvest.product_id)

            if not product:
                raise HTTPException(status_code=404, detail="Product not found")

            delta = harvest_data.quantity - harvest.quantity

            if product.stock_quantity + delta < 0:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail=(
                        f"Cannot reduce harvest: {product.name} has only "
                        f"{product.stock_quantity} in stock"
                    ),
                )

            product.stock_quantity += delta
            harvest.quantity = harvest_data.quantity

        if harvest_data.category_id is not None:
            harvest.category_id = harvest_data.category_id

        db.commit()
        db.refresh(harvest)

        return harvest

    except HTTPException:
        db.rollback()
        raise

    except SQLAlchemyError:
        db.rollback()
        raise HTTPException(status_code=500, detail="Unable to update harvest")
