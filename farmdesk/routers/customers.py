# farmdesk/routers/customers.py

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from farmdesk.database import get_db
from farmdesk.core.auth import get_current_user
from farmdesk.models.customers import Customer
from farmdesk.schemas.customer import (
    CustomerCreate,
    CustomerUpdate,
    CustomerResponse,
)

router = APIRouter(
    prefix="/customers",
    tags=["Customers"],
)


def _get_customer_or_404(db: Session, customer_id: int) -> Customer:
    customer = db.query(Customer).filter(Customer.id == customer_id).first()

    if not customer:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Customer not found",
        )

    return customer


def _ensure_email_free(db: Session, email, exclude_id: int | None = None):
    if email is None:
        return

    query = db.query(Customer).filter(Customer.email == email)
    if exclude_id is not None:
        query = query.filter(Customer.id != exclude_id)

    if query.first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Customer with this email already exists",
        )


@router.get("", response_model=list[CustomerResponse])
def list_customers(
    search: str | None = None,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    query = db.query(Customer)

    if search:
        query = query.filter(Customer.name.ilike(f"%{search}%"))

    return query.order_by(Customer.name.asc()).all()


@router.get("/{customer_id}", response_model=CustomerResponse)
def get_customer(
    customer_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    return _get_customer_or_404(db, customer_id)


@router.post("", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
def create_customer(
    customer_data: CustomerCreate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    _ensure_email_free(db, customer_data.email)

    customer = Customer(**customer_data.model_dump())

    db.add(customer)
    db.commit()
    db.refresh(customer)

    return customer


@router.put("/{customer_id}", response_model=CustomerResponse)
def update_customer(
    customer_id: int,
    customer_data: CustomerUpdate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    customer = _get_customer_or_404(db, customer_id)

    _ensure_email_free(db, customer_data.email, exclude_id=customer.id)

    for field, value in customer_data.model_dump(exclude_unset=True).items():
        setattr(customer, field, value)

    db.commit()
    db.refresh(customer)

    return customer


@router.delete("/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_customer(
    customer_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    customer = _get_customer_or_404(db, customer_id)

    # Past sales stay on record as walk-in sales (ORM nulls Sale.customer_id)
    db.delete(customer)
    db.commit()

    return None
