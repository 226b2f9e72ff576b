# farmdesk/models/losses.py

from sqlalchemy import CheckConstraint, Column, Integer, Date, DateTime, ForeignKey, Numeric, String
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from farmdesk.database import Base


class Loss(Base):
    __tablename__ = "losses"

    id = Column(Integer, primary_key=True, index=True)

    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    registered_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    quantity = Column(Numeric(10, 2), nullable=False)
    loss_date = Column(Date, server_default=func.current_date(), nullable=False, index=True)
    description = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    product = relationship("Product")
    category = relationship("Category")
    user = relationship("User")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_loss_quantity_positive"),
    )
