# farmdesk/models/harvests.py

from sqlalchemy import CheckConstraint, Column, Integer, DateTime, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from farmdesk.database import Base


class Harvest(Base):
    __tablename__ = "harvests"

    id = Column(Integer, primary_key=True, index=True)

    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    quantity = Column(Integer, nullable=False)

    harvest_date = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )

    product = relationship("Product")
    category = relationship("Category")
    user = relationship("User")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_harvest_quantity_positive"),
    )
