# pos_api/models/sales.py

import enum

from sqlalchemy import Column, Index, Integer, DateTime, ForeignKey, Numeric, String
from sqlalchemy.orm import relationship

from pos_api.database import Base


class SaleStatus(str, enum.Enum):
    CONCLUDED = "Concluded"
    CANCELLED = "Cancelled"


class Sale(Base):
    __tablename__ = "sales"

    id = Column(Integer, primary_key=True, index=True)

    client_id = Column(Integer, ForeignKey("clients.id"), nullable=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    sold_at = Column(DateTime(timezone=True), nullable=False)

    total_amount = Column(Numeric(10, 2), nullable=False)
    payment_method = Column(String(50), nullable=False)
    status = Column(String(20), nullable=False, default=SaleStatus.CONCLUDED.value)

    updated_at = Column(DateTime(timezone=True), nullable=False)

    items = relationship(
        "SaleItem",
        back_populates="sale",
        cascade="all, delete-orphan",
        order_by="SaleItem.id",
    )


    __table_args__ = (
        Index("ix_sales_sold_at", "sold_at"),
    )
