"""Sale model."""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Integer, Numeric, Text, DateTime, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.time_utils import utcnow
from app.db.base import Base
from app.models.mixins import UUIDPrimaryKeyMixin


class Sale(UUIDPrimaryKeyMixin, Base):
    __tablename__ = "sales"
    __table_args__ = (
        CheckConstraint("quantity_sold > 0", name="ck_sales_quantity_positive"),
        Index("ix_sales_sold_at", "sold_at"),
    )

    quantity_sold: Mapped[int] = mapped_column(Integer, nullable=False)
    # Snapshot of product.price at the moment of sale
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)
    sold_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    # Foreign keys
    product_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("products.id"), nullable=False, index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id"), nullable=False, index=True
    )

    # Relationships
    product = relationship("Product", back_populates="sales")
    user = relationship("User", back_populates="sales")

    def __repr__(self) -> str:
        return f"<Sale product={self.product_id} qty={self.quantity_sold} total={self.total_amount}>"
