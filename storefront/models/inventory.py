"""Inventory ledger: one stock record per (product, color, size) variant."""
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Text, Boolean, DateTime, ForeignKey, Integer
from sqlalchemy import UniqueConstraint, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storefront.database import Base

if TYPE_CHECKING:
    from storefront.models.catalog import Product, Color, Size


class InventoryRecord(Base):
    """Available/reserved counts for a single variant."""

    __tablename__ = "product_quantities"
    __table_args__ = (
        UniqueConstraint(
            "product_id", "color_id", "size_id",
            name="uq_product_quantity_variant",
            postgresql_nulls_not_distinct=True,
        ),
        CheckConstraint("available_quantity >= 0", name="ck_product_quantity_available_non_negative"),
        CheckConstraint("reserved_quantity >= 0", name="ck_product_quantity_reserved_non_negative"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Variant key
    product_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    color_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("colors.id", ondelete="SET NULL"),
        nullable=True
    )
    size_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("sizes.id", ondelete="SET NULL"),
        nullable=True
    )

    # Stock levels
    available_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    reserved_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Thresholds
    minimum_threshold: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    maximum_capacity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Append-only adjustment trail, entries separated by " | "
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    # Relationships
    product: Mapped["Product"] = relationship("Product")
    color: Mapped[Optional["Color"]] = relationship("Color")
    size: Mapped[Optional["Size"]] = relationship("Size")

    @property
    def total_quantity(self) -> int:
        return self.available_quantity + self.reserved_quantity

    @property
    def is_low_stock(self) -> bool:
        """Check if stock is at or below the record's minimum threshold."""
        return self.available_quantity <= self.minimum_threshold

    @property
    def is_out_of_stock(self) -> bool:
        """Check if out of stock."""
        return self.available_quantity == 0

    def __repr__(self):
        return f"<InventoryRecord product={self.product_id} color={self.color_id} size={self.size_id}>"
