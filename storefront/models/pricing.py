from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, Boolean, DateTime, ForeignKey, Integer, Numeric, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storefront.database import Base
from storefront.core.enum_utils import enum_comment

if TYPE_CHECKING:
    from storefront.models.catalog import Product


class PricingRuleType(str, Enum):
    """Pricing rule classification."""
    STANDARD = "STANDARD"
    BULK = "BULK"
    VARIANT = "VARIANT"      # Created by bulk per-variant tier import
    VIP = "VIP"
    WHOLESALE = "WHOLESALE"


class PricingRule(Base):
    """
    Quantity-tiered unit price for a product, optionally scoped to a color
    and/or size. Higher priority wins; equal priority goes to the larger
    min_quantity.
    """
    __tablename__ = "product_pricing_rules"
    __table_args__ = (
        Index(
            "ix_pricing_rule_variant_tier",
            "product_id", "color_id", "size_id", "min_quantity",
        ),
        Index("ix_pricing_rule_product_active", "product_id", "is_active"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    product_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False
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

    # Quantity tier (max is inclusive, NULL = unbounded)
    min_quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    max_quantity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    discount_percentage: Mapped[Optional[Decimal]] = mapped_column(Numeric(5, 2), nullable=True)

    rule_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    rule_type: Mapped[str] = mapped_column(
        String(50),
        default=PricingRuleType.STANDARD.value,
        nullable=False,
        comment=enum_comment(PricingRuleType)
    )

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    priority: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

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

    product: Mapped["Product"] = relationship("Product")

    def __repr__(self):
        return f"<PricingRule {self.id} product={self.product_id} min={self.min_quantity}>"
