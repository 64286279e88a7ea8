"""Catalog tables read by the ledger and the pricing resolver.

Products, colors and sizes are maintained elsewhere; this service only
looks them up by id.
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import String, Boolean, DateTime, Integer, Numeric
from sqlalchemy.orm import Mapped, mapped_column

from storefront.database import Base


class Product(Base):
    """Sellable product with its list price."""
    __tablename__ = "products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    sku: Mapped[Optional[str]] = mapped_column(String(50), unique=True, nullable=True, index=True)

    # Pricing fallback when no pricing rule matches
    base_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    discounted_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def __repr__(self):
        return f"<Product {self.id} {self.title}>"


class Color(Base):
    """Color dimension of a variant."""
    __tablename__ = "colors"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    hex_code: Mapped[Optional[str]] = mapped_column(String(7), nullable=True)


class Size(Base):
    """Size dimension of a variant."""
    __tablename__ = "sizes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    value: Mapped[str] = mapped_column(String(50), nullable=False)
    system: Mapped[Optional[str]] = mapped_column(String(20), nullable=True, comment="e.g. EU, US, UK")
