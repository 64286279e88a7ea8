import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from decimal import Decimal
from types import SimpleNamespace
from typing import Optional

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from storefront.database import Base, get_db
from storefront.main import app
from storefront.models import Product, Color, Size, InventoryRecord, PricingRule, Order
from storefront.schemas.order import CheckoutRequest


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'storefront.db'}",
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def catalog(db):
    """Two products, two colors, two sizes. Only ids are returned."""
    tee = Product(title="Tee", sku="TEE-01", base_price=Decimal("50.00"))
    hoodie = Product(
        title="Hoodie",
        sku="HOOD-01",
        base_price=Decimal("80.00"),
        discounted_price=Decimal("70.00"),
    )
    red = Color(name="Red", hex_code="#FF0000")
    blue = Color(name="Blue", hex_code="#0000FF")
    medium = Size(value="M", system="EU")
    large = Size(value="L", system="EU")
    db.add_all([tee, hoodie, red, blue, medium, large])
    await db.commit()

    return SimpleNamespace(
        tee=tee.id,
        hoodie=hoodie.id,
        red=red.id,
        blue=blue.id,
        medium=medium.id,
        large=large.id,
    )


# ==================== HELPERS ====================

async def add_stock(
    db: AsyncSession,
    product_id: int,
    available: int,
    color_id: Optional[int] = None,
    size_id: Optional[int] = None,
    **fields,
) -> int:
    record = InventoryRecord(
        product_id=product_id,
        color_id=color_id,
        size_id=size_id,
        available_quantity=available,
        **fields,
    )
    db.add(record)
    await db.commit()
    return record.id


async def add_rule(db: AsyncSession, product_id: int, unit_price: str, **fields) -> int:
    rule = PricingRule(product_id=product_id, unit_price=Decimal(unit_price), **fields)
    db.add(rule)
    await db.commit()
    return rule.id


async def stock_of(db: AsyncSession, record_id: int) -> int:
    return await db.scalar(
        select(InventoryRecord.available_quantity).where(InventoryRecord.id == record_id)
    )


async def order_count(db: AsyncSession) -> int:
    return await db.scalar(select(func.count(Order.id)))


def shipping_payload(**overrides) -> dict:
    payload = {
        "full_name": "Ada Lovelace",
        "address1": "12 Analytical Row",
        "city": "London",
        "state": "Greater London",
        "postal_code": "N1 7AA",
        "country": "UK",
        "phone": "+441234567890",
        "email": "ada@mail.com",
        "delivery_area": "Inner London",
    }
    payload.update(overrides)
    return payload


def checkout_payload(items, delivery_charge="10.00", total=None, **buyer) -> dict:
    payload = {
        "buyer": {
            "name": buyer.get("name", "Ada Lovelace"),
            "phone": buyer.get("phone", "+441234567890"),
            "email": buyer.get("email", "ada@mail.com"),
        },
        "items": items,
        "shipping": shipping_payload(),
        "delivery_charge": delivery_charge,
    }
    if total is not None:
        payload["total"] = total
    return payload


def make_checkout(items, delivery_charge="10.00", total=None, **buyer) -> CheckoutRequest:
    return CheckoutRequest.model_validate(checkout_payload(items, delivery_charge, total, **buyer))
