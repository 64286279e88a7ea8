"""Inventory ledger: exact variant keys, guarded decrements, low-stock listing."""
import pytest

from storefront.schemas.inventory import InventoryRecordCreate, VariantQuantity
from storefront.services.inventory_service import InventoryService, append_note
from storefront.core.exceptions import (
    ConflictError,
    NotFoundError,
    InsufficientStockError,
    ErrorKind,
)

from conftest import add_stock, stock_of


async def test_variant_lookup_is_exact_including_nulls(db, catalog):
    plain_id = await add_stock(db, catalog.tee, 4)
    red_m_id = await add_stock(db, catalog.tee, 7, color_id=catalog.red, size_id=catalog.medium)

    service = InventoryService(db)

    plain = await service.get_variant_stock(catalog.tee)
    assert plain.id == plain_id

    red_m = await service.get_variant_stock(catalog.tee, catalog.red, catalog.medium)
    assert red_m.id == red_m_id

    # No fallback from a partial key to another record
    assert await service.get_variant_stock(catalog.tee, catalog.red) is None
    assert await service.get_variant_stock(catalog.tee, catalog.blue, catalog.medium) is None


async def test_create_variant_stock(db, catalog):
    service = InventoryService(db)
    record = await service.create_variant_stock(
        InventoryRecordCreate(
            product_id=catalog.tee,
            color_id=catalog.red,
            size_id=catalog.large,
            available_quantity=3,
            reserved_quantity=2,
            minimum_threshold=5,
        )
    )

    assert record.id is not None
    assert record.total_quantity == 5
    assert record.is_low_stock is True
    assert record.is_out_of_stock is False
    assert record.color.name == "Red"
    assert record.size.value == "L"


async def test_create_duplicate_variant_conflicts(db, catalog):
    await add_stock(db, catalog.tee, 1, color_id=catalog.red, size_id=catalog.medium)

    with pytest.raises(ConflictError) as exc_info:
        await InventoryService(db).create_variant_stock(
            InventoryRecordCreate(product_id=catalog.tee, color_id=catalog.red, size_id=catalog.medium)
        )
    assert exc_info.value.kind == ErrorKind.CONFLICT


async def test_create_with_missing_dimension_is_not_found(db, catalog):
    with pytest.raises(NotFoundError):
        await InventoryService(db).create_variant_stock(
            InventoryRecordCreate(product_id=catalog.tee, color_id=999)
        )
    with pytest.raises(NotFoundError):
        await InventoryService(db).create_variant_stock(InventoryRecordCreate(product_id=999))


async def test_adjust_stock_applies_delta_and_appends_reason(db, catalog):
    record_id = await add_stock(db, catalog.tee, 10, notes="initial load")
    service = InventoryService(db)

    record = await service.adjust_stock(catalog.tee, None, None, -4, reason="sale")
    assert record.available_quantity == 6
    assert record.notes == "initial load | sale"

    record = await service.adjust_stock(catalog.tee, None, None, 5, reason="restock")
    assert record.available_quantity == 11
    assert record.notes == "initial load | sale | restock"
    assert await stock_of(db, record_id) == 11


async def test_adjust_below_zero_fails_and_leaves_stock(db, catalog):
    record_id = await add_stock(db, catalog.tee, 3)

    with pytest.raises(InsufficientStockError) as exc_info:
        await InventoryService(db).adjust_stock(catalog.tee, None, None, -4, reason="sale")

    assert exc_info.value.context["available"] == 3
    assert exc_info.value.context["requested"] == 4
    assert await stock_of(db, record_id) == 3


async def test_adjust_missing_record_is_not_found(db, catalog):
    with pytest.raises(NotFoundError):
        await InventoryService(db).adjust_stock(catalog.tee, catalog.red, None, 1)


async def test_decrement_guard_loses_to_concurrent_writer(session_factory, catalog):
    async with session_factory() as setup:
        record_id = await add_stock(setup, catalog.tee, 1)

    async with session_factory() as session_a, session_factory() as session_b:
        record_b = await InventoryService(session_b).get_variant_stock(catalog.tee)
        assert record_b.available_quantity == 1

        record_a = await InventoryService(session_a).get_variant_stock(catalog.tee)
        await InventoryService(session_a).decrement(record_a, 1)
        await session_a.commit()

        # B still believes one unit is available
        with pytest.raises(InsufficientStockError) as exc_info:
            await InventoryService(session_b).decrement(record_b, 1)
        await session_b.rollback()

        assert exc_info.value.context["available"] == 0

    async with session_factory() as check:
        assert await stock_of(check, record_id) == 0


async def test_list_low_stock_with_threshold(db, catalog):
    await add_stock(db, catalog.tee, 0, color_id=catalog.red)
    await add_stock(db, catalog.tee, 3, color_id=catalog.blue)
    await add_stock(db, catalog.tee, 8)
    await add_stock(db, catalog.hoodie, 2, is_active=False)

    records = await InventoryService(db).list_low_stock(threshold=3)
    assert [r.available_quantity for r in records] == [0, 3]


async def test_list_low_stock_default_threshold(db, catalog):
    await add_stock(db, catalog.tee, 0, color_id=catalog.red)
    await add_stock(db, catalog.tee, 10, color_id=catalog.blue)
    await add_stock(db, catalog.tee, 11)

    records = await InventoryService(db).list_low_stock()
    assert [r.available_quantity for r in records] == [0, 10]


async def test_list_out_of_stock(db, catalog):
    await add_stock(db, catalog.tee, 0, color_id=catalog.red)
    await add_stock(db, catalog.tee, 1, color_id=catalog.blue)

    records = await InventoryService(db).list_out_of_stock()
    assert len(records) == 1
    assert records[0].is_out_of_stock


async def test_bulk_create_reports_partial_success(db, catalog):
    await add_stock(db, catalog.tee, 1, color_id=catalog.blue, size_id=catalog.large)

    created, errors = await InventoryService(db).bulk_create_variant_stock(
        catalog.tee,
        [
            VariantQuantity(color_id=catalog.red, size_id=catalog.medium, available_quantity=5),
            VariantQuantity(color_id=catalog.red, size_id=catalog.medium, available_quantity=9),
            VariantQuantity(color_id=999, size_id=catalog.medium, available_quantity=2),
            VariantQuantity(color_id=catalog.blue, size_id=catalog.large, available_quantity=2),
            VariantQuantity(color_id=catalog.red, size_id=catalog.large, available_quantity=0),
        ],
    )

    assert len(created) == 2
    assert {(r.color_id, r.size_id) for r in created} == {
        (catalog.red, catalog.medium),
        (catalog.red, catalog.large),
    }
    assert [e["kind"] for e in errors] == ["CONFLICT", "NOT_FOUND", "CONFLICT"]


async def test_bulk_create_requires_product(db, catalog):
    with pytest.raises(NotFoundError):
        await InventoryService(db).bulk_create_variant_stock(
            999, [VariantQuantity(color_id=catalog.red, size_id=catalog.medium, available_quantity=1)]
        )


async def test_list_product_stock_orders_by_color_then_size(db, catalog):
    await add_stock(db, catalog.tee, 1, color_id=catalog.blue, size_id=catalog.medium)
    await add_stock(db, catalog.tee, 1, color_id=catalog.red, size_id=catalog.large)
    await add_stock(db, catalog.tee, 1, color_id=catalog.red, size_id=catalog.medium)
    await add_stock(db, catalog.tee, 1, color_id=catalog.blue, size_id=catalog.large, is_active=False)

    records = await InventoryService(db).list_product_stock(catalog.tee)
    assert [(r.color_id, r.size_id) for r in records] == [
        (catalog.red, catalog.medium),
        (catalog.red, catalog.large),
        (catalog.blue, catalog.medium),
    ]


async def test_update_and_delete_record(db, catalog):
    record_id = await add_stock(db, catalog.tee, 5)
    service = InventoryService(db)

    record = await service.update_stock_record(record_id, {"minimum_threshold": 6, "available_quantity": None})
    assert record.minimum_threshold == 6
    assert record.available_quantity == 5
    assert record.is_low_stock

    await service.delete_stock_record(record_id)
    with pytest.raises(NotFoundError):
        await service.get_record_by_id(record_id)


def test_append_note():
    assert append_note(None, "sale") == "sale"
    assert append_note("a", "b") == "a | b"
    assert append_note("a", None) == "a"
