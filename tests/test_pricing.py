"""Pricing resolver tie-breaks, fallback and rule administration."""
from decimal import Decimal

import pytest

from storefront.models import Product
from storefront.models.pricing import PricingRuleType
from storefront.schemas.pricing import PricingRuleCreate, VariantPricingRules, PricingTier
from storefront.services.pricing_service import PricingService
from storefront.core.exceptions import ConflictError, NotFoundError, InvalidInputError

from conftest import add_rule


async def test_larger_min_quantity_wins_equal_priority(db, catalog):
    await add_rule(db, catalog.tee, "10.00", min_quantity=1, priority=1)
    await add_rule(db, catalog.tee, "8.00", min_quantity=5, priority=1)

    result = await PricingService(db).calculate_price(catalog.tee, quantity=5)

    assert result.unit_price == Decimal("8.00")
    assert result.total_price == Decimal("40.00")
    assert result.applied_rule.id != 0


async def test_priority_beats_min_quantity(db, catalog):
    vip_id = await add_rule(db, catalog.tee, "9.00", min_quantity=1, priority=5, rule_type="VIP")
    await add_rule(db, catalog.tee, "8.00", min_quantity=5, priority=1)

    result = await PricingService(db).calculate_price(catalog.tee, quantity=6)

    assert result.applied_rule.id == vip_id
    assert result.applied_rule.rule_type == "VIP"
    assert result.unit_price == Decimal("9.00")


async def test_max_quantity_is_inclusive(db, catalog):
    await add_rule(db, catalog.tee, "10.00", min_quantity=1, max_quantity=4)
    await add_rule(db, catalog.tee, "7.00", min_quantity=2, max_quantity=3)

    service = PricingService(db)
    assert (await service.calculate_price(catalog.tee, quantity=3)).unit_price == Decimal("7.00")
    assert (await service.calculate_price(catalog.tee, quantity=4)).unit_price == Decimal("10.00")

    # Outside every tier falls back to the list price
    result = await service.calculate_price(catalog.tee, quantity=5)
    assert result.is_fallback
    assert result.unit_price == Decimal("50.00")


async def test_inactive_rules_are_ignored(db, catalog):
    await add_rule(db, catalog.tee, "1.00", is_active=False)

    result = await PricingService(db).calculate_price(catalog.tee, quantity=1)
    assert result.is_fallback


async def test_fallback_prefers_discounted_price(db, catalog):
    service = PricingService(db)

    hoodie = await service.calculate_price(catalog.hoodie, quantity=2)
    assert hoodie.unit_price == Decimal("70.00")
    assert hoodie.total_price == Decimal("140.00")
    assert hoodie.applied_rule.id == 0
    assert hoodie.applied_rule.rule_name == "Base Price"
    assert hoodie.applied_rule.rule_type == "FALLBACK"
    assert hoodie.applied_rule.priority == 0

    tee = await service.calculate_price(catalog.tee, quantity=1)
    assert tee.unit_price == Decimal("50.00")


async def test_zero_discounted_price_falls_back_to_base_price(db, catalog):
    product = Product(title="Sample", sku="SMP-01", base_price=Decimal("25.00"), discounted_price=Decimal("0"))
    db.add(product)
    await db.commit()

    result = await PricingService(db).calculate_price(product.id, quantity=2)

    assert result.unit_price == Decimal("25.00")
    assert result.total_price == Decimal("50.00")


async def test_discount_percentage_reduces_total(db, catalog):
    await add_rule(db, catalog.tee, "10.00", discount_percentage=Decimal("10"))

    result = await PricingService(db).calculate_price(catalog.tee, quantity=3)

    assert result.unit_price == Decimal("10.00")
    assert result.discount_amount == Decimal("3.00")
    assert result.total_price == Decimal("27.00")
    assert result.effective_unit_price == Decimal("9.00")


async def test_color_and_size_are_echoed(db, catalog):
    result = await PricingService(db).calculate_price(
        catalog.tee, quantity=1, color_id=catalog.red, size_id=catalog.large
    )
    assert (result.color_id, result.size_id) == (catalog.red, catalog.large)


async def test_calculate_for_missing_product(db, catalog):
    with pytest.raises(NotFoundError):
        await PricingService(db).calculate_price(999, quantity=1)


async def test_create_rule_rejects_active_duplicate(db, catalog):
    service = PricingService(db)
    rule = await service.create_rule(
        PricingRuleCreate(product_id=catalog.tee, unit_price=Decimal("9.50"), min_quantity=3, rule_type="bulk")
    )
    assert rule.rule_type == PricingRuleType.BULK.value

    with pytest.raises(ConflictError):
        await service.create_rule(
            PricingRuleCreate(product_id=catalog.tee, unit_price=Decimal("9.00"), min_quantity=3)
        )

    # Inactive duplicates and other variants are allowed
    await service.create_rule(
        PricingRuleCreate(product_id=catalog.tee, unit_price=Decimal("9.00"), min_quantity=3, is_active=False)
    )
    await service.create_rule(
        PricingRuleCreate(
            product_id=catalog.tee, color_id=catalog.red, unit_price=Decimal("9.00"), min_quantity=3
        )
    )


async def test_create_rule_validates_tier_range(db, catalog):
    with pytest.raises(InvalidInputError):
        await PricingService(db).create_rule(
            PricingRuleCreate(product_id=catalog.tee, unit_price=Decimal("5"), min_quantity=10, max_quantity=5)
        )


async def test_create_rule_requires_existing_size(db, catalog):
    with pytest.raises(NotFoundError):
        await PricingService(db).create_rule(
            PricingRuleCreate(product_id=catalog.tee, size_id=999, unit_price=Decimal("5"))
        )


async def test_bulk_create_rules(db, catalog):
    created, errors = await PricingService(db).bulk_create_rules(
        catalog.tee,
        [
            VariantPricingRules(
                color_id=catalog.red,
                size_id=catalog.medium,
                pricing_tiers=[
                    PricingTier(min_quantity=1, max_quantity=9, unit_price=Decimal("12")),
                    PricingTier(min_quantity=10, unit_price=Decimal("10")),
                    PricingTier(min_quantity=10, unit_price=Decimal("9")),
                ],
            ),
            VariantPricingRules(
                color_id=999,
                size_id=catalog.medium,
                pricing_tiers=[PricingTier(min_quantity=1, unit_price=Decimal("12"))],
            ),
        ],
    )

    assert len(created) == 2
    assert all(r.rule_type == "VARIANT" and r.priority == 1 for r in created)
    assert [e["kind"] for e in errors] == ["CONFLICT", "NOT_FOUND"]


async def test_list_rules_ordering(db, catalog):
    await add_rule(db, catalog.tee, "10", min_quantity=5, priority=1, rule_type="STANDARD")
    await add_rule(db, catalog.tee, "9", min_quantity=1, priority=1, rule_type="BULK")
    await add_rule(db, catalog.tee, "8", min_quantity=1, priority=3, rule_type="VIP")
    await add_rule(db, catalog.tee, "11", min_quantity=1, priority=1, rule_type="STANDARD", is_active=False)

    rules = await PricingService(db).list_rules(catalog.tee)
    assert [(r.priority, r.rule_type, r.min_quantity) for r in rules] == [
        (3, "VIP", 1),
        (1, "BULK", 1),
        (1, "STANDARD", 1),
        (1, "STANDARD", 5),
    ]


async def test_list_rules_by_type(db, catalog):
    await add_rule(db, catalog.tee, "10", min_quantity=5, rule_type="BULK")
    await add_rule(db, catalog.tee, "11", min_quantity=2, rule_type="BULK")
    await add_rule(db, catalog.tee, "12", min_quantity=1, rule_type="STANDARD")
    await add_rule(db, catalog.tee, "9", min_quantity=8, rule_type="BULK", is_active=False)

    rules = await PricingService(db).list_rules_by_type(catalog.tee, PricingRuleType.BULK)
    assert [r.min_quantity for r in rules] == [2, 5]


async def test_update_rule_rechecks_duplicates(db, catalog):
    await add_rule(db, catalog.tee, "10", min_quantity=1)
    second_id = await add_rule(db, catalog.tee, "8", min_quantity=5)
    service = PricingService(db)

    with pytest.raises(ConflictError):
        await service.update_rule(second_id, {"min_quantity": 1})

    rule = await service.update_rule(second_id, {"unit_price": Decimal("7.50"), "rule_name": "Five plus"})
    assert rule.unit_price == Decimal("7.50")
    assert rule.rule_name == "Five plus"


async def test_delete_rule(db, catalog):
    rule_id = await add_rule(db, catalog.tee, "10")
    service = PricingService(db)

    await service.delete_rule(rule_id)
    with pytest.raises(NotFoundError):
        await service.delete_rule(rule_id)
