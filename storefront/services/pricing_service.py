"""Pricing Service: quantity-tiered pricing rules and price resolution.

Resolution order for a (product, quantity) request:
1. Active rules for the product whose [min_quantity, max_quantity] tier
   contains the quantity (max_quantity NULL = unbounded)
2. Highest priority wins; ties go to the larger min_quantity
3. No matching rule -> product discounted_price, else base_price

Example:
- Rules: {min=1, price=10, priority=1}, {min=5, price=8, priority=1}
- Quantity 5 -> both match, equal priority, min 5 > min 1 -> unit price 8
"""
from typing import Optional, List, Dict, Any, Tuple
from decimal import Decimal
import logging

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.models.pricing import PricingRule, PricingRuleType
from storefront.models.catalog import Color, Size
from storefront.schemas.pricing import (
    PricingRuleCreate,
    PriceResult,
    AppliedRule,
    VariantPricingRules,
)
from storefront.services.catalog_service import CatalogService
from storefront.core.enum_utils import get_enum_value
from storefront.core.money import quantize_money, discounted_total
from storefront.core.exceptions import (
    StorefrontError,
    NotFoundError,
    ConflictError,
    InvalidInputError,
)

logger = logging.getLogger(__name__)

FALLBACK_RULE = AppliedRule(id=0, rule_name="Base Price", rule_type="FALLBACK", priority=0)

# Fields a patch may explicitly clear
NULLABLE_RULE_FIELDS = {"max_quantity", "discount_percentage", "rule_name"}


class PricingService:
    """Pricing rule administration and unit price calculation."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.catalog = CatalogService(db)

    # ==================== PRICE CALCULATION ====================

    async def calculate_price(
        self,
        product_id: int,
        quantity: int = 1,
        color_id: Optional[int] = None,
        size_id: Optional[int] = None,
    ) -> PriceResult:
        """
        Resolve the price for a product and quantity.

        Candidate rules are matched on product only; color and size are
        echoed back in the result.
        """
        if quantity < 1:
            raise InvalidInputError("Quantity must be at least 1", {"quantity": quantity})

        product = await self.catalog.get_product(product_id)

        result = await self.db.execute(
            select(PricingRule)
            .where(
                PricingRule.product_id == product_id,
                PricingRule.is_active == True,
                PricingRule.min_quantity <= quantity,
                or_(
                    PricingRule.max_quantity.is_(None),
                    PricingRule.max_quantity >= quantity,
                ),
            )
            .order_by(
                PricingRule.priority.desc(),
                PricingRule.min_quantity.desc(),
                PricingRule.id,
            )
        )
        best_rule = result.scalars().first()

        if not best_rule:
            unit_price = product.discounted_price or product.base_price
            unit_price = quantize_money(unit_price)
            return PriceResult(
                product_id=product_id,
                color_id=color_id,
                size_id=size_id,
                quantity=quantity,
                unit_price=unit_price,
                total_price=quantize_money(unit_price * quantity),
                applied_rule=FALLBACK_RULE,
            )

        unit_price = quantize_money(best_rule.unit_price)
        discount_pct = best_rule.discount_percentage
        discount_amount, total_price = discounted_total(unit_price, quantity, discount_pct)

        return PriceResult(
            product_id=product_id,
            color_id=color_id,
            size_id=size_id,
            quantity=quantity,
            unit_price=unit_price,
            total_price=total_price,
            discount_percentage=discount_pct,
            discount_amount=discount_amount,
            applied_rule=AppliedRule(
                id=best_rule.id,
                rule_name=best_rule.rule_name,
                rule_type=best_rule.rule_type,
                priority=best_rule.priority,
            ),
        )

    # ==================== RULE VALIDATION ====================

    def _check_ranges(
        self,
        min_quantity: int,
        max_quantity: Optional[int],
        discount_percentage: Optional[Decimal],
    ) -> None:
        if max_quantity is not None and max_quantity < min_quantity:
            raise InvalidInputError(
                "max_quantity must be greater than or equal to min_quantity",
                {"min_quantity": min_quantity, "max_quantity": max_quantity},
            )
        if discount_percentage is not None and not (0 <= discount_percentage <= 100):
            raise InvalidInputError(
                "discount_percentage must be between 0 and 100",
                {"discount_percentage": str(discount_percentage)},
            )

    async def _check_duplicate(
        self,
        product_id: int,
        color_id: Optional[int],
        size_id: Optional[int],
        min_quantity: int,
        exclude_id: Optional[int] = None,
    ) -> None:
        """Reject a second active rule for the same variant and tier start."""
        stmt = select(PricingRule.id).where(
            PricingRule.product_id == product_id,
            PricingRule.color_id.is_(None) if color_id is None else PricingRule.color_id == color_id,
            PricingRule.size_id.is_(None) if size_id is None else PricingRule.size_id == size_id,
            PricingRule.min_quantity == min_quantity,
            PricingRule.is_active == True,
        )
        if exclude_id is not None:
            stmt = stmt.where(PricingRule.id != exclude_id)

        existing_id = (await self.db.execute(stmt.limit(1))).scalar_one_or_none()
        if existing_id is not None:
            raise ConflictError(
                "Pricing rule already exists for this product variant and quantity",
                {
                    "product_id": product_id,
                    "color_id": color_id,
                    "size_id": size_id,
                    "min_quantity": min_quantity,
                    "existing_rule_id": existing_id,
                },
            )

    # ==================== RULE ADMINISTRATION ====================

    async def get_rule(self, rule_id: int) -> PricingRule:
        rule = await self.db.get(PricingRule, rule_id)
        if not rule:
            raise NotFoundError(f"Pricing rule with ID {rule_id} not found", {"id": rule_id})
        return rule

    async def create_rule(self, data: PricingRuleCreate) -> PricingRule:
        await self.catalog.validate_variant(data.product_id, data.color_id, data.size_id)
        self._check_ranges(data.min_quantity, data.max_quantity, data.discount_percentage)
        if data.is_active:
            await self._check_duplicate(data.product_id, data.color_id, data.size_id, data.min_quantity)

        rule_data = data.model_dump()
        rule_data["rule_type"] = get_enum_value(data.rule_type)
        rule = PricingRule(**rule_data)
        self.db.add(rule)
        await self.db.commit()
        await self.db.refresh(rule)

        logger.info(
            f"Created {rule.rule_type} pricing rule {rule.id} for product {rule.product_id} "
            f"(min={rule.min_quantity}, max={rule.max_quantity}, price={rule.unit_price})"
        )
        return rule

    async def bulk_create_rules(
        self,
        product_id: int,
        variant_rules: List[VariantPricingRules],
    ) -> Tuple[List[PricingRule], List[Dict[str, Any]]]:
        """
        Create VARIANT rules from per-variant tier lists.

        A missing color or size rejects every tier of that variant; a
        duplicate or malformed tier rejects only that tier.
        """
        await self.catalog.get_product(product_id)

        seen: set = set()
        created: List[PricingRule] = []
        errors: List[Dict[str, Any]] = []

        for variant in variant_rules:
            try:
                if not await self.db.get(Color, variant.color_id):
                    raise NotFoundError(f"Color with ID {variant.color_id} not found")
                if not await self.db.get(Size, variant.size_id):
                    raise NotFoundError(f"Size with ID {variant.size_id} not found")
            except StorefrontError as e:
                errors.append({
                    "item": variant.model_dump(mode="json"),
                    "kind": e.kind.value,
                    "error": e.message,
                })
                continue

            for tier in variant.pricing_tiers:
                key = (variant.color_id, variant.size_id, tier.min_quantity)
                try:
                    self._check_ranges(tier.min_quantity, tier.max_quantity, tier.discount_percentage)
                    if key in seen:
                        raise ConflictError("Tier appears more than once in this request")
                    await self._check_duplicate(product_id, variant.color_id, variant.size_id, tier.min_quantity)
                except StorefrontError as e:
                    errors.append({
                        "item": {
                            "color_id": variant.color_id,
                            "size_id": variant.size_id,
                            "tier": tier.model_dump(mode="json"),
                        },
                        "kind": e.kind.value,
                        "error": e.message,
                    })
                    continue

                seen.add(key)
                rule = PricingRule(
                    product_id=product_id,
                    color_id=variant.color_id,
                    size_id=variant.size_id,
                    min_quantity=tier.min_quantity,
                    max_quantity=tier.max_quantity,
                    unit_price=tier.unit_price,
                    discount_percentage=tier.discount_percentage,
                    rule_type=PricingRuleType.VARIANT.value,
                    is_active=True,
                    priority=1,
                )
                self.db.add(rule)
                created.append(rule)

        await self.db.commit()
        for rule in created:
            await self.db.refresh(rule)

        logger.info(
            f"Bulk pricing import for product {product_id}: "
            f"{len(created)} rules created, {len(errors)} rejected"
        )
        return created, errors

    async def list_rules(self, product_id: int) -> List[PricingRule]:
        """All rules of a product, active or not."""
        await self.catalog.get_product(product_id)
        result = await self.db.execute(
            select(PricingRule)
            .where(PricingRule.product_id == product_id)
            .order_by(
                PricingRule.priority.desc(),
                PricingRule.rule_type.asc(),
                PricingRule.min_quantity.asc(),
            )
        )
        return list(result.scalars().all())

    async def list_rules_by_type(self, product_id: int, rule_type: PricingRuleType) -> List[PricingRule]:
        result = await self.db.execute(
            select(PricingRule)
            .where(
                PricingRule.product_id == product_id,
                PricingRule.rule_type == get_enum_value(rule_type),
                PricingRule.is_active == True,
            )
            .order_by(PricingRule.priority.desc(), PricingRule.min_quantity.asc())
        )
        return list(result.scalars().all())

    async def update_rule(self, rule_id: int, data: Dict[str, Any]) -> PricingRule:
        """Patch a rule, re-checking tier range and duplicate invariants."""
        rule = await self.get_rule(rule_id)
        data = {k: v for k, v in data.items() if v is not None or k in NULLABLE_RULE_FIELDS}

        min_quantity = data.get("min_quantity", rule.min_quantity)
        max_quantity = data.get("max_quantity", rule.max_quantity)
        discount_percentage = data.get("discount_percentage", rule.discount_percentage)
        is_active = data.get("is_active", rule.is_active)

        self._check_ranges(min_quantity, max_quantity, discount_percentage)
        if is_active:
            await self._check_duplicate(
                rule.product_id, rule.color_id, rule.size_id, min_quantity, exclude_id=rule.id
            )

        for field, value in data.items():
            if field == "rule_type":
                value = get_enum_value(value)
            setattr(rule, field, value)

        await self.db.commit()
        await self.db.refresh(rule)
        logger.info(f"Updated pricing rule {rule.id}: {sorted(data.keys())}")
        return rule

    async def delete_rule(self, rule_id: int) -> None:
        rule = await self.get_rule(rule_id)
        await self.db.delete(rule)
        await self.db.commit()
        logger.info(f"Deleted pricing rule {rule_id}")
