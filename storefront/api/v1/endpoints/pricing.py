"""API endpoints for pricing rules and price calculation."""
from typing import List

from fastapi import APIRouter, HTTPException, status

from storefront.api.deps import DB, http_error
from storefront.models.pricing import PricingRuleType
from storefront.schemas.pricing import (
    PricingRuleCreate,
    PricingRuleUpdate,
    PricingRuleResponse,
    PriceRequest,
    PriceResult,
    BulkPricingRulesCreate,
    BulkPricingRulesResponse,
)
from storefront.services.pricing_service import PricingService
from storefront.core.enum_utils import to_enum
from storefront.core.exceptions import StorefrontError


router = APIRouter(tags=["Pricing"])


@router.post(
    "/rules",
    response_model=PricingRuleResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_pricing_rule(data: PricingRuleCreate, db: DB):
    """Create a pricing rule; a second active rule for the same variant and min_quantity is rejected."""
    try:
        rule = await PricingService(db).create_rule(data)
    except StorefrontError as e:
        raise http_error(e)
    return PricingRuleResponse.model_validate(rule)


@router.post(
    "/product/{product_id}/rules/bulk",
    response_model=BulkPricingRulesResponse,
    status_code=status.HTTP_201_CREATED,
)
async def bulk_create_pricing_rules(product_id: int, data: BulkPricingRulesCreate, db: DB):
    """Create VARIANT rules from per-variant quantity tiers."""
    try:
        created, errors = await PricingService(db).bulk_create_rules(
            product_id, data.variant_pricing_rules
        )
    except StorefrontError as e:
        raise http_error(e)

    return BulkPricingRulesResponse(
        created=len(created),
        errors_count=len(errors),
        created_rules=[PricingRuleResponse.model_validate(r) for r in created],
        errors=errors or None,
    )


@router.post("/calculate", response_model=PriceResult)
async def calculate_price(data: PriceRequest, db: DB):
    """
    Calculate the price of a product for a quantity.

    Falls back to the product's list price when no rule matches
    (applied_rule.id = 0, rule_type = FALLBACK).
    """
    try:
        return await PricingService(db).calculate_price(
            data.product_id,
            quantity=data.quantity,
            color_id=data.color_id,
            size_id=data.size_id,
        )
    except StorefrontError as e:
        raise http_error(e)


@router.get("/product/{product_id}/rules", response_model=List[PricingRuleResponse])
async def get_product_pricing_rules(product_id: int, db: DB):
    try:
        rules = await PricingService(db).list_rules(product_id)
    except StorefrontError as e:
        raise http_error(e)
    return [PricingRuleResponse.model_validate(r) for r in rules]


@router.get(
    "/product/{product_id}/rules/type/{rule_type}",
    response_model=List[PricingRuleResponse],
)
async def get_pricing_rules_by_type(product_id: int, rule_type: str, db: DB):
    """Active rules of one type; the type is case-insensitive."""
    rule_type_enum = to_enum(rule_type.upper(), PricingRuleType)
    if rule_type_enum is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid rule type: {rule_type}"
        )

    rules = await PricingService(db).list_rules_by_type(product_id, rule_type_enum)
    return [PricingRuleResponse.model_validate(r) for r in rules]


@router.patch("/rules/{rule_id}", response_model=PricingRuleResponse)
async def update_pricing_rule(rule_id: int, data: PricingRuleUpdate, db: DB):
    update_data = data.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No fields to update"
        )

    try:
        rule = await PricingService(db).update_rule(rule_id, update_data)
    except StorefrontError as e:
        raise http_error(e)
    return PricingRuleResponse.model_validate(rule)


@router.delete("/rules/{rule_id}")
async def delete_pricing_rule(rule_id: int, db: DB):
    try:
        await PricingService(db).delete_rule(rule_id)
    except StorefrontError as e:
        raise http_error(e)
    return {"message": "Pricing rule has been deleted successfully"}
