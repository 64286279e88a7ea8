"""Pricing rule schemas for API requests/responses."""
from pydantic import BaseModel, Field, field_validator

from storefront.schemas.base import BaseResponseSchema, BaseCreateSchema, BaseUpdateSchema
from storefront.schemas.inventory import BulkItemError
from storefront.models.pricing import PricingRuleType
from storefront.core.enum_utils import normalize_to_uppercase, VALID_PRICING_RULE_TYPES
from typing import Optional, List
from datetime import datetime
from decimal import Decimal


class PricingRuleCreate(BaseCreateSchema):
    """Create a single pricing rule."""
    product_id: int = Field(..., ge=1)
    color_id: Optional[int] = Field(None, ge=1)
    size_id: Optional[int] = Field(None, ge=1)
    min_quantity: int = Field(1, ge=1)
    max_quantity: Optional[int] = Field(None, ge=1)
    unit_price: Decimal = Field(..., ge=0)
    discount_percentage: Optional[Decimal] = Field(None, ge=0, le=100)
    rule_name: Optional[str] = Field(None, max_length=100)
    rule_type: PricingRuleType = PricingRuleType.STANDARD
    is_active: bool = True
    priority: int = Field(1, ge=1)

    @field_validator('rule_type', mode='before')
    @classmethod
    def normalize_rule_type(cls, v):
        return normalize_to_uppercase(v, VALID_PRICING_RULE_TYPES)


class PricingRuleUpdate(BaseUpdateSchema):
    """Partial update of a pricing rule."""
    min_quantity: Optional[int] = Field(None, ge=1)
    max_quantity: Optional[int] = Field(None, ge=1)
    unit_price: Optional[Decimal] = Field(None, ge=0)
    discount_percentage: Optional[Decimal] = Field(None, ge=0, le=100)
    rule_name: Optional[str] = Field(None, max_length=100)
    rule_type: Optional[PricingRuleType] = None
    is_active: Optional[bool] = None
    priority: Optional[int] = Field(None, ge=1)

    @field_validator('rule_type', mode='before')
    @classmethod
    def normalize_rule_type(cls, v):
        return normalize_to_uppercase(v, VALID_PRICING_RULE_TYPES)


class PricingRuleResponse(BaseResponseSchema):
    id: int
    product_id: int
    color_id: Optional[int] = None
    size_id: Optional[int] = None
    min_quantity: int
    max_quantity: Optional[int] = None
    unit_price: Decimal
    discount_percentage: Optional[Decimal] = None
    rule_name: Optional[str] = None
    rule_type: str
    is_active: bool
    priority: int
    created_at: datetime
    updated_at: datetime


# ==================== PRICE CALCULATION ====================

class PriceRequest(BaseModel):
    product_id: int = Field(..., ge=1)
    color_id: Optional[int] = Field(None, ge=1)
    size_id: Optional[int] = Field(None, ge=1)
    quantity: int = Field(1, ge=1)


class AppliedRule(BaseModel):
    """Rule that produced the price; id 0 / FALLBACK means product list price."""
    id: int
    rule_name: Optional[str] = None
    rule_type: str
    priority: int


class PriceResult(BaseModel):
    product_id: int
    color_id: Optional[int] = None
    size_id: Optional[int] = None
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    discount_percentage: Optional[Decimal] = None
    discount_amount: Decimal = Decimal("0.00")
    applied_rule: AppliedRule

    @property
    def is_fallback(self) -> bool:
        return self.applied_rule.id == 0

    @property
    def effective_unit_price(self) -> Decimal:
        """Unit price after the rule discount."""
        return self.total_price / self.quantity


# ==================== BULK ====================

class PricingTier(BaseModel):
    min_quantity: int = Field(..., ge=1)
    max_quantity: Optional[int] = Field(None, ge=1)
    unit_price: Decimal = Field(..., ge=0)
    discount_percentage: Optional[Decimal] = Field(None, ge=0, le=100)


class VariantPricingRules(BaseModel):
    color_id: int = Field(..., ge=1)
    size_id: int = Field(..., ge=1)
    pricing_tiers: List[PricingTier] = Field(..., min_length=1)


class BulkPricingRulesCreate(BaseModel):
    variant_pricing_rules: List[VariantPricingRules] = Field(..., min_length=1)


class BulkPricingRulesResponse(BaseModel):
    created: int
    errors_count: int
    created_rules: List[PricingRuleResponse]
    errors: Optional[List[BulkItemError]] = None
