"""Inventory schemas for API requests/responses."""
from pydantic import BaseModel, Field, model_validator

from storefront.schemas.base import BaseResponseSchema, BaseCreateSchema, BaseUpdateSchema
from typing import Optional, List
from datetime import datetime


# ==================== VARIANT INFO ====================

class ColorInfo(BaseResponseSchema):
    id: int
    name: str
    hex_code: Optional[str] = None


class SizeInfo(BaseResponseSchema):
    id: int
    value: str
    system: Optional[str] = None


class VariantInfo(BaseModel):
    color: Optional[ColorInfo] = None
    size: Optional[SizeInfo] = None


# ==================== INVENTORY RECORD SCHEMAS ====================

class VariantKey(BaseModel):
    """Exact variant key; null color/size means not variant-specific."""
    product_id: int = Field(..., ge=1)
    color_id: Optional[int] = Field(None, ge=1)
    size_id: Optional[int] = Field(None, ge=1)


class InventoryRecordCreate(VariantKey, BaseCreateSchema):
    """Create stock record for one variant."""
    available_quantity: int = Field(0, ge=0)
    reserved_quantity: int = Field(0, ge=0)
    minimum_threshold: int = Field(0, ge=0)
    maximum_capacity: Optional[int] = Field(None, ge=1)
    is_active: bool = True
    notes: Optional[str] = None


class InventoryRecordUpdate(BaseUpdateSchema):
    """Administrative update of a stock record by id."""
    available_quantity: Optional[int] = Field(None, ge=0)
    reserved_quantity: Optional[int] = Field(None, ge=0)
    minimum_threshold: Optional[int] = Field(None, ge=0)
    maximum_capacity: Optional[int] = Field(None, ge=1)
    is_active: Optional[bool] = None
    notes: Optional[str] = None


class StockAdjustment(VariantKey):
    """Signed stock delta: positive restocks, negative sells."""
    quantity: int
    reason: Optional[str] = Field(None, max_length=255)  # e.g. "sale", "restock", "return"

    @model_validator(mode="after")
    def check_non_zero(self):
        if self.quantity == 0:
            raise ValueError("quantity must be non-zero")
        return self


class InventoryRecordResponse(BaseResponseSchema):
    """Stock record with derived read-time fields."""
    id: int
    product_id: int
    color_id: Optional[int] = None
    size_id: Optional[int] = None
    available_quantity: int
    reserved_quantity: int
    total_quantity: int
    minimum_threshold: int
    maximum_capacity: Optional[int] = None
    is_low_stock: bool
    is_out_of_stock: bool
    is_active: bool
    notes: Optional[str] = None
    variant_info: Optional[VariantInfo] = None
    created_at: datetime
    updated_at: datetime


class StockAdjustmentResponse(InventoryRecordResponse):
    quantity_change: int


# ==================== BULK SCHEMAS ====================

class VariantQuantity(BaseModel):
    """One variant in a bulk stock import."""
    color_id: int = Field(..., ge=1)
    size_id: int = Field(..., ge=1)
    available_quantity: int = Field(..., ge=0)
    reserved_quantity: int = Field(0, ge=0)
    minimum_threshold: int = Field(0, ge=0)
    maximum_capacity: Optional[int] = Field(None, ge=1)
    notes: Optional[str] = None


class BulkInventoryCreate(BaseModel):
    variant_quantities: List[VariantQuantity] = Field(..., min_length=1)


class BulkItemError(BaseModel):
    """A rejected bulk entry, returned alongside the successes."""
    item: dict
    kind: str
    error: str


class BulkInventoryResponse(BaseModel):
    created: int
    errors_count: int
    created_records: List[InventoryRecordResponse]
    errors: Optional[List[BulkItemError]] = None
