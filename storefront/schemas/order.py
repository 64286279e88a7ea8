from pydantic import BaseModel, Field, EmailStr, field_validator, model_validator
from typing import Optional, List
from datetime import datetime
from decimal import Decimal

from storefront.models.order import OrderStatus
from storefront.schemas.base import BaseResponseSchema, BaseCreateSchema, BaseUpdateSchema
from storefront.core.enum_utils import normalize_to_uppercase, VALID_ORDER_STATUSES


# ==================== CHECKOUT SCHEMAS ====================

class BuyerInfo(BaseModel):
    """Buyer identity; the user is matched by phone or email."""
    name: str = Field(..., min_length=1, max_length=200)
    phone: Optional[str] = Field(None, max_length=20)
    email: Optional[EmailStr] = None

    @model_validator(mode="after")
    def check_contact(self):
        if not self.phone and not self.email:
            raise ValueError("phone or email is required")
        return self


class CheckoutItem(BaseModel):
    """Requested line item; price is what the client displayed, verified server-side."""
    product_id: int = Field(..., ge=1)
    quantity: int = Field(..., ge=1)
    color_id: Optional[int] = Field(None, ge=1)
    size_id: Optional[int] = Field(None, ge=1)
    price: Optional[Decimal] = Field(None, ge=0)


class ShippingAddress(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=200)
    address1: str = Field(..., min_length=1, max_length=255)
    address2: Optional[str] = Field(None, max_length=255)
    city: str = Field(..., max_length=100)
    state: str = Field(..., max_length=100)
    postal_code: str = Field(..., max_length=20)
    country: str = Field(..., max_length=100)
    phone: Optional[str] = Field(None, max_length=20)
    email: Optional[EmailStr] = None
    delivery_area: Optional[str] = Field(None, max_length=100)


class CheckoutRequest(BaseCreateSchema):
    buyer: BuyerInfo
    items: List[CheckoutItem] = Field(..., min_length=1)
    shipping: ShippingAddress
    delivery_charge: Decimal = Field(Decimal("0.00"), ge=0)
    total: Optional[Decimal] = Field(None, ge=0)  # Caller-computed total, verified if sent


# ==================== MUTATION SCHEMAS ====================

class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    note: Optional[str] = None

    @field_validator('status', mode='before')
    @classmethod
    def normalize_status(cls, v):
        return normalize_to_uppercase(v, VALID_ORDER_STATUSES)


class ShippingUpdate(BaseUpdateSchema):
    """Partial shipping edit; delivery_charge triggers order total reconciliation."""
    full_name: Optional[str] = Field(None, min_length=1, max_length=200)
    address1: Optional[str] = Field(None, min_length=1, max_length=255)
    address2: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)
    country: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)
    email: Optional[EmailStr] = None
    delivery_area: Optional[str] = Field(None, max_length=100)
    delivery_charge: Optional[Decimal] = Field(None, ge=0)


class OrderItemQuantityUpdate(BaseModel):
    quantity: int = Field(..., ge=1)


# ==================== RESPONSE SCHEMAS ====================

class UserBrief(BaseResponseSchema):
    id: int
    name: Optional[str] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None


class OrderItemResponse(BaseResponseSchema):
    id: int
    order_id: int
    product_id: int
    color_id: Optional[int] = None
    size_id: Optional[int] = None
    quantity: int
    price: Decimal
    discount_percentage: Optional[Decimal] = None
    line_total: Decimal


class ShippingResponse(BaseResponseSchema):
    id: int
    order_id: int
    full_name: str
    address1: str
    address2: Optional[str] = None
    city: str
    state: str
    postal_code: str
    country: str
    phone: Optional[str] = None
    email: Optional[str] = None
    delivery_area: Optional[str] = None
    delivery_charge: Decimal


class StatusHistoryResponse(BaseResponseSchema):
    id: int
    from_status: Optional[str] = None
    to_status: str
    notes: Optional[str] = None
    created_at: datetime


class OrderResponse(BaseResponseSchema):
    """Order aggregate: order, line items and shipping record."""
    id: int
    order_code: str
    user_id: int
    status: str
    total: Decimal
    delivery_charge: Decimal
    created_at: datetime
    updated_at: datetime
    cancelled_at: Optional[datetime] = None
    items: List[OrderItemResponse] = []
    shipping: Optional[ShippingResponse] = None


class OrderWithUserResponse(OrderResponse):
    user: Optional[UserBrief] = None


class OrderDetailResponse(OrderWithUserResponse):
    status_history: List[StatusHistoryResponse] = []
