"""API endpoints for checkout and order management."""
from typing import Optional, List

from fastapi import APIRouter, HTTPException, status, Query

from storefront.api.deps import DB, http_error
from storefront.schemas.order import (
    CheckoutRequest,
    OrderStatusUpdate,
    ShippingUpdate,
    OrderItemQuantityUpdate,
    OrderResponse,
    OrderWithUserResponse,
    OrderDetailResponse,
)
from storefront.services.checkout_service import CheckoutService
from storefront.services.order_service import OrderService
from storefront.core.exceptions import StorefrontError


router = APIRouter(tags=["Orders"])


@router.post(
    "/checkout",
    response_model=OrderDetailResponse,
    status_code=status.HTTP_201_CREATED,
)
async def checkout(data: CheckoutRequest, db: DB):
    """
    Place an order.

    Stock is checked and decremented, prices are resolved server-side and
    the order is created with its items and shipping record, all in one
    transaction.
    """
    try:
        order = await CheckoutService(db).checkout(data)
    except StorefrontError as e:
        raise http_error(e)
    return OrderDetailResponse.model_validate(order)


@router.get("/my", response_model=List[OrderResponse])
async def get_my_orders(
    db: DB,
    user_id: int = Query(..., ge=1),
):
    """Orders of one buyer, newest first."""
    orders = await OrderService(db).get_user_orders(user_id)
    return [OrderResponse.model_validate(o) for o in orders]


@router.get("", response_model=List[OrderWithUserResponse])
async def list_orders(db: DB):
    """All orders with buyer info (admin)."""
    orders = await OrderService(db).get_all_orders()
    return [OrderWithUserResponse.model_validate(o) for o in orders]


@router.get("/{order_id}", response_model=OrderDetailResponse)
async def get_order(
    order_id: int,
    db: DB,
    user_id: Optional[int] = Query(None, ge=1),
):
    """Get order details; with user_id, only that buyer's order is visible."""
    try:
        order = await OrderService(db).get_order(order_id, user_id=user_id)
    except StorefrontError as e:
        raise http_error(e)
    return OrderDetailResponse.model_validate(order)


@router.put("/{order_id}/status", response_model=OrderDetailResponse)
async def update_order_status(
    order_id: int,
    data: OrderStatusUpdate,
    db: DB,
):
    """Move an order forward along PENDING -> PROCESSING -> SHIPPED -> DELIVERED."""
    try:
        order = await OrderService(db).update_order_status(order_id, data.status, notes=data.note)
    except StorefrontError as e:
        raise http_error(e)
    return OrderDetailResponse.model_validate(order)


@router.put("/{order_id}/cancel", response_model=OrderDetailResponse)
async def cancel_order(
    order_id: int,
    db: DB,
    user_id: int = Query(..., ge=1),
):
    """Cancel a PENDING order owned by user_id."""
    try:
        order = await OrderService(db).cancel_order(order_id, user_id)
    except StorefrontError as e:
        raise http_error(e)
    return OrderDetailResponse.model_validate(order)


@router.put("/shipping/{shipping_id}", response_model=OrderDetailResponse)
async def update_shipping(
    shipping_id: int,
    data: ShippingUpdate,
    db: DB,
):
    """Update shipping details; a new delivery charge adjusts the order total."""
    update_data = data.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No fields to update"
        )

    try:
        order = await OrderService(db).update_shipping(shipping_id, update_data)
    except StorefrontError as e:
        raise http_error(e)
    return OrderDetailResponse.model_validate(order)


@router.put("/items/{item_id}/quantity", response_model=OrderDetailResponse)
async def update_order_item_quantity(
    item_id: int,
    data: OrderItemQuantityUpdate,
    db: DB,
):
    """Change a line item quantity; stock and order total follow."""
    try:
        order = await OrderService(db).update_order_item_quantity(item_id, data.quantity)
    except StorefrontError as e:
        raise http_error(e)
    return OrderDetailResponse.model_validate(order)
