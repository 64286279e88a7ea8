"""Order reads and post-checkout mutations.

Status flow: PENDING -> PROCESSING -> SHIPPED -> DELIVERED, forward only.
CANCELLED is reachable only from PENDING and returns stock to the ledger.

Every mutation that touches items or the delivery charge recomputes
order.total = sum(item.line_total) + delivery_charge, where line_total
is price * quantity less any recorded line discount.
"""
from typing import Optional, List, Dict, Any
from datetime import datetime, timezone
from decimal import Decimal
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from storefront.config import settings
from storefront.models.order import (
    Order,
    OrderItem,
    ShippingRecord,
    OrderStatusHistory,
    OrderStatus,
    ORDER_STATUS_SEQUENCE,
    EDITABLE_ORDER_STATUSES,
)
from storefront.services.inventory_service import InventoryService, stock_lock_key
from storefront.core.money import quantize_money
from storefront.core.enum_utils import get_enum_value, status_in
from storefront.core.exceptions import (
    NotFoundError,
    InvalidInputError,
    InvalidStateError,
    InvalidTransitionError,
    InsufficientStockError,
)

logger = logging.getLogger(__name__)

# Shipping columns that cannot be cleared by a patch
REQUIRED_SHIPPING_FIELDS = {"full_name", "address1", "city", "state", "postal_code", "country"}


class OrderService:
    """Service for order lookups, status changes and order edits."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.inventory = InventoryService(db)

    def _order_query(self, include_user: bool = False, include_history: bool = False):
        options = [
            selectinload(Order.items),
            selectinload(Order.shipping),
        ]
        if include_user:
            options.append(selectinload(Order.user))
        if include_history:
            options.append(selectinload(Order.status_history))
        return select(Order).options(*options).execution_options(populate_existing=True)

    # ==================== READS ====================

    async def get_order(self, order_id: int, user_id: Optional[int] = None) -> Order:
        """
        Get an order with items, shipping, user and status history.

        When user_id is given, an order owned by someone else is reported
        as not found.
        """
        result = await self.db.execute(
            self._order_query(include_user=True, include_history=True).where(Order.id == order_id)
        )
        order = result.scalar_one_or_none()
        if not order or (user_id is not None and order.user_id != user_id):
            raise NotFoundError("Order not found", {"order_id": order_id})
        return order

    async def get_user_orders(self, user_id: int) -> List[Order]:
        """A user's orders, newest first."""
        result = await self.db.execute(
            self._order_query()
            .where(Order.user_id == user_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
        )
        return list(result.scalars().all())

    async def get_all_orders(self) -> List[Order]:
        result = await self.db.execute(
            self._order_query(include_user=True).order_by(Order.created_at.desc(), Order.id.desc())
        )
        return list(result.scalars().all())

    # ==================== HELPERS ====================

    async def _lock_order(self, order_id: int) -> Order:
        result = await self.db.execute(
            self._order_query().where(Order.id == order_id).with_for_update()
        )
        order = result.scalar_one_or_none()
        if not order:
            raise NotFoundError("Order not found", {"order_id": order_id})
        return order

    def _add_status_history(
        self,
        order: Order,
        from_status: Optional[str],
        to_status: str,
        notes: Optional[str] = None,
    ) -> None:
        self.db.add(
            OrderStatusHistory(
                order_id=order.id,
                from_status=from_status,
                to_status=to_status,
                notes=notes,
            )
        )

    def _recalculate_total(self, order: Order) -> Decimal:
        subtotal = sum((item.line_total for item in order.items), Decimal("0"))
        order.total = quantize_money(subtotal + order.delivery_charge)
        return order.total

    async def _cancel(self, order: Order, notes: Optional[str] = None) -> None:
        """Cancel a PENDING order and return its items to stock. Does not commit."""
        if not status_in(order.status, OrderStatus.PENDING):
            raise InvalidTransitionError(
                "Cannot cancel this order",
                {"order_id": order.id, "status": order.status},
            )

        if settings.RESTORE_STOCK_ON_CANCEL:
            items = sorted(order.items, key=lambda i: stock_lock_key(i.product_id, i.color_id, i.size_id))
            for item in items:
                record = await self.inventory.get_variant_stock(
                    item.product_id, item.color_id, item.size_id, for_update=True
                )
                if not record:
                    logger.warning(
                        f"Stock not restored for order {order.order_code} item {item.id}: "
                        f"no inventory record for product {item.product_id} "
                        f"(color={item.color_id}, size={item.size_id})"
                    )
                    continue
                await self.inventory.apply_delta(
                    record, item.quantity, f"Order {order.order_code} cancelled"
                )

        previous = order.status
        order.status = OrderStatus.CANCELLED.value
        order.cancelled_at = datetime.now(timezone.utc)
        self._add_status_history(order, previous, order.status, notes)

    # ==================== STATUS ====================

    async def update_order_status(
        self,
        order_id: int,
        new_status: OrderStatus,
        notes: Optional[str] = None,
    ) -> Order:
        """
        Move an order along the status chain.

        Only forward moves are allowed; CANCELLED follows the cancellation
        rules (PENDING only, stock restored).
        """
        try:
            order = await self._lock_order(order_id)
            target = OrderStatus(get_enum_value(new_status))

            if target == OrderStatus.CANCELLED:
                await self._cancel(order, notes)
            else:
                current = OrderStatus(order.status)
                if (
                    current == OrderStatus.CANCELLED
                    or ORDER_STATUS_SEQUENCE.index(target) <= ORDER_STATUS_SEQUENCE.index(current)
                ):
                    raise InvalidTransitionError(
                        f"Cannot change order status from {current.value} to {target.value}",
                        {"order_id": order_id, "from_status": current.value, "to_status": target.value},
                    )
                order.status = target.value
                self._add_status_history(order, current.value, target.value, notes)

            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(f"Order {order.order_code} status changed to {order.status}")
        return await self.get_order(order_id)

    async def cancel_order(self, order_id: int, user_id: int) -> Order:
        """Buyer-initiated cancellation; the order must belong to user_id."""
        try:
            order = await self._lock_order(order_id)
            if order.user_id != user_id:
                raise NotFoundError("Order not found", {"order_id": order_id})
            await self._cancel(order, "Cancelled by customer")
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(f"Order {order.order_code} cancelled by user {user_id}")
        return await self.get_order(order_id)

    # ==================== EDITS ====================

    async def update_shipping(self, shipping_id: int, data: Dict[str, Any]) -> Order:
        """
        Patch a shipping record.

        A new delivery_charge is mirrored on the order and the order total
        is adjusted: new_total = old_total - old_delivery + new_delivery.
        """
        try:
            result = await self.db.execute(
                select(ShippingRecord).where(ShippingRecord.id == shipping_id)
            )
            shipping = result.scalar_one_or_none()
            if not shipping:
                raise NotFoundError("Shipping record not found", {"shipping_id": shipping_id})

            order = await self._lock_order(shipping.order_id)
            if not status_in(order.status, *EDITABLE_ORDER_STATUSES):
                raise InvalidStateError(
                    f"Shipping cannot be changed while order is {order.status}",
                    {"order_id": order.id, "status": order.status},
                )
            shipping = order.shipping

            new_delivery = data.pop("delivery_charge", None)
            for field, value in data.items():
                if value is None and field in REQUIRED_SHIPPING_FIELDS:
                    continue
                setattr(shipping, field, value)

            if new_delivery is not None:
                new_delivery = quantize_money(new_delivery)
                old_delivery = order.delivery_charge
                order.total = quantize_money(order.total - old_delivery + new_delivery)
                order.delivery_charge = new_delivery
                shipping.delivery_charge = new_delivery
                logger.info(
                    f"Order {order.order_code} delivery charge {old_delivery} -> {new_delivery}, "
                    f"total now {order.total}"
                )

            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        return await self.get_order(order.id)

    async def update_order_item_quantity(self, item_id: int, new_quantity: int) -> Order:
        """
        Change a line item quantity and move the difference through the ledger.

        Increasing the quantity takes stock; decreasing returns it. The order
        total is re-summed over all items plus the delivery charge.
        """
        if new_quantity < 1:
            raise InvalidInputError("Quantity must be at least 1", {"quantity": new_quantity})

        try:
            order_id = (
                await self.db.execute(select(OrderItem.order_id).where(OrderItem.id == item_id))
            ).scalar_one_or_none()
            if order_id is None:
                raise NotFoundError("Order item not found", {"item_id": item_id})

            order = await self._lock_order(order_id)
            if not status_in(order.status, *EDITABLE_ORDER_STATUSES):
                raise InvalidStateError(
                    f"Items cannot be changed while order is {order.status}",
                    {"order_id": order.id, "status": order.status},
                )

            item = next(i for i in order.items if i.id == item_id)
            old_quantity = item.quantity
            delta = new_quantity - old_quantity

            record = await self.inventory.require_variant_stock(
                item.product_id, item.color_id, item.size_id, for_update=True
            )
            if delta > 0 and record.available_quantity < delta:
                raise InsufficientStockError(
                    product_id=item.product_id,
                    requested=delta,
                    available=record.available_quantity,
                    color_id=item.color_id,
                    size_id=item.size_id,
                )
            if delta != 0:
                await self.inventory.apply_delta(
                    record,
                    -delta,
                    f"Order {order.order_code} item {item.id} quantity {old_quantity} -> {new_quantity}",
                )

            item.quantity = new_quantity
            self._recalculate_total(order)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            f"Order {order.order_code} item {item_id} quantity {old_quantity} -> {new_quantity}, "
            f"total now {order.total}"
        )
        return await self.get_order(order.id)
