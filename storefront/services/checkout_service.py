"""Checkout: turn a cart into a persisted order in one transaction.

Flow:
1. Validate the request (items, quantities, delivery charge)
2. Sum quantities per variant; lines for the same variant become one item
3. Lock and check stock for every variant, in stock_lock_key order
4. Resolve prices server-side at each variant's total quantity and compare
   with client prices
5. Compute and verify the order total
6. Find or create the buyer
7. Decrement stock through the guarded conditional update
8. Generate the order code
9. Insert order, items, shipping record and the initial status history row

Nothing is written before step 6, and any failure rolls the whole
transaction back.
"""
from typing import Optional, List, Dict, Tuple
from decimal import Decimal
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.config import settings
from storefront.models.inventory import InventoryRecord
from storefront.models.order import Order, OrderItem, ShippingRecord, OrderStatusHistory, OrderStatus
from storefront.schemas.order import CheckoutRequest, CheckoutItem
from storefront.schemas.pricing import PriceResult
from storefront.services.inventory_service import InventoryService, stock_lock_key
from storefront.services.pricing_service import PricingService
from storefront.services.user_service import UserService
from storefront.services.order_code import OrderCodeGenerator
from storefront.services.order_service import OrderService
from storefront.core.money import quantize_money
from storefront.core.exceptions import (
    ConflictError,
    InvalidInputError,
    InsufficientStockError,
)

logger = logging.getLogger(__name__)

VariantKey = Tuple[int, Optional[int], Optional[int]]


def variant_key(item: CheckoutItem) -> VariantKey:
    return (item.product_id, item.color_id, item.size_id)


def variant_demand(items: List[CheckoutItem]) -> Dict[VariantKey, int]:
    """Requested quantity per variant, in order of first appearance in the cart."""
    demand: Dict[VariantKey, int] = {}
    for item in items:
        key = variant_key(item)
        demand[key] = demand.get(key, 0) + item.quantity
    return demand


class CheckoutService:
    """Orchestrates stock, pricing, buyer lookup and order creation."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.inventory = InventoryService(db)
        self.pricing = PricingService(db)
        self.users = UserService(db)
        self.codes = OrderCodeGenerator(db)
        self.orders = OrderService(db)

    async def checkout(self, request: CheckoutRequest) -> Order:
        """
        Place an order.

        Raises:
            InvalidInputError: malformed request or price/total mismatch
            InsufficientStockError: a variant is missing or short on stock
            ConflictError: order code exhaustion or a unique-key race
        """
        try:
            order = await self._place_order(request)
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning(f"Checkout rejected by a storage constraint: {e.orig}")
            raise ConflictError(
                "Order conflicts with an existing record, please retry",
                {"detail": str(e.orig)},
            ) from e
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            f"Order {order.order_code} placed by user {order.user_id}: "
            f"{len(order.items)} items, total {order.total}"
        )
        return await self.orders.get_order(order.id)

    async def _place_order(self, request: CheckoutRequest) -> Order:
        self._validate_request(request)

        demand = variant_demand(request.items)
        records = await self._check_stock(demand)
        quotes = await self._resolve_prices(demand, request.items)

        delivery_charge = quantize_money(request.delivery_charge)
        total = quantize_money(
            sum((quote.total_price for quote in quotes.values()), Decimal("0")) + delivery_charge
        )
        if request.total is not None and abs(quantize_money(request.total) - total) > settings.PRICE_MISMATCH_TOLERANCE:
            logger.warning(f"Checkout total mismatch: client {request.total}, server {total}")
            raise InvalidInputError(
                "Order total does not match the calculated total",
                {"client_total": str(request.total), "calculated_total": str(total)},
            )

        buyer = request.buyer
        user = await self.users.find_or_create(buyer.name, phone=buyer.phone, email=buyer.email)

        for key in sorted(records, key=lambda k: stock_lock_key(*k)):
            await self.inventory.decrement(records[key], demand[key])

        order_code = await self.codes.generate()

        order = Order(
            order_code=order_code,
            user_id=user.id,
            status=OrderStatus.PENDING.value,
            total=total,
            delivery_charge=delivery_charge,
        )
        order.items = [
            OrderItem(
                product_id=product_id,
                color_id=color_id,
                size_id=size_id,
                quantity=quantity,
                price=quotes[(product_id, color_id, size_id)].unit_price,
                discount_percentage=quotes[(product_id, color_id, size_id)].discount_percentage,
            )
            for (product_id, color_id, size_id), quantity in demand.items()
        ]
        order.shipping = ShippingRecord(
            **request.shipping.model_dump(),
            delivery_charge=delivery_charge,
        )
        order.status_history = [
            OrderStatusHistory(
                from_status=None,
                to_status=OrderStatus.PENDING.value,
                notes="Order placed",
            )
        ]
        self.db.add(order)
        await self.db.flush()
        return order

    def _validate_request(self, request: CheckoutRequest) -> None:
        if not request.items:
            raise InvalidInputError("At least one item is required")
        for item in request.items:
            if item.quantity < 1:
                raise InvalidInputError(
                    f"Quantity for product {item.product_id} must be at least 1",
                    {"product_id": item.product_id, "quantity": item.quantity},
                )
        if request.delivery_charge < 0:
            raise InvalidInputError(
                "Delivery charge cannot be negative",
                {"delivery_charge": str(request.delivery_charge)},
            )

    async def _check_stock(self, demand: Dict[VariantKey, int]) -> Dict[VariantKey, InventoryRecord]:
        """Lock and verify the stock record of every variant before any write."""
        records: Dict[VariantKey, InventoryRecord] = {}
        for key in sorted(demand, key=lambda k: stock_lock_key(*k)):
            product_id, color_id, size_id = key
            quantity = demand[key]
            record = await self.inventory.get_variant_stock(product_id, color_id, size_id, for_update=True)
            if record is None or record.available_quantity < quantity:
                logger.warning(
                    f"Checkout rejected: product {product_id} (color={color_id}, size={size_id}) "
                    f"requested {quantity}, available {record.available_quantity if record else None}"
                )
                raise InsufficientStockError(
                    product_id=product_id,
                    requested=quantity,
                    available=record.available_quantity if record else None,
                    color_id=color_id,
                    size_id=size_id,
                )
            records[key] = record
        return records

    async def _resolve_prices(
        self,
        demand: Dict[VariantKey, int],
        items: List[CheckoutItem],
    ) -> Dict[VariantKey, PriceResult]:
        """
        Quote each variant at its total quantity.

        Client prices are compared with the quoted unit price and never stored.
        """
        quotes: Dict[VariantKey, PriceResult] = {}
        for (product_id, color_id, size_id), quantity in demand.items():
            quotes[(product_id, color_id, size_id)] = await self.pricing.calculate_price(
                product_id,
                quantity=quantity,
                color_id=color_id,
                size_id=size_id,
            )

        for item in items:
            unit_price = quotes[variant_key(item)].unit_price
            if item.price is not None and abs(item.price - unit_price) > settings.PRICE_MISMATCH_TOLERANCE:
                logger.warning(
                    f"Checkout price mismatch for product {item.product_id}: "
                    f"client {item.price}, server {unit_price}"
                )
                raise InvalidInputError(
                    f"Price for product {item.product_id} does not match the current price",
                    {
                        "product_id": item.product_id,
                        "client_price": str(item.price),
                        "server_price": str(unit_price),
                    },
                )
        return quotes
