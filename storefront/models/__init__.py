# Models module - importing registers every table on Base.metadata
from storefront.models.catalog import Product, Color, Size
from storefront.models.user import User
from storefront.models.inventory import InventoryRecord
from storefront.models.pricing import PricingRule, PricingRuleType
from storefront.models.order import (
    Order, OrderItem, ShippingRecord, OrderStatusHistory, OrderStatus,
)

__all__ = [
    "Product",
    "Color",
    "Size",
    "User",
    "InventoryRecord",
    "PricingRule",
    "PricingRuleType",
    "Order",
    "OrderItem",
    "ShippingRecord",
    "OrderStatusHistory",
    "OrderStatus",
]
