# Services module
from storefront.services.catalog_service import CatalogService
from storefront.services.user_service import UserService
from storefront.services.inventory_service import InventoryService
from storefront.services.pricing_service import PricingService
from storefront.services.order_code import OrderCodeGenerator
from storefront.services.order_service import OrderService
from storefront.services.checkout_service import CheckoutService

__all__ = [
    "CatalogService",
    "UserService",
    # Inventory ledger
    "InventoryService",
    # Pricing
    "PricingService",
    # Orders
    "OrderCodeGenerator",
    "OrderService",
    "CheckoutService",
]
