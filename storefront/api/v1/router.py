from fastapi import APIRouter

from storefront.api.v1.endpoints import (
    # Orders & Checkout
    orders,
    # Inventory Ledger
    inventory,
    # Pricing Rules
    pricing,
)

# Create main API router
api_router = APIRouter(prefix="/api/v1")

# ==================== Orders & Checkout ====================
api_router.include_router(
    orders.router,
    prefix="/orders",
    tags=["Orders"]
)

# ==================== Inventory Ledger ====================
api_router.include_router(
    inventory.router,
    prefix="/inventory",
    tags=["Inventory"]
)

# ==================== Pricing Rules ====================
api_router.include_router(
    pricing.router,
    prefix="/pricing",
    tags=["Pricing"]
)
