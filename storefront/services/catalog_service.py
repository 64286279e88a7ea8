"""Read-only lookups against the product catalog (products, colors, sizes)."""
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from storefront.models.catalog import Product, Color, Size
from storefront.core.exceptions import NotFoundError


class CatalogService:
    """Existence checks used by the ledger, pricing and checkout services."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_product(self, product_id: int) -> Product:
        product = await self.db.get(Product, product_id)
        if not product:
            raise NotFoundError(f"Product {product_id} not found", {"product_id": product_id})
        return product

    async def get_color(self, color_id: int) -> Color:
        color = await self.db.get(Color, color_id)
        if not color:
            raise NotFoundError(f"Color {color_id} not found", {"color_id": color_id})
        return color

    async def get_size(self, size_id: int) -> Size:
        size = await self.db.get(Size, size_id)
        if not size:
            raise NotFoundError(f"Size {size_id} not found", {"size_id": size_id})
        return size

    async def validate_variant(
        self,
        product_id: int,
        color_id: Optional[int] = None,
        size_id: Optional[int] = None,
    ) -> Product:
        """Ensure the product and any given color/size exist."""
        product = await self.get_product(product_id)
        if color_id is not None:
            await self.get_color(color_id)
        if size_id is not None:
            await self.get_size(size_id)
        return product
