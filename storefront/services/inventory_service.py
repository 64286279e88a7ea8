"""Inventory ledger service.

Stock records are keyed by the exact (product, color, size) triple; a NULL
color or size is part of the key, never a wildcard.

Every stock decrement goes through a conditional UPDATE
(``available_quantity >= :qty``) so two transactions racing for the last
unit cannot both succeed, even where row locks are unavailable.
"""
from typing import Optional, List, Dict, Any, Tuple
import logging

from sqlalchemy import select, update, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from storefront.config import settings
from storefront.models.inventory import InventoryRecord
from storefront.models.catalog import Color, Size
from storefront.schemas.inventory import InventoryRecordCreate, VariantQuantity
from storefront.services.catalog_service import CatalogService
from storefront.core.exceptions import (
    StorefrontError,
    NotFoundError,
    ConflictError,
    InsufficientStockError,
    InvalidInputError,
)

logger = logging.getLogger(__name__)

# Fields an administrative patch may explicitly clear
NULLABLE_RECORD_FIELDS = {"maximum_capacity", "notes"}


def variant_conditions(product_id: int, color_id: Optional[int], size_id: Optional[int]) -> list:
    """WHERE clauses for an exact variant key match, NULLs included."""
    return [
        InventoryRecord.product_id == product_id,
        InventoryRecord.color_id.is_(None) if color_id is None else InventoryRecord.color_id == color_id,
        InventoryRecord.size_id.is_(None) if size_id is None else InventoryRecord.size_id == size_id,
    ]


def stock_lock_key(product_id: int, color_id: Optional[int], size_id: Optional[int]) -> tuple:
    """Total order over variant keys; stock rows are always locked in this order."""
    return (product_id, color_id or 0, size_id or 0)


def append_note(existing: Optional[str], reason: Optional[str]) -> Optional[str]:
    """Append a reason to the notes trail; existing entries are never replaced."""
    if not reason:
        return existing
    if existing:
        return f"{existing} | {reason}"
    return reason


class InventoryService:
    """Stock records per product variant."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.catalog = CatalogService(db)

    def _record_query(self):
        return select(InventoryRecord).options(
            selectinload(InventoryRecord.color),
            selectinload(InventoryRecord.size),
        )

    # ==================== READS ====================

    async def get_variant_stock(
        self,
        product_id: int,
        color_id: Optional[int] = None,
        size_id: Optional[int] = None,
        for_update: bool = False,
    ) -> Optional[InventoryRecord]:
        """Get the stock record for an exact variant key, or None."""
        stmt = (
            self._record_query()
            .where(*variant_conditions(product_id, color_id, size_id))
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def require_variant_stock(
        self,
        product_id: int,
        color_id: Optional[int] = None,
        size_id: Optional[int] = None,
        for_update: bool = False,
    ) -> InventoryRecord:
        record = await self.get_variant_stock(product_id, color_id, size_id, for_update=for_update)
        if not record:
            raise NotFoundError(
                "Quantity record not found for this product variant",
                {"product_id": product_id, "color_id": color_id, "size_id": size_id},
            )
        return record

    async def get_record_by_id(self, record_id: int) -> InventoryRecord:
        result = await self.db.execute(
            self._record_query()
            .where(InventoryRecord.id == record_id)
            .execution_options(populate_existing=True)
        )
        record = result.scalar_one_or_none()
        if not record:
            raise NotFoundError(f"Quantity record with ID {record_id} not found", {"id": record_id})
        return record

    async def list_product_stock(self, product_id: int) -> List[InventoryRecord]:
        """Active stock records of a product ordered by color then size."""
        await self.catalog.get_product(product_id)
        result = await self.db.execute(
            self._record_query()
            .where(
                InventoryRecord.product_id == product_id,
                InventoryRecord.is_active == True,
            )
            .order_by(InventoryRecord.color_id, InventoryRecord.size_id)
        )
        return list(result.scalars().all())

    async def list_low_stock(self, threshold: Optional[int] = None) -> List[InventoryRecord]:
        """
        Active records running low, lowest stock first.

        With an explicit threshold: available <= threshold.
        Without one: available == 0 OR available <= LOW_STOCK_DEFAULT_THRESHOLD.
        """
        stmt = self._record_query().where(InventoryRecord.is_active == True)
        if threshold is not None:
            stmt = stmt.where(InventoryRecord.available_quantity <= threshold)
        else:
            stmt = stmt.where(
                or_(
                    InventoryRecord.available_quantity == 0,
                    InventoryRecord.available_quantity <= settings.LOW_STOCK_DEFAULT_THRESHOLD,
                )
            )
        stmt = stmt.order_by(InventoryRecord.available_quantity.asc(), InventoryRecord.id)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def list_out_of_stock(self) -> List[InventoryRecord]:
        return await self.list_low_stock(0)

    # ==================== CREATE ====================

    async def _ensure_new_variant(
        self,
        product_id: int,
        color_id: Optional[int],
        size_id: Optional[int],
    ) -> None:
        existing = await self.get_variant_stock(product_id, color_id, size_id)
        if existing:
            raise ConflictError(
                "Quantity record already exists for this product variant",
                {"product_id": product_id, "color_id": color_id, "size_id": size_id, "id": existing.id},
            )

    async def create_variant_stock(self, data: InventoryRecordCreate) -> InventoryRecord:
        """Create the stock record for one variant."""
        await self.catalog.validate_variant(data.product_id, data.color_id, data.size_id)
        await self._ensure_new_variant(data.product_id, data.color_id, data.size_id)

        record = InventoryRecord(**data.model_dump())
        self.db.add(record)
        await self.db.commit()

        logger.info(
            f"Created stock record {record.id} for product {record.product_id} "
            f"(color={record.color_id}, size={record.size_id}) with {record.available_quantity} available"
        )
        return await self.get_record_by_id(record.id)

    async def bulk_create_variant_stock(
        self,
        product_id: int,
        variants: List[VariantQuantity],
    ) -> Tuple[List[InventoryRecord], List[Dict[str, Any]]]:
        """
        Create stock records for many variants of one product.

        Each variant is validated on its own; rejected entries are returned
        as errors next to the created records.
        """
        await self.catalog.get_product(product_id)

        seen: set = set()
        new_records: List[InventoryRecord] = []
        errors: List[Dict[str, Any]] = []

        for variant in variants:
            key = (variant.color_id, variant.size_id)
            try:
                if key in seen:
                    raise ConflictError("Variant appears more than once in this request")
                if not await self.db.get(Color, variant.color_id):
                    raise NotFoundError(f"Color {variant.color_id} not found")
                if not await self.db.get(Size, variant.size_id):
                    raise NotFoundError(f"Size {variant.size_id} not found")
                await self._ensure_new_variant(product_id, variant.color_id, variant.size_id)
            except StorefrontError as e:
                errors.append({
                    "item": variant.model_dump(mode="json"),
                    "kind": e.kind.value,
                    "error": e.message,
                })
                continue

            seen.add(key)
            record = InventoryRecord(product_id=product_id, **variant.model_dump())
            self.db.add(record)
            new_records.append(record)

        await self.db.commit()

        logger.info(
            f"Bulk stock import for product {product_id}: "
            f"{len(new_records)} created, {len(errors)} rejected"
        )

        created = []
        for record in new_records:
            created.append(await self.get_record_by_id(record.id))
        return created, errors

    # ==================== MUTATIONS ====================

    async def decrement(self, record: InventoryRecord, quantity: int) -> InventoryRecord:
        """
        Remove stock with a guarded conditional update.

        Zero affected rows means another transaction took the stock first;
        the record is left unchanged and InsufficientStockError is raised.
        Does not commit.
        """
        if quantity <= 0:
            raise InvalidInputError("Decrement quantity must be positive", {"quantity": quantity})

        result = await self.db.execute(
            update(InventoryRecord)
            .where(
                InventoryRecord.id == record.id,
                InventoryRecord.available_quantity >= quantity,
            )
            .values(available_quantity=InventoryRecord.available_quantity - quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            available = await self.db.scalar(
                select(InventoryRecord.available_quantity).where(InventoryRecord.id == record.id)
            )
            raise InsufficientStockError(
                product_id=record.product_id,
                requested=quantity,
                available=available,
                color_id=record.color_id,
                size_id=record.size_id,
            )

        await self.db.refresh(record, attribute_names=["available_quantity", "updated_at"])
        return record

    async def increment(self, record: InventoryRecord, quantity: int) -> InventoryRecord:
        """Return stock to a record. Does not commit."""
        if quantity <= 0:
            raise InvalidInputError("Increment quantity must be positive", {"quantity": quantity})

        await self.db.execute(
            update(InventoryRecord)
            .where(InventoryRecord.id == record.id)
            .values(available_quantity=InventoryRecord.available_quantity + quantity)
            .execution_options(synchronize_session=False)
        )
        await self.db.refresh(record, attribute_names=["available_quantity", "updated_at"])
        return record

    async def apply_delta(
        self,
        record: InventoryRecord,
        delta: int,
        reason: Optional[str] = None,
    ) -> InventoryRecord:
        """Apply a signed stock delta and log the reason in notes. Does not commit."""
        if delta < 0:
            await self.decrement(record, -delta)
        elif delta > 0:
            await self.increment(record, delta)
        record.notes = append_note(record.notes, reason)
        return record

    async def adjust_stock(
        self,
        product_id: int,
        color_id: Optional[int],
        size_id: Optional[int],
        quantity: int,
        reason: Optional[str] = None,
    ) -> InventoryRecord:
        """
        Administrative stock adjustment by signed delta.

        Positive quantity restocks, negative sells. Fails with
        InsufficientStockError if available + quantity < 0.
        """
        try:
            record = await self.require_variant_stock(product_id, color_id, size_id, for_update=True)
            await self.apply_delta(record, quantity, reason)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            f"Adjusted stock record {record.id} by {quantity:+d} "
            f"(now {record.available_quantity}){f': {reason}' if reason else ''}"
        )
        return await self.get_record_by_id(record.id)

    async def update_stock_record(self, record_id: int, data: Dict[str, Any]) -> InventoryRecord:
        """Administrative update of a record by id; only provided fields change."""
        record = await self.get_record_by_id(record_id)

        for field, value in data.items():
            if value is None and field not in NULLABLE_RECORD_FIELDS:
                continue
            setattr(record, field, value)

        await self.db.commit()
        return await self.get_record_by_id(record_id)

    async def delete_stock_record(self, record_id: int) -> None:
        record = await self.get_record_by_id(record_id)
        await self.db.delete(record)
        await self.db.commit()
        logger.info(f"Deleted stock record {record_id}")
