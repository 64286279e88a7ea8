"""API endpoints for the inventory ledger."""
from typing import Optional, List

from fastapi import APIRouter, HTTPException, status, Query

from storefront.api.deps import DB, http_error
from storefront.models.inventory import InventoryRecord
from storefront.schemas.inventory import (
    ColorInfo,
    SizeInfo,
    VariantInfo,
    VariantKey,
    InventoryRecordCreate,
    InventoryRecordUpdate,
    InventoryRecordResponse,
    StockAdjustment,
    StockAdjustmentResponse,
    BulkInventoryCreate,
    BulkInventoryResponse,
)
from storefront.services.inventory_service import InventoryService
from storefront.core.exceptions import StorefrontError


router = APIRouter(tags=["Inventory"])


def _build_record_response(record: InventoryRecord) -> InventoryRecordResponse:
    """Build a record response with color/size details from the loaded relationships."""
    response = InventoryRecordResponse.model_validate(record)
    response.variant_info = VariantInfo(
        color=ColorInfo.model_validate(record.color) if record.color else None,
        size=SizeInfo.model_validate(record.size) if record.size else None,
    )
    return response


# ==================== CREATE ====================

@router.post(
    "",
    response_model=InventoryRecordResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_inventory_record(data: InventoryRecordCreate, db: DB):
    """Create the stock record for one variant."""
    try:
        record = await InventoryService(db).create_variant_stock(data)
    except StorefrontError as e:
        raise http_error(e)
    return _build_record_response(record)


@router.post(
    "/product/{product_id}/bulk",
    response_model=BulkInventoryResponse,
    status_code=status.HTTP_201_CREATED,
)
async def bulk_create_inventory(product_id: int, data: BulkInventoryCreate, db: DB):
    """
    Create stock records for many variants of a product.

    Rejected variants are listed in `errors`; the rest are created.
    """
    try:
        created, errors = await InventoryService(db).bulk_create_variant_stock(
            product_id, data.variant_quantities
        )
    except StorefrontError as e:
        raise http_error(e)

    return BulkInventoryResponse(
        created=len(created),
        errors_count=len(errors),
        created_records=[_build_record_response(r) for r in created],
        errors=errors or None,
    )


# ==================== READ ====================

@router.get("/product/{product_id}", response_model=List[InventoryRecordResponse])
async def get_product_inventory(product_id: int, db: DB):
    """Active stock records of a product, by color then size."""
    try:
        records = await InventoryService(db).list_product_stock(product_id)
    except StorefrontError as e:
        raise http_error(e)
    return [_build_record_response(r) for r in records]


@router.get(
    "/product/{product_id}/color/{color_id}/size/{size_id}",
    response_model=InventoryRecordResponse,
)
async def get_variant_inventory(product_id: int, color_id: int, size_id: int, db: DB):
    """Stock record of one fully specified variant."""
    try:
        record = await InventoryService(db).require_variant_stock(product_id, color_id, size_id)
    except StorefrontError as e:
        raise http_error(e)
    return _build_record_response(record)


@router.post("/check", response_model=InventoryRecordResponse)
async def check_inventory(data: VariantKey, db: DB):
    """Look up the stock record of an exact variant key."""
    try:
        record = await InventoryService(db).require_variant_stock(
            data.product_id, data.color_id, data.size_id
        )
    except StorefrontError as e:
        raise http_error(e)
    return _build_record_response(record)


@router.get("/low-stock", response_model=List[InventoryRecordResponse])
async def get_low_stock(
    db: DB,
    threshold: Optional[int] = Query(None, ge=0),
):
    """
    Active records running low.

    Without a threshold, records at zero or at/below the configured
    default threshold are returned.
    """
    records = await InventoryService(db).list_low_stock(threshold)
    return [_build_record_response(r) for r in records]


@router.get("/out-of-stock", response_model=List[InventoryRecordResponse])
async def get_out_of_stock(db: DB):
    records = await InventoryService(db).list_out_of_stock()
    return [_build_record_response(r) for r in records]


# ==================== UPDATE ====================

@router.patch("/adjust", response_model=StockAdjustmentResponse)
async def adjust_inventory(data: StockAdjustment, db: DB):
    """
    Adjust stock by a signed quantity.

    Positive restocks, negative sells. The reason is appended to the
    record's notes.
    """
    try:
        record = await InventoryService(db).adjust_stock(
            data.product_id,
            data.color_id,
            data.size_id,
            data.quantity,
            reason=data.reason,
        )
    except StorefrontError as e:
        raise http_error(e)

    return StockAdjustmentResponse(
        **_build_record_response(record).model_dump(),
        quantity_change=data.quantity,
    )


@router.patch("/{record_id}", response_model=InventoryRecordResponse)
async def update_inventory_record(record_id: int, data: InventoryRecordUpdate, db: DB):
    update_data = data.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No fields to update"
        )

    try:
        record = await InventoryService(db).update_stock_record(record_id, update_data)
    except StorefrontError as e:
        raise http_error(e)
    return _build_record_response(record)


@router.delete("/{record_id}")
async def delete_inventory_record(record_id: int, db: DB):
    try:
        await InventoryService(db).delete_stock_record(record_id)
    except StorefrontError as e:
        raise http_error(e)
    return {"message": "Quantity record has been deleted successfully"}
