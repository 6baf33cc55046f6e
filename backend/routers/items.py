from typing import Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from core import batch, items as item_service
from core.auth import current_active_user
from db.database import get_async_session
from db.users import User
from routers.common import Pagination, http_error
from schemas.inventory import AdjustmentCreate, ItemCreate, ItemSort, ItemUpdate

router = APIRouter()


@router.get("", response_model=Dict)
async def list_items(
    search: Optional[str] = None,
    sort: ItemSort = "quantity",
    pagination: Pagination = Depends(),
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    """
    List the caller's items.

    - search matches name or SKU, case-insensitive.
    - sort: quantity (default), -quantity, name, -created_at.
    """
    items, total = await item_service.list_items(
        db, user.id, page=pagination.page, limit=pagination.limit, search=search, sort=sort
    )
    return {"items": [it.to_schema for it in items], "total": total}


@router.post("", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def create_item(
    payload: ItemCreate,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    try:
        item = await item_service.create_item(
            db,
            user.id,
            name=payload.name,
            quantity=payload.quantity,
            low_stock_threshold=payload.low_stock_threshold,
            supplier_name=payload.supplier_name,
        )
    except Exception as e:
        raise http_error(e, action="Create item", owner_id=str(user.id))
    return {"id": item.id, "sku": item.sku}


@router.get("/{item_id}", response_model=Dict)
async def get_item(
    item_id: UUID,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    try:
        item = await item_service.get_item(db, user.id, item_id)
    except Exception as e:
        raise http_error(e, action="Load item", item_id=str(item_id))
    return item.to_schema


@router.put("/{item_id}", response_model=Dict)
async def update_item(
    item_id: UUID,
    payload: ItemUpdate,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    try:
        item = await item_service.update_item(
            db,
            user.id,
            item_id,
            name=payload.name,
            low_stock_threshold=payload.low_stock_threshold,
            supplier_name=payload.supplier_name,
            status=payload.status,
            clear_supplier="supplier_name" in payload.model_fields_set and payload.supplier_name is None,
        )
    except Exception as e:
        raise http_error(e, action="Update item", item_id=str(item_id))
    return {"message": "Item updated successfully", "item": item.to_schema}


@router.delete("/{item_id}", response_model=Dict)
async def delete_item(
    item_id: UUID,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    try:
        removed = await item_service.delete_item(db, user.id, item_id)
    except Exception as e:
        raise http_error(e, action="Delete item", item_id=str(item_id))
    return {"message": "Item and associated movements deleted successfully", "movementsDeleted": removed}


@router.post("/{item_id}/adjust", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def adjust_item(
    item_id: UUID,
    payload: AdjustmentCreate,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    """
    Record an ad-hoc stock change.

    Without an explicit type, a positive delta is recorded as a purchase and a
    negative one as an adjustment (see INFER_PURCHASE_ON_POSITIVE_ADJUSTMENT).
    """
    try:
        movement = await batch.adjust_quantity(
            db, user.id, item_id, payload.delta, payload.reason, type=payload.type
        )
    except Exception as e:
        raise http_error(e, action="Record adjustment", item_id=str(item_id))
    return {"message": "Adjustment recorded successfully", "movement": movement.to_schema}
