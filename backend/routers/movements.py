from typing import Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from core import items as item_service
from core.auth import current_active_user
from db.database import get_async_session
from db.users import User
from routers.common import Pagination, http_error
from schemas.inventory import MovementType

router = APIRouter()


@router.get("", response_model=Dict)
async def list_movements(
    type: Optional[MovementType] = None,
    pagination: Pagination = Depends(),
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    rows, total = await item_service.list_movements(
        db, user.id, page=pagination.page, limit=pagination.limit, movement_type=type
    )
    out = []
    for movement, item_name, item_sku in rows:
        row = movement.to_schema
        row["item"] = {"id": movement.item_id, "name": item_name, "sku": item_sku} if item_sku else None
        out.append(row)
    return {"movements": out, "total": total}


@router.get("/item/{item_id}", response_model=Dict)
async def list_item_movements(
    item_id: UUID,
    starting_quantity: Optional[int] = Query(None, alias="startingQuantity"),
    pagination: Pagination = Depends(),
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    """
    Newest-first history of one item with the quantity after each movement.

    Pass the previous page's continuationQuantity as startingQuantity when
    requesting the next page.
    """
    try:
        history, total = await item_service.list_movements_for_item(
            db,
            user.id,
            item_id,
            page=pagination.page,
            limit=pagination.limit,
            starting_quantity=starting_quantity,
        )
    except Exception as e:
        raise http_error(e, action="Load movements", item_id=str(item_id))

    movements = []
    for row in history.rows:
        out = row.movement.to_schema
        out["runningQuantity"] = row.running_quantity
        movements.append(out)
    return {
        "movements": movements,
        "total": total,
        "continuationQuantity": history.continuation_quantity,
    }
