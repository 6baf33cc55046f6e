from typing import Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from core import batch
from core.auth import current_active_user
from db.database import get_async_session
from db.users import User
from routers.common import http_error
from schemas.inventory import ReturnCreate, ReturnFromMovement

router = APIRouter()


@router.post("", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def record_return(
    payload: ReturnCreate,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    lines = [batch.BatchLine(sku=line.sku, quantity=line.quantity, reason=line.reason) for line in payload.items]
    try:
        await batch.record_return(db, user.id, lines)
    except Exception as e:
        raise http_error(e, action="Record return", owner_id=str(user.id))
    return {"message": "Return recorded successfully"}


@router.post("/from-movement/{movement_id}", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def return_from_movement(
    movement_id: UUID,
    payload: Optional[ReturnFromMovement] = Body(None),
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    """Return the full quantity of a prior sale movement."""
    reason = payload.reason if payload else None
    try:
        movement = await batch.reverse_sale_movement(db, user.id, movement_id, reason=reason)
    except Exception as e:
        raise http_error(e, action="Record return", movement_id=str(movement_id))
    return {"message": "Return recorded successfully", "movement": movement.to_schema}
