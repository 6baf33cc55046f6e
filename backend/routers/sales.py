from typing import Dict

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from core import batch
from core.auth import current_active_user
from db.database import get_async_session
from db.users import User
from routers.common import http_error
from schemas.inventory import SaleCreate

router = APIRouter()


@router.post("", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def record_sale(
    payload: SaleCreate,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    """
    Sell one or more SKUs.

    Lines are applied in order; if one cannot be applied (unknown SKU or not
    enough stock) the earlier lines are rolled back and 422 names the SKU.
    """
    lines = [batch.BatchLine(sku=line.sku, quantity=line.quantity) for line in payload.items]
    try:
        await batch.record_sale(db, user.id, lines, customer_name=payload.customer_name)
    except Exception as e:
        raise http_error(e, action="Record sale", owner_id=str(user.id))
    return {"message": "Sale recorded successfully"}
