"""Item lifecycle and ledger queries, all scoped to one owner."""

from typing import List, Optional, Tuple
from uuid import UUID

import structlog
from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core import ledger
from core.ledger import DuplicateSkuError, ItemNotFoundError
from core.running_balance import RunningBalancePage, project
from core.skus import generate_unique_sku
from db.inventory.item import InventoryItem
from db.inventory.movement import StockMovement

logger = structlog.get_logger(__name__)

ITEM_SORTS = {
    "quantity": InventoryItem.quantity.asc(),
    "-quantity": InventoryItem.quantity.desc(),
    "name": func.lower(InventoryItem.name).asc(),
    "-created_at": InventoryItem.created_at.desc(),
}


def _offset(page: int, limit: int) -> int:
    return (max(page, 1) - 1) * limit


async def create_item(
    db: AsyncSession,
    owner_id: UUID,
    name: str,
    quantity: int,
    low_stock_threshold: int = 0,
    supplier_name: Optional[str] = None,
) -> InventoryItem:
    """Insert an item, then its 'initial' movement carrying the opening quantity."""
    name = (name or "").strip()
    if not name:
        raise ledger.InvalidRequestError("Missing required fields")
    if quantity < 0 or low_stock_threshold < 0:
        raise ledger.InvalidRequestError("quantity and lowStockThreshold must be >= 0")

    sku = await generate_unique_sku(db, name)
    item = InventoryItem(
        owner_id=owner_id,
        sku=sku,
        name=name,
        quantity=quantity,
        low_stock_threshold=low_stock_threshold,
        supplier_name=supplier_name,
        status="active",
    )
    db.add(item)
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise DuplicateSkuError("SKU already exists") from exc

    try:
        await ledger.record_movement(
            db,
            item_id=item.id,
            owner_id=owner_id,
            type="initial",
            delta=quantity,
            reason="Initial stock",
        )
    except Exception:
        # No ledger row for the opening stock: drop the item rather than keep unexplained quantity.
        try:
            await db.execute(delete(InventoryItem).where(InventoryItem.id == item.id))
            await db.commit()
        except Exception:
            await db.rollback()
            logger.exception("Removing item after failed initial movement failed", item_id=str(item.id))
        raise

    logger.info("Item created", item_id=str(item.id), sku=sku, owner_id=str(owner_id), quantity=quantity)
    return item


async def get_item(db: AsyncSession, owner_id: UUID, item_id: UUID) -> InventoryItem:
    res = await db.execute(
        select(InventoryItem).where(InventoryItem.id == item_id, InventoryItem.owner_id == owner_id)
    )
    item = res.scalar_one_or_none()
    if not item:
        raise ItemNotFoundError("Item not found")
    return item


async def update_item(
    db: AsyncSession,
    owner_id: UUID,
    item_id: UUID,
    *,
    name: Optional[str] = None,
    low_stock_threshold: Optional[int] = None,
    supplier_name: Optional[str] = None,
    status: Optional[str] = None,
    clear_supplier: bool = False,
) -> InventoryItem:
    """Edit descriptive fields. Quantity is not editable here; use adjustments."""
    item = await get_item(db, owner_id, item_id)

    if name is not None:
        name = name.strip()
        if not name:
            raise ledger.InvalidRequestError("name cannot be empty")
        item.name = name
    if low_stock_threshold is not None:
        if low_stock_threshold < 0:
            raise ledger.InvalidRequestError("lowStockThreshold must be >= 0")
        item.low_stock_threshold = low_stock_threshold
    if supplier_name is not None or clear_supplier:
        item.supplier_name = supplier_name
    if status is not None:
        item.status = status

    await db.commit()
    await db.refresh(item)
    return item


async def delete_item(db: AsyncSession, owner_id: UUID, item_id: UUID) -> int:
    """
    Delete the item, then every movement referencing it. Not atomic: if the second
    step fails the leftover movements stay as orphans listed without item details.
    Returns the number of movements removed.
    """
    try:
        res = await db.execute(
            delete(InventoryItem).where(InventoryItem.id == item_id, InventoryItem.owner_id == owner_id)
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    if not res.rowcount:
        raise ItemNotFoundError("Item not found")

    try:
        mres = await db.execute(
            delete(StockMovement).where(StockMovement.item_id == item_id, StockMovement.owner_id == owner_id)
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    removed = int(mres.rowcount or 0)
    logger.info("Item deleted", item_id=str(item_id), owner_id=str(owner_id), movements_removed=removed)
    return removed


async def list_items(
    db: AsyncSession,
    owner_id: UUID,
    *,
    page: int = 1,
    limit: int = 10,
    search: Optional[str] = None,
    sort: str = "quantity",
) -> Tuple[List[InventoryItem], int]:
    conditions = [InventoryItem.owner_id == owner_id]
    q = (search or "").strip().lower()
    if q:
        like = f"%{q}%"
        conditions.append(or_(func.lower(InventoryItem.name).like(like), func.lower(InventoryItem.sku).like(like)))

    order = ITEM_SORTS.get(sort, ITEM_SORTS["quantity"])
    res = await db.execute(
        select(InventoryItem)
        .where(*conditions)
        .order_by(order, InventoryItem.id)
        .offset(_offset(page, limit))
        .limit(limit)
    )
    items = list(res.scalars().all())
    total = (await db.execute(select(func.count()).select_from(InventoryItem).where(*conditions))).scalar_one()
    return items, int(total)


async def list_movements(
    db: AsyncSession,
    owner_id: UUID,
    *,
    page: int = 1,
    limit: int = 10,
    movement_type: Optional[str] = None,
) -> Tuple[list, int]:
    """Newest-first movements with the item's name and SKU (None when the item is gone)."""
    conditions = [StockMovement.owner_id == owner_id]
    if movement_type:
        conditions.append(StockMovement.type == movement_type)

    res = await db.execute(
        select(StockMovement, InventoryItem.name, InventoryItem.sku)
        .outerjoin(InventoryItem, InventoryItem.id == StockMovement.item_id)
        .where(*conditions)
        .order_by(StockMovement.created_at.desc())
        .offset(_offset(page, limit))
        .limit(limit)
    )
    rows = res.all()
    total = (await db.execute(select(func.count()).select_from(StockMovement).where(*conditions))).scalar_one()
    return rows, int(total)


async def list_movements_for_item(
    db: AsyncSession,
    owner_id: UUID,
    item_id: UUID,
    *,
    page: int = 1,
    limit: int = 10,
    starting_quantity: Optional[int] = None,
) -> Tuple[RunningBalancePage, int]:
    """
    One newest-first page of an item's history annotated with running quantities.

    `starting_quantity` is the previous page's continuation quantity. Without it
    the anchor is the live quantity, walked back over every newer movement when
    page > 1.
    """
    conditions = [StockMovement.item_id == item_id, StockMovement.owner_id == owner_id]
    skip = _offset(page, limit)

    res = await db.execute(
        select(StockMovement)
        .where(*conditions)
        .order_by(StockMovement.created_at.desc())
        .offset(skip)
        .limit(limit)
    )
    movements = list(res.scalars().all())
    total = (await db.execute(select(func.count()).select_from(StockMovement).where(*conditions))).scalar_one()

    if starting_quantity is not None:
        anchor = int(starting_quantity)
    else:
        item = await get_item(db, owner_id, item_id)
        anchor = int(item.quantity)
        if skip:
            newer = (
                select(StockMovement.delta)
                .where(*conditions)
                .order_by(StockMovement.created_at.desc())
                .limit(skip)
                .subquery()
            )
            newer_sum = (await db.execute(select(func.coalesce(func.sum(newer.c.delta), 0)))).scalar_one()
            anchor -= int(newer_sum)

    return project(movements, anchor), int(total)
