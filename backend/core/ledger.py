"""
Quantity mutation and movement recording.

The store only guarantees atomicity for a single row, so every function here
issues one statement and commits it on its own:

- apply_delta: conditional UPDATE ... RETURNING; the only code path that changes
  InventoryItem.quantity.
- record_movement: appends one StockMovement after apply_delta confirmed the change.
- delete_movement: removes one movement (compensation / cascade only).
"""

from typing import Optional
from uuid import UUID

import structlog
from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession

from db.inventory.item import InventoryItem
from db.inventory.movement import StockMovement

logger = structlog.get_logger(__name__)

MOVEMENT_TYPES = ("sale", "return", "adjustment", "purchase", "initial")


class LedgerError(Exception):
    """Domain error with a client-facing message."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidRequestError(LedgerError, ValueError):
    status_code = 400


class ItemUnavailableError(LedgerError):
    """A batch line could not be applied: unknown SKU for this owner or not enough stock."""

    status_code = 422

    def __init__(self, message: str, sku: Optional[str] = None):
        super().__init__(message)
        self.sku = sku


class ItemNotFoundError(LedgerError):
    status_code = 404


class MovementNotFoundError(LedgerError):
    status_code = 404


class NotReversibleError(LedgerError):
    status_code = 400


class DuplicateSkuError(LedgerError):
    status_code = 409


async def apply_delta(
    db: AsyncSession,
    owner_id: UUID,
    delta: int,
    *,
    item_id: Optional[UUID] = None,
    sku: Optional[str] = None,
    enforce_stock: bool = True,
) -> Optional[InventoryItem]:
    """
    Add `delta` to one item's quantity in a single conditional UPDATE.

    The item is matched by id or SKU, always scoped to `owner_id`. For a negative
    delta with `enforce_stock`, the row must also satisfy quantity >= -delta.
    Returns the updated item, or None when no row matched (missing item, other
    owner, or insufficient stock).
    """
    if (item_id is None) == (sku is None):
        raise ValueError("apply_delta needs exactly one of item_id or sku")

    stmt = update(InventoryItem).where(InventoryItem.owner_id == owner_id)
    if item_id is not None:
        stmt = stmt.where(InventoryItem.id == item_id)
    else:
        stmt = stmt.where(InventoryItem.sku == sku)
    if enforce_stock and delta < 0:
        stmt = stmt.where(InventoryItem.quantity >= -delta)

    stmt = (
        stmt.values(quantity=InventoryItem.quantity + delta)
        .returning(InventoryItem)
        .execution_options(populate_existing=True)
    )

    try:
        item = (await db.execute(stmt)).scalar_one_or_none()
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return item


async def record_movement(
    db: AsyncSession,
    *,
    item_id: UUID,
    owner_id: UUID,
    type: str,
    delta: int,
    customer_name: Optional[str] = None,
    reason: Optional[str] = None,
    reversal_of_id: Optional[UUID] = None,
) -> StockMovement:
    """Append one ledger row. Call only after apply_delta returned the updated item."""
    if type not in MOVEMENT_TYPES:
        raise ValueError(f"Unknown movement type: {type!r}")

    movement = StockMovement(
        item_id=item_id,
        owner_id=owner_id,
        type=type,
        delta=delta,
        customer_name=customer_name,
        reason=reason,
        reversal_of_id=reversal_of_id,
    )
    db.add(movement)
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return movement


async def delete_movement(db: AsyncSession, movement_id: UUID) -> bool:
    try:
        res = await db.execute(delete(StockMovement).where(StockMovement.id == movement_id))
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return bool(res.rowcount)


async def undo_delta(db: AsyncSession, owner_id: UUID, item_id: UUID, delta: int) -> None:
    """
    Best-effort compensation: apply -delta to the item without a stock condition.

    Relative, so it stays correct if another request touched the item in between.
    Failures are logged and swallowed.
    """
    try:
        item = await apply_delta(db, owner_id, -delta, item_id=item_id, enforce_stock=False)
    except Exception:
        logger.exception(
            "Compensating quantity update failed",
            item_id=str(item_id),
            owner_id=str(owner_id),
            delta=-delta,
        )
        return
    if item is None:
        logger.warning(
            "Compensating quantity update matched no item",
            item_id=str(item_id),
            owner_id=str(owner_id),
            delta=-delta,
        )


async def discard_movement(db: AsyncSession, movement_id: UUID) -> None:
    """Best-effort compensating delete; failures are logged and swallowed."""
    try:
        await delete_movement(db, movement_id)
    except Exception:
        logger.exception("Compensating movement delete failed", movement_id=str(movement_id))
