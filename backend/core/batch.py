"""
Multi-step stock operations built on core.ledger.

Sales and returns run line by line through a LedgerBatch. There is no
multi-row transaction: each applied line is remembered so that, when a later
line fails, the earlier ones are compensated in reverse order (negated delta,
then movement delete). Compensation is best-effort and never raises.
"""

import enum
from dataclasses import dataclass, field
from typing import Iterable, List, Optional
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core import ledger
from core.config import settings
from core.ledger import (
    InvalidRequestError,
    ItemNotFoundError,
    ItemUnavailableError,
    MovementNotFoundError,
    NotReversibleError,
)
from db.inventory.movement import StockMovement

logger = structlog.get_logger(__name__)


class BatchState(str, enum.Enum):
    PENDING = "pending"
    COMMITTED = "committed"
    ABORTING = "aborting"
    ABORTED = "aborted"


@dataclass
class BatchLine:
    sku: str
    quantity: int
    reason: Optional[str] = None


@dataclass
class AppliedLine:
    sku: str
    item_id: UUID
    delta: int
    # None while the movement insert is pending (or failed)
    movement_id: Optional[UUID] = None


@dataclass
class LedgerBatch:
    db: AsyncSession
    owner_id: UUID
    movement_type: str  # 'sale' | 'return'
    customer_name: Optional[str] = None
    state: BatchState = BatchState.PENDING
    applied: List[AppliedLine] = field(default_factory=list)

    def __post_init__(self):
        if self.movement_type not in ("sale", "return"):
            raise ValueError(f"Unsupported batch type: {self.movement_type!r}")

    @property
    def sign(self) -> int:
        return -1 if self.movement_type == "sale" else 1

    def unavailable_message(self, sku: str) -> str:
        if self.movement_type == "sale":
            return f"Item with SKU {sku} not found or insufficient stock"
        return f"Item with SKU {sku} not found"

    async def apply(self, line: BatchLine) -> Optional[AppliedLine]:
        """Apply one line; None means the conditional update did not match."""
        delta = self.sign * line.quantity
        item = await ledger.apply_delta(self.db, self.owner_id, delta, sku=line.sku)
        if item is None:
            return None

        # Tracked before the insert so a failed insert still gets its quantity compensated.
        applied = AppliedLine(sku=line.sku, item_id=item.id, delta=delta)
        self.applied.append(applied)

        movement = await ledger.record_movement(
            self.db,
            item_id=item.id,
            owner_id=self.owner_id,
            type=self.movement_type,
            delta=delta,
            customer_name=self.customer_name if self.movement_type == "sale" else None,
            reason=line.reason,
        )
        applied.movement_id = movement.id
        return applied

    async def abort(self, failed_sku: Optional[str] = None) -> None:
        self.state = BatchState.ABORTING
        logger.warning(
            "Rolling back stock batch",
            batch_type=self.movement_type,
            owner_id=str(self.owner_id),
            failed_sku=failed_sku,
            applied_lines=len(self.applied),
        )
        for applied in reversed(self.applied):
            await ledger.undo_delta(self.db, self.owner_id, applied.item_id, applied.delta)
            if applied.movement_id is not None:
                await ledger.discard_movement(self.db, applied.movement_id)
        self.state = BatchState.ABORTED

    async def run(self, lines: Iterable[BatchLine]) -> "LedgerBatch":
        lines = list(lines)
        if not lines:
            raise InvalidRequestError(f"Invalid {self.movement_type} data")
        for line in lines:
            if line.quantity < 1:
                raise InvalidRequestError(f"Quantity for SKU {line.sku} must be a positive integer")

        # Sequential on purpose: a later line for the same SKU must see the earlier change.
        for line in lines:
            try:
                applied = await self.apply(line)
            except Exception:
                await self.abort(failed_sku=line.sku)
                raise
            if applied is None:
                await self.abort(failed_sku=line.sku)
                raise ItemUnavailableError(self.unavailable_message(line.sku), sku=line.sku)

        self.state = BatchState.COMMITTED
        logger.info(
            "Stock batch committed",
            batch_type=self.movement_type,
            owner_id=str(self.owner_id),
            lines=len(self.applied),
        )
        return self


async def record_sale(
    db: AsyncSession,
    owner_id: UUID,
    lines: Iterable[BatchLine],
    customer_name: Optional[str] = None,
) -> LedgerBatch:
    batch = LedgerBatch(db=db, owner_id=owner_id, movement_type="sale", customer_name=customer_name)
    return await batch.run(lines)


async def record_return(db: AsyncSession, owner_id: UUID, lines: Iterable[BatchLine]) -> LedgerBatch:
    batch = LedgerBatch(db=db, owner_id=owner_id, movement_type="return")
    return await batch.run(lines)


def resolve_movement_type(delta: int, requested: Optional[str], infer_purchase: Optional[bool] = None) -> str:
    """
    Movement type for an ad-hoc adjustment.

    An explicit, known type wins. Otherwise a positive delta is a purchase when
    the inference rule is on, and everything else is an adjustment.
    """
    if requested in ledger.MOVEMENT_TYPES:
        return requested
    if infer_purchase is None:
        infer_purchase = settings.infer_purchase_on_positive_adjustment
    if infer_purchase and delta > 0:
        return "purchase"
    return "adjustment"


async def adjust_quantity(
    db: AsyncSession,
    owner_id: UUID,
    item_id: UUID,
    delta: int,
    reason: str,
    type: Optional[str] = None,
) -> StockMovement:
    if not isinstance(delta, int) or isinstance(delta, bool) or delta == 0:
        raise InvalidRequestError("Invalid adjustment data")
    if not (reason or "").strip():
        raise InvalidRequestError("Invalid adjustment data")

    movement_type = resolve_movement_type(delta, type)

    # No sufficiency condition: adjustments may record any non-zero correction.
    item = await ledger.apply_delta(db, owner_id, delta, item_id=item_id, enforce_stock=False)
    if item is None:
        raise ItemNotFoundError(f"Item with id {item_id} not found")

    try:
        return await ledger.record_movement(
            db,
            item_id=item.id,
            owner_id=owner_id,
            type=movement_type,
            delta=delta,
            reason=reason,
        )
    except Exception:
        await ledger.undo_delta(db, owner_id, item.id, delta)
        raise


def _format_sale_date(movement: StockMovement) -> str:
    d = movement.created_at
    return f"{d.month}/{d.day}/{d.year}"


async def reverse_sale_movement(
    db: AsyncSession,
    owner_id: UUID,
    movement_id: UUID,
    reason: Optional[str] = None,
) -> StockMovement:
    """Return the stock of a prior sale movement as a new 'return' movement."""
    res = await db.execute(
        select(StockMovement).where(StockMovement.id == movement_id, StockMovement.owner_id == owner_id)
    )
    original = res.scalar_one_or_none()
    if not original:
        raise MovementNotFoundError("Original movement not found")
    if original.type != "sale":
        raise NotReversibleError("Only sale transactions can be returned")

    # A sale's delta is negative, so the reversal is positive.
    return_quantity = -original.delta
    item = await ledger.apply_delta(db, owner_id, return_quantity, item_id=original.item_id)
    if item is None:
        raise ItemNotFoundError("Associated item not found")

    reason = (reason or "").strip() or f"Return of sale from {_format_sale_date(original)}"
    try:
        return await ledger.record_movement(
            db,
            item_id=item.id,
            owner_id=owner_id,
            type="return",
            delta=return_quantity,
            reason=reason,
            customer_name=original.customer_name,
            reversal_of_id=original.id,
        )
    except Exception:
        await ledger.undo_delta(db, owner_id, item.id, return_quantity)
        raise
