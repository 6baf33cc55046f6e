import asyncio
import uuid

import pytest
from sqlalchemy import func, select

from core import ledger
from db.inventory.item import InventoryItem
from db.inventory.movement import StockMovement


def _quantity(run, session_factory, item_id) -> int:
    async def _load():
        async with session_factory() as db:
            return (await db.execute(select(InventoryItem.quantity).where(InventoryItem.id == item_id))).scalar_one()

    return run(_load())


def test_apply_delta_decrease_and_increase(run, session_factory, owner, make_item) -> None:
    item = make_item(quantity=10)

    async def scenario():
        async with session_factory() as db:
            down = await ledger.apply_delta(db, owner, -4, item_id=item.id)
            up = await ledger.apply_delta(db, owner, 7, sku=item.sku)
            return down.quantity, up.quantity

    assert run(scenario()) == (6, 13)
    assert _quantity(run, session_factory, item.id) == 13


def test_apply_delta_not_applied_on_insufficient_stock(run, session_factory, owner, make_item) -> None:
    item = make_item(quantity=3)

    async def scenario():
        async with session_factory() as db:
            return await ledger.apply_delta(db, owner, -4, item_id=item.id)

    assert run(scenario()) is None
    assert _quantity(run, session_factory, item.id) == 3


def test_apply_delta_not_applied_for_other_owner_or_unknown_sku(run, session_factory, make_item) -> None:
    item = make_item(quantity=5)

    async def scenario():
        async with session_factory() as db:
            other_owner = await ledger.apply_delta(db, uuid.uuid4(), 1, item_id=item.id)
            unknown = await ledger.apply_delta(db, item.owner_id, 1, sku="does-not-exist")
            return other_owner, unknown

    assert run(scenario()) == (None, None)
    assert _quantity(run, session_factory, item.id) == 5


def test_apply_delta_without_stock_check_may_go_negative(run, session_factory, owner, make_item) -> None:
    item = make_item(quantity=2)

    async def scenario():
        async with session_factory() as db:
            return await ledger.apply_delta(db, owner, -5, item_id=item.id, enforce_stock=False)

    assert run(scenario()).quantity == -3


def test_apply_delta_requires_exactly_one_key(run, session_factory, owner) -> None:
    async def scenario():
        async with session_factory() as db:
            await ledger.apply_delta(db, owner, 1)

    with pytest.raises(ValueError):
        run(scenario())


def test_concurrent_decreases_never_oversell(run, session_factory, owner, make_item) -> None:
    item = make_item(quantity=10)

    async def sell(qty):
        async with session_factory() as db:
            return await ledger.apply_delta(db, owner, -qty, item_id=item.id)

    async def scenario():
        return await asyncio.gather(*(sell(3) for _ in range(8)))

    results = run(scenario())
    succeeded = [r for r in results if r is not None]
    assert len(succeeded) == 3
    assert results.count(None) == 5
    assert _quantity(run, session_factory, item.id) == 1


def test_record_movement_and_delete(run, session_factory, owner, make_item) -> None:
    item = make_item(quantity=5)

    async def scenario():
        async with session_factory() as db:
            updated = await ledger.apply_delta(db, owner, -2, item_id=item.id)
            movement = await ledger.record_movement(
                db, item_id=updated.id, owner_id=owner, type="sale", delta=-2, customer_name="Ada"
            )
            stored = await db.get(StockMovement, movement.id)
            assert stored.delta == -2
            assert stored.customer_name == "Ada"
            assert stored.created_at is not None

            assert await ledger.delete_movement(db, movement.id) is True
            assert await ledger.delete_movement(db, movement.id) is False
            count = await db.execute(
                select(func.count()).select_from(StockMovement).where(StockMovement.id == movement.id)
            )
            return count.scalar_one()

    assert run(scenario()) == 0


def test_record_movement_rejects_unknown_type(run, session_factory, owner, make_item) -> None:
    item = make_item()

    async def scenario():
        async with session_factory() as db:
            await ledger.record_movement(db, item_id=item.id, owner_id=owner, type="theft", delta=-1)

    with pytest.raises(ValueError):
        run(scenario())
