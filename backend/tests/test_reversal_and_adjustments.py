import uuid

import pytest
from sqlalchemy import select

from core import batch, ledger
from core.batch import BatchLine, resolve_movement_type
from core.config import settings
from core.ledger import ItemNotFoundError, MovementNotFoundError, NotReversibleError
from db.inventory.item import InventoryItem
from db.inventory.movement import StockMovement


async def _movement(db, owner, movement_type):
    res = await db.execute(
        select(StockMovement).where(StockMovement.owner_id == owner, StockMovement.type == movement_type)
    )
    return res.scalars().first()


async def _quantity(db, item_id):
    return (await db.execute(select(InventoryItem.quantity).where(InventoryItem.id == item_id))).scalar_one()


def test_reversing_a_sale_restores_quantity(run, session_factory, owner, make_item) -> None:
    item = make_item("Desk Lamp", quantity=20)

    async def scenario():
        async with session_factory() as db:
            await batch.record_sale(db, owner, [BatchLine(item.sku, 5)], customer_name="Linus")
            sale = await _movement(db, owner, "sale")
            assert await _quantity(db, item.id) == 15

            reversal = await batch.reverse_sale_movement(db, owner, sale.id)
            return sale, reversal, await _quantity(db, item.id)

    sale, reversal, quantity = run(scenario())
    assert quantity == 20
    assert reversal.type == "return"
    assert reversal.delta == 5
    assert reversal.customer_name == "Linus"
    assert reversal.reversal_of_id == sale.id
    d = sale.created_at
    assert reversal.reason == f"Return of sale from {d.month}/{d.day}/{d.year}"


def test_reversal_uses_caller_reason(run, session_factory, owner, make_item) -> None:
    item = make_item("Desk Lamp", quantity=3)

    async def scenario():
        async with session_factory() as db:
            await batch.record_sale(db, owner, [BatchLine(item.sku, 1)])
            sale = await _movement(db, owner, "sale")
            return await batch.reverse_sale_movement(db, owner, sale.id, reason="Customer changed mind")

    assert run(scenario()).reason == "Customer changed mind"


@pytest.mark.parametrize("movement_type", ["initial", "return", "adjustment", "purchase"])
def test_only_sales_can_be_reversed(run, session_factory, owner, make_item, movement_type) -> None:
    item = make_item("Desk Lamp", quantity=8)

    async def scenario():
        async with session_factory() as db:
            if movement_type == "return":
                await batch.record_return(db, owner, [BatchLine(item.sku, 1)])
            elif movement_type in ("adjustment", "purchase"):
                await batch.adjust_quantity(db, owner, item.id, 2, "recount", type=movement_type)
            target = await _movement(db, owner, movement_type)
            before = await _quantity(db, item.id)
            with pytest.raises(NotReversibleError):
                await batch.reverse_sale_movement(db, owner, target.id)
            return before, await _quantity(db, item.id)

    before, after = run(scenario())
    assert before == after


def test_reversal_of_unknown_or_foreign_movement(run, session_factory, owner, make_item) -> None:
    item = make_item("Desk Lamp", quantity=8)

    async def scenario():
        async with session_factory() as db:
            await batch.record_sale(db, owner, [BatchLine(item.sku, 2)])
            sale = await _movement(db, owner, "sale")
            with pytest.raises(MovementNotFoundError):
                await batch.reverse_sale_movement(db, uuid.uuid4(), sale.id)
            with pytest.raises(MovementNotFoundError):
                await batch.reverse_sale_movement(db, owner, uuid.uuid4())
            return await _quantity(db, item.id)

    assert run(scenario()) == 6


def test_reversal_fails_when_item_was_deleted(run, session_factory, owner, make_item) -> None:
    item = make_item("Desk Lamp", quantity=8)

    async def scenario():
        async with session_factory() as db:
            await batch.record_sale(db, owner, [BatchLine(item.sku, 2)])
            sale = await _movement(db, owner, "sale")
            # Remove only the item so the sale movement survives.
            await db.delete(await db.get(InventoryItem, item.id))
            await db.commit()
            with pytest.raises(ItemNotFoundError, match="Associated item not found"):
                await batch.reverse_sale_movement(db, owner, sale.id)
            return await _movement(db, owner, "return")

    assert run(scenario()) is None


def test_adjustment_type_inference(run, session_factory, owner, make_item) -> None:
    item = make_item("Desk Lamp", quantity=5)

    async def scenario():
        async with session_factory() as db:
            restock = await batch.adjust_quantity(db, owner, item.id, 10, "restock")
            shrink = await batch.adjust_quantity(db, owner, item.id, -3, "broken")
            explicit = await batch.adjust_quantity(db, owner, item.id, 1, "found one", type="return")
            return restock, shrink, explicit, await _quantity(db, item.id)

    restock, shrink, explicit, quantity = run(scenario())
    assert (restock.type, restock.delta) == ("purchase", 10)
    assert (shrink.type, shrink.delta) == ("adjustment", -3)
    assert explicit.type == "return"
    assert quantity == 13


def test_adjustment_does_not_require_sufficient_stock(run, session_factory, owner, make_item) -> None:
    item = make_item("Desk Lamp", quantity=1)

    async def scenario():
        async with session_factory() as db:
            movement = await batch.adjust_quantity(db, owner, item.id, -4, "write-off")
            return movement, await _quantity(db, item.id)

    movement, quantity = run(scenario())
    assert movement.delta == -4
    assert quantity == -3


def test_adjustment_rejects_zero_delta_and_unknown_item(run, session_factory, owner, make_item) -> None:
    item = make_item("Desk Lamp", quantity=1)

    async def zero():
        async with session_factory() as db:
            await batch.adjust_quantity(db, owner, item.id, 0, "noop")

    async def missing():
        async with session_factory() as db:
            await batch.adjust_quantity(db, owner, uuid.uuid4(), 3, "restock")

    with pytest.raises(ledger.InvalidRequestError):
        run(zero())
    with pytest.raises(ItemNotFoundError):
        run(missing())


def test_adjustment_compensates_when_movement_insert_fails(
    run, session_factory, owner, make_item, monkeypatch
) -> None:
    item = make_item("Desk Lamp", quantity=6)

    async def failing_record(db, **kwargs):
        raise RuntimeError("insert failed")

    monkeypatch.setattr(ledger, "record_movement", failing_record)

    async def scenario():
        async with session_factory() as db:
            with pytest.raises(RuntimeError):
                await batch.adjust_quantity(db, owner, item.id, 4, "restock")
            return await _quantity(db, item.id)

    assert run(scenario()) == 6


def test_resolve_movement_type_rule(monkeypatch) -> None:
    assert resolve_movement_type(5, None, infer_purchase=True) == "purchase"
    assert resolve_movement_type(5, None, infer_purchase=False) == "adjustment"
    assert resolve_movement_type(-5, None, infer_purchase=True) == "adjustment"
    assert resolve_movement_type(5, "bogus", infer_purchase=True) == "purchase"
    assert resolve_movement_type(-5, "sale") == "sale"

    monkeypatch.setattr(settings, "infer_purchase_on_positive_adjustment", False)
    assert resolve_movement_type(5, None) == "adjustment"
