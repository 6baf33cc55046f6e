"""
Delete ALL stock movements and inventory items (and optionally users).

Run from the backend directory:
  PYTHONPATH=. python scripts/clear_collections.py [--include-users]
"""

from __future__ import annotations

import argparse
import asyncio

from sqlalchemy import delete

from db.database import async_session_maker, create_db_and_tables
from db.inventory.item import InventoryItem
from db.inventory.movement import StockMovement
from db.users import User


async def main(include_users: bool = False) -> dict[str, int]:
    await create_db_and_tables()
    async with async_session_maker() as db:
        # Movements first: they are meaningless without their items
        res_movements = await db.execute(delete(StockMovement))
        res_items = await db.execute(delete(InventoryItem))
        res_users = await db.execute(delete(User)) if include_users else None
        await db.commit()

    counts = {
        "stock_movements": int(getattr(res_movements, "rowcount", 0) or 0),
        "inventory_items": int(getattr(res_items, "rowcount", 0) or 0),
    }
    if res_users is not None:
        counts["users"] = int(getattr(res_users, "rowcount", 0) or 0)
    for table, n in counts.items():
        print(f"Deleted {n} rows from '{table}'")
    return counts


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--include-users", action="store_true", help="also delete user accounts")
    args = parser.parse_args()
    asyncio.run(main(include_users=args.include_users))
