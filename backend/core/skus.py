import re
import unicodedata

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db.inventory.item import InventoryItem

MAX_SKU_BASE_LENGTH = 24


def slugify_sku(name: str) -> str:
    """Lowercase, accent-free, dash-separated slug of an item name."""
    s = unicodedata.normalize("NFD", (name or "").lower())
    s = "".join(ch for ch in s if not unicodedata.combining(ch))
    s = re.sub(r"[^a-z0-9]+", "-", s).strip("-")
    s = s[:MAX_SKU_BASE_LENGTH].strip("-")
    return s or "item"


async def generate_unique_sku(db: AsyncSession, name: str) -> str:
    """
    Base slug when free, otherwise base-N with N one above the highest suffix in use.

    SKUs are unique across all owners. A concurrent insert can still take the
    same value; the unique constraint rejects it and the caller reports a conflict.
    """
    base = slugify_sku(name)

    res = await db.execute(
        select(InventoryItem.sku).where(
            (InventoryItem.sku == base) | InventoryItem.sku.like(f"{base}-%")
        )
    )
    taken = set(res.scalars().all())
    if base not in taken:
        return base

    pattern = re.compile(rf"^{re.escape(base)}-(\d+)$")
    max_suffix = 0
    for sku in taken:
        m = pattern.match(sku)
        if m:
            max_suffix = max(max_suffix, int(m.group(1)))
    return f"{base}-{max_suffix + 1}"
