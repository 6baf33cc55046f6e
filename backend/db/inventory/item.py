import uuid
from datetime import datetime, timezone

from fastapi_users_db_sqlalchemy.generics import GUID
from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text

from ..database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InventoryItem(Base):
    __tablename__ = "inventory_items"

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    owner_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    sku = Column(String(64), nullable=False, unique=True)
    name = Column(String(100), nullable=False)

    # Only changed through core.ledger.apply_delta (conditional UPDATE ... RETURNING).
    quantity = Column(Integer, nullable=False, default=0)
    low_stock_threshold = Column(Integer, nullable=False, default=0)
    supplier_name = Column(String(100), nullable=True)
    status = Column(Text, nullable=False, default="active")

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_inventory_items_owner_name", "owner_id", "name"),
        Index("ix_inventory_items_owner_quantity", "owner_id", "quantity"),
        Index("ix_inventory_items_owner_created", "owner_id", "created_at"),
        Index("ix_inventory_items_owner_status", "owner_id", "status"),
    )

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.low_stock_threshold

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "quantity": self.quantity,
            "lowStockThreshold": self.low_stock_threshold,
            "supplierName": self.supplier_name,
            "status": self.status,
            "isLowStock": self.is_low_stock,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
