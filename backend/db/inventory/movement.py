import uuid

from fastapi_users_db_sqlalchemy.generics import GUID
from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text

from ..database import Base
from .item import utcnow


class StockMovement(Base):
    """Append-only ledger row. Never updated; deleted only by compensation or item deletion."""

    __tablename__ = "stock_movements"

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    owner_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    # No FK to inventory_items: item deletion removes movements explicitly.
    item_id = Column(GUID, nullable=False)

    # 'sale' | 'return' | 'adjustment' | 'purchase' | 'initial'
    type = Column(Text, nullable=False)
    delta = Column(Integer, nullable=False)
    customer_name = Column(String(100), nullable=True)
    reason = Column(String(200), nullable=True)
    reversal_of_id = Column(GUID, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_stock_movements_owner_created", "owner_id", "created_at"),
        Index("ix_stock_movements_item_created", "item_id", "created_at"),
        Index("ix_stock_movements_owner_item_created", "owner_id", "item_id", "created_at"),
        Index("ix_stock_movements_owner_type_created", "owner_id", "type", "created_at"),
        Index("ix_stock_movements_owner_customer", "owner_id", "customer_name"),
    )

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "itemId": self.item_id,
            "type": self.type,
            "delta": self.delta,
            "customerName": self.customer_name,
            "reason": self.reason,
            "reversalOfId": self.reversal_of_id,
            "createdAt": self.created_at,
        }
