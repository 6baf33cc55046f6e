from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


MovementType = Literal["sale", "return", "adjustment", "purchase", "initial"]
ItemSort = Literal["quantity", "-quantity", "name", "-created_at"]


class CamelModel(BaseModel):
    # Wire format is camelCase (lowStockThreshold, customerName, ...)
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _strip_nullable(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    return v or None


class ItemCreate(CamelModel):
    name: str = Field(..., max_length=100)
    quantity: int = Field(..., ge=0)
    low_stock_threshold: int = Field(..., ge=0)
    supplier_name: Optional[str] = Field(None, max_length=100)

    @field_validator("name")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("field is required")
        return v

    @field_validator("supplier_name")
    @classmethod
    def _supplier(cls, v: Optional[str]) -> Optional[str]:
        return _strip_nullable(v)


class ItemUpdate(CamelModel):
    name: str = Field(..., max_length=100)
    low_stock_threshold: int = Field(..., ge=0)
    supplier_name: Optional[str] = Field(None, max_length=100)
    status: Optional[str] = Field(None, max_length=32)

    @field_validator("name")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("cannot be empty")
        return v

    @field_validator("supplier_name", "status")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        return _strip_nullable(v)


class SaleLineIn(CamelModel):
    sku: str
    quantity: int = Field(..., ge=1)

    @field_validator("sku")
    @classmethod
    def _sku(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("sku is required")
        return v


class SaleCreate(CamelModel):
    items: List[SaleLineIn] = Field(..., min_length=1)
    customer_name: Optional[str] = Field(None, max_length=100)

    @field_validator("customer_name")
    @classmethod
    def _customer(cls, v: Optional[str]) -> Optional[str]:
        return _strip_nullable(v)


class ReturnLineIn(SaleLineIn):
    reason: Optional[str] = Field(None, max_length=200)

    @field_validator("reason")
    @classmethod
    def _reason(cls, v: Optional[str]) -> Optional[str]:
        return _strip_nullable(v)


class ReturnCreate(CamelModel):
    items: List[ReturnLineIn] = Field(..., min_length=1)


class ReturnFromMovement(CamelModel):
    reason: Optional[str] = Field(None, max_length=200)

    @field_validator("reason")
    @classmethod
    def _reason(cls, v: Optional[str]) -> Optional[str]:
        return _strip_nullable(v)


class AdjustmentCreate(CamelModel):
    delta: int
    reason: str = Field(..., min_length=1, max_length=200)
    type: Optional[MovementType] = None

    @field_validator("delta")
    @classmethod
    def _non_zero(cls, v: int) -> int:
        if v == 0:
            raise ValueError("delta must be a non-zero integer")
        return v

    @field_validator("reason")
    @classmethod
    def _reason(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("reason is required")
        return v
