# FILE: herbal_ledger/schemas/inventory.py
from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from herbal_ledger.models import OutType, StorageType

# ---------- Sources ----------


class SourceCreate(BaseModel):
    name: str
    remark: Optional[str] = ""


class SourceUpdate(BaseModel):
    name: Optional[str] = None
    remark: Optional[str] = None


# ---------- Drugs ----------


class DrugCreate(BaseModel):
    name: str
    storage_type: StorageType = StorageType.SEALED
    min_stock: Decimal = Decimal("100")
    default_estimate: Decimal = Decimal("10")


# ---------- Stock in / out ----------


class StockInCreate(BaseModel):
    drug_id: int
    source_id: int
    grams: Decimal
    total_amount: Decimal
    drug_name: Optional[str] = None
    source_name: Optional[str] = None
    remark: Optional[str] = ""


class StockOutCreate(BaseModel):
    drug_name: str
    out_type: OutType
    grams: Decimal
    remark: Optional[str] = ""


class StockOutUpdate(BaseModel):
    remark: Optional[str] = None
    out_type: Optional[OutType] = None


class CostEstimateIn(BaseModel):
    drug_name: str
    grams: Decimal = Field(..., description="Grams to release")
