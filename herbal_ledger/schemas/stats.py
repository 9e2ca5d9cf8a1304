# FILE: herbal_ledger/schemas/stats.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Literal

from pydantic import BaseModel

Period = Literal["yesterday", "today"]


class DrugUsage(BaseModel):
    name: str
    grams: Decimal
    amount: Decimal


class DailyStats(BaseModel):
    period: Period
    start: datetime
    end: datetime
    prescription_count: int = 0
    total_grams: Decimal = Decimal("0")
    total_types: int = 0
    total_amount: Decimal = Decimal("0")
    drug_list: List[DrugUsage] = []


class WarningItem(BaseModel):
    name: str
    current_stock: Decimal
    min_stock: Decimal


class WarningStats(BaseModel):
    count: int = 0
    list: List[WarningItem] = []
