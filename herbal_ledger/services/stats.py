# FILE: herbal_ledger/services/stats.py
from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Dict, Optional

from herbal_ledger.core.errors import LedgerError, ValidationError
from herbal_ledger.schemas.common import ServiceResult
from herbal_ledger.schemas.stats import DailyStats, DrugUsage, WarningItem, WarningStats
from herbal_ledger.services.drug_registry import DrugRegistry
from herbal_ledger.services.prescription import PrescriptionOrchestrator
from herbal_ledger.services.results import failure
from herbal_ledger.utils.money import D, money2
from herbal_ledger.utils.timezone import period_window

logger = logging.getLogger(__name__)


class StatsService:
    """Read-only summaries derived from the ledgers."""

    def __init__(self, prescriptions: PrescriptionOrchestrator,
                 drugs: DrugRegistry):
        self.prescriptions = prescriptions
        self.drugs = drugs

    async def daily_stats(self, period: str,
                          now: Optional[datetime] = None) -> ServiceResult:
        try:
            if period not in ("yesterday", "today"):
                raise ValidationError("Period must be 'yesterday' or 'today'")
            start, end = period_window(period, now)
            prescriptions = await self.prescriptions.by_time_range(start, end)
        except LedgerError as e:
            return failure(e, "Daily stats", logger)

        per_drug: Dict[str, Dict[str, Decimal]] = {}
        total_grams = Decimal("0")
        total_amount = Decimal("0")

        for prescription in prescriptions:
            for line in prescription["drug_list"] or []:
                grams = D(line.get("grams"))
                amount = D(line.get("amount"))
                bucket = per_drug.setdefault(line["name"], {"grams": Decimal("0"),
                                                            "amount": Decimal("0")})
                bucket["grams"] += grams
                bucket["amount"] += amount
                total_grams += grams
                total_amount += amount

        stats = DailyStats(
            period=period,
            start=start,
            end=end,
            prescription_count=len(prescriptions),
            total_grams=money2(total_grams),
            total_types=len(per_drug),
            total_amount=money2(total_amount),
            drug_list=[
                DrugUsage(name=name, grams=v["grams"], amount=money2(v["amount"]))
                for name, v in per_drug.items()
            ],
        )
        return ServiceResult.ok("Daily stats", stats.model_dump())

    async def warning_stats(self) -> ServiceResult:
        try:
            warnings = await self.drugs.warning_list()
        except LedgerError as e:
            return failure(e, "Warning stats", logger)

        stats = WarningStats(
            count=len(warnings),
            list=[
                WarningItem(name=d["name"],
                            current_stock=money2(d["current_stock"]),
                            min_stock=D(d["min_stock"]))
                for d in warnings
            ],
        )
        return ServiceResult.ok("Warning stats", stats.model_dump())
