# FILE: herbal_ledger/services/stock_in.py
from __future__ import annotations

import logging
from decimal import Decimal
from typing import List, Optional

from herbal_ledger.core.errors import LedgerError, NotFoundError, ValidationError
from herbal_ledger.db.ledger_store import LedgerStore, Record
from herbal_ledger.schemas.common import ServiceResult
from herbal_ledger.services.drug_registry import DrugRegistry
from herbal_ledger.services.results import failure
from herbal_ledger.services.source_registry import SourceRegistry
from herbal_ledger.services.validators import parse_id, parse_number
from herbal_ledger.utils.money import D, money2
from herbal_ledger.utils.timezone import now_local

logger = logging.getLogger(__name__)


def _fifo_key(r: Record):
    return (r["in_time"], r["id"])


def _check_name(given: Optional[str], record: Record, label: str) -> None:
    # the stored name is always the registry one; a caller copy must agree
    if given and given.strip() != record["name"]:
        raise ValidationError(
            f"{label} name '{given}' does not match {label.lower()} {record['id']} "
            f"('{record['name']}')")


class StockInLedger:
    collection = "stock_ins"

    def __init__(self, store: LedgerStore, drugs: DrugRegistry,
                 sources: SourceRegistry):
        self.store = store
        self.drugs = drugs
        self.sources = sources

    async def record(
        self,
        drug_id: Optional[int],
        drug_name: Optional[str],
        source_id: Optional[int],
        source_name: Optional[str],
        grams,
        total_amount,
        remark: Optional[str] = "",
    ) -> ServiceResult:
        try:
            if not drug_id or not source_id or grams in (None, "") or total_amount in (None, ""):
                raise ValidationError("Drug, source, grams and total amount are required")

            grams = parse_number(grams, "Grams")
            amount = parse_number(total_amount, "Total amount")
            if grams <= 0 or amount <= 0:
                raise ValidationError("Grams and total amount must be greater than 0")

            drug = await self.drugs.get_by_id(parse_id(drug_id, "Drug"))
            if not drug:
                raise NotFoundError(f"Drug {drug_id} not found")
            source = await self.sources.get_by_id(parse_id(source_id, "Source"))
            if not source:
                raise NotFoundError(f"Source {source_id} not found")
            _check_name(drug_name, drug, "Drug")
            _check_name(source_name, source, "Source")

            record = await self.store.create(self.collection, {
                "drug_id": drug["id"],
                "drug_name": drug["name"],
                "source_id": source["id"],
                "source_name": source["name"],
                "grams": grams,
                "total_amount": money2(amount),
                "unit_price": money2(amount / grams),
                "remaining_grams": grams,
                "in_time": now_local(),
                "remark": (remark or "").strip(),
            })
        except LedgerError as e:
            return failure(e, "Stock in", logger)

        logger.info("Stock in id=%s drug=%s grams=%s unit_price=%s",
                    record["id"], record["drug_name"], record["grams"],
                    record["unit_price"])
        return ServiceResult.ok("Stock in recorded", record)

    async def record_for(self, drug_name: str, source_name: str, grams,
                         total_amount, remark: Optional[str] = "") -> ServiceResult:
        """Same as record() but resolves drug and source by name."""
        try:
            drug = await self.drugs.get_by_name(drug_name)
            if not drug:
                raise NotFoundError(f"Drug '{drug_name}' not found")
            source = await self.sources.get_by_name(source_name)
            if not source:
                raise NotFoundError(f"Source '{source_name}' not found")
        except LedgerError as e:
            return failure(e, "Stock in", logger)

        return await self.record(drug["id"], drug["name"], source["id"],
                                 source["name"], grams, total_amount, remark)

    async def by_drug_oldest_first(self, drug_name: str) -> List[Record]:
        rows = await self.store.scan(self.collection,
                                     lambda r: r["drug_name"] == drug_name)
        return sorted(rows, key=_fifo_key)

    async def all(self) -> List[Record]:
        return sorted(await self.store.get_all(self.collection),
                      key=_fifo_key, reverse=True)

    # -------------------------
    # Batch balance (FIFO depletion)
    # -------------------------
    async def _shift_balance(self, stock_in_id: int, delta: Decimal) -> Record:
        batch = await self.store.get_by_id(self.collection, stock_in_id)
        if not batch:
            raise NotFoundError(f"Stock-in {stock_in_id} not found")

        balance = D(batch["remaining_grams"]) + delta
        if balance < 0 or balance > D(batch["grams"]):
            raise ValidationError(
                f"Stock-in {stock_in_id} balance would become {balance}g "
                f"(batch size {batch['grams']}g)")
        batch["remaining_grams"] = balance
        return await self.store.update(self.collection, batch)

    async def draw_down(self, stock_in_id: int, grams: Decimal) -> Record:
        return await self._shift_balance(stock_in_id, -D(grams))

    async def give_back(self, stock_in_id: int, grams: Decimal) -> Record:
        return await self._shift_balance(stock_in_id, D(grams))
