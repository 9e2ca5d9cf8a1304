# FILE: herbal_ledger/services/stock_out.py
from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from herbal_ledger.core.errors import (
    CapacityError,
    LedgerError,
    NotFoundError,
    ValidationError,
)
from herbal_ledger.db.ledger_store import LedgerStore, Record
from herbal_ledger.models import OutType
from herbal_ledger.schemas.common import ServiceResult
from herbal_ledger.services.drug_registry import DrugRegistry
from herbal_ledger.services.results import failure
from herbal_ledger.services.stock_in import StockInLedger
from herbal_ledger.services.validators import parse_number
from herbal_ledger.utils.money import D, money2
from herbal_ledger.utils.timezone import now_local

logger = logging.getLogger(__name__)

# Which release kinds feed the drug's running usage estimate
TRACKS_USAGE: Dict[OutType, bool] = {
    OutType.PRESCRIPTION_USE: True,
    OutType.VOID: False,
    OutType.PROCESSING_LOSS: False,
}


def parse_out_type(value) -> OutType:
    try:
        return OutType(value)
    except ValueError:
        allowed = ", ".join(t.value for t in OutType)
        raise ValidationError(f"Out type must be one of: {allowed}") from None


class StockOutLedger:
    """
    Stock-out records and the FIFO cost engine behind them.

    Each stock-in keeps a remaining_grams balance. Costing walks the
    balances oldest first; a release persists the draw-down and keeps
    the per-batch breakdown on the stock-out (``allocations``) so the
    release can be undone exactly.
    """

    collection = "stock_outs"

    def __init__(self, store: LedgerStore, drugs: DrugRegistry,
                 stock_ins: StockInLedger):
        self.store = store
        self.drugs = drugs
        self.stock_ins = stock_ins

    # -------------------------
    # FIFO engine
    # -------------------------
    async def _allocate(self, drug_name: str,
                        out_grams) -> Tuple[Decimal, List[Dict[str, Any]]]:
        grams = parse_number(out_grams, "Out grams")
        if grams <= 0:
            raise ValidationError("Out grams must be greater than 0")

        batches = await self.stock_ins.by_drug_oldest_first(drug_name)
        if not batches:
            raise NotFoundError(f"No stock-in records for {drug_name}; cannot release")

        on_hand = await self.drugs.current_stock(drug_name)
        if on_hand < grams:
            raise CapacityError(
                f"Insufficient stock for {drug_name}: {on_hand}g on hand, "
                f"{grams}g requested")

        remaining = grams
        total = Decimal("0")
        allocations: List[Dict[str, Any]] = []

        for batch in batches:
            if remaining <= 0:
                break

            available = D(batch["remaining_grams"])
            if available <= 0:
                continue

            use = min(remaining, available)
            amount = money2(use * D(batch["unit_price"]))
            allocations.append({
                "stock_in_id": batch["id"],
                "grams": float(use),
                "unit_price": float(batch["unit_price"]),
                "amount": float(amount),
            })
            total += amount
            remaining -= use

        if remaining > 0:
            # batch balances disagree with the ledger totals
            raise CapacityError(
                f"Insufficient batch balance for {drug_name}: short by {remaining}g")

        return money2(total), allocations

    async def estimate_cost(self, drug_name: str, out_grams) -> ServiceResult:
        try:
            total, allocations = await self._allocate(drug_name, out_grams)
        except LedgerError as e:
            return failure(e, "Estimate cost", logger)

        return ServiceResult.ok("Cost calculated", {
            "drug_name": drug_name,
            "grams": D(out_grams),
            "total_amount": total,
            "allocations": allocations,
        })

    # -------------------------
    # Release / undo
    # -------------------------
    async def release(
        self,
        drug_name: Optional[str],
        out_type,
        grams,
        prescription_id: Optional[int] = None,
        remark: Optional[str] = "",
    ) -> ServiceResult:
        drawn: List[Dict[str, Any]] = []
        try:
            if not drug_name or not out_type or grams in (None, "", 0):
                raise ValidationError("Drug name, out type and grams are required")
            kind = parse_out_type(out_type)

            total, allocations = await self._allocate(drug_name, grams)

            drug = await self.drugs.get_by_name(drug_name)
            if not drug:
                raise NotFoundError(f"Drug '{drug_name}' not found")

            # batches first, record last: a failure leaves no stock-out behind
            for alloc in allocations:
                await self.stock_ins.draw_down(alloc["stock_in_id"], D(alloc["grams"]))
                drawn.append(alloc)

            record = await self.store.create(self.collection, {
                "drug_id": drug["id"],
                "drug_name": drug["name"],
                "out_type": kind.value,
                "grams": parse_number(grams, "Grams"),
                "total_amount": total,
                "allocations": allocations,
                "out_time": now_local(),
                "prescription_id": prescription_id
                if kind is OutType.PRESCRIPTION_USE else None,
                "remark": (remark or "").strip(),
            })
        except LedgerError as e:
            result = failure(e, "Stock out", logger)
            note = await self._give_back(drawn)
            return ServiceResult.fail(f"{result.message}{note}")

        if TRACKS_USAGE[kind]:
            usage = await self.drugs.record_use(drug["name"], record["grams"])
            if not usage.success:
                logger.warning("Stock out id=%s kept but usage not updated: %s",
                               record["id"], usage.message)

        logger.info("Stock out id=%s drug=%s type=%s grams=%s amount=%s",
                    record["id"], record["drug_name"], record["out_type"],
                    record["grams"], record["total_amount"])
        return ServiceResult.ok("Stock out recorded", record)

    async def _give_back(self, drawn: List[Dict[str, Any]]) -> str:
        """Return grams already drawn by a release that did not complete."""
        problems: List[str] = []
        for alloc in reversed(drawn):
            try:
                await self.stock_ins.give_back(alloc["stock_in_id"], D(alloc["grams"]))
            except LedgerError as e:
                logger.exception("Could not return %sg to stock-in %s",
                                 alloc["grams"], alloc["stock_in_id"])
                problems.append(f"stock-in {alloc['stock_in_id']}: {e}")
        if problems:
            return f" (batch restore incomplete: {'; '.join(problems)})"
        return ""

    async def undo(self, stock_out_id: int) -> ServiceResult:
        """
        Compensating inverse of release(): returns the grams to their
        batches, reverts the usage estimate, then deletes the record.
        """
        try:
            record = await self.store.get_by_id(self.collection, stock_out_id)
            if not record:
                raise NotFoundError(f"Stock-out {stock_out_id} not found")

            for alloc in record.get("allocations") or []:
                await self.stock_ins.give_back(alloc["stock_in_id"], D(alloc["grams"]))

            if TRACKS_USAGE[parse_out_type(record["out_type"])]:
                reverted = await self.drugs.revert_use(record["drug_name"], record["grams"])
                if not reverted.success:
                    logger.warning("Usage revert for stock-out %s failed: %s",
                                   stock_out_id, reverted.message)

            await self.store.delete(self.collection, stock_out_id)
        except LedgerError as e:
            return failure(e, "Undo stock out", logger)

        logger.info("Stock out id=%s undone", stock_out_id)
        return ServiceResult.ok("Stock out undone", record)

    async def update(self, stock_out_id: int, fields: Dict[str, Any]) -> ServiceResult:
        """
        Edit remark / out_type. Quantities, cost and usage statistics are
        not recalculated, so switching into or out of prescription use is
        refused.
        """
        try:
            record = await self.store.get_by_id(self.collection, stock_out_id)
            if not record:
                raise NotFoundError(f"Stock-out {stock_out_id} not found")

            changes: Dict[str, Any] = {}
            if "remark" in fields:
                changes["remark"] = (fields["remark"] or "").strip()
            if fields.get("out_type"):
                new_kind = parse_out_type(fields["out_type"])
                old_kind = parse_out_type(record["out_type"])
                if TRACKS_USAGE[new_kind] != TRACKS_USAGE[old_kind]:
                    raise ValidationError(
                        "Cannot switch a stock-out into or out of prescription use")
                changes["out_type"] = new_kind.value

            record = await self.store.update(self.collection, {**record, **changes})
        except LedgerError as e:
            return failure(e, "Update stock out", logger)

        return ServiceResult.ok("Stock out updated", record)

    # -------------------------
    # Queries
    # -------------------------
    async def by_time_and_type(self, start: datetime, end: datetime,
                               out_type=None) -> List[Record]:
        kind = parse_out_type(out_type).value if out_type else None

        def match(r: Record) -> bool:
            in_range = start <= r["out_time"] <= end
            return in_range and (kind is None or r["out_type"] == kind)

        return await self.store.scan(self.collection, match)

    async def by_prescription(self, prescription_id: int) -> List[Record]:
        return await self.store.scan(
            self.collection, lambda r: r["prescription_id"] == prescription_id)

    async def all(self) -> List[Record]:
        return sorted(await self.store.get_all(self.collection),
                      key=lambda r: (r["out_time"], r["id"]), reverse=True)
