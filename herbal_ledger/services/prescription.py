# FILE: herbal_ledger/services/prescription.py
from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel

from herbal_ledger.core.errors import LedgerError, StorageError, ValidationError
from herbal_ledger.db.ledger_store import LedgerStore, Record
from herbal_ledger.models import OutType
from herbal_ledger.schemas.common import ServiceResult
from herbal_ledger.services.diagnosis_log import DiagnosisLogManager
from herbal_ledger.services.results import failure
from herbal_ledger.services.stock_out import StockOutLedger
from herbal_ledger.services.validators import parse_number, require_name
from herbal_ledger.utils.money import money2

logger = logging.getLogger(__name__)

DISPENSE_REMARK = "Prescription dispense"


def _normalize_lines(drug_list: Sequence[Any]) -> List[Tuple[str, Decimal]]:
    lines: List[Tuple[str, Decimal]] = []
    seen = set()
    for item in drug_list:
        if isinstance(item, BaseModel):
            raw = item.model_dump()
        elif isinstance(item, dict):
            raw = item
        else:
            raise ValidationError("Each prescription line needs a name and grams")
        name = require_name(raw.get("name"), "Drug")
        grams = parse_number(raw.get("grams"), f"{name} grams")
        if grams <= 0:
            raise ValidationError(f"{name}: grams must be greater than 0")
        if name in seen:
            raise ValidationError(f"{name} appears more than once in the prescription")
        seen.add(name)
        lines.append((name, grams))
    return lines


class PrescriptionOrchestrator:
    """
    submit() runs: cost every line -> write the prescription shell ->
    release each line -> attach the diagnosis log -> link the log.

    The steps commit independently. When a release or the log fails,
    everything this submission already wrote is compensated: released
    stock-outs are undone (batch balances and usage restored) and the
    shell is deleted. Compensation is best effort, not a transaction;
    a compensating step that fails is logged and reported in the message.
    An unexpected error after the shell is written is compensated the same
    way and reported as a failed result.
    """

    collection = "prescriptions"

    def __init__(self, store: LedgerStore, stock_outs: StockOutLedger,
                 logs: DiagnosisLogManager):
        self.store = store
        self.stock_outs = stock_outs
        self.logs = logs

    async def submit(self, drug_list: Optional[Sequence[Any]],
                     diagnosis_log_info: Optional[Dict[str, Any]] = None) -> ServiceResult:
        if not drug_list:
            return ServiceResult.fail("Prescription drug list must not be empty")

        # 1) cost, 2) shell
        try:
            lines = _normalize_lines(drug_list)

            costed: List[Dict[str, Any]] = []
            total_grams = Decimal("0")
            total_amount = Decimal("0")
            for name, grams in lines:
                estimate = await self.stock_outs.estimate_cost(name, grams)
                if not estimate.success:
                    return ServiceResult.fail(f"{name}: {estimate.message}")
                amount = estimate.data["total_amount"]
                costed.append({"name": name, "grams": float(grams),
                               "amount": float(amount)})
                total_grams += grams
                total_amount += amount

            shell = await self.store.create(self.collection, {
                "drug_list": costed,
                "total_grams": total_grams,
                "total_amount": money2(total_amount),
                "diagnosis_log_id": None,
            })
        except LedgerError as e:
            return failure(e, "Submit prescription", logger)

        # 3) release every line against the shell, 4) attach the log, 5) link it
        released: List[int] = []
        attached: List[int] = []
        try:
            return await self._dispense(shell, lines, diagnosis_log_info,
                                        released, attached)
        except Exception as e:
            logger.exception("Prescription %s submission aborted", shell["id"])
            note = await self._compensate(shell["id"], released,
                                          attached[0] if attached else None)
            return ServiceResult.fail(f"Submit prescription failed: {e}{note}")

    async def _dispense(self, shell: Record, lines: List[Tuple[str, Decimal]],
                        diagnosis_log_info: Optional[Dict[str, Any]],
                        released: List[int], attached: List[int]) -> ServiceResult:
        for name, grams in lines:
            result = await self.stock_outs.release(
                name, OutType.PRESCRIPTION_USE, grams,
                prescription_id=shell["id"], remark=DISPENSE_REMARK)
            if not result.success:
                note = await self._compensate(shell["id"], released)
                return ServiceResult.fail(f"{name} release failed: {result.message}{note}")
            released.append(result.data["id"])

        log = await self.logs.add(diagnosis_log_info or {}, shell["id"])
        if not log.success:
            note = await self._compensate(shell["id"], released)
            return ServiceResult.fail(f"Diagnosis log attach failed: {log.message}{note}")
        attached.append(log.data["id"])

        try:
            shell["diagnosis_log_id"] = log.data["id"]
            prescription = await self.store.update(self.collection, shell)
        except LedgerError as e:
            result = failure(e, "Finalize prescription", logger)
            note = await self._compensate(shell["id"], released, log.data["id"])
            return ServiceResult.fail(f"{result.message}{note}")

        logger.info("Prescription id=%s submitted lines=%s total=%s log=%s",
                    prescription["id"], len(lines), prescription["total_amount"],
                    prescription["diagnosis_log_id"])
        return ServiceResult.ok("Prescription submitted; diagnosis log attached",
                                prescription)

    async def _compensate(self, prescription_id: int, released: List[int],
                          log_id: Optional[int] = None) -> str:
        problems: List[str] = []

        for stock_out_id in reversed(released):
            undone = await self.stock_outs.undo(stock_out_id)
            if not undone.success:
                problems.append(f"stock-out {stock_out_id}: {undone.message}")

        if log_id is not None:
            try:
                await self.logs.delete(log_id)
            except StorageError as e:
                logger.exception("Rollback could not delete diagnosis log %s", log_id)
                problems.append(f"diagnosis log {log_id}: {e}")

        try:
            await self.store.delete(self.collection, prescription_id)
        except StorageError as e:
            logger.exception("Rollback could not delete prescription %s", prescription_id)
            problems.append(f"prescription {prescription_id}: {e}")

        if problems:
            logger.error("Prescription %s rollback incomplete: %s",
                         prescription_id, "; ".join(problems))
            return f" (rollback incomplete: {'; '.join(problems)})"

        logger.warning("Prescription %s rolled back (%s stock-outs undone)",
                       prescription_id, len(released))
        return " (rolled back)"

    # -------------------------
    # Queries
    # -------------------------
    async def get_by_id(self, prescription_id: int) -> Optional[Record]:
        return await self.store.get_by_id(self.collection, prescription_id)

    async def last_prescription(self) -> Optional[Record]:
        prescriptions = await self.store.get_all(self.collection)
        if not prescriptions:
            return None
        return max(prescriptions,
                   key=lambda r: (r["create_time"] or datetime.min, r["id"]))

    async def by_time_range(self, start: datetime, end: datetime) -> List[Record]:
        return await self.store.scan(
            self.collection,
            lambda r: r["create_time"] is not None and start <= r["create_time"] <= end)
