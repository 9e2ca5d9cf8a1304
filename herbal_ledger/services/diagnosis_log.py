# FILE: herbal_ledger/services/diagnosis_log.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from herbal_ledger.core.errors import LedgerError, NotFoundError, ValidationError
from herbal_ledger.db.ledger_store import LedgerStore, Record
from herbal_ledger.schemas.common import ServiceResult
from herbal_ledger.services.results import failure
from herbal_ledger.services.validators import parse_id

logger = logging.getLogger(__name__)

LOG_GROUPS = ("urine", "stool", "sleep", "exercise", "other")


def _group_value(value):
    # free-form: mappings are copied, notes and lists are kept as given
    if value is None:
        return {}
    if isinstance(value, dict):
        return dict(value)
    return value


class DiagnosisLogManager:
    collection = "diagnosis_logs"

    def __init__(self, store: LedgerStore):
        self.store = store

    async def add(self, log_info: Optional[Dict[str, Any]],
                  prescription_id: Optional[int]) -> ServiceResult:
        try:
            if not prescription_id:
                raise ValidationError("Prescription id is required to attach a diagnosis log")
            prescription_id = parse_id(prescription_id, "Prescription")

            if not await self.store.get_by_id("prescriptions", prescription_id):
                raise NotFoundError(f"Prescription {prescription_id} not found")
            if await self.by_prescription_id(prescription_id):
                raise ValidationError(
                    f"Prescription {prescription_id} already has a diagnosis log")

            info = log_info or {}
            if not isinstance(info, dict):
                raise ValidationError("Diagnosis log must be an object of observation groups")
            record = await self.store.create(self.collection, {
                "prescription_id": prescription_id,
                **{group: _group_value(info.get(group)) for group in LOG_GROUPS},
            })
        except LedgerError as e:
            return failure(e, "Add diagnosis log", logger)

        logger.info("Diagnosis log id=%s attached to prescription %s",
                    record["id"], prescription_id)
        return ServiceResult.ok("Diagnosis log added", record)

    async def by_prescription_id(self, prescription_id: int) -> Optional[Record]:
        return await self.store.get_by_index_value(self.collection,
                                                   "prescription_id",
                                                   prescription_id)

    async def last_log(self) -> Optional[Record]:
        """Newest log; the next prescription form starts from its values."""
        logs = await self.store.get_all(self.collection)
        if not logs:
            return None
        return max(logs, key=lambda r: (r["create_time"] or datetime.min, r["id"]))

    async def delete(self, log_id: int) -> bool:
        return await self.store.delete(self.collection, log_id)
