# FILE: herbal_ledger/services/backup.py
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict

from fastapi.encoders import jsonable_encoder

from herbal_ledger.core.errors import LedgerError, ValidationError
from herbal_ledger.db.ledger_store import COLLECTIONS, LedgerStore
from herbal_ledger.schemas.common import ServiceResult
from herbal_ledger.services.results import failure
from herbal_ledger.utils.money import D
from herbal_ledger.utils.timezone import now_local

logger = logging.getLogger(__name__)

BACKUP_VERSION = 1


def _legacy_balances(collections: Dict[str, Any]) -> Dict[Any, Decimal]:
    """
    Batch balances for stock-ins dumped without ``remaining_grams``:
    the drug's stock-out grams are consumed from its batches oldest first.
    """
    stock_ins = [r for r in collections.get("stock_ins") or [] if isinstance(r, dict)]
    if all(r.get("remaining_grams") is not None for r in stock_ins):
        return {}

    consumed: Dict[str, Decimal] = {}
    for out in collections.get("stock_outs") or []:
        if not isinstance(out, dict):
            continue
        consumed[out.get("drug_name")] = consumed.get(out.get("drug_name"),
                                                      Decimal("0")) + D(out.get("grams"))
    for batch in stock_ins:
        if batch.get("remaining_grams") is not None:
            # already-known balances account for part of the consumption
            used = D(batch.get("grams")) - D(batch["remaining_grams"])
            consumed[batch.get("drug_name")] = consumed.get(batch.get("drug_name"),
                                                            Decimal("0")) - used

    balances: Dict[Any, Decimal] = {}
    oldest_first = sorted(stock_ins, key=lambda r: (str(r.get("in_time") or ""),
                                                     r.get("id") or 0))
    for batch in oldest_first:
        if batch.get("remaining_grams") is not None:
            continue
        grams = D(batch.get("grams"))
        left = max(consumed.get(batch.get("drug_name"), Decimal("0")), Decimal("0"))
        use = min(grams, left)
        consumed[batch.get("drug_name")] = left - use
        balances[batch.get("id")] = grams - use
    return balances


class BackupService:
    """
    Whole-store dump and restore as one JSON-safe document.

    Restore is last-write-wins per record: any record sharing the incoming
    id is deleted and the incoming one is inserted verbatim. No merge.
    """

    def __init__(self, store: LedgerStore):
        self.store = store

    async def dump(self) -> Dict[str, Any]:
        collections = {}
        for name in COLLECTIONS:
            collections[name] = await self.store.get_all(name)
        return jsonable_encoder({
            "version": BACKUP_VERSION,
            "exported_at": now_local(),
            "collections": collections,
        })

    async def restore(self, document: Dict[str, Any]) -> ServiceResult:
        counts: Dict[str, int] = {}
        try:
            collections = (document or {}).get("collections")
            if not isinstance(collections, dict):
                raise ValidationError("Backup document has no 'collections' object")
            unknown = sorted(set(collections) - set(COLLECTIONS))
            if unknown:
                raise ValidationError(f"Unknown collections in backup: {', '.join(unknown)}")

            legacy = _legacy_balances(collections)

            for name, records in collections.items():
                counts[name] = 0
                for record in records or []:
                    if not isinstance(record, dict) or record.get("id") is None:
                        raise ValidationError(f"{name} record without id in backup")
                    if name == "stock_ins" and record.get("remaining_grams") is None:
                        # dumps taken before batch balances existed
                        record = {**record, "remaining_grams": legacy.get(record["id"])}
                    await self.store.delete(name, record["id"])
                    await self.store.put(name, record)
                    counts[name] += 1
        except LedgerError as e:
            result = failure(e, "Restore backup", logger)
            return ServiceResult.fail(result.message, counts)

        logger.info("Backup restored: %s", counts)
        return ServiceResult.ok("Backup restored", counts)
