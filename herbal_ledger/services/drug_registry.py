# FILE: herbal_ledger/services/drug_registry.py
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable, List, Optional

from herbal_ledger.core.errors import LedgerError, NotFoundError, ValidationError
from herbal_ledger.db.ledger_store import LedgerStore, Record
from herbal_ledger.models import StorageType
from herbal_ledger.schemas.common import ServiceResult
from herbal_ledger.services.results import failure
from herbal_ledger.services.validators import parse_number, require_name, sort_by_name
from herbal_ledger.utils.money import D, money2

logger = logging.getLogger(__name__)


def _storage_type(value) -> StorageType:
    try:
        return StorageType(value)
    except ValueError:
        allowed = ", ".join(t.value for t in StorageType)
        raise ValidationError(f"Storage type must be one of: {allowed}") from None


def running_estimate(total_used_grams: Decimal, use_count: int,
                     default_estimate: Decimal) -> Decimal:
    if use_count <= 0:
        return D(default_estimate)
    return money2(D(total_used_grams) / use_count)


class DrugRegistry:
    """
    Drug definitions plus the numbers derived from the stock ledgers:
    on-hand stock, warning list and the selection ranking.
    """

    collection = "drugs"

    def __init__(self, store: LedgerStore):
        self.store = store

    async def add(
        self,
        name: Optional[str],
        storage_type=StorageType.SEALED,
        min_stock=100,
        default_estimate=10,
    ) -> ServiceResult:
        try:
            clean = require_name(name, "Drug")
            kind = _storage_type(storage_type)
            min_stock = parse_number(min_stock, "Minimum stock")
            default_estimate = parse_number(default_estimate, "Default estimate")
            if min_stock < 0:
                raise ValidationError("Minimum stock must be 0 or more")
            if default_estimate < 1:
                raise ValidationError("Default estimate must be at least 1 gram")

            if await self.get_by_name(clean):
                raise ValidationError(f"Drug '{clean}' already exists")

            record = await self.store.create(self.collection, {
                "name": clean,
                "storage_type": kind.value,
                "min_stock": min_stock,
                "default_estimate": default_estimate,
                "current_estimate": default_estimate,
                "use_count": 0,
                "total_used_grams": Decimal("0"),
            })
        except LedgerError as e:
            return failure(e, "Add drug", logger)

        logger.info("Drug added id=%s name=%s", record["id"], record["name"])
        return ServiceResult.ok("Drug added", record)

    async def list(self) -> List[Record]:
        return sort_by_name(await self.store.get_all(self.collection))

    async def get_by_name(self, name: str) -> Optional[Record]:
        return await self.store.get_by_index_value(self.collection, "name",
                                                   (name or "").strip())

    async def get_by_id(self, drug_id: int) -> Optional[Record]:
        return await self.store.get_by_id(self.collection, drug_id)

    # -------------------------
    # Dynamic estimate
    # -------------------------
    async def _shift_usage(self, drug_name: str, count: int,
                           grams: Decimal) -> Record:
        drug = await self.get_by_name(drug_name)
        if not drug:
            raise NotFoundError(f"Drug '{drug_name}' not found")

        use_count = max(0, int(drug["use_count"] or 0) + count)
        total = max(Decimal("0"), D(drug["total_used_grams"]) + grams)
        if use_count == 0:
            total = Decimal("0")

        drug["use_count"] = use_count
        drug["total_used_grams"] = total
        drug["current_estimate"] = running_estimate(total, use_count,
                                                    drug["default_estimate"])
        return await self.store.update(self.collection, drug)

    async def record_use(self, drug_name: str, used_grams) -> ServiceResult:
        try:
            grams = parse_number(used_grams, "Used grams")
            if grams <= 0:
                raise ValidationError("Used grams must be greater than 0")
            drug = await self._shift_usage(drug_name, 1, grams)
        except LedgerError as e:
            return failure(e, "Record drug use", logger)

        logger.info("Drug use recorded name=%s grams=%s estimate=%s",
                    drug_name, grams, drug["current_estimate"])
        return ServiceResult.ok("Drug usage updated", drug)

    async def revert_use(self, drug_name: str, used_grams) -> ServiceResult:
        """Undo one record_use; compensation path only."""
        try:
            drug = await self._shift_usage(drug_name, -1, -D(used_grams))
        except LedgerError as e:
            return failure(e, "Revert drug use", logger)
        return ServiceResult.ok("Drug usage reverted", drug)

    # -------------------------
    # Stock (ledger replay)
    # -------------------------
    async def current_stock(self, drug_name: str) -> Decimal:
        drug = await self.get_by_name(drug_name)
        if not drug:
            return Decimal("0")

        name = drug["name"]
        ins = await self.store.scan("stock_ins", lambda r: r["drug_name"] == name)
        outs = await self.store.scan("stock_outs", lambda r: r["drug_name"] == name)
        total_in = sum((D(r["grams"]) for r in ins), Decimal("0"))
        total_out = sum((D(r["grams"]) for r in outs), Decimal("0"))
        return total_in - total_out

    async def warning_list(self) -> List[Record]:
        warnings = []
        for drug in await self.list():
            stock = await self.current_stock(drug["name"])
            if stock <= D(drug["min_stock"]):
                warnings.append({**drug, "current_stock": stock})
        return warnings

    async def rank_for_selection(self, already_chosen: Iterable[str] = ()) -> List[Record]:
        chosen = {(n or "").strip() for n in already_chosen}
        ranked = []
        for drug in await self.list():
            if drug["name"] in chosen:
                continue
            stock = await self.current_stock(drug["name"])
            estimate = D(drug["current_estimate"])
            remaining_uses = stock / estimate if estimate > 0 else Decimal("0")
            ranked.append({**drug, "current_stock": stock,
                           "remaining_uses": remaining_uses})

        # most used first, then the ones that last longest
        return sorted(ranked,
                      key=lambda d: (d["use_count"], d["remaining_uses"]),
                      reverse=True)
