# FILE: herbal_ledger/services/source_registry.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from herbal_ledger.core.errors import LedgerError, NotFoundError, ValidationError
from herbal_ledger.db.ledger_store import LedgerStore, Record
from herbal_ledger.schemas.common import ServiceResult
from herbal_ledger.services.results import failure
from herbal_ledger.services.validators import require_name, sort_by_name

logger = logging.getLogger(__name__)


class SourceRegistry:
    collection = "sources"

    def __init__(self, store: LedgerStore):
        self.store = store

    async def add(self, name: Optional[str], remark: Optional[str] = "") -> ServiceResult:
        try:
            clean = require_name(name, "Source")
            if await self.get_by_name(clean):
                raise ValidationError(f"Source '{clean}' already exists")
            record = await self.store.create(self.collection, {
                "name": clean,
                "remark": (remark or "").strip(),
            })
        except LedgerError as e:
            return failure(e, "Add source", logger)

        logger.info("Source added id=%s name=%s", record["id"], record["name"])
        return ServiceResult.ok("Source added", record)

    async def update(self, source_id: int, fields: Dict[str, Any]) -> ServiceResult:
        try:
            source = await self.get_by_id(source_id)
            if not source:
                raise NotFoundError(f"Source {source_id} not found")

            changes = {k: v for k, v in fields.items() if k in ("name", "remark")}
            if "name" in changes:
                changes["name"] = require_name(changes["name"], "Source")
                clash = await self.get_by_name(changes["name"])
                if clash and clash["id"] != source_id:
                    raise ValidationError(f"Source '{changes['name']}' already exists")
            if "remark" in changes:
                changes["remark"] = (changes["remark"] or "").strip()

            record = await self.store.update(self.collection, {**source, **changes})
        except LedgerError as e:
            return failure(e, "Update source", logger)

        return ServiceResult.ok("Source updated", record)

    async def list(self) -> List[Record]:
        return sort_by_name(await self.store.get_all(self.collection))

    async def get_by_name(self, name: str) -> Optional[Record]:
        return await self.store.get_by_index_value(self.collection, "name",
                                                   (name or "").strip())

    async def get_by_id(self, source_id: int) -> Optional[Record]:
        return await self.store.get_by_id(self.collection, source_id)

    async def clear(self) -> ServiceResult:
        try:
            await self.store.clear(self.collection)
        except LedgerError as e:
            return failure(e, "Clear sources", logger)
        logger.info("All sources cleared")
        return ServiceResult.ok("Sources cleared")
