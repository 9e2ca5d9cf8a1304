# FILE: herbal_ledger/api/routes_backup.py
from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from herbal_ledger.api.deps import get_services
from herbal_ledger.services.container import Services
from herbal_ledger.utils.resp import from_result, ok

router = APIRouter(prefix="/backup", tags=["Backup"])


@router.get("")
async def export_backup(svc: Services = Depends(get_services)):
    return ok(await svc.backup.dump())


@router.post("")
async def import_backup(document: Dict[str, Any] = Body(...),
                        svc: Services = Depends(get_services)):
    return from_result(await svc.backup.restore(document))
