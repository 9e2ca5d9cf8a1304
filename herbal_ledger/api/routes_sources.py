# FILE: herbal_ledger/api/routes_sources.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from herbal_ledger.api.deps import get_services
from herbal_ledger.schemas.inventory import SourceCreate, SourceUpdate
from herbal_ledger.services.container import Services
from herbal_ledger.utils.resp import from_result, ok

router = APIRouter(prefix="/sources", tags=["Sources"])


@router.get("")
async def list_sources(svc: Services = Depends(get_services)):
    return ok(await svc.sources.list())


@router.post("")
async def add_source(payload: SourceCreate, svc: Services = Depends(get_services)):
    return from_result(await svc.sources.add(payload.name, payload.remark), status_code=201)


@router.put("/{source_id}")
async def update_source(source_id: int, payload: SourceUpdate,
                        svc: Services = Depends(get_services)):
    fields = payload.model_dump(exclude_unset=True)
    return from_result(await svc.sources.update(source_id, fields))


@router.delete("")
async def clear_sources(svc: Services = Depends(get_services)):
    return from_result(await svc.sources.clear())
