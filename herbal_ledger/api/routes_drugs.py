# FILE: herbal_ledger/api/routes_drugs.py
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query

from herbal_ledger.api.deps import get_services
from herbal_ledger.schemas.inventory import DrugCreate
from herbal_ledger.services.container import Services
from herbal_ledger.utils.resp import err, from_result, ok

router = APIRouter(prefix="/drugs", tags=["Drugs"])


@router.get("")
async def list_drugs(svc: Services = Depends(get_services)):
    return ok(await svc.drugs.list())


@router.post("")
async def add_drug(payload: DrugCreate, svc: Services = Depends(get_services)):
    result = await svc.drugs.add(
        payload.name,
        storage_type=payload.storage_type,
        min_stock=payload.min_stock,
        default_estimate=payload.default_estimate,
    )
    return from_result(result, status_code=201)


@router.get("/warnings")
async def drug_warnings(svc: Services = Depends(get_services)):
    return ok(await svc.drugs.warning_list())


@router.get("/ranking")
async def drug_ranking(
    chosen: List[str] = Query([]),
    svc: Services = Depends(get_services),
):
    # frequently used and long-lasting drugs first, minus the ones already picked
    return ok(await svc.drugs.rank_for_selection(chosen))


@router.get("/{name}")
async def get_drug(name: str, svc: Services = Depends(get_services)):
    drug = await svc.drugs.get_by_name(name)
    if not drug:
        return err(f"Drug '{name}' not found", status_code=404)
    return ok(drug)


@router.get("/{name}/stock")
async def drug_stock(name: str, svc: Services = Depends(get_services)):
    drug = await svc.drugs.get_by_name(name)
    if not drug:
        return err(f"Drug '{name}' not found", status_code=404)
    stock = await svc.drugs.current_stock(name)
    return ok({"name": drug["name"], "current_stock": stock,
               "min_stock": drug["min_stock"]})
