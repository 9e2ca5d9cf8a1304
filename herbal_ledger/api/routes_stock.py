# FILE: herbal_ledger/api/routes_stock.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from herbal_ledger.api.deps import get_services
from herbal_ledger.models import OutType
from herbal_ledger.schemas.inventory import (
    CostEstimateIn,
    StockInCreate,
    StockOutCreate,
    StockOutUpdate,
)
from herbal_ledger.services.container import Services
from herbal_ledger.utils.resp import from_result, ok
from herbal_ledger.utils.timezone import to_local_naive

router = APIRouter(tags=["Stock"])


# -------------------------
# Stock in
# -------------------------
@router.get("/stock-ins")
async def list_stock_ins(svc: Services = Depends(get_services)):
    return ok(await svc.stock_ins.all())


@router.post("/stock-ins")
async def add_stock_in(payload: StockInCreate, svc: Services = Depends(get_services)):
    result = await svc.stock_ins.record(
        payload.drug_id,
        payload.drug_name,
        payload.source_id,
        payload.source_name,
        payload.grams,
        payload.total_amount,
        payload.remark,
    )
    return from_result(result, status_code=201)


# -------------------------
# Stock out
# -------------------------
@router.get("/stock-outs")
async def list_stock_outs(
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    out_type: Optional[OutType] = Query(None),
    svc: Services = Depends(get_services),
):
    if start is None and end is None and out_type is None:
        return ok(await svc.stock_outs.all())
    rows = await svc.stock_outs.by_time_and_type(
        to_local_naive(start) or datetime.min,
        to_local_naive(end) or datetime.max,
        out_type)
    return ok(rows)


@router.post("/stock-outs/estimate")
async def estimate_stock_out(payload: CostEstimateIn,
                             svc: Services = Depends(get_services)):
    return from_result(await svc.stock_outs.estimate_cost(payload.drug_name, payload.grams))


@router.post("/stock-outs")
async def add_stock_out(payload: StockOutCreate, svc: Services = Depends(get_services)):
    result = await svc.stock_outs.release(
        payload.drug_name, payload.out_type, payload.grams, remark=payload.remark)
    return from_result(result, status_code=201)


@router.put("/stock-outs/{stock_out_id}")
async def update_stock_out(stock_out_id: int, payload: StockOutUpdate,
                           svc: Services = Depends(get_services)):
    fields = payload.model_dump(exclude_unset=True)
    return from_result(await svc.stock_outs.update(stock_out_id, fields))
