# FILE: herbal_ledger/api/routes_stats.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from herbal_ledger.api.deps import get_services
from herbal_ledger.schemas.stats import Period
from herbal_ledger.services.container import Services
from herbal_ledger.utils.resp import from_result

router = APIRouter(prefix="/stats", tags=["Stats"])


@router.get("/daily/{period}")
async def daily_stats(period: Period, svc: Services = Depends(get_services)):
    return from_result(await svc.stats.daily_stats(period))


@router.get("/warnings")
async def warning_stats(svc: Services = Depends(get_services)):
    return from_result(await svc.stats.warning_stats())
