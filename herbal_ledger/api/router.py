# herbal_ledger/api/router.py
from fastapi import APIRouter
from herbal_ledger.api import (
    routes_sources,
    routes_drugs,
    routes_stock,
    routes_prescriptions,
    routes_stats,
    routes_backup,
)

api_router = APIRouter()

api_router.include_router(routes_sources.router)
api_router.include_router(routes_drugs.router)
api_router.include_router(routes_stock.router)
api_router.include_router(routes_prescriptions.router)
api_router.include_router(routes_stats.router)
api_router.include_router(routes_backup.router)
