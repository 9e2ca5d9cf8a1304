# FILE: herbal_ledger/api/routes_prescriptions.py
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query

from herbal_ledger.api.deps import get_services
from herbal_ledger.schemas.prescription import PrescriptionSubmit
from herbal_ledger.services.container import Services
from herbal_ledger.utils.resp import err, from_result, ok
from herbal_ledger.utils.timezone import to_local_naive

router = APIRouter(tags=["Prescriptions"])


@router.post("/prescriptions")
async def submit_prescription(payload: PrescriptionSubmit,
                              svc: Services = Depends(get_services)):
    result = await svc.prescriptions.submit(
        payload.drug_list, payload.diagnosis_log.model_dump())
    return from_result(result, status_code=201)


@router.get("/prescriptions")
async def list_prescriptions(
    start: datetime = Query(...),
    end: datetime = Query(...),
    svc: Services = Depends(get_services),
):
    return ok(await svc.prescriptions.by_time_range(to_local_naive(start),
                                                    to_local_naive(end)))


@router.get("/prescriptions/last")
async def last_prescription(svc: Services = Depends(get_services)):
    # seeds the next prescription's drug list; null when none exist yet
    return ok(await svc.prescriptions.last_prescription())


@router.get("/prescriptions/{prescription_id}")
async def get_prescription(prescription_id: int, svc: Services = Depends(get_services)):
    prescription = await svc.prescriptions.get_by_id(prescription_id)
    if not prescription:
        return err(f"Prescription {prescription_id} not found", status_code=404)
    log = await svc.logs.by_prescription_id(prescription_id)
    stock_outs = await svc.stock_outs.by_prescription(prescription_id)
    return ok({**prescription, "diagnosis_log": log, "stock_outs": stock_outs})


@router.get("/diagnosis-logs/last")
async def last_diagnosis_log(svc: Services = Depends(get_services)):
    return ok(await svc.logs.last_log())
