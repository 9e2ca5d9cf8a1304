# FILE: herbal_ledger/schemas/prescription.py
from __future__ import annotations

from decimal import Decimal
from typing import Any, List

from pydantic import BaseModel


class PrescriptionLine(BaseModel):
    name: str
    grams: Decimal


class DiagnosisLogIn(BaseModel):
    # free-form groups: usually an object, a plain note or a list is fine too
    urine: Any = {}
    stool: Any = {}
    sleep: Any = {}
    exercise: Any = {}
    other: Any = {}


class PrescriptionSubmit(BaseModel):
    drug_list: List[PrescriptionLine] = []
    diagnosis_log: DiagnosisLogIn = DiagnosisLogIn()
