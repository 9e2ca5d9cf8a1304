# FILE: herbal_ledger/models/prescription.py
from __future__ import annotations

from sqlalchemy import Column, Integer, DateTime, Numeric, JSON

from herbal_ledger.db.base import Base


class Prescription(Base):
    """
    One submitted prescription.

    drug_list holds the costed lines: [{"name", "grams", "amount"}].
    diagnosis_log_id stays NULL until the log is attached.
    """

    __tablename__ = "prescriptions"

    id = Column(Integer, primary_key=True, index=True)
    drug_list = Column(JSON, nullable=False, default=list)
    total_grams = Column(Numeric(14, 4), nullable=False, default=0)
    total_amount = Column(Numeric(14, 2), nullable=False, default=0)
    diagnosis_log_id = Column(Integer, nullable=True)

    create_time = Column(DateTime, nullable=True, index=True)
    update_time = Column(DateTime, nullable=True)


class DiagnosisLog(Base):
    __tablename__ = "diagnosis_logs"

    id = Column(Integer, primary_key=True, index=True)
    prescription_id = Column(Integer, unique=True, nullable=False, index=True)

    # Free-form observation groups filled in by the clinician
    urine = Column(JSON, default=dict)
    stool = Column(JSON, default=dict)
    sleep = Column(JSON, default=dict)
    exercise = Column(JSON, default=dict)
    other = Column(JSON, default=dict)

    create_time = Column(DateTime, nullable=True)
    update_time = Column(DateTime, nullable=True)
