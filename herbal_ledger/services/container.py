# FILE: herbal_ledger/services/container.py
from __future__ import annotations

from dataclasses import dataclass

from herbal_ledger.db.ledger_store import LedgerStore
from herbal_ledger.services.backup import BackupService
from herbal_ledger.services.diagnosis_log import DiagnosisLogManager
from herbal_ledger.services.drug_registry import DrugRegistry
from herbal_ledger.services.prescription import PrescriptionOrchestrator
from herbal_ledger.services.source_registry import SourceRegistry
from herbal_ledger.services.stats import StatsService
from herbal_ledger.services.stock_in import StockInLedger
from herbal_ledger.services.stock_out import StockOutLedger


@dataclass
class Services:
    store: LedgerStore
    sources: SourceRegistry
    drugs: DrugRegistry
    stock_ins: StockInLedger
    stock_outs: StockOutLedger
    logs: DiagnosisLogManager
    prescriptions: PrescriptionOrchestrator
    stats: StatsService
    backup: BackupService


def build_services(store: LedgerStore) -> Services:
    """Wire every manager around one shared store handle."""
    sources = SourceRegistry(store)
    drugs = DrugRegistry(store)
    stock_ins = StockInLedger(store, drugs, sources)
    stock_outs = StockOutLedger(store, drugs, stock_ins)
    logs = DiagnosisLogManager(store)
    prescriptions = PrescriptionOrchestrator(store, stock_outs, logs)
    return Services(
        store=store,
        sources=sources,
        drugs=drugs,
        stock_ins=stock_ins,
        stock_outs=stock_outs,
        logs=logs,
        prescriptions=prescriptions,
        stats=StatsService(prescriptions, drugs),
        backup=BackupService(store),
    )
