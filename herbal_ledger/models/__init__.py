# herbal_ledger/models/__init__.py
from .inventory import Source, Drug, StockIn, StockOut, StorageType, OutType
from .prescription import Prescription, DiagnosisLog

__all__ = [
    "Source",
    "Drug",
    "StockIn",
    "StockOut",
    "StorageType",
    "OutType",
    "Prescription",
    "DiagnosisLog",
]
