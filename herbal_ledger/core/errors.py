# herbal_ledger/core/errors.py
from __future__ import annotations


class LedgerError(Exception):
    """Base class for every failure the ledger services report."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ValidationError(LedgerError):
    """Missing/blank field, non-positive number or unknown enum value."""


class NotFoundError(LedgerError):
    """Referenced drug, source, prescription or record does not exist."""


class CapacityError(LedgerError):
    """Requested release exceeds the stock on hand."""


class StorageError(LedgerError):
    """The underlying persistence operation failed."""

    def __init__(self, message: str, *, collection: str = "",
                 action: str = ""):
        super().__init__(message)
        self.collection = collection
        self.action = action
