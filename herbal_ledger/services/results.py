# FILE: herbal_ledger/services/results.py
from __future__ import annotations

import logging

from herbal_ledger.core.errors import LedgerError, StorageError
from herbal_ledger.schemas.common import ServiceResult


def failure(exc: LedgerError, action: str,
            logger: logging.Logger) -> ServiceResult:
    """
    Turn a ledger exception into the failure result a caller sees.
    Call from inside the ``except`` block so storage tracebacks are kept.
    """
    if isinstance(exc, StorageError):
        logger.exception("%s failed (storage)", action)
        return ServiceResult.fail(f"{action} failed: {exc}")
    logger.warning("%s rejected: %s", action, exc)
    return ServiceResult.fail(str(exc))
