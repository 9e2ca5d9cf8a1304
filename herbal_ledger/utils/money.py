# herbal_ledger/utils/money.py
from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation


def D(x) -> Decimal:
    try:
        return Decimal(str(x if x is not None else 0))
    except (InvalidOperation, ValueError):
        return Decimal("0")


def money2(x) -> Decimal:
    return D(x).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
