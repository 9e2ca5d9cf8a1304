# FILE: herbal_ledger/services/validators.py
from __future__ import annotations

import locale
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from herbal_ledger.core.errors import ValidationError


def require_name(name: Optional[str], label: str) -> str:
    clean = (name or "").strip()
    if not clean:
        raise ValidationError(f"{label} name must not be empty")
    return clean


def parse_number(value, label: str) -> Decimal:
    """Decimal from int/float/str input; blank or garbage is a ValidationError."""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{label} is required")
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{label} must be a number") from None
    if not number.is_finite():
        raise ValidationError(f"{label} must be a number")
    return number


def sort_by_name(records: List[dict]) -> List[dict]:
    # locale-aware collation, same as the UI dropdowns
    return sorted(records, key=lambda r: locale.strxfrm(r["name"]))


def parse_id(value, label: str) -> int:
    try:
        record_id = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{label} id must be an integer") from None
    if record_id <= 0:
        raise ValidationError(f"{label} id must be positive")
    return record_id
