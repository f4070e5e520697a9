"""Input checks the ledger repeats even behind a validating HTTP layer."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

from ..utils.points import to_money
from .errors import LedgerValidationError


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def require_positive_int(value: Any, field: str) -> int:
    if not _is_int(value) or value <= 0:
        raise LedgerValidationError(f"{field} must be a positive integer.", field=field)
    return value


def require_nonzero_int(value: Any, field: str) -> int:
    if not _is_int(value) or value == 0:
        raise LedgerValidationError(f"{field} must be a non-zero integer.", field=field)
    return value


def require_spent(value: Any) -> Decimal:
    """Validate a purchase amount and normalise it to cents."""

    if isinstance(value, bool) or value is None:
        raise LedgerValidationError("spent must be a positive amount.", field="spent")
    try:
        spent = to_money(value)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise LedgerValidationError("spent must be a positive amount.", field="spent") from exc
    if not spent.is_finite() or spent <= 0:
        raise LedgerValidationError("spent must be a positive amount.", field="spent")
    return spent
