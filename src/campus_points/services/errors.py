"""Ledger rule violations raised by the service layer."""

from __future__ import annotations

from typing import Optional


class LedgerRuleViolation(Exception):
    """Raised when ledger rules are violated."""

    status_code = 400

    def __init__(self, detail: str, status_code: Optional[int] = None, field: Optional[str] = None) -> None:
        super().__init__(detail)
        self.detail = detail
        self.field = field
        if status_code is not None:
            self.status_code = status_code


class LedgerValidationError(LedgerRuleViolation):
    """Malformed or out-of-range input."""


class NotFound(LedgerRuleViolation):
    status_code = 404


class Forbidden(LedgerRuleViolation):
    status_code = 403


class InsufficientBalance(LedgerRuleViolation):
    def __init__(self, required: int, available: int, field: Optional[str] = "amount") -> None:
        super().__init__(
            f"Insufficient points: required {required}, available {available}.",
            field=field,
        )
        self.required = required
        self.available = available


class BudgetExceeded(LedgerRuleViolation):
    def __init__(self, event_id: int, required: int, remaining: int) -> None:
        super().__init__(
            f"Event {event_id} has {remaining} points remaining; {required} requested.",
            field="amount",
        )
        self.event_id = event_id
        self.required = required
        self.remaining = remaining


class PromotionConflict(LedgerRuleViolation):
    """Inactive, unmet-minimum, wrong-kind or already-used promotion."""

    def __init__(self, promotion_id: int, reason: str) -> None:
        super().__init__(f"Promotion {promotion_id} {reason}", field="promotion_ids")
        self.promotion_id = promotion_id


class StateConflict(LedgerRuleViolation):
    status_code = 409
