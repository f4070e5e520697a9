"""The atomic ledger operation.

Every code path that moves points runs as an operation on a ``LedgerUnit``
inside ``run_ledger_operation``. The unit is the only place that writes
``User.balance``, ``Event.points_remain`` and ``Event.points_awarded``; the
runner commits the whole unit or rolls all of it back.

Rows are locked with ``SELECT ... FOR UPDATE`` in a fixed order (event, then
users by ascending id, then the transaction row) so concurrent operations
queue behind each other instead of deadlocking.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..core.config import get_settings
from ..models import Event, Transaction, User
from ..utils.datetime import utcnow
from .errors import (
    BudgetExceeded,
    InsufficientBalance,
    LedgerRuleViolation,
    LedgerValidationError,
    NotFound,
    StateConflict,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# serialization_failure, deadlock_detected
RETRYABLE_SQLSTATES = frozenset({"40001", "40P01"})


class LedgerUnit:
    """Row access and point movements for one atomic ledger operation."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_user(self, user_id: int) -> User:
        user = self.session.get(User, user_id)
        if user is None:
            raise NotFound(f"User {user_id} not found", field="user_id")
        return user

    def find_user(self, utorid: str) -> User:
        stmt = select(User).where(User.utorid == utorid)
        user = self.session.execute(stmt).scalar_one_or_none()
        if user is None:
            raise NotFound(f"User {utorid} not found", field="utorid")
        return user

    def get_transaction(self, transaction_id: int) -> Transaction:
        transaction = self.session.get(Transaction, transaction_id)
        if transaction is None:
            raise NotFound(f"Transaction {transaction_id} not found", field="transaction_id")
        return transaction

    def lock_user(self, user_id: int) -> User:
        stmt = (
            select(User)
            .where(User.user_id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        user = self.session.execute(stmt).scalar_one_or_none()
        if user is None:
            raise NotFound(f"User {user_id} not found", field="user_id")
        return user

    def lock_users(self, user_ids: Iterable[int]) -> dict[int, User]:
        """Lock several users in ascending id order."""

        return {user_id: self.lock_user(user_id) for user_id in sorted(set(user_ids))}

    def lock_event(self, event_id: int) -> Event:
        stmt = (
            select(Event)
            .where(Event.event_id == event_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        event = self.session.execute(stmt).scalar_one_or_none()
        if event is None:
            raise NotFound(f"Event {event_id} not found", field="event_id")
        return event

    def lock_transaction(self, transaction_id: int) -> Transaction:
        stmt = (
            select(Transaction)
            .where(Transaction.transaction_id == transaction_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        transaction = self.session.execute(stmt).scalar_one_or_none()
        if transaction is None:
            raise NotFound(f"Transaction {transaction_id} not found", field="transaction_id")
        return transaction

    def require_balance(self, user: User, amount: int, *, field: str = "amount") -> None:
        if user.balance < amount:
            raise InsufficientBalance(required=amount, available=user.balance, field=field)

    def apply_balance(self, user: User, delta: int, *, field: str = "amount") -> int:
        """Move ``delta`` points on a locked user; the balance never goes below zero."""

        new_balance = user.balance + delta
        if new_balance < 0:
            raise InsufficientBalance(required=-delta, available=user.balance, field=field)
        user.balance = new_balance
        user.updated_at = utcnow()
        return new_balance

    def draw_event_budget(self, event: Event, total: int) -> None:
        """Move ``total`` points of a locked event from remaining to awarded."""

        if total <= 0:
            raise LedgerValidationError("Award total must be positive.", field="amount")
        if event.points_remain < total:
            raise BudgetExceeded(event.event_id, required=total, remaining=event.points_remain)
        event.points_remain -= total
        event.points_awarded += total
        event.updated_at = utcnow()

    def resize_event_budget(self, event: Event, points_total: int) -> None:
        remain = points_total - event.points_awarded
        if remain < 0:
            raise BudgetExceeded(event.event_id, required=event.points_awarded, remaining=points_total)
        event.points_total = points_total
        event.points_remain = remain
        event.updated_at = utcnow()

    def record(self, *transactions: Transaction) -> None:
        self.session.add_all(transactions)
        self.session.flush()


def is_retryable_conflict(exc: DBAPIError) -> bool:
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    return code in RETRYABLE_SQLSTATES


def run_ledger_operation(
    session: Session,
    operation: Callable[[LedgerUnit], T],
    *,
    attempts: Optional[int] = None,
) -> T:
    """Run ``operation`` as one committed unit, retrying transient conflicts.

    Rule violations roll back and propagate unchanged. Serialization failures,
    deadlocks and stale version rows roll back and re-run the operation from
    scratch; when attempts run out they surface as ``StateConflict``.
    """

    attempts = attempts or get_settings().ledger_retry_attempts
    last_error: Optional[Exception] = None

    for attempt in range(1, attempts + 1):
        try:
            result = operation(LedgerUnit(session))
            session.commit()
        except LedgerRuleViolation:
            session.rollback()
            raise
        except StaleDataError as exc:
            session.rollback()
            last_error = exc
        except DBAPIError as exc:
            session.rollback()
            if not is_retryable_conflict(exc):
                raise
            last_error = exc
        except Exception:
            session.rollback()
            raise
        else:
            return result
        logger.warning("ledger operation conflicted (attempt %d/%d): %s", attempt, attempts, last_error)

    raise StateConflict("Ledger operation kept conflicting with concurrent updates; retry the request.") from last_error
