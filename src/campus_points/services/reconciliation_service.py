"""Read-only audit of stored balances and budgets against the ledger."""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..models import Event, Transaction, TransactionKind, User

logger = logging.getLogger(__name__)


def run_reconciliation(session: Session) -> dict[str, int]:
    """Compare every balance and event budget with what the transactions imply.

    A user's balance should equal the sum of their non-suspicious transaction
    amounts; an event's awarded points should equal the sum of its award
    rows, and remaining plus awarded should equal its total. Drift is logged,
    never repaired. Returns summary statistics useful for logging/testing.
    """

    summary = {
        "users_checked": 0,
        "balance_mismatches": 0,
        "events_checked": 0,
        "budget_mismatches": 0,
    }

    expected_stmt = (
        select(Transaction.owner_id, func.coalesce(func.sum(Transaction.amount), 0))
        .where(Transaction.suspicious.is_(False))
        .group_by(Transaction.owner_id)
    )
    expected_balances = {owner_id: int(total) for owner_id, total in session.execute(expected_stmt).all()}

    for user_id, utorid, balance in session.execute(select(User.user_id, User.utorid, User.balance)).all():
        summary["users_checked"] += 1
        expected = expected_balances.get(user_id, 0)
        if balance != expected:
            summary["balance_mismatches"] += 1
            logger.warning("balance drift for %s: stored %s, ledger %s", utorid, balance, expected)

    awarded_stmt = (
        select(Transaction.related_id, func.coalesce(func.sum(Transaction.amount), 0))
        .where(Transaction.kind == TransactionKind.EVENT)
        .group_by(Transaction.related_id)
    )
    awarded_by_event = {event_id: int(total) for event_id, total in session.execute(awarded_stmt).all()}

    for event in session.execute(select(Event)).scalars():
        summary["events_checked"] += 1
        awarded = awarded_by_event.get(event.event_id, 0)
        balanced = event.points_remain + event.points_awarded == event.points_total
        if not balanced or event.points_remain < 0 or event.points_awarded != awarded:
            summary["budget_mismatches"] += 1
            logger.warning(
                "budget drift for event %s: total %s, remain %s, awarded %s, ledger %s",
                event.event_id,
                event.points_total,
                event.points_remain,
                event.points_awarded,
                awarded,
            )

    return summary
