"""Event budget allocation: awarding guests out of a fixed point pool."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import Event, EventGuest, EventTransaction, Role
from ..utils.datetime import as_naive_utc, utcnow
from .clearance import is_event_organizer, require_role
from .errors import Forbidden, LedgerValidationError, StateConflict
from .ledger_unit import LedgerUnit
from .validation import require_positive_int

logger = logging.getLogger(__name__)


def current_guest_ids(session: Session, event_id: int) -> list[int]:
    stmt = select(EventGuest.user_id).where(EventGuest.event_id == event_id).order_by(EventGuest.user_id)
    return list(session.execute(stmt).scalars().all())


def award_event_points(
    unit: LedgerUnit,
    *,
    event_id: int,
    amount: int,
    actor_id: int,
    utorid: Optional[str] = None,
    remark: str = "",
    now: Optional[datetime] = None,
) -> list[EventTransaction]:
    """Credit ``amount`` to one guest, or to every current guest when ``utorid`` is None.

    The budget is checked against the aggregate before any row is written, so
    a broadcast that would overdraw the event awards nobody.
    """

    require_positive_int(amount, "amount")
    actor = unit.get_user(actor_id)
    event = unit.lock_event(event_id)

    if not actor.has_role(Role.MANAGER) and not is_event_organizer(unit.session, event_id, actor_id):
        raise Forbidden("Only managers or organizers of this event may award its points.")

    now = as_naive_utc(now) if now else utcnow()
    if now >= event.end_time:
        raise StateConflict(f"Event {event_id} has ended; no further points can be awarded.")

    guest_ids = current_guest_ids(unit.session, event_id)
    if utorid is not None:
        recipient_id = unit.find_user(utorid).user_id
        if recipient_id not in guest_ids:
            raise LedgerValidationError(
                f"User {utorid} is not on the guest list for event {event_id}.",
                field="utorid",
            )
        recipient_ids = [recipient_id]
    else:
        if not guest_ids:
            raise LedgerValidationError(f"Event {event_id} has no guests to award.", field="utorid")
        recipient_ids = guest_ids

    total = amount * len(recipient_ids)
    unit.draw_event_budget(event, total)

    recipients = unit.lock_users(recipient_ids)
    awards = []
    for recipient in recipients.values():
        unit.apply_balance(recipient, amount)
        awards.append(
            EventTransaction(
                owner=recipient,
                created_by=actor,
                amount=amount,
                event_id=event.event_id,
                remark=remark,
            )
        )
    unit.record(*awards)

    logger.info(
        "event %s awarded %s points to %d guest(s) by user %s; %s remain",
        event_id,
        amount,
        len(awards),
        actor_id,
        event.points_remain,
    )
    return awards


def set_event_budget(unit: LedgerUnit, *, event_id: int, points_total: int, actor_id: int) -> Event:
    """Replace an event's total pool; the points already awarded must still fit."""

    require_positive_int(points_total, "points")
    actor = unit.get_user(actor_id)
    require_role(actor, Role.MANAGER, "change an event's point budget")

    event = unit.lock_event(event_id)
    unit.resize_event_budget(event, points_total)
    unit.session.flush()

    logger.info("event %s budget set to %s by user %s", event_id, points_total, actor_id)
    return event
