"""Clearance checks shared by ledger operations."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import EventOrganizer, Role, User, role_at_least
from .errors import Forbidden


def require_role(user: User, need: Role, action: str) -> None:
    if not role_at_least(user.role, need):
        raise Forbidden(f"Only {need.name.lower()}s or higher may {action}.")


def is_event_organizer(session: Session, event_id: int, user_id: int) -> bool:
    stmt = select(EventOrganizer.organizer_id).where(
        EventOrganizer.event_id == event_id,
        EventOrganizer.user_id == user_id,
    )
    return session.execute(stmt).first() is not None
