"""Event model with its point budget, organizers and guests."""

from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from ..core.database import Base


class Event(Base):
    """Campus event distributing points from a fixed pool."""

    __tablename__ = "events"
    __table_args__ = (
        CheckConstraint("points_remain >= 0", name="events_points_remain_non_negative"),
        CheckConstraint("points_awarded >= 0", name="events_points_awarded_non_negative"),
        CheckConstraint("points_remain + points_awarded = points_total", name="events_budget_balanced"),
    )

    event_id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    points_total = Column(Integer, nullable=False)
    points_remain = Column(Integer, nullable=False)
    points_awarded = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    organizers = relationship("EventOrganizer", back_populates="event")
    guests = relationship("EventGuest", back_populates="event")


class EventOrganizer(Base):
    __tablename__ = "event_organizers"
    __table_args__ = (
        UniqueConstraint("event_id", "user_id", name="event_organizers_unique"),
    )

    organizer_id = Column(Integer, primary_key=True, autoincrement=True)
    event_id = Column(Integer, ForeignKey("events.event_id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)

    event = relationship("Event", back_populates="organizers")
    user = relationship("User", back_populates="organized_events")


class EventGuest(Base):
    __tablename__ = "event_guests"
    __table_args__ = (
        UniqueConstraint("event_id", "user_id", name="event_guests_unique"),
    )

    guest_id = Column(Integer, primary_key=True, autoincrement=True)
    event_id = Column(Integer, ForeignKey("events.event_id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    event = relationship("Event", back_populates="guests")
    user = relationship("User", back_populates="guest_of")
