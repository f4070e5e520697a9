"""User domain model and role ordering."""

import enum
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Enum as SAEnum, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from ..core.database import Base


class Role(enum.IntEnum):
    """Clearance levels, ordered from least to most privileged."""

    REGULAR = 0
    CASHIER = 1
    MANAGER = 2
    SUPERUSER = 3


def role_at_least(have: Role, need: Role) -> bool:
    """Return True when ``have`` grants at least the clearance of ``need``."""

    return Role(have) >= Role(need)


class User(Base):
    """Represents a campus member holding a points balance."""

    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("utorid", name="users_utorid_unique"),
        CheckConstraint("balance >= 0", name="users_balance_non_negative"),
    )

    user_id = Column(Integer, primary_key=True, autoincrement=True)
    utorid = Column(String(8), nullable=False)
    name = Column(String(50), nullable=False, default="")
    role = Column(SAEnum(Role, name="user_role"), nullable=False, default=Role.REGULAR)
    verified = Column(Boolean, nullable=False, default=False)
    suspicious = Column(Boolean, nullable=False, default=False)
    balance = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    transactions = relationship(
        "Transaction",
        foreign_keys="Transaction.owner_id",
        back_populates="owner",
    )
    organized_events = relationship("EventOrganizer", back_populates="user")
    guest_of = relationship("EventGuest", back_populates="user")

    def has_role(self, need: Role) -> bool:
        return role_at_least(self.role, need)
