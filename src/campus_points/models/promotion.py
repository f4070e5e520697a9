"""Promotion model consulted when pricing purchases."""

import enum
from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, Enum as SAEnum, ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import relationship

from ..core.database import Base


class PromotionKind(str, enum.Enum):
    """How a promotion is attached to a purchase."""

    AUTOMATIC = "automatic"
    ONETIME = "onetime"


class Promotion(Base):
    """A time-boxed bonus rule; read-only from the ledger's point of view."""

    __tablename__ = "promotions"
    __table_args__ = (
        CheckConstraint("start_time < end_time", name="promotions_window_order"),
        CheckConstraint("min_spending IS NULL OR min_spending >= 0", name="promotions_min_spending_positive"),
        CheckConstraint("rate IS NULL OR rate >= 0", name="promotions_rate_positive"),
        CheckConstraint("points IS NULL OR points >= 0", name="promotions_points_positive"),
    )

    promotion_id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    kind = Column(SAEnum(PromotionKind, name="promotion_kind"), nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    min_spending = Column(Numeric(10, 2))
    rate = Column(Numeric(6, 4))
    points = Column(Integer)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class OnetimePromotionClaim(Base):
    """One row per user per consumed one-time promotion.

    The unique constraint is what makes a one-time promotion single-use when
    two purchases race past the history check.
    """

    __tablename__ = "onetime_promotion_claims"
    __table_args__ = (
        UniqueConstraint("user_id", "promotion_id", name="onetime_promotion_claims_unique"),
    )

    claim_id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="RESTRICT"), nullable=False)
    promotion_id = Column(Integer, ForeignKey("promotions.promotion_id", ondelete="RESTRICT"), nullable=False)
    transaction_id = Column(Integer, ForeignKey("transactions.transaction_id", ondelete="RESTRICT"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    promotion = relationship("Promotion")
