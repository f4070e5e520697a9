"""Promotion eligibility for purchases."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models import OnetimePromotionClaim, Promotion, PromotionKind, Transaction, transaction_promotions
from ..utils.datetime import utcnow, window_contains
from ..utils.points import base_points, promotion_bonus
from .errors import NotFound, PromotionConflict

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PromotionQuote:
    """Points a purchase earns and the promotions that earned them."""

    base: int
    bonus: int
    promotions: tuple[Promotion, ...]

    @property
    def earned(self) -> int:
        return self.base + self.bonus

    @property
    def promotion_ids(self) -> list[int]:
        return [promotion.promotion_id for promotion in self.promotions]

    @property
    def onetime_promotions(self) -> list[Promotion]:
        return [promotion for promotion in self.promotions if promotion.kind == PromotionKind.ONETIME]


def active_automatic_promotions(session: Session, *, spent: Decimal, now: datetime) -> Sequence[Promotion]:
    """Automatic promotions running at ``now`` whose minimum spend ``spent`` meets."""

    stmt = (
        select(Promotion)
        .where(
            Promotion.kind == PromotionKind.AUTOMATIC,
            Promotion.start_time <= now,
            Promotion.end_time > now,
            or_(Promotion.min_spending.is_(None), Promotion.min_spending <= spent),
        )
        .order_by(Promotion.promotion_id)
    )
    return session.execute(stmt).scalars().all()


def used_promotion_ids(session: Session, user_id: int) -> set[int]:
    """Every promotion id attached to any transaction the user has ever owned.

    Suspicious transactions count too: a consumed one-time promotion stays
    consumed after its purchase is flagged.
    """

    stmt = (
        select(transaction_promotions.c.promotion_id)
        .join(Transaction, Transaction.transaction_id == transaction_promotions.c.transaction_id)
        .where(Transaction.owner_id == user_id)
    )
    return set(session.execute(stmt).scalars().all())


def validate_requested_promotions(
    session: Session,
    *,
    user_id: int,
    spent: Decimal,
    promotion_ids: Iterable[int],
    now: datetime,
) -> list[Promotion]:
    """Check explicitly requested promotions; the first offender aborts the purchase."""

    requested = list(dict.fromkeys(promotion_ids))
    if not requested:
        return []

    found = {
        promotion.promotion_id: promotion
        for promotion in session.execute(
            select(Promotion).where(Promotion.promotion_id.in_(requested))
        ).scalars()
    }
    already_used = used_promotion_ids(session, user_id)

    validated: list[Promotion] = []
    for promotion_id in requested:
        promotion = found.get(promotion_id)
        if promotion is None:
            raise NotFound(f"Promotion {promotion_id} not found", field="promotion_ids")
        if promotion.kind != PromotionKind.ONETIME:
            raise PromotionConflict(promotion_id, "is not a one-time promotion and cannot be requested.")
        if not window_contains(promotion.start_time, promotion.end_time, now):
            raise PromotionConflict(promotion_id, "is not active.")
        if promotion.min_spending is not None and spent < promotion.min_spending:
            raise PromotionConflict(promotion_id, f"requires a minimum spending of {promotion.min_spending}.")
        if promotion_id in already_used:
            raise PromotionConflict(promotion_id, "has already been used by this user.")
        validated.append(promotion)
    return validated


def quote_purchase(
    session: Session,
    *,
    user_id: int,
    spent: Decimal,
    promotion_ids: Iterable[int] = (),
    now: Optional[datetime] = None,
) -> PromotionQuote:
    """Price a purchase: base points plus every applicable promotion bonus."""

    now = now or utcnow()
    automatic = active_automatic_promotions(session, spent=spent, now=now)
    requested = validate_requested_promotions(
        session,
        user_id=user_id,
        spent=spent,
        promotion_ids=promotion_ids,
        now=now,
    )

    applied: dict[int, Promotion] = {}
    for promotion in [*automatic, *requested]:
        applied.setdefault(promotion.promotion_id, promotion)

    bonus = sum(
        promotion_bonus(spent, rate=promotion.rate, points=promotion.points)
        for promotion in applied.values()
    )
    return PromotionQuote(
        base=base_points(spent),
        bonus=bonus,
        promotions=tuple(sorted(applied.values(), key=lambda promotion: promotion.promotion_id)),
    )


def claim_onetime_promotions(session: Session, *, user_id: int, transaction_id: int, promotions: Iterable[Promotion]) -> None:
    """Record one-time promotion use; a concurrent claim of the same promotion loses here."""

    for promotion_id in [promotion.promotion_id for promotion in promotions]:
        session.add(
            OnetimePromotionClaim(
                user_id=user_id,
                promotion_id=promotion_id,
                transaction_id=transaction_id,
            )
        )
        try:
            session.flush()
        except IntegrityError as exc:
            logger.info("one-time promotion %s claim rejected for user %s", promotion_id, user_id)
            raise PromotionConflict(promotion_id, "has already been used by this user.") from exc
