from datetime import timedelta
from decimal import Decimal

import pytest

from campus_points.models import OnetimePromotionClaim, PromotionKind
from campus_points.services import promotion_service, run_ledger_operation, suspicious_service, transaction_service
from campus_points.services.errors import NotFound, PromotionConflict
from campus_points.utils.datetime import utcnow


def _purchase(db, cashier, customer, spent, promotion_ids=(), now=None):
    return run_ledger_operation(
        db,
        lambda unit: transaction_service.create_purchase(
            unit,
            utorid=customer.utorid,
            spent=spent,
            promotion_ids=promotion_ids,
            actor_id=cashier.user_id,
            now=now,
        ),
    )


class TestAutomaticPromotions:
    def test_rate_promotion_applies_when_minimum_met(self, db, cashier, make_user, make_promotion) -> None:
        customer = make_user("alice001")
        promotion = make_promotion(rate="0.2", min_spending="30")

        purchase = _purchase(db, cashier, customer, Decimal("50.00"))

        # base round(50*4)=200, bonus round(50*100*0.2)=1000
        assert purchase.amount == 1200
        assert purchase.promotion_ids == [promotion.promotion_id]
        db.refresh(customer)
        assert customer.balance == 1200

    def test_minimum_not_met_skips_promotion(self, db, cashier, make_user, make_promotion) -> None:
        customer = make_user("alice001")
        make_promotion(rate="0.2", min_spending="30")

        purchase = _purchase(db, cashier, customer, Decimal("20.00"))

        assert purchase.amount == 80
        assert purchase.promotion_ids == []

    def test_window_is_half_open(self, db, make_user, make_promotion) -> None:
        customer = make_user("alice001")
        start = utcnow() - timedelta(hours=1)
        end = utcnow() + timedelta(hours=1)
        make_promotion(points=10, start_time=start, end_time=end)

        at_start = promotion_service.quote_purchase(db, user_id=customer.user_id, spent=Decimal("1.00"), now=start)
        at_end = promotion_service.quote_purchase(db, user_id=customer.user_id, spent=Decimal("1.00"), now=end)

        assert at_start.earned == 14
        assert at_end.earned == 4

    def test_promotions_stack(self, db, make_user, make_promotion) -> None:
        customer = make_user("alice001")
        make_promotion(rate="0.01")
        make_promotion(points=25)
        onetime = make_promotion(PromotionKind.ONETIME, points=100)

        quote = promotion_service.quote_purchase(
            db,
            user_id=customer.user_id,
            spent=Decimal("10.00"),
            promotion_ids=[onetime.promotion_id],
        )

        assert quote.base == 40
        assert quote.bonus == 10 + 25 + 100
        assert len(quote.promotions) == 3


class TestOnetimePromotions:
    def test_applied_once_then_rejected(self, db, cashier, make_user, make_promotion) -> None:
        customer = make_user("alice001")
        onetime = make_promotion(PromotionKind.ONETIME, points=100)

        first = _purchase(db, cashier, customer, Decimal("10.00"), [onetime.promotion_id])
        assert first.amount == 140

        with pytest.raises(PromotionConflict):
            _purchase(db, cashier, customer, Decimal("10.00"), [onetime.promotion_id])

        db.refresh(customer)
        assert customer.balance == 140

    def test_use_survives_suspicious_flag(self, db, cashier, manager, make_user, make_promotion) -> None:
        customer = make_user("alice001")
        onetime = make_promotion(PromotionKind.ONETIME, points=100)
        first = _purchase(db, cashier, customer, Decimal("10.00"), [onetime.promotion_id])

        run_ledger_operation(
            db,
            lambda unit: suspicious_service.set_suspicious(unit, first.transaction_id, True, actor_id=manager.user_id),
        )

        with pytest.raises(PromotionConflict):
            _purchase(db, cashier, customer, Decimal("10.00"), [onetime.promotion_id])

    def test_claim_constraint_catches_a_race(self, db, cashier, make_user, make_promotion, monkeypatch) -> None:
        customer = make_user("alice001")
        onetime = make_promotion(PromotionKind.ONETIME, points=100)
        _purchase(db, cashier, customer, Decimal("10.00"), [onetime.promotion_id])

        # A concurrent purchase that read the history before the first one committed.
        monkeypatch.setattr(promotion_service, "used_promotion_ids", lambda session, user_id: set())

        with pytest.raises(PromotionConflict):
            _purchase(db, cashier, customer, Decimal("10.00"), [onetime.promotion_id])

        db.refresh(customer)
        assert customer.balance == 140
        assert db.query(OnetimePromotionClaim).count() == 1

    def test_automatic_promotion_cannot_be_requested(self, db, cashier, make_user, make_promotion) -> None:
        customer = make_user("alice001")
        automatic = make_promotion(points=5)

        with pytest.raises(PromotionConflict):
            _purchase(db, cashier, customer, Decimal("10.00"), [automatic.promotion_id])

    def test_inactive_promotion_rejected(self, db, cashier, make_user, make_promotion) -> None:
        customer = make_user("alice001")
        expired = make_promotion(
            PromotionKind.ONETIME,
            points=5,
            start_time=utcnow() - timedelta(days=2),
            end_time=utcnow() - timedelta(days=1),
        )

        with pytest.raises(PromotionConflict):
            _purchase(db, cashier, customer, Decimal("10.00"), [expired.promotion_id])

    def test_unmet_minimum_rejected(self, db, cashier, make_user, make_promotion) -> None:
        customer = make_user("alice001")
        onetime = make_promotion(PromotionKind.ONETIME, points=5, min_spending="25")

        with pytest.raises(PromotionConflict):
            _purchase(db, cashier, customer, Decimal("10.00"), [onetime.promotion_id])

    def test_unknown_promotion_not_found(self, db, cashier, make_user) -> None:
        customer = make_user("alice001")

        with pytest.raises(NotFound):
            _purchase(db, cashier, customer, Decimal("10.00"), [999])

        db.refresh(customer)
        assert customer.balance == 0
