from datetime import timedelta

import pytest

from campus_points.models import EventTransaction, Role, Transaction
from campus_points.services import event_award_service, run_ledger_operation
from campus_points.services.errors import (
    BudgetExceeded,
    Forbidden,
    LedgerValidationError,
    NotFound,
    StateConflict,
)
from campus_points.utils.datetime import utcnow


def _award(db, actor, event, amount, utorid=None, now=None):
    return run_ledger_operation(
        db,
        lambda unit: event_award_service.award_event_points(
            unit,
            event_id=event.event_id,
            amount=amount,
            utorid=utorid,
            actor_id=actor.user_id,
            now=now,
        ),
    )


@pytest.fixture
def guests(make_user):
    return [make_user(f"guest00{i}") for i in range(1, 5)]


class TestBroadcast:
    def test_over_budget_awards_nobody(self, db, manager, guests, make_event) -> None:
        event = make_event(points_total=100, guests=guests)

        with pytest.raises(BudgetExceeded) as excinfo:
            _award(db, manager, event, 30)

        assert excinfo.value.required == 120
        assert excinfo.value.remaining == 100
        db.refresh(event)
        assert (event.points_remain, event.points_awarded) == (100, 0)
        for guest in guests:
            db.refresh(guest)
            assert guest.balance == 0
        assert db.query(Transaction).count() == 0

    def test_exact_budget_reaches_every_guest(self, db, manager, guests, make_event) -> None:
        event = make_event(points_total=100, guests=guests)

        awards = _award(db, manager, event, 25)

        assert len(awards) == 4
        assert all(isinstance(award, EventTransaction) for award in awards)
        assert {award.event_id for award in awards} == {event.event_id}
        db.refresh(event)
        assert (event.points_remain, event.points_awarded, event.points_total) == (0, 100, 100)
        for guest in guests:
            db.refresh(guest)
            assert guest.balance == 25

    def test_event_without_guests(self, db, manager, make_event) -> None:
        event = make_event(points_total=100)

        with pytest.raises(LedgerValidationError):
            _award(db, manager, event, 5)


class TestTargeted:
    def test_organizer_awards_a_guest(self, db, guests, make_user, make_event) -> None:
        organizer = make_user("organz01")
        event = make_event(points_total=50, guests=guests, organizers=[organizer])

        awards = _award(db, organizer, event, 20, utorid="guest001")

        assert [award.amount for award in awards] == [20]
        db.refresh(event)
        assert (event.points_remain, event.points_awarded) == (30, 20)
        db.refresh(guests[0])
        assert guests[0].balance == 20

    def test_target_must_be_a_guest(self, db, manager, guests, make_user, make_event) -> None:
        make_user("outsid01")
        event = make_event(points_total=50, guests=guests)

        with pytest.raises(LedgerValidationError):
            _award(db, manager, event, 5, utorid="outsid01")

    def test_regular_non_organizer_forbidden(self, db, guests, make_event) -> None:
        event = make_event(points_total=50, guests=guests)

        with pytest.raises(Forbidden):
            _award(db, guests[0], event, 5, utorid="guest002")

    def test_ended_event_rejected(self, db, manager, guests, make_event) -> None:
        now = utcnow()
        event = make_event(
            points_total=50,
            guests=guests,
            start_time=now - timedelta(hours=3),
            end_time=now - timedelta(hours=1),
        )

        with pytest.raises(StateConflict):
            _award(db, manager, event, 5, utorid="guest001")

    def test_awarding_at_end_time_is_too_late(self, db, manager, guests, make_event) -> None:
        event = make_event(points_total=50, guests=guests)

        with pytest.raises(StateConflict):
            _award(db, manager, event, 5, utorid="guest001", now=event.end_time)


class TestBudgetResize:
    def _resize(self, db, actor, event, points_total):
        return run_ledger_operation(
            db,
            lambda unit: event_award_service.set_event_budget(
                unit, event_id=event.event_id, points_total=points_total, actor_id=actor.user_id
            ),
        )

    def test_grow_budget(self, db, manager, guests, make_event) -> None:
        event = make_event(points_total=40, guests=guests)
        _award(db, manager, event, 10)

        resized = self._resize(db, manager, event, 100)

        assert (resized.points_total, resized.points_remain, resized.points_awarded) == (100, 60, 40)

    def test_cannot_shrink_below_awarded(self, db, manager, guests, make_event) -> None:
        event = make_event(points_total=40, guests=guests)
        _award(db, manager, event, 10)

        with pytest.raises(BudgetExceeded):
            self._resize(db, manager, event, 39)

        db.refresh(event)
        assert event.points_total == 40

    def test_requires_manager(self, db, make_user, make_event) -> None:
        cashier = make_user("cashier2", role=Role.CASHIER)
        event = make_event(points_total=40)

        with pytest.raises(Forbidden):
            self._resize(db, cashier, event, 80)


class TestEmptyTarget:
    def test_empty_utorid_is_not_a_broadcast(self, db, manager, guests, make_event) -> None:
        event = make_event(points_total=100, guests=guests)

        with pytest.raises(NotFound):
            _award(db, manager, event, 5, utorid="")

        db.refresh(event)
        assert event.points_awarded == 0
        assert db.query(Transaction).count() == 0
