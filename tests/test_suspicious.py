from decimal import Decimal

import pytest

from campus_points.models import Role
from campus_points.services import run_ledger_operation, suspicious_service, transaction_service
from campus_points.services.errors import Forbidden, InsufficientBalance, NotFound


def _flag(db, actor, transaction_id, suspicious):
    return run_ledger_operation(
        db,
        lambda unit: suspicious_service.set_suspicious(unit, transaction_id, suspicious, actor_id=actor.user_id),
    )


def _purchase(db, cashier, spent="25.00"):
    return run_ledger_operation(
        db,
        lambda unit: transaction_service.create_purchase(
            unit, utorid="alice001", spent=Decimal(spent), actor_id=cashier.user_id
        ),
    )


class TestFlagging:
    def test_flag_then_clear_round_trips_balance(self, db, cashier, manager, make_user) -> None:
        customer = make_user("alice001")
        purchase = _purchase(db, cashier)

        flagged = _flag(db, manager, purchase.transaction_id, True)
        assert flagged.suspicious is True
        db.refresh(customer)
        assert customer.balance == 0

        cleared = _flag(db, manager, purchase.transaction_id, False)
        assert cleared.suspicious is False
        db.refresh(customer)
        assert customer.balance == 100

    def test_repeating_a_flag_moves_nothing(self, db, cashier, manager, make_user) -> None:
        customer = make_user("alice001")
        purchase = _purchase(db, cashier)

        _flag(db, manager, purchase.transaction_id, True)
        _flag(db, manager, purchase.transaction_id, True)

        db.refresh(customer)
        assert customer.balance == 0

    def test_clearing_a_clean_transaction_moves_nothing(self, db, cashier, manager, make_user) -> None:
        customer = make_user("alice001")
        purchase = _purchase(db, cashier)

        _flag(db, manager, purchase.transaction_id, False)

        db.refresh(customer)
        assert customer.balance == 100

    def test_clearing_a_withheld_purchase_credits_it(self, db, manager, make_user) -> None:
        customer = make_user("alice001")
        shady = make_user("shady001", role=Role.CASHIER, suspicious=True)
        purchase = _purchase(db, shady, "10.00")
        db.refresh(customer)
        assert customer.balance == 0

        _flag(db, manager, purchase.transaction_id, False)

        db.refresh(customer)
        assert customer.balance == 40

    def test_flagging_spent_points_is_rejected(self, db, cashier, manager, make_user) -> None:
        customer = make_user("alice001")
        friend = make_user("bob00001")
        purchase = _purchase(db, cashier)
        run_ledger_operation(
            db,
            lambda unit: transaction_service.create_transfer(
                unit, amount=90, recipient_id=friend.user_id, actor_id=customer.user_id
            ),
        )

        with pytest.raises(InsufficientBalance):
            _flag(db, manager, purchase.transaction_id, True)

        db.refresh(purchase)
        db.refresh(customer)
        assert purchase.suspicious is False
        assert customer.balance == 10

    def test_flagging_a_sent_transfer_refunds_the_sender(self, db, manager, make_user) -> None:
        sender = make_user("alice001", balance=50)
        recipient = make_user("bob00001")
        sent, _ = run_ledger_operation(
            db,
            lambda unit: transaction_service.create_transfer(
                unit, amount=20, recipient_id=recipient.user_id, actor_id=sender.user_id
            ),
        )

        _flag(db, manager, sent.transaction_id, True)

        db.refresh(sender)
        assert sender.balance == 50

    def test_version_bumps_on_each_transition(self, db, cashier, manager, make_user) -> None:
        make_user("alice001")
        purchase = _purchase(db, cashier)
        first_version = purchase.version

        _flag(db, manager, purchase.transaction_id, True)
        db.refresh(purchase)

        assert purchase.version == first_version + 1


class TestClearance:
    def test_cashier_cannot_flag(self, db, cashier, make_user) -> None:
        make_user("alice001")
        purchase = _purchase(db, cashier)

        with pytest.raises(Forbidden):
            _flag(db, cashier, purchase.transaction_id, True)

    def test_unknown_transaction(self, db, manager) -> None:
        with pytest.raises(NotFound):
            _flag(db, manager, 404, True)
