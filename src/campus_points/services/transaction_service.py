"""Ledger core: validated transaction requests become committed point movements.

Each function here is an operation for ``run_ledger_operation``: it receives
the ``LedgerUnit`` of the current atomic unit, raises a ``LedgerRuleViolation``
on the first broken rule, and leaves committing to the runner.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional, Union

from ..models import (
    AdjustmentTransaction,
    PurchaseTransaction,
    RedemptionTransaction,
    Role,
    Transaction,
    TransactionKind,
    TransferTransaction,
)
from ..schemas.transaction import (
    AdjustmentCreate,
    EventAwardCreate,
    PurchaseCreate,
    RedemptionCreate,
    TransactionCreate,
    TransferCreate,
)
from ..utils.datetime import utcnow
from . import event_award_service, promotion_service
from .clearance import require_role
from .errors import Forbidden, LedgerValidationError, NotFound, StateConflict
from .ledger_unit import LedgerUnit
from .validation import require_nonzero_int, require_positive_int, require_spent

logger = logging.getLogger(__name__)


def create_purchase(
    unit: LedgerUnit,
    *,
    utorid: str,
    spent: Union[Decimal, int, float, str],
    actor_id: int,
    promotion_ids: Iterable[int] = (),
    remark: str = "",
    now: Optional[datetime] = None,
) -> PurchaseTransaction:
    """Record a purchase and credit the points it earns.

    A purchase entered by a suspicious cashier is stored with the points it
    would have earned but flagged suspicious, and the customer's balance is
    left alone until a manager clears it.
    """

    cashier = unit.get_user(actor_id)
    require_role(cashier, Role.CASHIER, "record purchases")
    spent = require_spent(spent)
    promotion_ids = list(promotion_ids)
    for promotion_id in promotion_ids:
        require_positive_int(promotion_id, "promotion_ids")

    customer = unit.lock_user(unit.find_user(utorid).user_id)
    quote = promotion_service.quote_purchase(
        unit.session,
        user_id=customer.user_id,
        spent=spent,
        promotion_ids=promotion_ids,
        now=now,
    )

    withheld = bool(cashier.suspicious)
    purchase = PurchaseTransaction(
        owner=customer,
        created_by=cashier,
        amount=quote.earned,
        spent=spent,
        suspicious=withheld,
        remark=remark,
        promotions=list(quote.promotions),
    )
    unit.record(purchase)
    promotion_service.claim_onetime_promotions(
        unit.session,
        user_id=customer.user_id,
        transaction_id=purchase.transaction_id,
        promotions=quote.onetime_promotions,
    )
    if not withheld:
        unit.apply_balance(customer, quote.earned)

    logger.info(
        "purchase %s: %s spent by %s earned %s points (promotions %s)%s",
        purchase.transaction_id,
        spent,
        customer.utorid,
        quote.earned,
        quote.promotion_ids,
        " [withheld: suspicious cashier]" if withheld else "",
    )
    return purchase


def create_adjustment(
    unit: LedgerUnit,
    *,
    utorid: str,
    amount: int,
    related_id: Optional[int],
    actor_id: int,
    promotion_ids: Iterable[int] = (),
    remark: str = "",
) -> AdjustmentTransaction:
    """Apply a signed manager correction that points at the transaction it corrects."""

    manager = unit.get_user(actor_id)
    require_role(manager, Role.MANAGER, "create adjustments")
    if list(promotion_ids):
        raise LedgerValidationError("Promotions cannot be applied to adjustments.", field="promotion_ids")
    require_nonzero_int(amount, "amount")
    if related_id is None:
        raise LedgerValidationError("related_id is required for an adjustment.", field="related_id")
    require_positive_int(related_id, "related_id")

    try:
        corrected = unit.get_transaction(related_id)
    except NotFound as exc:
        raise NotFound(f"Transaction {related_id} being adjusted was not found", field="related_id") from exc

    customer = unit.lock_user(unit.find_user(utorid).user_id)
    unit.apply_balance(customer, amount)
    adjustment = AdjustmentTransaction(
        owner=customer,
        created_by=manager,
        amount=amount,
        corrects_id=corrected.transaction_id,
        remark=remark,
    )
    unit.record(adjustment)

    logger.info(
        "adjustment %s: %+d points for %s correcting transaction %s",
        adjustment.transaction_id,
        amount,
        customer.utorid,
        corrected.transaction_id,
    )
    return adjustment


def request_redemption(unit: LedgerUnit, *, amount: int, actor_id: int, remark: str = "") -> RedemptionTransaction:
    """Open a redemption for the caller; points leave the balance only when processed."""

    require_positive_int(amount, "amount")
    user = unit.lock_user(actor_id)
    if not user.verified:
        raise Forbidden("User must be verified to redeem points.")
    unit.require_balance(user, amount)

    redemption = RedemptionTransaction(
        owner=user,
        created_by=user,
        amount=0,
        redeemed=amount,
        remark=remark,
    )
    unit.record(redemption)

    logger.info("redemption %s requested by %s for %s points", redemption.transaction_id, user.utorid, amount)
    return redemption


def process_redemption(unit: LedgerUnit, transaction_id: int, *, actor_id: int) -> RedemptionTransaction:
    """Finalise a pending redemption and debit its owner.

    The balance is checked again here because it may have dropped since the
    request was made.
    """

    cashier = unit.get_user(actor_id)
    require_role(cashier, Role.CASHIER, "process redemptions")

    pending = unit.get_transaction(transaction_id)
    if pending.kind != TransactionKind.REDEMPTION:
        raise LedgerValidationError("Only redemption transactions can be processed.", field="transaction_id")

    owner = unit.lock_user(pending.owner_id)
    redemption = unit.lock_transaction(transaction_id)
    if redemption.processed:
        raise StateConflict(f"Redemption {transaction_id} has already been processed.")
    redeemed = require_positive_int(redemption.redeemed, "redeemed")
    unit.require_balance(owner, redeemed, field="redeemed")

    now = utcnow()
    redemption.amount = -redeemed
    redemption.processed_by = cashier
    redemption.processed_at = now
    redemption.updated_at = now
    if not redemption.suspicious:
        unit.apply_balance(owner, -redeemed, field="redeemed")
    unit.session.flush()

    logger.info(
        "redemption %s processed by %s: %s points from %s",
        transaction_id,
        cashier.utorid,
        redeemed,
        owner.utorid,
    )
    return redemption


def create_transfer(
    unit: LedgerUnit,
    *,
    amount: int,
    actor_id: int,
    recipient_id: Optional[int] = None,
    recipient_utorid: Optional[str] = None,
    remark: str = "",
) -> tuple[TransferTransaction, TransferTransaction]:
    """Move points from the caller to another user as a debit/credit pair.

    Returns ``(sent, received)``: the sender's negative row and the
    recipient's positive row.
    """

    require_positive_int(amount, "amount")
    if recipient_utorid is not None:
        recipient_id = unit.find_user(recipient_utorid).user_id
    if recipient_id is None:
        raise LedgerValidationError("A transfer needs a recipient.", field="recipient_id")
    if recipient_id == actor_id:
        raise LedgerValidationError("Cannot transfer points to yourself.", field="recipient_id")

    locked = unit.lock_users([actor_id, recipient_id])
    sender, recipient = locked[actor_id], locked[recipient_id]
    if not sender.verified:
        raise Forbidden("Sender must be verified to transfer points.")

    unit.apply_balance(sender, -amount)
    unit.apply_balance(recipient, amount)
    sent = TransferTransaction(
        owner=sender,
        created_by=sender,
        amount=-amount,
        counterpart_id=recipient.user_id,
        remark=remark,
    )
    received = TransferTransaction(
        owner=recipient,
        created_by=sender,
        amount=amount,
        counterpart_id=sender.user_id,
        remark=remark,
    )
    unit.record(sent, received)

    logger.info("transfer %s/%s: %s points from %s to %s", sent.transaction_id, received.transaction_id, amount, sender.utorid, recipient.utorid)
    return sent, received


def create_transaction(unit: LedgerUnit, request: TransactionCreate, *, actor_id: int) -> list[Transaction]:
    """Dispatch a tagged request to the operation for its kind.

    Returns every row written, the caller's own row first.
    """

    if isinstance(request, PurchaseCreate):
        return [
            create_purchase(
                unit,
                utorid=request.utorid,
                spent=request.spent,
                promotion_ids=request.promotion_ids,
                remark=request.remark,
                actor_id=actor_id,
            )
        ]
    if isinstance(request, AdjustmentCreate):
        return [
            create_adjustment(
                unit,
                utorid=request.utorid,
                amount=request.amount,
                related_id=request.related_id,
                promotion_ids=request.promotion_ids,
                remark=request.remark,
                actor_id=actor_id,
            )
        ]
    if isinstance(request, RedemptionCreate):
        return [request_redemption(unit, amount=request.amount, remark=request.remark, actor_id=actor_id)]
    if isinstance(request, TransferCreate):
        return list(
            create_transfer(
                unit,
                amount=request.amount,
                recipient_id=request.recipient_id,
                recipient_utorid=request.recipient_utorid,
                remark=request.remark,
                actor_id=actor_id,
            )
        )
    if isinstance(request, EventAwardCreate):
        return list(
            event_award_service.award_event_points(
                unit,
                event_id=request.event_id,
                utorid=request.utorid,
                amount=request.amount,
                remark=request.remark,
                actor_id=actor_id,
            )
        )
    raise LedgerValidationError(f"Unsupported transaction kind: {getattr(request, 'kind', None)!r}", field="kind")


def get_transaction(unit: LedgerUnit, transaction_id: int, *, actor_id: int) -> Transaction:
    viewer = unit.get_user(actor_id)
    require_role(viewer, Role.MANAGER, "view transactions")
    return unit.get_transaction(transaction_id)
