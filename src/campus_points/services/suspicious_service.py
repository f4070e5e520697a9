"""Suspicious-flag toggling with the matching balance correction."""

from __future__ import annotations

import logging

from ..models import Role, Transaction
from ..utils.datetime import utcnow
from .clearance import require_role
from .ledger_unit import LedgerUnit

logger = logging.getLogger(__name__)


def balance_delta(amount: int, was_suspicious: bool, now_suspicious: bool) -> int:
    """Points to move on the owner for a flag transition.

    Flagging claws back whatever the transaction contributed; clearing puts
    it back. Setting the flag to its current value moves nothing.
    """

    if was_suspicious == now_suspicious:
        return 0
    return -amount if now_suspicious else amount


def set_suspicious(unit: LedgerUnit, transaction_id: int, suspicious: bool, *, actor_id: int) -> Transaction:
    """Flag or clear a transaction and correct its owner's balance in the same unit.

    Balances never go negative, so flagging a credit the owner has already
    spent is refused with ``InsufficientBalance`` and the flag is left as it
    was. Flagging the transfers that spent it first restores the balance
    needed.
    """

    manager = unit.get_user(actor_id)
    require_role(manager, Role.MANAGER, "flag transactions")

    current = unit.get_transaction(transaction_id)
    if current.suspicious == suspicious:
        unit.session.refresh(current)
        if current.suspicious == suspicious:
            return current

    owner = unit.lock_user(current.owner_id)
    transaction = unit.lock_transaction(transaction_id)
    if transaction.suspicious == suspicious:
        return transaction

    delta = balance_delta(transaction.amount, transaction.suspicious, suspicious)
    if delta:
        unit.apply_balance(owner, delta)
    transaction.suspicious = suspicious
    transaction.updated_at = utcnow()
    unit.session.flush()

    logger.info(
        "transaction %s marked %s by %s; %+d points for %s",
        transaction_id,
        "suspicious" if suspicious else "clean",
        manager.utorid,
        delta,
        owner.utorid,
    )
    return transaction
