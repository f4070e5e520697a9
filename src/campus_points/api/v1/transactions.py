"""Transaction endpoints for cashiers and managers."""

from __future__ import annotations

from typing import Union

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...schemas import (
    AdjustmentRead,
    CashierTransactionCreate,
    ProcessedUpdate,
    PurchaseRead,
    RedemptionRead,
    SuspiciousUpdate,
    TransactionRead,
    serialize_transaction,
)
from ...services import run_ledger_operation, suspicious_service, transaction_service
from ...services.errors import LedgerRuleViolation
from ...services.ledger_unit import LedgerUnit
from .deps import get_actor_id

router = APIRouter(prefix="/transactions", tags=["transactions"])


@router.post(
    "",
    response_model=Union[PurchaseRead, AdjustmentRead],
    status_code=status.HTTP_201_CREATED,
    summary="Record a purchase or adjustment",
    responses={
        201: {
            "description": "Transaction recorded",
            "content": {
                "application/json": {
                    "example": {
                        "transaction_id": 42,
                        "kind": "purchase",
                        "utorid": "harrypot",
                        "amount": 1200,
                        "spent": "50.00",
                        "promotion_ids": [3],
                        "suspicious": False,
                        "remark": "",
                        "created_by": "hermione",
                        "created_at": "2025-11-12T10:15:30",
                    }
                }
            },
        },
        400: {"description": "Ledger rule violation"},
        403: {"description": "Caller lacks clearance"},
        404: {"description": "User, promotion or related transaction not found"},
    },
)
def create_transaction(
    payload: CashierTransactionCreate,
    actor_id: int = Depends(get_actor_id),
    db: Session = Depends(get_db),
) -> TransactionRead:
    """Record a purchase (cashier or higher) or an adjustment (manager or higher).

    Example request body::

        {
            "kind": "purchase",
            "utorid": "harrypot",
            "spent": "50.00",
            "promotion_ids": [3]
        }
    """

    try:
        created = run_ledger_operation(
            db,
            lambda unit: transaction_service.create_transaction(unit, payload, actor_id=actor_id),
        )
        return serialize_transaction(created[0])
    except LedgerRuleViolation as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.get(
    "/{transaction_id}",
    response_model=TransactionRead,
    summary="Fetch a transaction",
    responses={403: {"description": "Caller lacks clearance"}, 404: {"description": "Transaction not found"}},
)
def get_transaction(
    transaction_id: int,
    actor_id: int = Depends(get_actor_id),
    db: Session = Depends(get_db),
) -> TransactionRead:
    """Return one transaction in the shape of its kind (manager or higher)."""

    try:
        transaction = transaction_service.get_transaction(LedgerUnit(db), transaction_id, actor_id=actor_id)
        return serialize_transaction(transaction)
    except LedgerRuleViolation as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.patch(
    "/{transaction_id}/suspicious",
    response_model=TransactionRead,
    summary="Flag or clear a transaction",
    responses={
        400: {"description": "Clearing the flag would overdraw the owner"},
        403: {"description": "Caller lacks clearance"},
        404: {"description": "Transaction not found"},
        409: {"description": "Concurrent update won"},
    },
)
def set_suspicious(
    transaction_id: int,
    payload: SuspiciousUpdate,
    actor_id: int = Depends(get_actor_id),
    db: Session = Depends(get_db),
) -> TransactionRead:
    """Toggle the suspicious flag and correct the owner's balance to match.

    Example request body::

        {"suspicious": true}
    """

    try:
        transaction = run_ledger_operation(
            db,
            lambda unit: suspicious_service.set_suspicious(
                unit,
                transaction_id,
                payload.suspicious,
                actor_id=actor_id,
            ),
        )
        return serialize_transaction(transaction)
    except LedgerRuleViolation as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.patch(
    "/{transaction_id}/processed",
    response_model=RedemptionRead,
    summary="Process a redemption",
    responses={
        400: {"description": "Not a redemption, or the owner no longer has enough points"},
        403: {"description": "Caller lacks clearance"},
        404: {"description": "Transaction not found"},
        409: {"description": "Redemption already processed"},
    },
)
def process_redemption(
    transaction_id: int,
    payload: ProcessedUpdate,
    actor_id: int = Depends(get_actor_id),
    db: Session = Depends(get_db),
) -> RedemptionRead:
    """Finalise a redemption request and debit the owner (cashier or higher)."""

    try:
        redemption = run_ledger_operation(
            db,
            lambda unit: transaction_service.process_redemption(unit, transaction_id, actor_id=actor_id),
        )
        return serialize_transaction(redemption)
    except LedgerRuleViolation as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc
