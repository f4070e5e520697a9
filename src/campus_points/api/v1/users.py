"""Endpoints acting on the caller's own points."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...schemas import (
    BalanceRead,
    RedemptionCreate,
    RedemptionRead,
    TransferBody,
    TransferCreate,
    TransferRead,
    serialize_transaction,
)
from ...services import run_ledger_operation, transaction_service
from ...services.errors import LedgerRuleViolation
from ...services.ledger_unit import LedgerUnit
from .deps import get_actor_id

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me/balance", response_model=BalanceRead, summary="Current balance")
def get_my_balance(
    actor_id: int = Depends(get_actor_id),
    db: Session = Depends(get_db),
) -> BalanceRead:
    """Return the caller's spendable points."""

    try:
        return BalanceRead.model_validate(LedgerUnit(db).get_user(actor_id))
    except LedgerRuleViolation as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.post(
    "/me/transactions",
    response_model=RedemptionRead,
    status_code=status.HTTP_201_CREATED,
    summary="Request a redemption",
    responses={
        201: {
            "description": "Redemption requested; a cashier processes it later",
            "content": {
                "application/json": {
                    "example": {
                        "transaction_id": 57,
                        "kind": "redemption",
                        "utorid": "harrypot",
                        "amount": 0,
                        "redeemed": 400,
                        "processed": False,
                        "processed_by": None,
                        "suspicious": False,
                        "remark": "Hoodie",
                        "created_by": "harrypot",
                        "created_at": "2025-11-12T14:30:00",
                    }
                }
            },
        },
        400: {"description": "Requested amount exceeds balance"},
        403: {"description": "Caller is not verified"},
    },
)
def request_redemption(
    payload: RedemptionCreate,
    actor_id: int = Depends(get_actor_id),
    db: Session = Depends(get_db),
) -> RedemptionRead:
    """Ask to redeem points.

    Example request body::

        {"kind": "redemption", "amount": 400, "remark": "Hoodie"}
    """

    try:
        created = run_ledger_operation(
            db,
            lambda unit: transaction_service.create_transaction(unit, payload, actor_id=actor_id),
        )
        return serialize_transaction(created[0])
    except LedgerRuleViolation as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.post(
    "/me/transactions/transfer",
    response_model=TransferRead,
    status_code=status.HTTP_201_CREATED,
    summary="Transfer points to another user",
    responses={
        400: {"description": "Insufficient points or self-transfer"},
        403: {"description": "Sender is not verified"},
        404: {"description": "Recipient not found"},
    },
)
def transfer_points(
    payload: TransferCreate,
    actor_id: int = Depends(get_actor_id),
    db: Session = Depends(get_db),
) -> TransferRead:
    """Send points to a recipient named by id or utorid; returns the sender's row.

    Example request body::

        {"kind": "transfer", "recipient_utorid": "luna1234", "amount": 50}
    """

    try:
        created = run_ledger_operation(
            db,
            lambda unit: transaction_service.create_transaction(unit, payload, actor_id=actor_id),
        )
        return serialize_transaction(created[0])
    except LedgerRuleViolation as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.post(
    "/{user_id}/transactions",
    response_model=TransferRead,
    status_code=status.HTTP_201_CREATED,
    summary="Transfer points to a user by id",
    responses={
        400: {"description": "Insufficient points or self-transfer"},
        403: {"description": "Sender is not verified"},
        404: {"description": "Recipient not found"},
    },
)
def transfer_points_to_user(
    user_id: int,
    payload: TransferBody,
    actor_id: int = Depends(get_actor_id),
    db: Session = Depends(get_db),
) -> TransferRead:
    """Send points to ``user_id``; returns the sender's row."""

    if user_id <= 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid userId")
    request = TransferCreate(recipient_id=user_id, amount=payload.amount, remark=payload.remark)
    try:
        created = run_ledger_operation(
            db,
            lambda unit: transaction_service.create_transaction(unit, request, actor_id=actor_id),
        )
        return serialize_transaction(created[0])
    except LedgerRuleViolation as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc
