"""Event budget endpoints."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...schemas import (
    EventAwardBody,
    EventAwardCreate,
    EventAwardRead,
    EventBudgetRead,
    EventBudgetUpdate,
    serialize_transaction,
)
from ...services import event_award_service, run_ledger_operation, transaction_service
from ...services.errors import LedgerRuleViolation
from .deps import get_actor_id

router = APIRouter(prefix="/events", tags=["events"])


@router.post(
    "/{event_id}/transactions",
    response_model=List[EventAwardRead],
    status_code=status.HTTP_201_CREATED,
    summary="Award event points",
    responses={
        201: {
            "description": "One row per rewarded guest",
            "content": {
                "application/json": {
                    "example": [
                        {
                            "transaction_id": 91,
                            "kind": "event",
                            "utorid": "luna1234",
                            "amount": 30,
                            "related_id": 7,
                            "suspicious": False,
                            "remark": "Thanks for coming",
                            "created_by": "gandalf01",
                            "created_at": "2025-11-12T18:00:00",
                        }
                    ]
                }
            },
        },
        400: {"description": "Not a guest, no guests, or budget exceeded"},
        403: {"description": "Caller is neither a manager nor an organizer of this event"},
        404: {"description": "Event or user not found"},
        409: {"description": "Event has ended"},
    },
)
def award_event_points(
    event_id: int,
    payload: EventAwardBody,
    actor_id: int = Depends(get_actor_id),
    db: Session = Depends(get_db),
) -> List[EventAwardRead]:
    """Award points to one guest, or to every guest when ``utorid`` is omitted.

    Example request body::

        {"utorid": "luna1234", "amount": 30, "remark": "Thanks for coming"}
    """

    if event_id <= 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid eventId")
    request = EventAwardCreate(
        event_id=event_id,
        utorid=payload.utorid,
        amount=payload.amount,
        remark=payload.remark,
    )
    try:
        awards = run_ledger_operation(
            db,
            lambda unit: transaction_service.create_transaction(unit, request, actor_id=actor_id),
        )
        return [serialize_transaction(award) for award in awards]
    except LedgerRuleViolation as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.patch(
    "/{event_id}/budget",
    response_model=EventBudgetRead,
    summary="Change an event's point budget",
    responses={
        400: {"description": "New total is below the points already awarded"},
        403: {"description": "Caller lacks clearance"},
        404: {"description": "Event not found"},
    },
)
def set_event_budget(
    event_id: int,
    payload: EventBudgetUpdate,
    actor_id: int = Depends(get_actor_id),
    db: Session = Depends(get_db),
) -> EventBudgetRead:
    """Replace the event's total pool (manager or higher).

    Example request body::

        {"points": 500}
    """

    try:
        event = run_ledger_operation(
            db,
            lambda unit: event_award_service.set_event_budget(
                unit,
                event_id=event_id,
                points_total=payload.points,
                actor_id=actor_id,
            ),
        )
        return EventBudgetRead.model_validate(event)
    except LedgerRuleViolation as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc
