"""Pydantic schemas for event budget endpoints."""

from pydantic import BaseModel, ConfigDict, Field, PositiveInt


class EventBudgetUpdate(BaseModel):
    """New total point pool for an event."""

    points: PositiveInt = Field(..., description="Replacement for points_total; must cover points already awarded.")


class EventBudgetRead(BaseModel):
    """Current state of an event's point pool."""

    model_config = ConfigDict(from_attributes=True)

    event_id: int
    name: str
    points_total: int = Field(..., ge=0)
    points_remain: int = Field(..., ge=0)
    points_awarded: int = Field(..., ge=0)
