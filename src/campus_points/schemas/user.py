"""Pydantic schemas for user balance views."""

from pydantic import BaseModel, ConfigDict, Field

from ..models import Role


class BalanceRead(BaseModel):
    """A user's spendable points."""

    model_config = ConfigDict(from_attributes=True)

    user_id: int
    utorid: str
    role: Role
    verified: bool
    balance: int = Field(..., ge=0)
