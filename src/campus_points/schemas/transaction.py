"""Pydantic schemas for transaction endpoints."""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, PositiveInt, StrictBool, StrictInt, field_validator, model_validator

from ..models import TransactionKind

UTORID_PATTERN = r"^[A-Za-z0-9]{7,8}$"

Utorid = Annotated[str, Field(pattern=UTORID_PATTERN, description="7-8 alphanumeric campus id.")]
Remark = Annotated[str, Field(max_length=280)]


class PurchaseCreate(BaseModel):
    """Cashier records money spent by a customer."""

    kind: Literal["purchase"] = "purchase"
    utorid: Utorid
    spent: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2, description="Dollars spent.")
    promotion_ids: List[PositiveInt] = Field(
        default_factory=list,
        description="One-time promotions to apply; automatic promotions are found without asking.",
    )
    remark: Remark = ""


class AdjustmentCreate(BaseModel):
    """Manager correction referencing an earlier transaction."""

    kind: Literal["adjustment"] = "adjustment"
    utorid: Utorid
    amount: StrictInt = Field(..., description="Signed point correction.")
    related_id: PositiveInt = Field(..., description="Transaction being corrected.")
    promotion_ids: List[int] = Field(default_factory=list)
    remark: Remark = ""

    @field_validator("amount")
    @classmethod
    def _non_zero(cls, value: int) -> int:
        if value == 0:
            raise ValueError("amount must be non-zero")
        return value


class RedemptionCreate(BaseModel):
    """The caller asks to spend points; a cashier processes it later."""

    kind: Literal["redemption"] = "redemption"
    amount: PositiveInt = Field(..., description="Points to redeem.")
    remark: Remark = ""


class TransferCreate(BaseModel):
    """The caller sends points to another user, named by id or utorid."""

    kind: Literal["transfer"] = "transfer"
    recipient_id: Optional[PositiveInt] = None
    recipient_utorid: Optional[Annotated[str, Field(pattern=UTORID_PATTERN)]] = None
    amount: PositiveInt
    remark: Remark = ""

    @model_validator(mode="after")
    def _one_recipient(self) -> "TransferCreate":
        if (self.recipient_id is None) == (self.recipient_utorid is None):
            raise ValueError("exactly one of recipient_id or recipient_utorid is required")
        return self


class EventAwardCreate(BaseModel):
    """Award points from an event budget to one guest, or to every guest when ``utorid`` is omitted."""

    kind: Literal["event"] = "event"
    event_id: PositiveInt
    utorid: Optional[Utorid] = None
    amount: PositiveInt = Field(..., description="Points per recipient.")
    remark: Remark = ""


TransactionCreate = Annotated[
    Union[PurchaseCreate, AdjustmentCreate, RedemptionCreate, TransferCreate, EventAwardCreate],
    Field(discriminator="kind"),
]

CashierTransactionCreate = Annotated[
    Union[PurchaseCreate, AdjustmentCreate],
    Field(discriminator="kind"),
]


class TransferBody(BaseModel):
    """Body of ``POST /users/{user_id}/transactions``; the path names the recipient."""

    amount: PositiveInt
    remark: Remark = ""


class EventAwardBody(BaseModel):
    """Body of ``POST /events/{event_id}/transactions``."""

    utorid: Optional[Utorid] = None
    amount: PositiveInt
    remark: Remark = ""


class SuspiciousUpdate(BaseModel):
    suspicious: StrictBool


class ProcessedUpdate(BaseModel):
    processed: Literal[True]


class TransactionReadBase(BaseModel):
    """Fields every transaction kind carries."""

    model_config = ConfigDict(from_attributes=True)

    transaction_id: int
    kind: TransactionKind
    utorid: str
    amount: int
    suspicious: bool
    remark: str
    created_by: str = Field(validation_alias=AliasChoices("created_by_utorid", "created_by"))
    created_at: datetime


class PurchaseRead(TransactionReadBase):
    spent: Decimal
    promotion_ids: List[int]


class RedemptionRead(TransactionReadBase):
    redeemed: int
    processed: bool
    processed_by: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("processed_by_utorid", "processed_by"),
    )


class AdjustmentRead(TransactionReadBase):
    related_id: int = Field(description="Transaction corrected by this adjustment.")


class TransferRead(TransactionReadBase):
    related_id: int = Field(description="User on the other side of the transfer.")


class EventAwardRead(TransactionReadBase):
    related_id: int = Field(description="Event the points came from.")


TransactionRead = Union[PurchaseRead, RedemptionRead, AdjustmentRead, TransferRead, EventAwardRead]

_READ_MODELS = {
    TransactionKind.PURCHASE: PurchaseRead,
    TransactionKind.REDEMPTION: RedemptionRead,
    TransactionKind.ADJUSTMENT: AdjustmentRead,
    TransactionKind.TRANSFER: TransferRead,
    TransactionKind.EVENT: EventAwardRead,
}


def serialize_transaction(transaction) -> TransactionRead:
    """Project an ORM transaction onto the read model of its kind."""

    return _READ_MODELS[transaction.kind].model_validate(transaction)
