"""Transaction records, one mapped subclass per kind.

All kinds share the ``transactions`` table (single-table inheritance keyed on
``kind``); each subclass exposes only the columns that mean something for it,
and ``related_id`` is re-exposed under a kind-specific name.
"""

import enum
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Enum as SAEnum, ForeignKey, Integer, Numeric, String, Table
from sqlalchemy.orm import relationship, synonym

from ..core.database import Base


class TransactionKind(str, enum.Enum):
    """Ledger transaction classification."""

    PURCHASE = "purchase"
    REDEMPTION = "redemption"
    ADJUSTMENT = "adjustment"
    TRANSFER = "transfer"
    EVENT = "event"


transaction_promotions = Table(
    "transaction_promotions",
    Base.metadata,
    Column("transaction_id", Integer, ForeignKey("transactions.transaction_id", ondelete="CASCADE"), primary_key=True),
    Column("promotion_id", Integer, ForeignKey("promotions.promotion_id", ondelete="RESTRICT"), primary_key=True),
)


class Transaction(Base):
    """A signed movement of points owned by one user."""

    __tablename__ = "transactions"

    transaction_id = Column(Integer, primary_key=True, autoincrement=True)
    kind = Column(SAEnum(TransactionKind, name="transaction_kind"), nullable=False)
    owner_id = Column(Integer, ForeignKey("users.user_id", ondelete="RESTRICT"), nullable=False, index=True)
    amount = Column(Integer, nullable=False, default=0)
    related_id = Column(Integer)
    suspicious = Column(Boolean, nullable=False, default=False)
    remark = Column(String, nullable=False, default="")
    created_by_id = Column(Integer, ForeignKey("users.user_id", ondelete="RESTRICT"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    version = Column(Integer, nullable=False)

    owner = relationship("User", foreign_keys=[owner_id], back_populates="transactions")
    created_by = relationship("User", foreign_keys=[created_by_id])

    __mapper_args__ = {
        "polymorphic_on": kind,
        "version_id_col": version,
    }

    @property
    def utorid(self) -> str:
        return self.owner.utorid

    @property
    def created_by_utorid(self) -> str:
        return self.created_by.utorid

    def __repr__(self) -> str:
        return (
            f"<{type(self).__name__} id={self.transaction_id} owner={self.owner_id} "
            f"amount={self.amount} suspicious={self.suspicious}>"
        )


class PurchaseTransaction(Transaction):
    """Points earned by spending money at a cashier."""

    __mapper_args__ = {"polymorphic_identity": TransactionKind.PURCHASE}

    spent = Column(Numeric(10, 2))

    promotions = relationship("Promotion", secondary=transaction_promotions, order_by="Promotion.promotion_id")

    @property
    def promotion_ids(self) -> list[int]:
        return [promotion.promotion_id for promotion in self.promotions]


class RedemptionTransaction(Transaction):
    """A request to spend points; the balance moves only once processed."""

    __mapper_args__ = {"polymorphic_identity": TransactionKind.REDEMPTION}

    redeemed = Column(Integer)
    processed_by_id = Column(Integer, ForeignKey("users.user_id", ondelete="RESTRICT"))
    processed_at = Column(DateTime)

    processed_by = relationship("User", foreign_keys=[processed_by_id])

    @property
    def processed(self) -> bool:
        return self.processed_by_id is not None

    @property
    def processed_by_utorid(self) -> str | None:
        return self.processed_by.utorid if self.processed_by is not None else None


class AdjustmentTransaction(Transaction):
    """Manager correction of an earlier transaction."""

    __mapper_args__ = {"polymorphic_identity": TransactionKind.ADJUSTMENT}

    corrects_id = synonym("related_id")


class TransferTransaction(Transaction):
    """One side of a user-to-user transfer; ``counterpart_id`` is the other user."""

    __mapper_args__ = {"polymorphic_identity": TransactionKind.TRANSFER}

    counterpart_id = synonym("related_id")


class EventTransaction(Transaction):
    """Points awarded to a guest out of an event budget."""

    __mapper_args__ = {"polymorphic_identity": TransactionKind.EVENT}

    event_id = synonym("related_id")
