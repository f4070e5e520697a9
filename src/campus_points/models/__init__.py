"""SQLAlchemy models for the campus points ledger."""

from .event import Event, EventGuest, EventOrganizer
from .promotion import OnetimePromotionClaim, Promotion, PromotionKind
from .transaction import (
    AdjustmentTransaction,
    EventTransaction,
    PurchaseTransaction,
    RedemptionTransaction,
    Transaction,
    TransactionKind,
    TransferTransaction,
    transaction_promotions,
)
from .user import Role, User, role_at_least

__all__ = [
    "AdjustmentTransaction",
    "Event",
    "EventGuest",
    "EventOrganizer",
    "EventTransaction",
    "OnetimePromotionClaim",
    "Promotion",
    "PromotionKind",
    "PurchaseTransaction",
    "RedemptionTransaction",
    "Role",
    "Transaction",
    "TransactionKind",
    "TransferTransaction",
    "User",
    "role_at_least",
    "transaction_promotions",
]
