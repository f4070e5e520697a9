"""Public schema exports."""

from .event import EventBudgetRead, EventBudgetUpdate
from .transaction import (
	AdjustmentCreate,
	AdjustmentRead,
	CashierTransactionCreate,
	EventAwardBody,
	EventAwardCreate,
	EventAwardRead,
	ProcessedUpdate,
	PurchaseCreate,
	PurchaseRead,
	RedemptionCreate,
	RedemptionRead,
	SuspiciousUpdate,
	TransactionCreate,
	TransactionRead,
	TransferBody,
	TransferCreate,
	TransferRead,
	serialize_transaction,
)
from .user import BalanceRead

__all__ = [
	"AdjustmentCreate",
	"AdjustmentRead",
	"BalanceRead",
	"CashierTransactionCreate",
	"EventAwardBody",
	"EventAwardCreate",
	"EventAwardRead",
	"EventBudgetRead",
	"EventBudgetUpdate",
	"ProcessedUpdate",
	"PurchaseCreate",
	"PurchaseRead",
	"RedemptionCreate",
	"RedemptionRead",
	"SuspiciousUpdate",
	"TransactionCreate",
	"TransactionRead",
	"TransferBody",
	"TransferCreate",
	"TransferRead",
	"serialize_transaction",
]
