"""Service layer exports."""

from . import (
	event_award_service,
	promotion_service,
	reconciliation_service,
	suspicious_service,
	transaction_service,
)
from .ledger_unit import LedgerUnit, run_ledger_operation

__all__ = [
	"LedgerUnit",
	"event_award_service",
	"promotion_service",
	"reconciliation_service",
	"run_ledger_operation",
	"suspicious_service",
	"transaction_service",
]
