"""Receipt reconciliation package."""

from billsplit.reconciliation.calculator import reconcile, select_baseline
from billsplit.reconciliation.orchestrator import (
    ADJUSTMENT_LABEL,
    ReceiptReconciliationOrchestrator,
    aggregate_header,
)
from billsplit.reconciliation.policy import can_auto_adjust

__all__ = [
    "ADJUSTMENT_LABEL",
    "ReceiptReconciliationOrchestrator",
    "aggregate_header",
    "can_auto_adjust",
    "reconcile",
    "select_baseline",
]
