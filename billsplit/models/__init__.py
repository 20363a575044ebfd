"""
Data Models Package

This package contains all Pydantic models used in the Bill Split system.
All data flowing through the system must conform to these schemas.
"""

from billsplit.models.receipt import (
    BaselineSource,
    ItemInput,
    ItemUpdate,
    LineItem,
    LineItemKind,
    MoneyTotals,
    ParsedItem,
    ParseStatus,
    Receipt,
    ReceiptStatus,
)
from billsplit.models.reconciliation import (
    ReconciliationPolicy,
    ReconciliationResult,
)
from billsplit.models.split import (
    FinalizedParticipant,
    FinalizeSplitResponse,
    ItemClaim,
    Participant,
    ParticipantAllocation,
    PaymentLink,
    ShareSplitView,
    SplitPreview,
    SplitSession,
    SplitSnapshot,
    UnclaimedItem,
)
from billsplit.models.validation import (
    ValidationIssue,
    ValidationResult,
)
from billsplit.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Receipt models
    "BaselineSource",
    "ItemInput",
    "ItemUpdate",
    "LineItem",
    "LineItemKind",
    "MoneyTotals",
    "ParsedItem",
    "ParseStatus",
    "Receipt",
    "ReceiptStatus",
    # Reconciliation models
    "ReconciliationPolicy",
    "ReconciliationResult",
    # Split models
    "FinalizedParticipant",
    "FinalizeSplitResponse",
    "ItemClaim",
    "Participant",
    "ParticipantAllocation",
    "PaymentLink",
    "ShareSplitView",
    "SplitPreview",
    "SplitSession",
    "SplitSnapshot",
    "UnclaimedItem",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
