"""
Audit Models for Bill Split

Every change the engine makes to a receipt or split is logged:
1. Reconciliation outcomes and the Adjustment line's lifecycle
2. User item edits
3. Split previews, finalization and share codes

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Reconciliation
    RECEIPT_RECONCILED = "receipt_reconciled"
    ADJUSTMENT_CREATED = "adjustment_created"
    ADJUSTMENT_UPDATED = "adjustment_updated"
    ADJUSTMENT_REMOVED = "adjustment_removed"
    ADJUSTMENT_BLOCKED = "adjustment_blocked"

    # Item edits
    ITEM_ADDED = "item_added"
    ITEM_UPDATED = "item_updated"
    ITEM_DELETED = "item_deleted"

    # Splits
    CLAIM_VALIDATION_FAILED = "claim_validation_failed"
    SPLIT_PREVIEWED = "split_previewed"
    SPLIT_FINALIZED = "split_finalized"
    SPLIT_FINALIZE_REPLAYED = "split_finalize_replayed"
    SHARE_CODE_ASSIGNED = "share_code_assigned"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'receipt', 'item', 'split')"
    )
    entity_id: Optional[UUID] = None

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one item edit and its reconciliation)"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.receipt_reconciled(receipt_id, ...)
        event = AuditEventBuilder.split_finalized(split_id, share_code, ...)

    Money is recorded as strings so the log keeps exact cents.
    """

    @staticmethod
    def receipt_reconciled(
        receipt_id: UUID,
        status: str,
        items_sum: Decimal,
        baseline: Decimal,
        baseline_source: str,
        discrepancy: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        success = status == "success"
        return AuditEvent(
            event_type=AuditEventType.RECEIPT_RECONCILED,
            severity=AuditSeverity.INFO if success else AuditSeverity.WARNING,
            entity_type="receipt",
            entity_id=receipt_id,
            correlation_id=correlation_id,
            description=(
                f"Receipt reconciled: {status} "
                f"(items {items_sum} vs baseline {baseline})"
            ),
            details={
                "status": status,
                "items_sum": str(items_sum),
                "baseline_subtotal": str(baseline),
                "baseline_source": baseline_source,
                "discrepancy": str(discrepancy),
            },
        )

    @staticmethod
    def adjustment_changed(
        event_type: AuditEventType,
        receipt_id: UUID,
        item_id: UUID,
        amount: Optional[Decimal],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        verb = event_type.value.split("_", 1)[1]
        return AuditEvent(
            event_type=event_type,
            entity_type="receipt",
            entity_id=receipt_id,
            correlation_id=correlation_id,
            description=f"Adjustment line {verb}",
            details={
                "item_id": str(item_id),
                "amount": None if amount is None else str(amount),
            },
        )

    @staticmethod
    def adjustment_blocked(
        receipt_id: UUID,
        delta: Decimal,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ADJUSTMENT_BLOCKED,
            severity=AuditSeverity.WARNING,
            entity_type="receipt",
            entity_id=receipt_id,
            correlation_id=correlation_id,
            description=f"Auto-adjustment of {delta} refused ({reason})",
            details={
                "delta": str(delta),
                "reason": reason,
            },
        )

    @staticmethod
    def item_changed(
        event_type: AuditEventType,
        receipt_id: UUID,
        item_id: UUID,
        description: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        verb = event_type.value.split("_", 1)[1]
        return AuditEvent(
            event_type=event_type,
            entity_type="item",
            entity_id=item_id,
            correlation_id=correlation_id,
            description=f"Item {verb}: {description}"[:500],
            details={
                "receipt_id": str(receipt_id),
            },
            is_user_action=True,
        )

    @staticmethod
    def claim_validation_failed(
        split_id: UUID,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CLAIM_VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="split",
            entity_id=split_id,
            correlation_id=correlation_id,
            description=f"Claim validation failed with {len(issues)} issues",
            details={
                "issues": issues,
            },
        )

    @staticmethod
    def split_previewed(
        split_id: UUID,
        total: Decimal,
        participant_count: int,
        unclaimed_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SPLIT_PREVIEWED,
            severity=AuditSeverity.DEBUG,
            entity_type="split",
            entity_id=split_id,
            correlation_id=correlation_id,
            description=f"Split previewed across {participant_count} participants",
            details={
                "total": str(total),
                "participant_count": participant_count,
                "unclaimed_count": unclaimed_count,
            },
        )

    @staticmethod
    def split_finalized(
        split_id: UUID,
        snapshot_id: UUID,
        share_code: str,
        total: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SPLIT_FINALIZED,
            entity_type="split",
            entity_id=split_id,
            correlation_id=correlation_id,
            description=f"Split finalized with share code {share_code}",
            details={
                "snapshot_id": str(snapshot_id),
                "share_code": share_code,
                "total": str(total),
            },
            is_user_action=True,
        )

    @staticmethod
    def split_finalize_replayed(
        split_id: UUID,
        share_code: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SPLIT_FINALIZE_REPLAYED,
            severity=AuditSeverity.DEBUG,
            entity_type="split",
            entity_id=split_id,
            correlation_id=correlation_id,
            description="Split already finalized; returned existing snapshot",
            details={
                "share_code": share_code,
            },
        )

    @staticmethod
    def share_code_assigned(
        split_id: UUID,
        share_code: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SHARE_CODE_ASSIGNED,
            entity_type="split",
            entity_id=split_id,
            correlation_id=correlation_id,
            description=f"Share code assigned: {share_code}",
            details={
                "share_code": share_code,
            },
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
