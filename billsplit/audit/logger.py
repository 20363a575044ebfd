"""
Audit Logger

DESIGN DECISION: Every change the engine makes is logged.
This provides:
1. Traceability of every Adjustment line and snapshot
2. Debugging capability when a split does not add up
3. An answer to "why was this receipt flagged for review?"

The audit logger:
- Gracefully handles failures (a broken audit store never breaks reconciliation)
- Supports correlation IDs to trace related events
"""

import logging
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import structlog

from billsplit.config import get_settings
from billsplit.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from billsplit.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: Optional[str] = None) -> None:
    """
    Set the minimum level of the billsplit loggers.

    Defaults to the LOG_LEVEL setting. Events below it are dropped by
    structlog's filter_by_level before rendering.
    """
    logging.getLogger("billsplit").setLevel(level or get_settings().app.log_level)


configure_logging()


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("billsplit.audit")

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_receipt_reconciled(
        self,
        receipt_id: UUID,
        status: str,
        items_sum: Decimal,
        baseline: Decimal,
        baseline_source: str,
        discrepancy: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a reconciliation outcome."""
        self.log(AuditEventBuilder.receipt_reconciled(
            receipt_id=receipt_id,
            status=status,
            items_sum=items_sum,
            baseline=baseline,
            baseline_source=baseline_source,
            discrepancy=discrepancy,
            correlation_id=correlation_id,
        ))

    def log_adjustment_changed(
        self,
        event_type: AuditEventType,
        receipt_id: UUID,
        item_id: UUID,
        amount: Optional[Decimal],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log creation, update or removal of the Adjustment line."""
        self.log(AuditEventBuilder.adjustment_changed(
            event_type=event_type,
            receipt_id=receipt_id,
            item_id=item_id,
            amount=amount,
            correlation_id=correlation_id,
        ))

    def log_adjustment_blocked(
        self,
        receipt_id: UUID,
        delta: Decimal,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an auto-adjustment refused by the cap policy."""
        self.log(AuditEventBuilder.adjustment_blocked(
            receipt_id=receipt_id,
            delta=delta,
            reason=reason,
            correlation_id=correlation_id,
        ))

    def log_item_changed(
        self,
        event_type: AuditEventType,
        receipt_id: UUID,
        item_id: UUID,
        description: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a user edit to a line item."""
        self.log(AuditEventBuilder.item_changed(
            event_type=event_type,
            receipt_id=receipt_id,
            item_id=item_id,
            description=description,
            correlation_id=correlation_id,
        ))

    def log_claim_validation_failed(
        self,
        split_id: UUID,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log claims rejected before allocation."""
        self.log(AuditEventBuilder.claim_validation_failed(
            split_id=split_id,
            issues=issues,
            correlation_id=correlation_id,
        ))

    def log_split_previewed(
        self,
        split_id: UUID,
        total: Decimal,
        participant_count: int,
        unclaimed_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a split preview."""
        self.log(AuditEventBuilder.split_previewed(
            split_id=split_id,
            total=total,
            participant_count=participant_count,
            unclaimed_count=unclaimed_count,
            correlation_id=correlation_id,
        ))

    def log_split_finalized(
        self,
        split_id: UUID,
        snapshot_id: UUID,
        share_code: str,
        total: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a new snapshot."""
        self.log(AuditEventBuilder.split_finalized(
            split_id=split_id,
            snapshot_id=snapshot_id,
            share_code=share_code,
            total=total,
            correlation_id=correlation_id,
        ))

    def log_split_finalize_replayed(
        self,
        split_id: UUID,
        share_code: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a repeated finalize call served from the existing snapshot."""
        self.log(AuditEventBuilder.split_finalize_replayed(
            split_id=split_id,
            share_code=share_code,
            correlation_id=correlation_id,
        ))

    def log_share_code_assigned(
        self,
        split_id: UUID,
        share_code: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log share code assignment."""
        self.log(AuditEventBuilder.share_code_assigned(
            split_id=split_id,
            share_code=share_code,
            correlation_id=correlation_id,
        ))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., an item edit).
    Pass it through all subsequent operations.
    """
    return uuid4()
