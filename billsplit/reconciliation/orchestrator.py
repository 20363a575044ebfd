"""
Receipt Reconciliation Orchestrator

Keeps a receipt's stored header totals, transparency fields and its
system-generated Adjustment line consistent with its current items.

FLOW (one call, one unit of work from the caller's point of view):
1. Aggregate header subtotal/tax/total from the items
2. Reconcile the user's items against the printed totals
3. Copy the result onto the receipt and derive its status
4. Create, update or remove the Adjustment line
5. Aggregate the header again so it includes the Adjustment

The stored discrepancy describes the items as they were when the pass
started. After a pass that creates an Adjustment, the next pass reports
a zero discrepancy and leaves the Adjustment amount unchanged.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID

from billsplit.audit import AuditLogger
from billsplit.models.audit import AuditEventType
from billsplit.models.receipt import (
    LineItem,
    LineItemKind,
    ParsedItem,
    Receipt,
    ReceiptStatus,
)
from billsplit.models.reconciliation import ReconciliationPolicy, ReconciliationResult
from billsplit.money import ZERO, round2
from billsplit.reconciliation.calculator import reconcile
from billsplit.reconciliation.policy import can_auto_adjust
from billsplit.services.storage import NotFoundError, ReceiptStorageInterface

ADJUSTMENT_LABEL = "Adjustment"
ADJUSTMENT_NOTE = "Auto-reconcile"
ONE = Decimal("1")


def aggregate_header(receipt: Receipt) -> None:
    """
    Recompute header subtotal/tax/total from the receipt's items.

    A tax sum of exactly zero is stored as None; "no tax printed" and
    "zero tax charged" are not told apart.
    """
    items = receipt.items
    receipt.subtotal = round2(sum((i.line_subtotal for i in items), ZERO))
    tax = sum((i.tax or ZERO for i in items), ZERO)
    receipt.tax = None if tax == 0 else round2(tax)
    receipt.total = round2(sum((i.line_total for i in items), ZERO))


class ReceiptReconciliationOrchestrator:
    """
    Read-modify-write use case over a receipt.

    The orchestrator does not lock. Run reconcile() inside the same unit
    of work as the edit that triggered it.
    """

    def __init__(
        self,
        storage: ReceiptStorageInterface,
        policy: Optional[ReconciliationPolicy] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._policy = policy or ReconciliationPolicy.from_settings()
        self._audit_logger = audit_logger

    @property
    def policy(self) -> ReconciliationPolicy:
        return self._policy

    def reconcile(
        self,
        receipt_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> ReconciliationResult:
        """
        Load, reconcile and save a receipt.

        Raises:
            NotFoundError: If the receipt does not exist
        """
        receipt = self._storage.load_receipt(receipt_id)
        if receipt is None:
            raise NotFoundError(f"Receipt not found: {receipt_id}")

        result = self.reconcile_receipt(receipt, correlation_id)
        self._storage.save_receipt(receipt)
        return result

    def reconcile_receipt(
        self,
        receipt: Receipt,
        correlation_id: Optional[UUID] = None,
    ) -> ReconciliationResult:
        """
        Reconcile an already-loaded receipt in place.

        Returns:
            The result that was copied onto the receipt
        """
        aggregate_header(receipt)

        parsed = [ParsedItem.from_line_item(i) for i in receipt.regular_items()]
        raw = reconcile(parsed, receipt.printed, self._policy)

        prior = receipt.adjustment_item()
        prior_view = ParsedItem.from_line_item(prior) if prior else None

        kept = self._upsert_adjustment(receipt, raw, correlation_id)

        # Report the gap as it stood with the Adjustment the pass started with
        if kept is not None and prior_view is not None:
            reported = reconcile(parsed + [prior_view], receipt.printed, self._policy)
        else:
            reported = raw

        receipt.computed_items_subtotal = reported.items_sum
        receipt.baseline_subtotal = reported.baseline_subtotal
        receipt.baseline_source = reported.baseline_source
        receipt.discrepancy = reported.discrepancy
        receipt.reason = reported.reason
        receipt.status = (
            ReceiptStatus.PARSED if reported.is_success else ReceiptStatus.NEEDS_REVIEW
        )
        receipt.needs_review = receipt.status is ReceiptStatus.NEEDS_REVIEW

        aggregate_header(receipt)
        receipt.updated_at = datetime.now(timezone.utc)

        if self._audit_logger:
            self._audit_logger.log_receipt_reconciled(
                receipt_id=receipt.id,
                status=reported.status.value,
                items_sum=reported.items_sum,
                baseline=reported.baseline_subtotal,
                baseline_source=reported.baseline_source.value,
                discrepancy=reported.discrepancy,
                correlation_id=correlation_id,
            )

        return reported

    def _upsert_adjustment(
        self,
        receipt: Receipt,
        result: ReconciliationResult,
        correlation_id: Optional[UUID],
    ) -> Optional[LineItem]:
        """
        Make the Adjustment line match `result`.

        Returns:
            The Adjustment line left on the receipt, or None
        """
        existing = receipt.adjustment_item()

        if not result.needs_adjustment:
            receipt.adjustment_blocked_reason = None
            self._remove_adjustment(receipt, existing, correlation_id)
            return None

        delta = result.adjustment_delta

        if self._policy.enforce_caps:
            allowed, why = can_auto_adjust(
                has_printed_subtotal=receipt.printed.subtotal is not None,
                baseline=result.baseline_subtotal,
                delta=delta,
                policy=self._policy,
            )
            if not allowed:
                receipt.adjustment_blocked_reason = why
                self._remove_adjustment(receipt, existing, correlation_id)
                if self._audit_logger:
                    self._audit_logger.log_adjustment_blocked(
                        receipt_id=receipt.id,
                        delta=delta,
                        reason=why,
                        correlation_id=correlation_id,
                    )
                return None

        receipt.adjustment_blocked_reason = None

        if existing is None:
            adjustment = LineItem(
                description=ADJUSTMENT_LABEL,
                quantity=ONE,
                unit_price=delta,
                notes=ADJUSTMENT_NOTE,
                kind=LineItemKind.ADJUSTMENT,
                position=receipt.next_position(),
            )
            receipt.items.append(adjustment)
            self._log_adjustment(AuditEventType.ADJUSTMENT_CREATED, receipt, adjustment, correlation_id)
            return adjustment

        if existing.unit_price != delta or existing.quantity != ONE:
            existing.quantity = ONE
            existing.unit_price = delta
            existing.notes = ADJUSTMENT_NOTE
            existing.version += 1
            existing.updated_at = datetime.now(timezone.utc)
            existing.recalculate()
            self._log_adjustment(AuditEventType.ADJUSTMENT_UPDATED, receipt, existing, correlation_id)

        return existing

    def _remove_adjustment(
        self,
        receipt: Receipt,
        existing: Optional[LineItem],
        correlation_id: Optional[UUID],
    ) -> None:
        if existing is None:
            return
        receipt.items = [i for i in receipt.items if i.id != existing.id]
        self._log_adjustment(AuditEventType.ADJUSTMENT_REMOVED, receipt, existing, correlation_id)

    def _log_adjustment(
        self,
        event_type: AuditEventType,
        receipt: Receipt,
        item: LineItem,
        correlation_id: Optional[UUID],
    ) -> None:
        if self._audit_logger:
            self._audit_logger.log_adjustment_changed(
                event_type=event_type,
                receipt_id=receipt.id,
                item_id=item.id,
                amount=item.line_total,
                correlation_id=correlation_id,
            )
