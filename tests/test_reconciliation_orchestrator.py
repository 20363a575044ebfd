"""Tests for the receipt reconciliation orchestrator."""

from decimal import Decimal
from uuid import uuid4

import pytest

from billsplit.models import AuditEventType, LineItemKind, ReceiptStatus
from billsplit.reconciliation import ReceiptReconciliationOrchestrator, aggregate_header
from billsplit.services.storage import NotFoundError

LUNCH = [("Burger", "1", "12.00"), ("Fries", "1", "5.00"), ("Soda", "1", "2.80")]


@pytest.fixture
def orchestrator(receipt_storage, policy, audit_logger):
    return ReceiptReconciliationOrchestrator(receipt_storage, policy=policy, audit_logger=audit_logger)


class TestHeaderAggregation:
    """Tests for aggregate_header()."""

    def test_sums_lines(self, make_receipt):
        receipt = make_receipt(LUNCH)
        receipt.items[0].tax = Decimal("0.50")
        receipt.items[0].recalculate()

        aggregate_header(receipt)

        assert receipt.subtotal == Decimal("19.80")
        assert receipt.tax == Decimal("0.50")
        assert receipt.total == Decimal("20.30")

    def test_zero_tax_is_none(self, make_receipt):
        receipt = make_receipt(LUNCH)
        aggregate_header(receipt)
        assert receipt.tax is None

    def test_printed_totals_untouched(self, make_receipt):
        receipt = make_receipt(LUNCH, subtotal="20.00")
        aggregate_header(receipt)
        assert receipt.printed.subtotal == Decimal("20.00")


class TestAdjustmentLifecycle:
    """Creating, keeping, updating and removing the Adjustment line."""

    def test_first_pass_creates_adjustment(self, orchestrator, make_receipt):
        receipt = make_receipt(LUNCH, subtotal="20.00", tax="1.60", total="21.60")

        result = orchestrator.reconcile_receipt(receipt)

        adjustment = receipt.adjustment_item()
        assert adjustment is not None
        assert adjustment.kind == LineItemKind.ADJUSTMENT
        assert adjustment.description == "Adjustment"
        assert adjustment.quantity == Decimal("1")
        assert adjustment.unit_price == Decimal("0.20")
        assert adjustment.position == 4

        # The stored report describes the items before the Adjustment
        assert result.discrepancy == Decimal("-0.20")
        assert receipt.discrepancy == Decimal("-0.20")
        assert receipt.computed_items_subtotal == Decimal("19.80")
        assert receipt.baseline_subtotal == Decimal("20.00")
        assert receipt.status == ReceiptStatus.NEEDS_REVIEW
        assert receipt.needs_review is True

        # The header includes the Adjustment
        assert receipt.subtotal == Decimal("20.00")

    def test_second_pass_is_idempotent(self, orchestrator, make_receipt):
        receipt = make_receipt(LUNCH, subtotal="20.00", tax="1.60", total="21.60")
        orchestrator.reconcile_receipt(receipt)
        first = receipt.adjustment_item().model_copy()

        result = orchestrator.reconcile_receipt(receipt)

        adjustments = [i for i in receipt.items if i.kind == LineItemKind.ADJUSTMENT]
        assert len(adjustments) == 1
        assert adjustments[0].id == first.id
        assert adjustments[0].unit_price == first.unit_price
        assert adjustments[0].version == first.version
        assert result.discrepancy == Decimal("0.00")
        assert receipt.status == ReceiptStatus.PARSED
        assert receipt.needs_review is False

    def test_adjustment_updated_when_gap_changes(self, orchestrator, make_receipt):
        receipt = make_receipt(LUNCH, subtotal="20.00")
        orchestrator.reconcile_receipt(receipt)
        adjustment_id = receipt.adjustment_item().id

        soda = receipt.items[2]
        soda.unit_price = Decimal("2.90")
        soda.recalculate()
        orchestrator.reconcile_receipt(receipt)

        adjustment = receipt.adjustment_item()
        assert adjustment.id == adjustment_id
        assert adjustment.unit_price == Decimal("0.10")
        assert adjustment.line_total == Decimal("0.10")
        assert adjustment.version == 1

        # Settles on the next pass
        result = orchestrator.reconcile_receipt(receipt)
        assert result.discrepancy == Decimal("0.00")
        assert receipt.subtotal == Decimal("20.00")

    def test_adjustment_removed_when_items_match(self, orchestrator, make_receipt):
        receipt = make_receipt(LUNCH, subtotal="20.00")
        orchestrator.reconcile_receipt(receipt)

        soda = receipt.items[2]
        soda.unit_price = Decimal("3.00")
        soda.recalculate()
        result = orchestrator.reconcile_receipt(receipt)

        assert receipt.adjustment_item() is None
        assert result.is_success
        assert receipt.status == ReceiptStatus.PARSED
        assert receipt.subtotal == Decimal("20.00")

    def test_negative_adjustment(self, orchestrator, make_receipt):
        receipt = make_receipt(
            [("Burger", "1", "12.00"), ("Fries", "1", "5.00"), ("Soda", "1", "3.25")],
            subtotal="20.00",
        )

        orchestrator.reconcile_receipt(receipt)

        adjustment = receipt.adjustment_item()
        assert adjustment.unit_price == Decimal("-0.25")
        assert adjustment.line_subtotal == Decimal("-0.25")
        assert receipt.subtotal == Decimal("20.00")

    def test_baseline_from_total(self, orchestrator, make_receipt):
        receipt = make_receipt(LUNCH, tax="1.60", total="21.60")

        orchestrator.reconcile_receipt(receipt)

        assert receipt.baseline_source.value == "total"
        assert receipt.adjustment_item().unit_price == Decimal("0.20")

    def test_no_adjustment_when_only_grand_total_is_off(self, orchestrator, make_receipt):
        receipt = make_receipt(LUNCH, subtotal="19.80", tax="1.60", total="25.00")

        result = orchestrator.reconcile_receipt(receipt)

        assert receipt.adjustment_item() is None
        assert result.status.value == "failed"
        assert receipt.status == ReceiptStatus.NEEDS_REVIEW


class TestAdjustmentCaps:
    """Tests for the auto-adjust cap policy inside the orchestrator."""

    def test_blocked_by_percentage_cap(self, orchestrator, make_receipt, audit_storage):
        receipt = make_receipt([("Burger", "1", "15.00")], subtotal="20.00")

        orchestrator.reconcile_receipt(receipt)

        assert receipt.adjustment_item() is None
        assert receipt.adjustment_blocked_reason == "pct_cap"
        assert receipt.status == ReceiptStatus.NEEDS_REVIEW
        events = audit_storage.get_events_by_entity("receipt", receipt.id)
        assert AuditEventType.ADJUSTMENT_BLOCKED in [e.event_type for e in events]

    def test_blocked_by_absolute_cap(self, orchestrator, make_receipt):
        receipt = make_receipt([("Banquet", "1", "994.00")], subtotal="1000.00")
        orchestrator.reconcile_receipt(receipt)
        assert receipt.adjustment_blocked_reason == "abs_cap"

    def test_existing_adjustment_removed_when_blocked(self, orchestrator, make_receipt):
        receipt = make_receipt(LUNCH, subtotal="20.00")
        orchestrator.reconcile_receipt(receipt)
        assert receipt.adjustment_item() is not None

        receipt.items = [i for i in receipt.items if i.description != "Burger"]
        orchestrator.reconcile_receipt(receipt)

        assert receipt.adjustment_item() is None
        assert receipt.adjustment_blocked_reason is not None

    def test_block_reason_cleared_once_resolved(self, orchestrator, make_receipt):
        receipt = make_receipt([("Burger", "1", "15.00")], subtotal="20.00")
        orchestrator.reconcile_receipt(receipt)

        receipt.items[0].unit_price = Decimal("20.00")
        receipt.items[0].recalculate()
        orchestrator.reconcile_receipt(receipt)

        assert receipt.adjustment_blocked_reason is None

    def test_caps_not_enforced(self, receipt_storage, uncapped_policy, make_receipt):
        orchestrator = ReceiptReconciliationOrchestrator(receipt_storage, policy=uncapped_policy)
        receipt = make_receipt([("Burger", "1", "15.00")], subtotal="20.00")

        orchestrator.reconcile_receipt(receipt)

        assert receipt.adjustment_item().unit_price == Decimal("5.00")
        assert receipt.adjustment_blocked_reason is None


class TestStorageRoundTrip:
    """Tests for reconcile(receipt_id) over storage."""

    def test_reconcile_by_id_saves(self, orchestrator, receipt_storage, make_receipt):
        receipt = make_receipt(LUNCH, subtotal="20.00")
        receipt_storage.save_receipt(receipt)

        orchestrator.reconcile(receipt.id)

        stored = receipt_storage.load_receipt(receipt.id)
        assert stored.adjustment_item() is not None
        assert stored.discrepancy == Decimal("-0.20")

    def test_missing_receipt(self, orchestrator):
        with pytest.raises(NotFoundError):
            orchestrator.reconcile(uuid4())

    def test_events_share_correlation_id(self, orchestrator, make_receipt, audit_storage):
        receipt = make_receipt(LUNCH, subtotal="20.00")
        correlation_id = uuid4()

        orchestrator.reconcile_receipt(receipt, correlation_id)

        types = [e.event_type for e in audit_storage.get_events_by_correlation_id(correlation_id)]
        assert types == [AuditEventType.ADJUSTMENT_CREATED, AuditEventType.RECEIPT_RECONCILED]
