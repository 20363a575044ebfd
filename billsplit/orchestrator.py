"""
Main Orchestrator for Bill Split

This module ties together all the components and defines the
end-to-end flows for:
1. Item edits (validate → normalise → change → reconcile → save)
2. Splits (validate claims → allocate → finalize → share)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Every item edit is followed by reconciliation in the same call
- System-generated lines are never edited by users
- Nothing is allocated from claims that failed validation
- Every step is audited

Each public method is one read-modify-write over a storage aggregate.
Callers that need atomicity across concurrent requests wrap the call
in their own unit of work.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID

from billsplit.audit import AuditLogger, create_correlation_id
from billsplit.models.audit import AuditEventType
from billsplit.models.receipt import (
    BaselineSource,
    ItemInput,
    ItemUpdate,
    LineItem,
    Receipt,
)
from billsplit.models.reconciliation import ReconciliationPolicy, ReconciliationResult
from billsplit.models.split import FinalizeSplitResponse, ShareSplitView, SplitPreview
from billsplit.models.validation import ValidationResult
from billsplit.money import ZERO, round2, round3
from billsplit.reconciliation import ReceiptReconciliationOrchestrator
from billsplit.services.storage import (
    AuditStorageInterface,
    ConflictError,
    InMemoryAuditStorage,
    InMemoryReceiptStorage,
    InMemorySplitStorage,
    NotFoundError,
    ReceiptStorageInterface,
    SplitStorageInterface,
)
from billsplit.splits import (
    PaymentLinkBuilder,
    ShareCodeGenerator,
    SplitFinalizer,
    SplitShareReader,
    allocate_split,
)
from billsplit.validation import (
    ClaimValidator,
    InvalidInputError,
    ItemValidator,
    SystemItemProtectedError,
    get_user_friendly_summary,
)

ONE = Decimal("1")


def normalise_line_values(
    quantity: Decimal,
    unit_price: Decimal,
    discount: Optional[Decimal],
    tax: Optional[Decimal],
) -> tuple[Decimal, Decimal, Optional[Decimal], Optional[Decimal]]:
    """
    Round a line's inputs the way they are stored.

    Quantity goes to 3 decimals and falls back to 1 when not positive.
    Money goes to cents. The discount is capped at quantity * unit_price.
    """
    quantity = round3(quantity)
    if quantity <= 0:
        quantity = ONE
    unit_price = round2(unit_price)
    if discount is not None:
        discount = min(round2(discount), max(round2(quantity * unit_price), ZERO))
    if tax is not None:
        tax = round2(tax)
    return quantity, unit_price, discount, tax


class ReceiptItemFlow:
    """
    Orchestrates user edits to a receipt's line items.

    Flow:
    1. Load → receipt and, for edits, the target line
    2. Guard → system lines and stale versions are refused
    3. Validate → ItemValidator
    4. Change → normalised values, version bump
    5. Reconcile → header, transparency fields, Adjustment line
    6. Save → one write of the whole receipt
    """

    def __init__(
        self,
        receipt_storage: ReceiptStorageInterface,
        reconciler: Optional[ReceiptReconciliationOrchestrator] = None,
        validator: Optional[ItemValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = receipt_storage
        self._audit_logger = audit_logger
        self._reconciler = reconciler or ReceiptReconciliationOrchestrator(
            receipt_storage,
            audit_logger=audit_logger,
        )
        self._validator = validator or ItemValidator()

    def import_receipt(
        self,
        receipt: Receipt,
        correlation_id: Optional[UUID] = None,
    ) -> ReconciliationResult:
        """
        Store a freshly parsed receipt and run its first reconciliation.

        Lines the caller marked as system-generated are dropped; the
        Adjustment line is only ever created by reconciliation.
        """
        correlation_id = correlation_id or create_correlation_id()
        receipt.items = receipt.regular_items()
        result = self._reconciler.reconcile_receipt(receipt, correlation_id)
        self._storage.save_receipt(receipt)
        return result

    def reconcile(
        self,
        receipt_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> ReconciliationResult:
        """Re-run reconciliation, e.g. after the printed totals changed."""
        return self._reconciler.reconcile(receipt_id, correlation_id or create_correlation_id())

    def add_item(
        self,
        receipt_id: UUID,
        data: ItemInput,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[LineItem, ReconciliationResult]:
        """
        Add a line item and reconcile.

        Raises:
            NotFoundError: If the receipt does not exist
            InvalidInputError: If validation fails
        """
        correlation_id = correlation_id or create_correlation_id()
        receipt = self._load(receipt_id)

        self._check(self._validator.validate(data, receipt_id=receipt.id))

        quantity, unit_price, discount, tax = normalise_line_values(
            data.quantity, data.unit_price, data.discount, data.tax
        )
        item = LineItem(
            description=data.description,
            quantity=quantity,
            unit_price=unit_price,
            discount=discount,
            tax=tax,
            notes=data.notes,
            position=receipt.next_position() if data.position is None else data.position,
        )
        receipt.items.append(item)
        self._log_item(AuditEventType.ITEM_ADDED, receipt, item, correlation_id)

        result = self._reconciler.reconcile_receipt(receipt, correlation_id)
        self._storage.save_receipt(receipt)
        return item, result

    def update_item(
        self,
        receipt_id: UUID,
        item_id: UUID,
        data: ItemUpdate,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[LineItem, ReconciliationResult]:
        """
        Apply a partial edit to a line item and reconcile.

        Raises:
            NotFoundError: If the receipt or item does not exist
            SystemItemProtectedError: If the item is system-generated
            ConflictError: If data.version does not match the stored line
            InvalidInputError: If validation fails
        """
        correlation_id = correlation_id or create_correlation_id()
        receipt = self._load(receipt_id)
        item = self._editable_item(receipt, item_id, data.version)

        self._check(self._validator.validate(data, receipt_id=receipt.id, current=item))

        quantity, unit_price, discount, tax = normalise_line_values(
            item.quantity if data.quantity is None else data.quantity,
            item.unit_price if data.unit_price is None else data.unit_price,
            item.discount if data.discount is None else data.discount,
            item.tax if data.tax is None else data.tax,
        )
        item.quantity = quantity
        item.unit_price = unit_price
        item.discount = discount
        item.tax = tax
        if data.description is not None:
            item.description = data.description
        if data.notes is not None:
            item.notes = data.notes
        if data.position is not None:
            item.position = data.position
        item.version += 1
        item.updated_at = datetime.now(timezone.utc)
        item.recalculate()
        self._log_item(AuditEventType.ITEM_UPDATED, receipt, item, correlation_id)

        result = self._reconciler.reconcile_receipt(receipt, correlation_id)
        self._storage.save_receipt(receipt)
        return item, result

    def delete_item(
        self,
        receipt_id: UUID,
        item_id: UUID,
        version: int,
        correlation_id: Optional[UUID] = None,
    ) -> ReconciliationResult:
        """
        Delete a line item and reconcile.

        Raises:
            NotFoundError: If the receipt or item does not exist
            SystemItemProtectedError: If the item is system-generated
            ConflictError: If version does not match the stored line
        """
        correlation_id = correlation_id or create_correlation_id()
        receipt = self._load(receipt_id)
        item = self._editable_item(receipt, item_id, version)

        receipt.items = [i for i in receipt.items if i.id != item.id]
        self._log_item(AuditEventType.ITEM_DELETED, receipt, item, correlation_id)

        result = self._reconciler.reconcile_receipt(receipt, correlation_id)
        self._storage.save_receipt(receipt)
        return result

    def _load(self, receipt_id: UUID) -> Receipt:
        receipt = self._storage.load_receipt(receipt_id)
        if receipt is None:
            raise NotFoundError(f"Receipt not found: {receipt_id}")
        return receipt

    def _editable_item(self, receipt: Receipt, item_id: UUID, version: int) -> LineItem:
        item = receipt.find_item(item_id)
        if item is None:
            raise NotFoundError(f"Line item not found: {item_id}")
        if item.is_system_generated:
            raise SystemItemProtectedError(item.id)
        if item.version != version:
            raise ConflictError(
                f"Line item {item_id} is at version {item.version}, not {version}"
            )
        return item

    @staticmethod
    def _check(result: ValidationResult) -> None:
        if result.has_errors:
            raise InvalidInputError(get_user_friendly_summary(result), result)

    def _log_item(
        self,
        event_type: AuditEventType,
        receipt: Receipt,
        item: LineItem,
        correlation_id: UUID,
    ) -> None:
        if self._audit_logger:
            self._audit_logger.log_item_changed(
                event_type=event_type,
                receipt_id=receipt.id,
                item_id=item.id,
                description=item.description,
                correlation_id=correlation_id,
            )


class SplitFlow:
    """
    Orchestrates previewing, finalizing and sharing a split.

    Flow:
    1. Preview → claims validated, allocation computed (nothing saved)
    2. Finalize → preview frozen into a snapshot, share code assigned
    3. Share → public view of the latest snapshot by share code
    """

    def __init__(
        self,
        split_storage: SplitStorageInterface,
        receipt_storage: ReceiptStorageInterface,
        claim_validator: Optional[ClaimValidator] = None,
        link_builder: Optional[PaymentLinkBuilder] = None,
        share_codes: Optional[ShareCodeGenerator] = None,
        audit_logger: Optional[AuditLogger] = None,
        base_url: Optional[str] = None,
    ):
        self._splits = split_storage
        self._receipts = receipt_storage
        self._validator = claim_validator or ClaimValidator()
        self._audit_logger = audit_logger
        self._finalizer = SplitFinalizer(
            storage=split_storage,
            preview=self.preview,
            share_codes=share_codes,
            link_builder=link_builder,
            audit_logger=audit_logger,
            base_url=base_url,
        )
        self._reader = SplitShareReader(split_storage, link_builder)

    def preview(
        self,
        split_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> SplitPreview:
        """
        Compute what each participant currently owes.

        The receipt subtotal is the printed one, or else the baseline
        derived from the printed total. With neither printed it is the
        sum of line subtotals, so line discounts stay with their lines.
        Tax is the printed one, or else the sum of per-line taxes. Tip is
        the printed one. The system Adjustment line is not allocated as an
        item; its amount reaches participants through the subtotal-level
        pool.

        Raises:
            NotFoundError: If the split or its receipt does not exist
            InvalidInputError: If the claims fail validation
        """
        correlation_id = correlation_id or create_correlation_id()

        session = self._splits.load_session(split_id)
        if session is None:
            raise NotFoundError(f"Split not found: {split_id}")
        receipt = self._receipts.load_receipt(session.receipt_id)
        if receipt is None:
            raise NotFoundError(f"Receipt not found: {session.receipt_id}")

        validation = self._validator.validate(
            receipt.items, session.participants, session.claims, split_id=session.id
        )
        if validation.has_errors:
            if self._audit_logger:
                self._audit_logger.log_claim_validation_failed(
                    split_id=session.id,
                    issues=[i.model_dump() for i in validation.issues],
                    correlation_id=correlation_id,
                )
            raise InvalidInputError(get_user_friendly_summary(validation), validation)

        printed = receipt.printed
        subtotal = printed.subtotal
        if subtotal is None and receipt.baseline_source is BaselineSource.TOTAL:
            subtotal = receipt.baseline_subtotal

        preview = allocate_split(
            items=receipt.regular_items(),
            participants=session.participants,
            claims=session.claims,
            subtotal=subtotal,
            tax=printed.tax if printed.tax is not None else receipt.tax,
            tip=printed.tip,
            split_id=session.id,
        )

        if self._audit_logger:
            self._audit_logger.log_split_previewed(
                split_id=session.id,
                total=preview.total,
                participant_count=len(preview.participants),
                unclaimed_count=len(preview.unclaimed_items),
                correlation_id=correlation_id,
            )

        return preview

    def finalize(
        self,
        split_id: UUID,
        base_url: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> FinalizeSplitResponse:
        """Freeze the split; repeated calls return the same payload."""
        return self._finalizer.finalize(split_id, base_url=base_url, correlation_id=correlation_id)

    def read_share(self, code: str) -> ShareSplitView:
        """Public view behind a share code."""
        return self._reader.get_by_code(code)


def create_app_components(
    receipt_storage: Optional[ReceiptStorageInterface] = None,
    split_storage: Optional[SplitStorageInterface] = None,
    audit_storage: Optional[AuditStorageInterface] = None,
    link_builder: Optional[PaymentLinkBuilder] = None,
    policy: Optional[ReconciliationPolicy] = None,
) -> tuple[ReceiptItemFlow, SplitFlow]:
    """
    Factory function to create all application components.

    Any storage left as None is backed by the in-memory implementation.

    Returns:
        (receipt_item_flow, split_flow)
    """
    receipt_storage = receipt_storage or InMemoryReceiptStorage()
    split_storage = split_storage or InMemorySplitStorage()
    audit_logger = AuditLogger(audit_storage or InMemoryAuditStorage())

    reconciler = ReceiptReconciliationOrchestrator(
        receipt_storage,
        policy=policy,
        audit_logger=audit_logger,
    )

    item_flow = ReceiptItemFlow(
        receipt_storage,
        reconciler=reconciler,
        audit_logger=audit_logger,
    )

    split_flow = SplitFlow(
        split_storage,
        receipt_storage,
        link_builder=link_builder,
        audit_logger=audit_logger,
    )

    return item_flow, split_flow
