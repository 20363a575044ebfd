"""
Input Validation

DESIGN DECISION: Validation happens before any money math runs.

ITEM VALIDATION:
- Required label, reserved label "Adjustment"
- Negative prices, discounts or taxes
- Values the item flow will normalise (reported as warnings)

CLAIM VALIDATION:
- Claims on unknown items or by unknown participants
- Claims on the system-generated Adjustment line
- Negative shares
- Shares that add up to more than an item's quantity

IMPORTANT: Validation NEVER silently fixes issues.
It reports them; the caller decides whether to proceed.
"""

from collections.abc import Iterable, Sequence
from decimal import Decimal
from typing import Optional, Union
from uuid import UUID

from billsplit.models.receipt import ItemInput, ItemUpdate, LineItem
from billsplit.models.split import ItemClaim, Participant
from billsplit.models.validation import ValidationIssue, ValidationResult
from billsplit.money import CENT, ZERO

RESERVED_LABELS = frozenset({"adjustment"})


class InvalidInputError(Exception):
    """Input was rejected before it reached the money math."""

    def __init__(self, message: str, result: Optional[ValidationResult] = None):
        self.result = result or ValidationResult()
        super().__init__(message)


class SystemItemProtectedError(InvalidInputError):
    """Attempt to edit or delete a system-generated line."""

    def __init__(self, item_id: UUID):
        self.item_id = item_id
        super().__init__(f"Line item {item_id} is system-generated and cannot be changed")


def is_reserved_label(description: Optional[str]) -> bool:
    """Case-insensitive check against labels owned by the system."""
    return bool(description) and description.strip().lower() in RESERVED_LABELS


class ItemValidator:
    """Validates add/update requests for receipt line items."""

    def validate(
        self,
        data: Union[ItemInput, ItemUpdate],
        receipt_id: Optional[UUID] = None,
        current: Optional[LineItem] = None,
    ) -> ValidationResult:
        """
        Validate an item request.

        Args:
            data: ItemInput for a new line, ItemUpdate for an edit
            receipt_id: Receipt the line belongs to
            current: The stored line, for edits; used to check the
                merged discount against the merged gross

        Returns:
            ValidationResult; errors block the request
        """
        issues = []
        creating = isinstance(data, ItemInput)

        if (creating or data.description is not None) and not data.description:
            issues.append(ValidationIssue(
                field="description",
                issue_type="missing",
                message="Item label is required",
                severity="error",
            ))

        if is_reserved_label(data.description):
            issues.append(ValidationIssue(
                field="description",
                issue_type="reserved_label",
                message=f"'{data.description}' is reserved for system-generated lines",
                severity="error",
                suggested_fix="Use a different label",
            ))

        for field in ("unit_price", "discount", "tax"):
            value = getattr(data, field)
            if value is not None and value < 0:
                issues.append(ValidationIssue(
                    field=field,
                    issue_type="negative_value",
                    message=f"{field.replace('_', ' ').capitalize()} cannot be negative",
                    severity="error",
                ))

        if data.quantity is not None and data.quantity <= 0:
            issues.append(ValidationIssue(
                field="quantity",
                issue_type="normalised",
                message=f"Quantity {data.quantity} is not positive and will be treated as 1",
                severity="warning",
            ))

        quantity = _merged(data.quantity, current.quantity if current else Decimal("1"))
        unit_price = _merged(data.unit_price, current.unit_price if current else ZERO)
        discount = _merged(data.discount, current.discount if current else None)
        if quantity <= 0:
            quantity = Decimal("1")
        if discount is not None and unit_price >= 0 and discount > quantity * unit_price + CENT:
            issues.append(ValidationIssue(
                field="discount",
                issue_type="normalised",
                message=f"Discount {discount} exceeds the line amount and will be capped",
                severity="warning",
            ))

        return ValidationResult(subject_id=receipt_id, issues=issues)


def _merged(new, old):
    return old if new is None else new


class ClaimValidator:
    """Checks a split's claims against its receipt and participants."""

    def validate(
        self,
        items: Sequence[LineItem],
        participants: Iterable[Participant],
        claims: Iterable[ItemClaim],
        split_id: Optional[UUID] = None,
    ) -> ValidationResult:
        """
        Validate claims before allocation.

        Args:
            items: All lines of the receipt, system lines included
            participants: The split's participants
            claims: Claims to check
            split_id: Split being validated

        Returns:
            ValidationResult; errors mean allocate_split must not run
        """
        issues = []
        by_id = {item.id: item for item in items}
        participant_ids = {p.id for p in participants}
        claimed: dict[UUID, Decimal] = {}
        seen: set[tuple[UUID, UUID]] = set()

        for claim in claims:
            item = by_id.get(claim.item_id)
            if item is None:
                issues.append(ValidationIssue(
                    field="item_id",
                    issue_type="unknown_item",
                    message=f"Claim references unknown item {claim.item_id}",
                    severity="error",
                ))
                continue

            if item.is_system_generated:
                issues.append(ValidationIssue(
                    field="item_id",
                    issue_type="system_item",
                    message=f"'{item.description}' is system-generated and cannot be claimed",
                    severity="error",
                    suggested_fix="It is spread across everyone automatically",
                ))
                continue

            if claim.participant_id not in participant_ids:
                issues.append(ValidationIssue(
                    field="participant_id",
                    issue_type="unknown_participant",
                    message=f"Claim references unknown participant {claim.participant_id}",
                    severity="error",
                ))
                continue

            if claim.quantity_share < 0:
                issues.append(ValidationIssue(
                    field="quantity_share",
                    issue_type="negative_value",
                    message=f"Share of '{item.description}' cannot be negative",
                    severity="error",
                ))
                continue

            key = (claim.item_id, claim.participant_id)
            if key in seen:
                issues.append(ValidationIssue(
                    field="participant_id",
                    issue_type="duplicate_claim",
                    message=f"Participant {claim.participant_id} claims '{item.description}' more than once",
                    severity="warning",
                    suggested_fix="The shares are added together",
                ))
            seen.add(key)

            claimed[item.id] = claimed.get(item.id, ZERO) + claim.quantity_share

        for item_id, total in claimed.items():
            item = by_id[item_id]
            if total > item.quantity:
                issues.append(ValidationIssue(
                    field="quantity_share",
                    issue_type="over_claimed",
                    message=(
                        f"Shares of '{item.description}' add up to {total}, "
                        f"more than its quantity {item.quantity}"
                    ),
                    severity="error",
                    suggested_fix="Reduce one of the shares",
                ))

        return ValidationResult(subject_id=split_id, issues=issues)


def get_user_friendly_summary(result: ValidationResult) -> str:
    """
    Generate a user-friendly summary of validation results.

    This is what we show to non-technical users.
    """
    if result.is_valid and not result.warnings:
        return "✅ All checks passed!"

    lines = []

    if result.has_errors:
        lines.append("❌ Some of the input could not be accepted:")
        for issue in result.issues:
            if issue.severity == "error":
                lines.append(f"   • {issue.message}")
                if issue.suggested_fix:
                    lines.append(f"     💡 {issue.suggested_fix}")

    if result.warnings:
        lines.append("")
        lines.append("⚠️ Please verify the following:")
        for warning in result.warnings:
            lines.append(f"   • {warning}")

    lines.append("")
    if result.is_valid:
        lines.append("You can still proceed, but please review carefully.")
    else:
        lines.append("Please fix the issues above before continuing.")

    return "\n".join(lines).strip()
