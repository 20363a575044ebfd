"""
Receipt Data Models

These models define the schemas for receipts and their line items as
they flow through reconciliation and splitting.

DESIGN DECISION: All money is Decimal, never float. Line math is
recomputed by the model itself so a LineItem can never carry a stale
line subtotal/total.

DESIGN DECISION: The system-managed Adjustment line is identified by its
`kind`, not by its label. A user line that happens to be called
"Adjustment" is still a regular line.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from billsplit.money import ZERO, round2, round3


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS
# =============================================================================

class ReceiptStatus(str, Enum):
    """Receipt processing status."""
    PENDING_PARSE = "pending_parse"  # OCR still running
    PARSED = "parsed"                # Items reconcile with the baseline
    NEEDS_REVIEW = "needs_review"    # Items or printed totals disagree
    FAILED_PARSE = "failed_parse"    # OCR produced nothing usable


class ParseStatus(str, Enum):
    """
    Outcome of a single reconciliation run.

    NEEDS_REVIEW: items disagree with the baseline subtotal.
    FAILED: the printed totals contradict each other
    (subtotal + tax + tip != total).
    """
    SUCCESS = "success"
    NEEDS_REVIEW = "needs_review"
    FAILED = "failed"


class BaselineSource(str, Enum):
    """Where the trusted baseline subtotal came from."""
    SUBTOTAL = "subtotal"  # printed subtotal
    TOTAL = "total"        # printed total - tax - tip
    ITEMS = "items"        # nothing printed, trust the items


class LineItemKind(str, Enum):
    """
    Line item variant.

    ADJUSTMENT lines are created and owned by the reconciliation
    orchestrator. Users may not create, edit or delete them.
    """
    REGULAR = "regular"
    ADJUSTMENT = "adjustment"


# =============================================================================
# LINE ITEMS
# =============================================================================

class LineItem(BaseModel):
    """
    A single line on a receipt.

    line_subtotal = round2(quantity * unit_price - discount)
    line_total    = round2(line_subtotal + tax)

    A discount never pushes a non-negative line below zero. A negative
    gross (only the Adjustment line can have one) is carried as-is.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    description: str = Field(
        default="",
        max_length=200,
        description="Label printed on the receipt"
    )
    quantity: Decimal = Field(
        default=Decimal("1"),
        gt=0,
        description="Quantity, up to 3 decimals"
    )
    unit_price: Decimal = Field(
        default=ZERO,
        description="Price per unit, 2 decimals"
    )
    discount: Optional[Decimal] = Field(
        default=None,
        ge=0,
        description="Amount off this line, stored as a positive value"
    )
    tax: Optional[Decimal] = Field(
        default=None,
        ge=0,
        description="Per-line tax if the receipt prints one"
    )

    # Derived line math
    line_subtotal: Decimal = ZERO
    line_total: Decimal = ZERO

    position: int = Field(default=0, ge=0)
    notes: Optional[str] = Field(default=None, max_length=1000)
    kind: LineItemKind = LineItemKind.REGULAR

    # Optimistic concurrency counter, bumped on every save of this line
    version: int = Field(default=0, ge=0)

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @field_validator('quantity')
    @classmethod
    def round_quantity(cls, v: Decimal) -> Decimal:
        return round3(v)

    @field_validator('unit_price')
    @classmethod
    def round_unit_price(cls, v: Decimal) -> Decimal:
        return round2(v)

    @field_validator('discount', 'tax')
    @classmethod
    def round_optional_money(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        return None if v is None else round2(v)

    @model_validator(mode='after')
    def compute_line_math(self) -> 'LineItem':
        self.recalculate()
        return self

    @property
    def is_system_generated(self) -> bool:
        return self.kind is not LineItemKind.REGULAR

    @property
    def gross(self) -> Decimal:
        """quantity * unit_price before discount and tax."""
        return self.quantity * self.unit_price

    def recalculate(self) -> None:
        """Recompute line_subtotal and line_total from the inputs."""
        gross = self.gross
        net = gross - (self.discount or ZERO)
        if gross >= 0 and net < 0:
            net = ZERO
        self.line_subtotal = round2(net)
        self.line_total = round2(self.line_subtotal + (self.tax or ZERO))


class ParsedItem(BaseModel):
    """
    The reconciliation view of a line: what the receipt says was bought.

    Discounts and per-line tax are not part of this view.
    """
    model_config = ConfigDict(frozen=True)

    description: str = ""
    quantity: Decimal
    unit_price: Decimal

    @property
    def total(self) -> Decimal:
        return self.quantity * self.unit_price

    @classmethod
    def from_line_item(cls, item: LineItem) -> 'ParsedItem':
        return cls(
            description=item.description,
            quantity=item.quantity,
            unit_price=item.unit_price,
        )


class ItemInput(BaseModel):
    """
    A user request to add a line item.

    Values are taken as sent; the item flow normalises them (quantity
    and money rounding, discount capping) before building a LineItem.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    description: str = Field(..., max_length=200)
    quantity: Decimal = Decimal("1")
    unit_price: Decimal = ZERO
    discount: Optional[Decimal] = None
    tax: Optional[Decimal] = None
    notes: Optional[str] = Field(default=None, max_length=1000)
    position: Optional[int] = Field(default=None, ge=0)


class ItemUpdate(BaseModel):
    """
    A partial edit of a line item. Fields left as None are unchanged.

    `version` must match the stored line or the edit is refused.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    version: int = Field(..., ge=0)
    description: Optional[str] = Field(default=None, max_length=200)
    quantity: Optional[Decimal] = None
    unit_price: Optional[Decimal] = None
    discount: Optional[Decimal] = None
    tax: Optional[Decimal] = None
    notes: Optional[str] = Field(default=None, max_length=1000)
    position: Optional[int] = Field(default=None, ge=0)


class MoneyTotals(BaseModel):
    """
    Totals printed on (or declared for) a receipt.

    Any of them may be missing - OCR rarely finds all four.
    """
    model_config = ConfigDict(frozen=True)

    subtotal: Optional[Decimal] = None
    tax: Optional[Decimal] = None
    tip: Optional[Decimal] = None
    total: Optional[Decimal] = None


# =============================================================================
# RECEIPT AGGREGATE
# =============================================================================

class Receipt(BaseModel):
    """
    A receipt with its line items, stored header totals and the
    transparency fields written by reconciliation.

    `printed` holds what the receipt declares and is the input to
    reconciliation. The header `subtotal`/`tax`/`total` are aggregated
    from the current items and are rewritten on every reconciliation.
    """

    id: UUID = Field(default_factory=uuid4)
    merchant: Optional[str] = Field(default=None, max_length=200)

    status: ReceiptStatus = ReceiptStatus.PENDING_PARSE
    needs_review: bool = False

    printed: MoneyTotals = Field(default_factory=MoneyTotals)

    # Header totals aggregated from items
    subtotal: Optional[Decimal] = None
    tax: Optional[Decimal] = None
    total: Optional[Decimal] = None

    # Transparency fields copied from the last ReconciliationResult
    computed_items_subtotal: Optional[Decimal] = None
    baseline_subtotal: Optional[Decimal] = None
    baseline_source: Optional[BaselineSource] = None
    discrepancy: Optional[Decimal] = None
    reason: Optional[str] = None
    adjustment_blocked_reason: Optional[str] = None

    items: list[LineItem] = Field(default_factory=list)

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def tip(self) -> Optional[Decimal]:
        return self.printed.tip

    def regular_items(self) -> list[LineItem]:
        return [item for item in self.items if not item.is_system_generated]

    def adjustment_item(self) -> Optional[LineItem]:
        for item in self.items:
            if item.kind is LineItemKind.ADJUSTMENT:
                return item
        return None

    def find_item(self, item_id: UUID) -> Optional[LineItem]:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def next_position(self) -> int:
        return max((item.position for item in self.items), default=0) + 1
