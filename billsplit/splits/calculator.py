"""
Split Allocation Calculator

Allocates a receipt's cost across participants from their item claims.

ALGORITHM:
1. Each claimed item's line subtotal is shared between its claimants in
   proportion to quantity_share / total claimed for that item
   (4-decimal intermediates).
2. Quantity nobody claimed is reported, not billed.
3. The gap between the receipt subtotal and the sum of line subtotals
   (a subtotal-level discount or surcharge) is spread in proportion to
   each participant's items subtotal.
4. Tax and tip are spread in proportion to the adjusted items subtotal.
5. Each exact total is rounded to cents on its own; whatever is left
   between those and round2(subtotal + tax + tip) goes to the
   participant with the largest rounded total. That remainder also
   carries the cost of items nobody claimed.

Pure: no I/O, no hidden state, same inputs give the same preview.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional
from uuid import UUID

from billsplit.models.receipt import LineItem
from billsplit.models.split import (
    ItemClaim,
    Participant,
    ParticipantAllocation,
    SplitPreview,
    UnclaimedItem,
)
from billsplit.money import ZERO, round2, round4


@dataclass
class _RunningTotal:
    participant: Participant
    items_subtotal: Decimal = ZERO
    discount_alloc: Decimal = ZERO
    tax_alloc: Decimal = ZERO
    tip_alloc: Decimal = ZERO

    @property
    def exact_total(self) -> Decimal:
        return self.items_subtotal + self.tax_alloc + self.tip_alloc


def _claims_by_item(claims: Iterable[ItemClaim]) -> dict[UUID, list[ItemClaim]]:
    grouped: dict[UUID, list[ItemClaim]] = {}
    for claim in claims:
        grouped.setdefault(claim.item_id, []).append(claim)
    return grouped


def allocate_split(
    items: Sequence[LineItem],
    participants: Sequence[Participant],
    claims: Iterable[ItemClaim],
    subtotal: Optional[Decimal] = None,
    tax: Optional[Decimal] = None,
    tip: Optional[Decimal] = None,
    split_id: Optional[UUID] = None,
) -> SplitPreview:
    """
    Compute what each participant owes.

    Args:
        items: Receipt lines (line_subtotal and quantity are used)
        participants: Everyone in the split
        claims: Validated claims; every participant_id must be in
            `participants` and shares must not exceed item quantities
        subtotal: Receipt subtotal; defaults to the sum of line subtotals
        tax: Receipt tax, None means zero
        tip: Receipt tip, None means zero
        split_id: Echoed back on the preview

    Returns:
        SplitPreview with participants in sort_order
    """
    ordered = sorted(participants, key=lambda p: p.sort_order)
    running = {p.id: _RunningTotal(participant=p) for p in ordered}
    by_item = _claims_by_item(claims)

    # 1) Per-item allocation of line subtotals
    for item in items:
        item_claims = by_item.get(item.id, [])
        claimed = sum((c.quantity_share for c in item_claims), ZERO)
        if claimed <= 0:
            continue
        for claim in item_claims:
            share = round4(item.line_subtotal * claim.quantity_share / claimed)
            running[claim.participant_id].items_subtotal += share

    # 2) Unclaimed quantity (reporting only)
    unclaimed = []
    for item in items:
        claimed = sum((c.quantity_share for c in by_item.get(item.id, [])), ZERO)
        left = item.quantity - claimed
        if left > 0:
            unclaimed.append(UnclaimedItem(item_id=item.id, quantity=left))

    # 3) Subtotal-level discount (negative) or surcharge (positive)
    line_subtotals = sum((i.line_subtotal for i in items), ZERO)
    receipt_subtotal = line_subtotals if subtotal is None else subtotal
    pool = round2(receipt_subtotal - line_subtotals)

    if pool != 0:
        base = sum((t.items_subtotal for t in running.values()), ZERO)
        if base != 0:
            for t in running.values():
                alloc = round4(pool * t.items_subtotal / base)
                t.discount_alloc += alloc
                t.items_subtotal += alloc

    # 4) Tax and tip on the adjusted items subtotal
    tax = tax or ZERO
    tip = tip or ZERO
    base = sum((t.items_subtotal for t in running.values()), ZERO)
    if base > 0:
        for t in running.values():
            t.tax_alloc += round4(tax * t.items_subtotal / base)
            t.tip_alloc += round4(tip * t.items_subtotal / base)

    # 5) Round each total on its own, then absorb the remainder
    rounded = {pid: round2(t.exact_total) for pid, t in running.items()}
    desired = round2(receipt_subtotal + tax + tip)
    remainder = desired - sum(rounded.values(), ZERO)

    if remainder != 0 and rounded:
        # First maximum in sort order wins ties
        largest = max(rounded, key=lambda pid: rounded[pid])
        rounded[largest] = round2(rounded[largest] + remainder)

    allocations = tuple(
        ParticipantAllocation(
            participant_id=pid,
            display_name=t.participant.display_name,
            items_subtotal=round2(t.items_subtotal),
            discount_alloc=round2(t.discount_alloc),
            tax_alloc=round2(t.tax_alloc),
            tip_alloc=round2(t.tip_alloc),
            total=rounded[pid],
        )
        for pid, t in running.items()
    )

    return SplitPreview(
        split_id=split_id,
        subtotal=round2(receipt_subtotal),
        tax=round2(tax),
        tip=round2(tip),
        total=desired,
        participants=allocations,
        unclaimed_items=tuple(unclaimed),
        rounding_remainder=round2(desired - sum((a.total for a in allocations), ZERO)),
    )
