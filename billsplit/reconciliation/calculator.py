"""
Reconciliation Calculator

Decides whether a receipt's line items can be trusted by checking their
sum against a baseline subtotal.

Baseline, in priority order:
1. Printed subtotal
2. Printed total - tax - tip (missing tax/tip count as zero)
3. The items themselves (nothing printed, nothing to check against)

Tolerance failures are not errors. They come back as data in the
ReconciliationResult and never raise.
"""

from collections.abc import Iterable
from decimal import Decimal
from typing import Optional

from billsplit.models.receipt import BaselineSource, MoneyTotals, ParsedItem, ParseStatus
from billsplit.models.reconciliation import ReconciliationPolicy, ReconciliationResult
from billsplit.money import ZERO, round2


def select_baseline(
    totals: MoneyTotals,
    items_sum: Decimal,
) -> tuple[Decimal, BaselineSource]:
    """Pick the trusted subtotal and record where it came from."""
    if totals.subtotal is not None:
        return round2(totals.subtotal), BaselineSource.SUBTOTAL
    if totals.total is not None:
        derived = totals.total - (totals.tax or ZERO) - (totals.tip or ZERO)
        return round2(derived), BaselineSource.TOTAL
    return items_sum, BaselineSource.ITEMS


def _grand_total_gap(totals: MoneyTotals) -> Optional[Decimal]:
    """subtotal + tax + tip - total, or None when either end is missing."""
    if totals.subtotal is None or totals.total is None:
        return None
    return round2(
        totals.subtotal + (totals.tax or ZERO) + (totals.tip or ZERO) - totals.total
    )


def reconcile(
    items: Iterable[ParsedItem],
    totals: MoneyTotals,
    policy: Optional[ReconciliationPolicy] = None,
) -> ReconciliationResult:
    """
    Check parsed items against the receipt's printed totals.

    Args:
        items: The reconciliation view of the receipt's lines.
            System-generated lines are the caller's to exclude.
        totals: Printed totals, any of which may be missing
        policy: Tolerance; defaults to the configured policy

    Returns:
        ReconciliationResult. needs_adjustment is driven only by the
        item/baseline gap; a grand-total mismatch alone flags the
        receipt for review without asking for an Adjustment.
    """
    policy = policy or ReconciliationPolicy.from_settings()
    epsilon = policy.epsilon

    items_sum = round2(sum((item.total for item in items), ZERO))
    baseline, source = select_baseline(totals, items_sum)
    discrepancy = round2(items_sum - baseline)
    within_epsilon = abs(discrepancy) <= epsilon

    total_gap = _grand_total_gap(totals)
    total_consistent = total_gap is None or abs(total_gap) <= epsilon

    reasons = []
    if not within_epsilon:
        reasons.append(
            f"Items sum {items_sum} differs from baseline subtotal "
            f"{baseline} ({source.value}) by {discrepancy}."
        )
    if not total_consistent:
        reasons.append(
            f"Grand total mismatch outside epsilon: subtotal + tax + tip "
            f"is off from printed total by {total_gap}."
        )

    if not total_consistent:
        status = ParseStatus.FAILED
    elif not within_epsilon:
        status = ParseStatus.NEEDS_REVIEW
    else:
        status = ParseStatus.SUCCESS

    return ReconciliationResult(
        status=status,
        items_sum=items_sum,
        baseline_subtotal=baseline,
        baseline_source=source,
        discrepancy=discrepancy,
        needs_adjustment=not within_epsilon,
        reason=" ".join(reasons) or None,
    )
