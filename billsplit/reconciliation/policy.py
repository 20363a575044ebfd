"""
Auto-adjustment caps.

An Adjustment line silently changes what people pay, so large gaps are
left for a human instead of being papered over.
"""

from decimal import Decimal

from billsplit.models.reconciliation import ReconciliationPolicy
from billsplit.money import round2

ALLOWED = "ok"
NO_SUBTOTAL = "no_subtotal"
ABS_CAP = "abs_cap"
PCT_CAP = "pct_cap"


def can_auto_adjust(
    has_printed_subtotal: bool,
    baseline: Decimal,
    delta: Decimal,
    policy: ReconciliationPolicy,
) -> tuple[bool, str]:
    """
    Decide whether an Adjustment of `delta` may be created.

    Returns:
        (allowed, reason) where reason is one of
        "ok", "no_subtotal", "abs_cap", "pct_cap".
    """
    if not policy.allow_without_printed_subtotal and not has_printed_subtotal:
        return False, NO_SUBTOTAL

    magnitude = abs(delta)
    if magnitude > policy.max_abs:
        return False, ABS_CAP

    # A non-positive baseline gives no meaningful percentage
    if baseline > 0 and magnitude > round2(baseline * policy.max_pct):
        return False, PCT_CAP

    return True, ALLOWED
