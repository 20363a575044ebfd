"""
Bill Split - Source Package

Money reconciliation and cost-splitting engine for parsed receipts.

DESIGN PRINCIPLES:
1. Items are checked against a trusted baseline before anyone sees them
2. Discrepancies are reported, never hidden
3. Corrections are explicit, system-owned Adjustment lines
4. Every split sums to the receipt total, to the cent
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Bill Split Team"
