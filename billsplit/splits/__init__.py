"""Split allocation, finalization and sharing."""

from billsplit.splits.calculator import allocate_split
from billsplit.splits.finalizer import SplitFinalizer, share_url
from billsplit.splits.links import NoPaymentLinks, PaymentLinkBuilder
from billsplit.splits.reader import SplitShareReader
from billsplit.splits.share_codes import (
    ALPHABET,
    ShareCodeError,
    ShareCodeExhaustedError,
    ShareCodeGenerator,
)

__all__ = [
    "ALPHABET",
    "NoPaymentLinks",
    "PaymentLinkBuilder",
    "ShareCodeError",
    "ShareCodeExhaustedError",
    "ShareCodeGenerator",
    "SplitFinalizer",
    "SplitShareReader",
    "allocate_split",
    "share_url",
]
