"""Shared fixtures for the Bill Split test suite."""

from decimal import Decimal

import pytest

from billsplit.audit import AuditLogger
from billsplit.models import (
    ItemClaim,
    LineItem,
    MoneyTotals,
    Participant,
    Receipt,
    ReconciliationPolicy,
    SplitSession,
)
from billsplit.services.storage import (
    InMemoryAuditStorage,
    InMemoryReceiptStorage,
    InMemorySplitStorage,
)


def D(value) -> Decimal:
    return Decimal(str(value))


@pytest.fixture
def policy() -> ReconciliationPolicy:
    """Default tolerances with caps enforced."""
    return ReconciliationPolicy()


@pytest.fixture
def uncapped_policy() -> ReconciliationPolicy:
    return ReconciliationPolicy(enforce_caps=False)


@pytest.fixture
def receipt_storage() -> InMemoryReceiptStorage:
    return InMemoryReceiptStorage()


@pytest.fixture
def split_storage() -> InMemorySplitStorage:
    return InMemorySplitStorage()


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage) -> AuditLogger:
    return AuditLogger(audit_storage)


@pytest.fixture
def make_receipt():
    """Build a receipt from (description, qty, unit_price) tuples and printed totals."""

    def _make(lines, subtotal=None, tax=None, tip=None, total=None) -> Receipt:
        items = [
            LineItem(
                description=description,
                quantity=D(qty),
                unit_price=D(price),
                position=index + 1,
            )
            for index, (description, qty, price) in enumerate(lines)
        ]
        return Receipt(
            merchant="Corner Bistro",
            printed=MoneyTotals(
                subtotal=None if subtotal is None else D(subtotal),
                tax=None if tax is None else D(tax),
                tip=None if tip is None else D(tip),
                total=None if total is None else D(total),
            ),
            items=items,
        )

    return _make


@pytest.fixture
def alice() -> Participant:
    return Participant(display_name="Alice", sort_order=0)


@pytest.fixture
def bob() -> Participant:
    return Participant(display_name="Bob", sort_order=1)


@pytest.fixture
def make_session():
    """Build a split session over a receipt with (item, participant, share) claims."""

    def _make(receipt: Receipt, participants, claims) -> SplitSession:
        return SplitSession(
            receipt_id=receipt.id,
            name="Dinner",
            participants=list(participants),
            claims=[
                ItemClaim(item_id=item.id, participant_id=person.id, quantity_share=D(share))
                for item, person, share in claims
            ],
        )

    return _make
