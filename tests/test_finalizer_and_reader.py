"""Tests for split finalization and the public share reader."""

from decimal import Decimal
from uuid import uuid4

import pytest

from billsplit.models import (
    AuditEventType,
    ParticipantAllocation,
    PaymentLink,
    SplitPreview,
    SplitSession,
    SplitSnapshot,
)
from billsplit.services.storage import DuplicateError, NotFoundError
from billsplit.splits import (
    PaymentLinkBuilder,
    ShareCodeExhaustedError,
    ShareCodeGenerator,
    SplitFinalizer,
    SplitShareReader,
)


class StubPreview:
    """Preview source that records how often it was asked."""

    def __init__(self, alice, bob, alice_total="10.00", bob_total="5.00"):
        self.calls = 0
        self.alice = alice
        self.bob = bob
        self.totals = (Decimal(alice_total), Decimal(bob_total))

    def __call__(self, split_id):
        self.calls += 1
        a, b = self.totals
        return SplitPreview(
            split_id=split_id,
            subtotal=a + b,
            tax=Decimal("0.00"),
            tip=Decimal("0.00"),
            total=a + b,
            participants=(
                ParticipantAllocation(
                    participant_id=self.alice.id, display_name="Alice", items_subtotal=a, total=a
                ),
                ParticipantAllocation(
                    participant_id=self.bob.id, display_name="Bob", items_subtotal=b, total=b
                ),
            ),
        )


class VenmoLinks(PaymentLinkBuilder):
    def build_links(self, participant_id, display_name, amount_owed):
        return [
            PaymentLink(
                platform_key="venmo",
                display_name="Venmo",
                url=f"https://venmo.example/owner?amount={amount_owed}",
            )
        ]


@pytest.fixture
def session(split_storage, alice, bob) -> SplitSession:
    session = SplitSession(receipt_id=uuid4(), participants=[alice, bob])
    split_storage.save_session(session)
    return session


@pytest.fixture
def preview(alice, bob) -> StubPreview:
    return StubPreview(alice, bob)


@pytest.fixture
def finalizer(split_storage, preview, audit_logger) -> SplitFinalizer:
    return SplitFinalizer(
        storage=split_storage,
        preview=preview,
        audit_logger=audit_logger,
        base_url="https://split.example/",
    )


class TestSplitFinalizer:
    """Tests for SplitFinalizer.finalize()."""

    def test_first_finalize(self, finalizer, split_storage, session, alice, bob):
        response = finalizer.finalize(session.id)

        assert response.split_id == session.id
        assert len(response.share_code) == 8
        assert response.share_url == f"https://split.example/s/{response.share_code}"
        assert [(p.participant_id, p.amount_owed) for p in response.participants] == [
            (alice.id, Decimal("10.00")),
            (bob.id, Decimal("5.00")),
        ]

        stored = split_storage.load_session(session.id)
        assert stored.is_finalized is True
        assert stored.finalized_at is not None
        assert stored.share_code == response.share_code
        snapshots = split_storage.list_snapshots(session.id)
        assert len(snapshots) == 1
        assert snapshots[0].total == Decimal("15.00")
        assert snapshots[0].share_code == response.share_code

    def test_repeat_finalize_returns_same_payload(self, finalizer, split_storage, session, preview):
        first = finalizer.finalize(session.id)
        second = finalizer.finalize(session.id)

        assert second == first
        assert preview.calls == 1
        assert len(split_storage.list_snapshots(session.id)) == 1

    def test_repeat_finalize_ignores_later_changes(self, finalizer, session, preview):
        finalizer.finalize(session.id)
        preview.totals = (Decimal("99.00"), Decimal("1.00"))

        response = finalizer.finalize(session.id)

        assert [p.amount_owed for p in response.participants] == [Decimal("10.00"), Decimal("5.00")]

    def test_keeps_existing_share_code(self, split_storage, preview, alice, bob):
        session = SplitSession(receipt_id=uuid4(), participants=[alice, bob], share_code="KEEPCODE")
        split_storage.save_session(session)

        def never(code):
            raise AssertionError("generator should not run")

        finalizer = SplitFinalizer(
            storage=split_storage,
            preview=preview,
            share_codes=ShareCodeGenerator(never),
        )
        response = finalizer.finalize(session.id)

        assert response.share_code == "KEEPCODE"

    def test_default_base_url(self, split_storage, preview, session):
        response = SplitFinalizer(storage=split_storage, preview=preview).finalize(session.id)
        assert response.share_url.startswith("http://localhost:8000/s/")

    def test_base_url_per_call(self, finalizer, session):
        response = finalizer.finalize(session.id, base_url="https://other.example")
        assert response.share_url == f"https://other.example/s/{response.share_code}"

    def test_payment_links_in_response(self, split_storage, preview, session):
        finalizer = SplitFinalizer(storage=split_storage, preview=preview, link_builder=VenmoLinks())

        response = finalizer.finalize(session.id)

        links = response.participants[1].payment_links
        assert len(links) == 1
        assert links[0].url == "https://venmo.example/owner?amount=5.00"

    def test_unknown_split(self, finalizer):
        with pytest.raises(NotFoundError):
            finalizer.finalize(uuid4())

    def test_audit_trail(self, finalizer, session, audit_storage):
        finalizer.finalize(session.id)
        finalizer.finalize(session.id)

        types = [e.event_type for e in audit_storage.get_events_by_entity("split", session.id)]
        assert types == [
            AuditEventType.SHARE_CODE_ASSIGNED,
            AuditEventType.SPLIT_FINALIZED,
            AuditEventType.SPLIT_FINALIZE_REPLAYED,
        ]


class TestFinalizeFailures:
    """Failed finalizations leave nothing half-written."""

    @pytest.fixture
    def clashing_codes(self):
        # Stale existence check: always says free, always draws ABCDEFGH
        return ShareCodeGenerator(lambda code: False, random_bytes=lambda n: bytes(range(n)))

    def test_share_code_clash_leaves_no_snapshot(
        self, split_storage, preview, session, alice, clashing_codes, audit_logger
    ):
        split_storage.save_session(
            SplitSession(receipt_id=uuid4(), participants=[alice], share_code="ABCDEFGH")
        )
        finalizer = SplitFinalizer(
            storage=split_storage,
            preview=preview,
            share_codes=clashing_codes,
            audit_logger=audit_logger,
        )

        with pytest.raises(DuplicateError):
            finalizer.finalize(session.id)

        assert split_storage.list_snapshots(session.id) == []
        stored = split_storage.load_session(session.id)
        assert stored.is_finalized is False
        assert stored.share_code is None

    def test_retry_after_clash_writes_one_snapshot(
        self, split_storage, preview, session, alice, clashing_codes
    ):
        split_storage.save_session(
            SplitSession(receipt_id=uuid4(), participants=[alice], share_code="ABCDEFGH")
        )
        with pytest.raises(DuplicateError):
            SplitFinalizer(storage=split_storage, preview=preview, share_codes=clashing_codes).finalize(session.id)

        response = SplitFinalizer(storage=split_storage, preview=preview).finalize(session.id)

        assert response.share_code != "ABCDEFGH"
        assert len(split_storage.list_snapshots(session.id)) == 1

    def test_failure_is_audited(self, split_storage, preview, session, audit_logger, audit_storage):
        def taken(code):
            return True

        finalizer = SplitFinalizer(
            storage=split_storage,
            preview=preview,
            share_codes=ShareCodeGenerator(taken, max_attempts=2),
            audit_logger=audit_logger,
        )
        correlation_id = uuid4()

        with pytest.raises(ShareCodeExhaustedError):
            finalizer.finalize(session.id, correlation_id=correlation_id)

        events = audit_storage.get_events_by_correlation_id(correlation_id)
        assert [e.event_type for e in events] == [AuditEventType.SYSTEM_ERROR]
        assert events[0].details["split_id"] == str(session.id)
        assert split_storage.list_snapshots(session.id) == []


class TestSplitShareReader:
    """Tests for SplitShareReader.get_by_code()."""

    def test_reads_finalized_split(self, finalizer, split_storage, session, bob):
        code = finalizer.finalize(session.id).share_code

        view = SplitShareReader(split_storage, VenmoLinks()).get_by_code(code)

        assert view.split_id == session.id
        assert view.share_code == code
        assert view.total == Decimal("15.00")
        assert view.participants[1].participant_id == bob.id
        assert view.participants[1].payment_links[0].platform_key == "venmo"

    def test_unknown_code(self, split_storage):
        with pytest.raises(NotFoundError):
            SplitShareReader(split_storage).get_by_code("NOPE2345")

    def test_code_of_unfinalized_split(self, split_storage, alice):
        split_storage.save_session(
            SplitSession(receipt_id=uuid4(), participants=[alice], share_code="DRAFT234")
        )
        with pytest.raises(NotFoundError):
            SplitShareReader(split_storage).get_by_code("DRAFT234")

    def test_uses_latest_snapshot(self, split_storage, alice):
        session = SplitSession(
            receipt_id=uuid4(), participants=[alice], share_code="LATEST23", is_finalized=True
        )
        split_storage.save_session(session)
        for total in ("1.00", "2.00"):
            split_storage.add_snapshot(SplitSnapshot(
                split_session_id=session.id,
                subtotal=Decimal(total),
                tax=Decimal("0"),
                tip=Decimal("0"),
                total=Decimal(total),
            ))

        view = SplitShareReader(split_storage).get_by_code("LATEST23")

        assert view.total == Decimal("2.00")
