"""
In-Memory Storage Implementation

Backs the storage interfaces with plain dicts. Used by tests and by
create_app_components() when no other backend is supplied.

Models are deep-copied on the way in and out, so a caller holding a
loaded Receipt cannot change stored state without calling save.
"""

from typing import Optional
from uuid import UUID

from billsplit.models.audit import AuditEvent
from billsplit.models.receipt import Receipt
from billsplit.models.split import SplitSession, SplitSnapshot
from billsplit.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    ReceiptStorageInterface,
    SplitStorageInterface,
)


class InMemoryReceiptStorage(ReceiptStorageInterface):
    """Receipts keyed by id."""

    def __init__(self):
        self._receipts: dict[UUID, Receipt] = {}

    def load_receipt(self, receipt_id: UUID) -> Optional[Receipt]:
        receipt = self._receipts.get(receipt_id)
        return receipt.model_copy(deep=True) if receipt else None

    def save_receipt(self, receipt: Receipt) -> None:
        self._receipts[receipt.id] = receipt.model_copy(deep=True)


class InMemorySplitStorage(SplitStorageInterface):
    """Split sessions keyed by id, snapshots kept per session in insert order."""

    def __init__(self):
        self._sessions: dict[UUID, SplitSession] = {}
        self._snapshots: dict[UUID, list[SplitSnapshot]] = {}

    def load_session(self, split_id: UUID) -> Optional[SplitSession]:
        session = self._sessions.get(split_id)
        return session.model_copy(deep=True) if session else None

    def save_session(self, session: SplitSession) -> None:
        if session.share_code:
            owner = self.find_session_by_share_code(session.share_code)
            if owner is not None and owner.id != session.id:
                raise DuplicateError(f"Share code already in use: {session.share_code}")
        self._sessions[session.id] = session.model_copy(deep=True)

    def share_code_exists(self, code: str) -> bool:
        return any(s.share_code == code for s in self._sessions.values())

    def find_session_by_share_code(self, code: str) -> Optional[SplitSession]:
        for session in self._sessions.values():
            if session.share_code == code:
                return session.model_copy(deep=True)
        return None

    def add_snapshot(self, snapshot: SplitSnapshot) -> None:
        self._snapshots.setdefault(snapshot.split_session_id, []).append(snapshot)

    def latest_snapshot(self, split_id: UUID) -> Optional[SplitSnapshot]:
        snapshots = self._snapshots.get(split_id)
        return snapshots[-1] if snapshots else None

    def list_snapshots(self, split_id: UUID) -> list[SplitSnapshot]:
        return list(self._snapshots.get(split_id, []))


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in self._events if e.correlation_id == correlation_id]

    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        return [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]

    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
