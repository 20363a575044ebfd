"""
Abstract Storage Interface

DESIGN DECISION: The orchestrator, finalizer and flows only ever talk to
these interfaces. This allows us to:
1. Plug in a real database without touching the money math
2. Use in-memory storage for testing
3. Keep every read-modify-write explicit (load, change, save)

The interface is intentionally simple - we're not building a full ORM.
Callers that need atomicity wrap a load/save pair in their own unit of
work; nothing here locks.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from billsplit.models.audit import AuditEvent
from billsplit.models.receipt import Receipt
from billsplit.models.split import SplitSession, SplitSnapshot


class ReceiptStorageInterface(ABC):
    """Abstract interface for receipt storage."""

    @abstractmethod
    def load_receipt(self, receipt_id: UUID) -> Optional[Receipt]:
        """
        Load a receipt with all of its line items.

        Returns:
            The receipt if found, None otherwise
        """
        pass

    @abstractmethod
    def save_receipt(self, receipt: Receipt) -> None:
        """
        Insert or replace a receipt and its line items.

        Raises:
            StorageError: If save fails
        """
        pass


class SplitStorageInterface(ABC):
    """Abstract interface for split sessions and their snapshots."""

    @abstractmethod
    def load_session(self, split_id: UUID) -> Optional[SplitSession]:
        """Load a split session with its participants and claims."""
        pass

    @abstractmethod
    def save_session(self, session: SplitSession) -> None:
        """Insert or replace a split session."""
        pass

    @abstractmethod
    def share_code_exists(self, code: str) -> bool:
        """True if any session already uses this share code."""
        pass

    @abstractmethod
    def find_session_by_share_code(self, code: str) -> Optional[SplitSession]:
        """Look up a session by its share code."""
        pass

    @abstractmethod
    def add_snapshot(self, snapshot: SplitSnapshot) -> None:
        """
        Persist a snapshot.

        Snapshots are append-only and never updated.
        """
        pass

    @abstractmethod
    def latest_snapshot(self, split_id: UUID) -> Optional[SplitSnapshot]:
        """Most recently created snapshot for a session."""
        pass

    @abstractmethod
    def list_snapshots(self, split_id: UUID) -> list[SplitSnapshot]:
        """All snapshots for a session, oldest first."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get all events for a correlation ID, in chronological order."""
        pass

    @abstractmethod
    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """Get all events for a specific entity, in chronological order."""
        pass

    @abstractmethod
    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get the most recent audit events (newest first)."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConflictError(StorageError):
    """Entity was changed by someone else since it was read."""
    pass
