"""
Split Finalizer

Freezes a split: computes the current preview once, stores it as a
SplitSnapshot, assigns a share code and marks the session finalized.

IDEMPOTENCY:
Calling finalize again on a finalized session rebuilds the response from
the latest snapshot. Nothing is recomputed, so later edits to the
receipt or the claims do not change what was shared.

CONCURRENCY:
The "already finalized?" check and the writes are not atomic. Two
concurrent first calls can both compute a snapshot; callers that care
must serialize finalize per split (a unit of work, or a unique
constraint on the share code).

A new share code is saved on the session before the snapshot is added,
so a share-code clash (DuplicateError from storage) leaves no snapshot
behind and the session stays unfinalized.
"""

from collections.abc import Callable
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from billsplit.audit import AuditLogger, create_correlation_id
from billsplit.config import get_settings
from billsplit.models.split import (
    FinalizeSplitResponse,
    SplitPreview,
    SplitSession,
    SplitSnapshot,
)
from billsplit.services.storage import (
    NotFoundError,
    SplitStorageInterface,
    StorageError,
)
from billsplit.splits.links import (
    NoPaymentLinks,
    PaymentLinkBuilder,
    finalized_participants,
)
from billsplit.splits.share_codes import ShareCodeError, ShareCodeGenerator


def share_url(base_url: str, code: str) -> str:
    """Public link for a share code."""
    return f"{base_url.rstrip('/')}/s/{code}"


class SplitFinalizer:
    """
    Finalizes split sessions.

    Args:
        storage: Split session and snapshot storage
        preview: Computes the current SplitPreview for a split id
        share_codes: Share code generator (defaults to one checking `storage`)
        link_builder: Payment link builder for the response
        audit_logger: Optional audit logger
        base_url: Default public base URL (defaults to settings)
    """

    def __init__(
        self,
        storage: SplitStorageInterface,
        preview: Callable[[UUID], SplitPreview],
        share_codes: Optional[ShareCodeGenerator] = None,
        link_builder: Optional[PaymentLinkBuilder] = None,
        audit_logger: Optional[AuditLogger] = None,
        base_url: Optional[str] = None,
    ):
        self._storage = storage
        self._preview = preview
        self._share_codes = share_codes or ShareCodeGenerator(storage.share_code_exists)
        self._links = link_builder or NoPaymentLinks()
        self._audit_logger = audit_logger
        self._base_url = base_url or get_settings().share_codes.base_url

    def finalize(
        self,
        split_id: UUID,
        base_url: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> FinalizeSplitResponse:
        """
        Finalize a split, or replay the response of an earlier finalize.

        Raises:
            NotFoundError: If the split (or, on replay, its snapshot) does not exist
            ShareCodeExhaustedError: If no free share code could be found
        """
        correlation_id = correlation_id or create_correlation_id()
        base_url = base_url or self._base_url

        session = self._storage.load_session(split_id)
        if session is None:
            raise NotFoundError(f"Split not found: {split_id}")

        if session.is_finalized and session.share_code:
            snapshot = self._storage.latest_snapshot(session.id)
            if snapshot is None:
                raise NotFoundError(f"No snapshot for finalized split: {split_id}")
            if self._audit_logger:
                self._audit_logger.log_split_finalize_replayed(
                    split_id=session.id,
                    share_code=session.share_code,
                    correlation_id=correlation_id,
                )
            return self._build_response(session, snapshot, base_url)

        preview = self._preview(split_id)

        new_code = session.share_code is None
        try:
            if new_code:
                session.share_code = self._share_codes.generate_unique()
                # Claim the code before any snapshot is written
                self._storage.save_session(session)

            snapshot = SplitSnapshot.from_preview(
                split_session_id=session.id,
                preview=preview,
                share_code=session.share_code,
            )
            self._storage.add_snapshot(snapshot)

            now = datetime.now(timezone.utc)
            session.is_finalized = True
            session.finalized_at = now
            session.updated_at = now
            self._storage.save_session(session)
        except (ShareCodeError, StorageError) as e:
            if self._audit_logger:
                self._audit_logger.log_error(
                    error_type=type(e).__name__,
                    error_message=str(e),
                    details={"split_id": str(session.id)},
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            if new_code:
                self._audit_logger.log_share_code_assigned(
                    split_id=session.id,
                    share_code=session.share_code,
                    correlation_id=correlation_id,
                )
            self._audit_logger.log_split_finalized(
                split_id=session.id,
                snapshot_id=snapshot.id,
                share_code=session.share_code,
                total=snapshot.total,
                correlation_id=correlation_id,
            )

        return self._build_response(session, snapshot, base_url)

    def _build_response(
        self,
        session: SplitSession,
        snapshot: SplitSnapshot,
        base_url: str,
    ) -> FinalizeSplitResponse:
        return FinalizeSplitResponse(
            split_id=session.id,
            share_code=session.share_code,
            share_url=share_url(base_url, session.share_code),
            participants=finalized_participants(snapshot, self._links),
        )
