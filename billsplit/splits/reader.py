"""Read-only access to finalized splits by share code."""

from typing import Optional

from billsplit.models.split import ShareSplitView
from billsplit.services.storage import NotFoundError, SplitStorageInterface
from billsplit.splits.links import (
    NoPaymentLinks,
    PaymentLinkBuilder,
    finalized_participants,
)


class SplitShareReader:
    """Serves the public view behind a share link."""

    def __init__(
        self,
        storage: SplitStorageInterface,
        link_builder: Optional[PaymentLinkBuilder] = None,
    ):
        self._storage = storage
        self._links = link_builder or NoPaymentLinks()

    def get_by_code(self, code: str) -> ShareSplitView:
        """
        Look up the latest snapshot of a finalized split.

        Raises:
            NotFoundError: If no finalized split uses this code
        """
        session = self._storage.find_session_by_share_code(code)
        if session is None or not session.is_finalized:
            raise NotFoundError("Share code not found.")

        snapshot = self._storage.latest_snapshot(session.id)
        if snapshot is None:
            raise NotFoundError("Share code not found.")

        return ShareSplitView(
            split_id=session.id,
            share_code=code,
            total=snapshot.total,
            participants=finalized_participants(snapshot, self._links),
        )
