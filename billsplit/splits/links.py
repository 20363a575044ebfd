"""
Payment link seam.

Finalize and share responses carry, per participant, the ways they can
pay the split owner. Building those links (payout handles, URL
templates) lives outside this package; callers plug in a builder.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from uuid import UUID

from billsplit.models.split import FinalizedParticipant, PaymentLink, SplitSnapshot


class PaymentLinkBuilder(ABC):
    """Abstract interface for payment link construction."""

    @abstractmethod
    def build_links(
        self,
        participant_id: UUID,
        display_name: str,
        amount_owed: Decimal,
    ) -> list[PaymentLink]:
        """
        Build payment links for one participant.

        A builder that cannot produce a link for some payout method
        should skip it rather than raise.
        """
        pass


class NoPaymentLinks(PaymentLinkBuilder):
    """Builder used when the owner has no payout methods configured."""

    def build_links(
        self,
        participant_id: UUID,
        display_name: str,
        amount_owed: Decimal,
    ) -> list[PaymentLink]:
        return []


def finalized_participants(
    snapshot: SplitSnapshot,
    builder: PaymentLinkBuilder,
) -> tuple[FinalizedParticipant, ...]:
    """Participants of a snapshot, in snapshot order, with their payment links."""
    return tuple(
        FinalizedParticipant(
            participant_id=p.participant_id,
            display_name=p.display_name,
            amount_owed=p.total,
            payment_links=tuple(
                builder.build_links(p.participant_id, p.display_name, p.total)
            ),
        )
        for p in snapshot.participants
    )
