"""
Split Data Models

A SplitSession belongs to one receipt. Participants claim fractional
shares of items; a SplitPreview is recomputed on demand and a
SplitSnapshot freezes one preview at finalize time.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from billsplit.money import ZERO


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# SESSION
# =============================================================================

class Participant(BaseModel):
    """A person taking part in a split."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    display_name: str = Field(..., min_length=1, max_length=100)
    sort_order: int = Field(
        default=0,
        description="Stable display order within the session"
    )


class ItemClaim(BaseModel):
    """
    A participant's share of one item's quantity.

    Several claims may target the same item. Their sum may be below the
    item quantity (the rest is reported as unclaimed) but must never
    exceed it; that is checked before allocation runs.
    """

    item_id: UUID
    participant_id: UUID
    quantity_share: Decimal = Field(..., ge=0)


class SplitSession(BaseModel):
    """A split of one receipt between participants."""

    id: UUID = Field(default_factory=uuid4)
    owner_id: Optional[UUID] = None
    receipt_id: UUID
    name: Optional[str] = Field(default=None, max_length=200)

    participants: list[Participant] = Field(default_factory=list)
    claims: list[ItemClaim] = Field(default_factory=list)

    is_finalized: bool = False
    share_code: Optional[str] = None
    finalized_at: Optional[datetime] = None

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


# =============================================================================
# ALLOCATION RESULTS
# =============================================================================

class ParticipantAllocation(BaseModel):
    """What one participant owes, broken down by component."""
    model_config = ConfigDict(frozen=True)

    participant_id: UUID
    display_name: str
    items_subtotal: Decimal = ZERO
    discount_alloc: Decimal = ZERO  # negative for a discount, positive for a surcharge
    tax_alloc: Decimal = ZERO
    tip_alloc: Decimal = ZERO
    total: Decimal = ZERO


class UnclaimedItem(BaseModel):
    """Quantity of an item nobody has claimed yet."""
    model_config = ConfigDict(frozen=True)

    item_id: UUID
    quantity: Decimal


class SplitPreview(BaseModel):
    """
    Result of allocating a receipt across participants.

    sum(p.total for p in participants) == total whenever there is at
    least one participant; rounding_remainder reports what is left over
    (0 after remainder absorption).
    """
    model_config = ConfigDict(frozen=True)

    split_id: Optional[UUID] = None
    subtotal: Decimal
    tax: Decimal
    tip: Decimal
    total: Decimal
    participants: tuple[ParticipantAllocation, ...] = ()
    unclaimed_items: tuple[UnclaimedItem, ...] = ()
    rounding_remainder: Decimal = ZERO

    def allocation_for(self, participant_id: UUID) -> Optional[ParticipantAllocation]:
        for allocation in self.participants:
            if allocation.participant_id == participant_id:
                return allocation
        return None


class SplitSnapshot(BaseModel):
    """
    Immutable copy of a preview, created once at finalize.

    Never recomputed: later edits to the receipt or claims do not
    change what a share link shows.
    """
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    split_session_id: UUID
    share_code: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)

    subtotal: Decimal
    tax: Decimal
    tip: Decimal
    total: Decimal
    participants: tuple[ParticipantAllocation, ...] = ()

    @classmethod
    def from_preview(
        cls,
        split_session_id: UUID,
        preview: SplitPreview,
        share_code: Optional[str] = None,
    ) -> 'SplitSnapshot':
        return cls(
            split_session_id=split_session_id,
            share_code=share_code,
            subtotal=preview.subtotal,
            tax=preview.tax,
            tip=preview.tip,
            total=preview.total,
            participants=tuple(
                allocation.model_copy() for allocation in preview.participants
            ),
        )


# =============================================================================
# RESPONSE PAYLOADS
# =============================================================================

class PaymentLink(BaseModel):
    """One way for a participant to pay the owner."""
    model_config = ConfigDict(frozen=True)

    platform_key: str
    display_name: str
    url: Optional[str] = None
    instructions_only: bool = False
    instructions: Optional[str] = None


class FinalizedParticipant(BaseModel):
    """A participant's line in a finalize/share response."""
    model_config = ConfigDict(frozen=True)

    participant_id: UUID
    display_name: str
    amount_owed: Decimal
    payment_links: tuple[PaymentLink, ...] = ()


class FinalizeSplitResponse(BaseModel):
    """Payload returned by every finalize call, first or repeated."""
    model_config = ConfigDict(frozen=True)

    split_id: UUID
    share_code: str
    share_url: str
    participants: tuple[FinalizedParticipant, ...] = ()


class ShareSplitView(BaseModel):
    """Public read-only view behind a share code."""
    model_config = ConfigDict(frozen=True)

    split_id: UUID
    share_code: str
    total: Decimal
    participants: tuple[FinalizedParticipant, ...] = ()
