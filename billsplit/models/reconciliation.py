"""
Reconciliation Models

ReconciliationPolicy is immutable configuration. ReconciliationResult is
computed fresh on every run; only its fields are copied onto a Receipt.
"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from billsplit.config import get_settings
from billsplit.models.receipt import BaselineSource, ParseStatus
from billsplit.money import round2


class ReconciliationPolicy(BaseModel):
    """
    Tolerance and auto-adjustment caps.

    Use ReconciliationPolicy.from_settings() for the process-wide
    defaults; construct one directly to override per call.
    """
    model_config = ConfigDict(frozen=True)

    epsilon: Decimal = Field(
        default=Decimal("0.02"),
        ge=0,
        description="Largest gap still treated as a match"
    )
    enforce_caps: bool = Field(
        default=True,
        description="Refuse auto-adjustments that exceed the caps"
    )
    max_abs: Decimal = Field(
        default=Decimal("5.00"),
        ge=0,
        description="Absolute cap on an auto-adjustment"
    )
    max_pct: Decimal = Field(
        default=Decimal("0.015"),
        ge=0,
        le=1,
        description="Cap relative to the baseline subtotal"
    )
    allow_without_printed_subtotal: bool = Field(
        default=True,
        description="Allow auto-adjustments when no subtotal was printed"
    )

    @classmethod
    def from_settings(cls) -> 'ReconciliationPolicy':
        settings = get_settings().reconciliation
        return cls(
            epsilon=settings.epsilon,
            enforce_caps=settings.enforce_caps,
            max_abs=settings.max_abs,
            max_pct=settings.max_pct,
            allow_without_printed_subtotal=settings.allow_without_printed_subtotal,
        )


class ReconciliationResult(BaseModel):
    """
    Outcome of checking items against the baseline subtotal.

    Invariants:
        discrepancy == round2(items_sum - baseline_subtotal)
        needs_adjustment == (abs(discrepancy) > policy.epsilon)
    """
    model_config = ConfigDict(frozen=True)

    status: ParseStatus
    items_sum: Decimal
    baseline_subtotal: Decimal
    baseline_source: BaselineSource
    discrepancy: Decimal
    needs_adjustment: bool
    reason: Optional[str] = None

    @property
    def is_success(self) -> bool:
        return self.status is ParseStatus.SUCCESS

    @property
    def adjustment_delta(self) -> Decimal:
        """Amount an Adjustment line must carry to close the gap."""
        return round2(self.baseline_subtotal - self.items_sum)
