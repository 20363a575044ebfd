"""Tests for the fixed-point money helpers."""

from decimal import Decimal

from billsplit.money import (
    equals_within,
    round2,
    round2_optional,
    round3,
    round4,
    to_decimal,
)


class TestRounding:
    """Half-away-from-zero rounding at 2, 3 and 4 decimals."""

    def test_round2_half_up(self):
        assert round2(Decimal("2.675")) == Decimal("2.68")
        assert round2(Decimal("2.665")) == Decimal("2.67")
        assert round2(Decimal("2.674")) == Decimal("2.67")

    def test_round2_is_symmetric_around_zero(self):
        assert round2(Decimal("-2.675")) == Decimal("-2.68")
        assert round2(Decimal("-0.005")) == Decimal("-0.01")

    def test_round2_pads_to_cents(self):
        assert str(round2(Decimal("3"))) == "3.00"

    def test_round3_quantity(self):
        assert round3(Decimal("1.2345")) == Decimal("1.235")
        assert round3(Decimal("0.3333333")) == Decimal("0.333")

    def test_round4_intermediate(self):
        assert round4(Decimal("0.33335")) == Decimal("0.3334")
        assert round4(Decimal("10") / Decimal("3")) == Decimal("3.3333")

    def test_round2_optional_passes_none(self):
        assert round2_optional(None) is None
        assert round2_optional(Decimal("1.005")) == Decimal("1.01")


class TestConversion:
    """Coercion into Decimal."""

    def test_none_is_zero(self):
        assert to_decimal(None) == Decimal("0")

    def test_float_uses_shortest_repr(self):
        assert to_decimal(0.1) == Decimal("0.1")

    def test_float_rounds_like_its_literal(self):
        # Decimal(2.675) is 2.67499999...
        assert round2(2.675) == Decimal("2.68")

    def test_int_and_str(self):
        assert to_decimal(5) == Decimal("5")
        assert to_decimal("12.34") == Decimal("12.34")

    def test_equals_within_default_tolerance(self):
        assert equals_within(Decimal("1.00"), Decimal("1.02"))
        assert not equals_within(Decimal("1.00"), Decimal("1.03"))

    def test_equals_within_custom_tolerance(self):
        assert equals_within("10", "10.5", tolerance="0.5")
