"""
Tests for the tier table and tier resolver.

Covers:
- Resolution at and around bracket boundaries
- Monotonicity of the resolved minimum deposit
- Rejection of malformed tables (gaps, overlaps, open ends)
"""

from decimal import Decimal

import pytest

from engine.constants import INFINITY
from engine.core.errors import TierConfigurationError
from engine.core.models import Tier
from engine.core.tiers import TierTable


def _rows(*brackets):
    """Build config rows from (name, min, max, rate) tuples."""
    return [
        {"name": name, "min_deposit": lo, "max_deposit": hi, "daily_return_rate": rate}
        for name, lo, hi, rate in brackets
    ]


class TestTierResolution:
    """Test principal to tier mapping."""

    def test_zero_principal_is_zero_tier(self, tiers):
        """Empty account sits in the zero-rate tier."""
        tier = tiers.resolve(Decimal("0"))

        assert tier.name == "Observer"
        assert tier.daily_return_rate == Decimal("0")

    def test_boundary_belongs_to_higher_tier(self, tiers):
        """A principal equal to a shared boundary resolves upward."""
        assert tiers.resolve_name(Decimal("800")) == "Gold assets 1"
        assert tiers.resolve_name(Decimal("799.99")) == "Observer"
        assert tiers.resolve_name(Decimal("12000")) == "All invest"
        assert tiers.resolve_name(Decimal("11999.999")) == "Total assets 2"

    def test_top_tier_is_unbounded(self, tiers):
        """Very large principals land in the last tier."""
        assert tiers.resolve_name(Decimal("13000")) == "Large Scale Investment"
        assert tiers.resolve_name(Decimal("1000000000")) == "Large Scale Investment"

    def test_tier_monotonicity(self, tiers):
        """Larger principal never resolves to a lower minimum."""
        previous_min = Decimal("-1")
        principal = Decimal("0")
        while principal <= Decimal("20000"):
            current_min = tiers.resolve(principal).min_deposit
            assert current_min >= previous_min
            previous_min = current_min
            principal += Decimal("37.5")

    def test_get_by_name(self, tiers):
        """Lookup by name returns the tier or None."""
        assert tiers.get("Oil asset 2").min_deposit == Decimal("3200")
        assert tiers.get("Platinum") is None

    def test_apy_derived_from_daily_rate(self, tiers):
        """APY is (1 + r)^365 - 1."""
        gold = tiers.get("Gold assets 1")

        assert gold.apy == (1 + Decimal("0.015")) ** 365 - 1
        assert tiers.zero_tier.apy == Decimal("0")


class TestTierValidation:
    """Test rejection of malformed tier tables."""

    def test_valid_table_from_config(self):
        """Rows with a null upper bound build an unbounded top tier."""
        table = TierTable.from_config(_rows(
            ("Free", 0, 100, 0),
            ("Paid", 100, None, "0.01"),
        ))

        assert len(table) == 2
        assert table.tiers[-1].max_deposit == INFINITY

    def test_empty_table_rejected(self):
        with pytest.raises(TierConfigurationError, match="empty"):
            TierTable([])

    def test_gap_rejected(self):
        """Brackets that leave a hole are rejected."""
        with pytest.raises(TierConfigurationError, match="gap"):
            TierTable.from_config(_rows(
                ("Free", 0, 100, 0),
                ("Paid", 200, None, "0.01"),
            ))

    def test_overlap_rejected(self):
        """Brackets that overlap are rejected."""
        with pytest.raises(TierConfigurationError, match="overlap"):
            TierTable.from_config(_rows(
                ("Free", 0, 300, 0),
                ("Paid", 200, None, "0.01"),
            ))

    def test_point_tier_rejected(self):
        """A tier with min == max is an empty range."""
        with pytest.raises(TierConfigurationError, match="empty range"):
            TierTable.from_config(_rows(
                ("Free", 0, 100, 0),
                ("Point", 100, 100, "0.01"),
                ("Paid", 100, None, "0.01"),
            ))

    def test_first_tier_must_start_at_zero(self):
        with pytest.raises(TierConfigurationError, match="start at 0"):
            TierTable.from_config(_rows(("Paid", 10, None, "0.01")))

    def test_last_tier_must_be_unbounded(self):
        with pytest.raises(TierConfigurationError, match="unbounded"):
            TierTable.from_config(_rows(("Free", 0, 100, 0)))

    def test_duplicate_names_rejected(self):
        with pytest.raises(TierConfigurationError, match="Duplicate"):
            TierTable.from_config(_rows(
                ("Same", 0, 100, 0),
                ("Same", 100, None, "0.01"),
            ))

    def test_rate_must_be_below_one(self):
        """A daily rate of 100% or more is a configuration error."""
        with pytest.raises(TierConfigurationError, match="position 0"):
            TierTable.from_config(_rows(("Free", 0, None, 1)))

    def test_unbounded_string_accepted(self):
        """'inf' is accepted for the top bound."""
        tier = Tier(name="Top", min_deposit=Decimal("0"), max_deposit="inf",
                    daily_return_rate=Decimal("0.01"))

        assert tier.is_unbounded
