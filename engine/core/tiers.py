"""
Tier table and tier resolution.

A tier table is an ordered, contiguous list of deposit brackets covering
``[0, +infinity)``. Adjacent tiers share their boundary value
(``tiers[i].max_deposit == tiers[i + 1].min_deposit``); a principal equal
to the boundary belongs to the higher tier.
"""

from collections.abc import Iterable, Iterator
from decimal import Decimal
from typing import Any

from engine.constants import ZERO
from engine.core.errors import TierConfigurationError
from engine.core.models import Tier


class TierTable:
    """
    Immutable, validated tier table.

    Example:
        >>> table = TierTable.from_config([
        ...     {"name": "Observer", "min_deposit": 0, "max_deposit": 800,
        ...      "daily_return_rate": 0},
        ...     {"name": "Gold", "min_deposit": 800, "max_deposit": None,
        ...      "daily_return_rate": "0.015"},
        ... ])
        >>> table.resolve(Decimal("800")).name
        'Gold'
    """

    def __init__(self, tiers: Iterable[Tier]) -> None:
        ordered = tuple(tiers)
        self._validate(ordered)
        self._tiers = ordered
        self._by_name = {tier.name: tier for tier in ordered}
        # Highest minimum first, so the first hit is the highest qualifying tier
        self._descending = tuple(reversed(ordered))

    @classmethod
    def from_config(cls, rows: Iterable[dict[str, Any]]) -> "TierTable":
        """
        Build a table from plain dicts (e.g. parsed JSON).

        Raises:
            TierConfigurationError: If a row is malformed or the table
                is not contiguous
        """
        tiers = []
        for index, row in enumerate(rows):
            try:
                tiers.append(Tier.model_validate(row))
            except ValueError as e:
                raise TierConfigurationError(f"Invalid tier at position {index}: {e}") from e
        return cls(tiers)

    @staticmethod
    def _validate(tiers: tuple[Tier, ...]) -> None:
        if not tiers:
            raise TierConfigurationError("Tier table is empty")

        names = [tier.name for tier in tiers]
        if len(set(names)) != len(names):
            raise TierConfigurationError(f"Duplicate tier names: {names}")

        if tiers[0].min_deposit != ZERO:
            raise TierConfigurationError(
                f"First tier {tiers[0].name!r} must start at 0, "
                f"got {tiers[0].min_deposit}"
            )

        if not tiers[-1].is_unbounded:
            raise TierConfigurationError(
                f"Last tier {tiers[-1].name!r} must be unbounded, "
                f"got max_deposit={tiers[-1].max_deposit}"
            )

        for tier in tiers:
            if tier.min_deposit >= tier.max_deposit:
                raise TierConfigurationError(
                    f"Tier {tier.name!r} has an empty range "
                    f"[{tier.min_deposit}, {tier.max_deposit}]"
                )

        for current, following in zip(tiers, tiers[1:]):
            if current.max_deposit != following.min_deposit:
                kind = "gap" if current.max_deposit < following.min_deposit else "overlap"
                raise TierConfigurationError(
                    f"Tiers {current.name!r} and {following.name!r} have a {kind}: "
                    f"{current.max_deposit} != {following.min_deposit}"
                )

    def __iter__(self) -> Iterator[Tier]:
        return iter(self._tiers)

    def __len__(self) -> int:
        return len(self._tiers)

    @property
    def tiers(self) -> tuple[Tier, ...]:
        return self._tiers

    @property
    def zero_tier(self) -> Tier:
        """Lowest tier, used as the fallback."""
        return self._tiers[0]

    def get(self, name: str) -> Tier | None:
        return self._by_name.get(name)

    def resolve(self, principal: Decimal) -> Tier:
        """
        Map a principal to its tier.

        Picks the tier with the largest ``min_deposit`` that still contains
        the principal; falls back to the zero tier when nothing matches.

        Args:
            principal: Principal amount (>= 0)

        Returns:
            Matching tier
        """
        for tier in self._descending:
            if tier.contains(principal):
                return tier
        return self.zero_tier

    def resolve_name(self, principal: Decimal) -> str:
        return self.resolve(principal).name
