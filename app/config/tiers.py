"""
Единственный источник истины для таблицы уровней членства.

Built-in tier table plus the loader that swaps in a JSON table when
``TIER_TABLE_PATH`` is set. Both paths go through ``TierTable``
validation, so a table with gaps or overlaps never reaches the engine.
"""

import json
from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from loguru import logger

from app.config.settings import settings
from engine.constants import INFINITY, ZERO_TIER_NAME
from engine.core.errors import TierConfigurationError
from engine.core.models import Tier
from engine.core.tiers import TierTable


# (name, min_deposit, colour); each tier ends where the next one starts
_TIER_LADDER: list[tuple[str, Decimal, str]] = [
    (ZERO_TIER_NAME, Decimal("0"), "#9ca3af"),
    ("Gold assets 1", Decimal("800"), "#fde047"),
    ("Oil assets 1", Decimal("1200"), "#a16207"),
    ("Real estate assets 1", Decimal("1500"), "#f97316"),
    ("Total assets 1", Decimal("2700"), "#ea580c"),
    ("Gold asset 2", Decimal("3000"), "#facc15"),
    ("Oil asset 2", Decimal("3200"), "#854d0e"),
    ("Real estate asset 2", Decimal("4000"), "#d97706"),
    ("Total assets 2", Decimal("5600"), "#b45309"),
    ("All invest", Decimal("12000"), "#78350f"),
    ("Large Scale Investment", Decimal("13000"), "#451a03"),
]


def build_default_tiers(daily_rate: Decimal) -> list[Tier]:
    """
    Build the built-in ladder with one daily rate for every paying tier.

    Args:
        daily_rate: Daily return for all tiers except the zero tier

    Returns:
        Ordered list of tiers covering [0, +infinity)
    """
    tiers = []
    for index, (name, min_deposit, color) in enumerate(_TIER_LADDER):
        is_last = index == len(_TIER_LADDER) - 1
        tiers.append(
            Tier(
                name=name,
                min_deposit=min_deposit,
                max_deposit=INFINITY if is_last else _TIER_LADDER[index + 1][1],
                daily_return_rate=Decimal("0") if index == 0 else daily_rate,
                color=color,
            )
        )
    return tiers


def load_tier_table_file(path: str | Path) -> TierTable:
    """
    Load a tier table from a JSON file.

    The file holds a list of objects with ``name``, ``min_deposit``,
    ``max_deposit`` (``null`` for the unbounded top tier),
    ``daily_return_rate`` and optional ``color``. Decimal values may be
    given as strings to avoid float rounding.

    Raises:
        TierConfigurationError: If the file is unreadable or the table
            is malformed
    """
    try:
        raw = Path(path).read_text(encoding="utf-8")
        rows = json.loads(raw, parse_float=Decimal)
    except (OSError, json.JSONDecodeError) as e:
        raise TierConfigurationError(f"Cannot read tier table {path}: {e}") from e

    if not isinstance(rows, list):
        raise TierConfigurationError(f"Tier table {path} must be a JSON list")

    return TierTable.from_config(rows)


def load_tier_table() -> TierTable:
    """
    Load the configured tier table.

    Returns:
        JSON table from ``settings.tier_table_path`` if set, otherwise the
        built-in table at ``settings.default_daily_return_rate``
    """
    if settings.tier_table_path:
        table = load_tier_table_file(settings.tier_table_path)
        logger.info(
            f"Loaded {len(table)} tiers from {settings.tier_table_path}"
        )
        return table

    return TierTable(build_default_tiers(settings.default_daily_return_rate))


@lru_cache(maxsize=1)
def get_tier_table() -> TierTable:
    """
    Configured tier table, loaded once per process.

    Default table of every service and of the batch runner.
    """
    return load_tier_table()
