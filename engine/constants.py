"""
Constants shared by the earnings engine.
"""

from decimal import Decimal

ZERO = Decimal("0")
INFINITY = Decimal("Infinity")

SECONDS_PER_DAY = Decimal("86400")
DAYS_PER_YEAR = 365

# Name of the rate-zero tier every new account starts in
ZERO_TIER_NAME = "Observer"
