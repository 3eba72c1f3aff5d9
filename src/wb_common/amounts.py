"""Integer arithmetic utilities for stakes, balances and payouts.

Stakes and balances are whole credits (int). Odds are floats entered by the
market creator; payouts go through Decimal(str(odds)) so 100 x 1.13 is 113,
not 112.99999999999999 floored to 112.
"""

import math
from decimal import ROUND_FLOOR, Decimal

from src.wb_common.errors import InvalidAmountError

MIN_ODDS = 1.01


def validate_amount(amount: object) -> int:
    """Return amount if it is a positive int (bool excluded), else raise."""
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmountError(amount)
    return amount


def is_valid_odds(odds: object) -> bool:
    if isinstance(odds, bool) or not isinstance(odds, (int, float)):
        return False
    return math.isfinite(odds) and odds >= MIN_ODDS


def calculate_payout(amount: int, odds: float) -> int:
    """floor(amount * odds)."""
    exact = Decimal(amount) * Decimal(str(odds))
    return int(exact.to_integral_value(rounding=ROUND_FLOOR))
