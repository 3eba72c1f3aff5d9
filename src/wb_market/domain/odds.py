"""Pool-proportional ("dynamic") odds for display.

Pure function over a market's current stakes. Settlement never reads these;
payouts use the odds fixed on each WagerRecord.
"""

from src.wb_market.domain.models import Market

OVERROUND_FACTOR = 0.95  # 5% reserved
MIN_DYNAMIC_ODDS = 1.01
MAX_DYNAMIC_ODDS = 50.0


def compute_dynamic_odds(market: Market) -> list[float]:
    """One quote per option.

    An option with no stake keeps its fixed odds; otherwise
    clamp(total_pool / pool_i * 0.95, 1.01, 50.0).
    """
    pools = [0] * len(market.options)
    for wager in market.bettors.values():
        pools[wager.option_index] += wager.amount

    quotes: list[float] = []
    for option, pool in zip(market.options, pools):
        if pool == 0:
            quotes.append(option.fixed_odds)
            continue
        raw = market.total_pool / pool * OVERROUND_FACTOR
        quotes.append(min(max(raw, MIN_DYNAMIC_ODDS), MAX_DYNAMIC_ODDS))
    return quotes
