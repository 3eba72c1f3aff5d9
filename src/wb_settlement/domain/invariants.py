"""Market and ledger invariant verification after each mutation."""

import logging

from src.wb_common.enums import MarketStatus
from src.wb_ledger.domain.ledger import LedgerStore
from src.wb_ledger.domain.stats import StatsStore
from src.wb_market.domain.models import Market

logger = logging.getLogger(__name__)


def verify_market_invariants(market: Market) -> None:
    """Raises AssertionError if violated.

    INV-1: total_pool == sum of wager amounts
    INV-2: every wager targets an existing option with a positive amount
    INV-3: winning_options is empty unless the market is resolved
    """
    stake_sum = sum(w.amount for w in market.bettors.values())
    assert market.total_pool == stake_sum, (
        f"INV-1 violated: market={market.id} total_pool={market.total_pool} "
        f"!= sum(wagers)={stake_sum}"
    )
    for user_id, wager in market.bettors.items():
        assert 0 <= wager.option_index < len(market.options) and wager.amount > 0, (
            f"INV-2 violated: market={market.id} user={user_id} "
            f"option={wager.option_index} amount={wager.amount}"
        )
    if market.winning_options:
        assert market.status == MarketStatus.RESOLVED, (
            f"INV-3 violated: market={market.id} has winners but status={market.status.value}"
        )

    logger.debug("Invariants OK: market=%s, pool=%d, wagers=%d",
                 market.id, market.total_pool, len(market.bettors))


def verify_ledger_invariants(ledger: LedgerStore, stats: StatsStore) -> list[str]:
    """Check INV-L (no negative balance) and INV-S (won + lost <= total).

    Returns list of violation strings.
    """
    violations: list[str] = []
    for account in ledger.accounts():
        if account.balance < 0:
            violations.append(f"INV-L violated: user={account.user_id} balance={account.balance}")
    for s in stats.all_stats():
        if s.won_bets + s.lost_bets > s.total_bets:
            violations.append(
                f"INV-S violated: user={s.user_id} won={s.won_bets} "
                f"lost={s.lost_bets} total={s.total_bets}"
            )
    for msg in violations:
        logger.error(msg)
    return violations
