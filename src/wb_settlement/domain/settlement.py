"""SettlementEngine: lock, resolve and cancel markets.

Every entry point validates all preconditions before the first mutation, so
a rejected call changes nothing. The status guard (resolved/cancelled are
terminal) is what keeps a market from being settled twice; callers must
serialize calls per market (WagerService holds a per-market lock).

Payouts always use WagerRecord.odds_at_placement, never dynamic odds.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from src.wb_common.amounts import calculate_payout
from src.wb_common.datetime_utils import Clock, utc_now
from src.wb_common.enums import BalanceChangeReason, MarketStatus, WagerResult
from src.wb_common.errors import (
    InvalidOptionError,
    MarketTerminalError,
    NotMarketCreatorError,
)
from src.wb_ledger.domain.ledger import LedgerStore
from src.wb_ledger.domain.models import HistoryEntry
from src.wb_ledger.domain.stats import StatsStore
from src.wb_market.domain.models import Market
from src.wb_market.domain.registry import MarketRegistry
from src.wb_settlement.domain.invariants import verify_market_invariants

logger = logging.getLogger(__name__)

WINSTREAK_THRESHOLD = 3


@dataclass(frozen=True)
class Payout:
    user_id: str
    option_name: str
    amount: int
    odds: float
    winnings: int

    @property
    def profit(self) -> int:
        return self.winnings - self.amount


@dataclass(frozen=True)
class LostWager:
    user_id: str
    option_name: str
    amount: int


@dataclass
class SettlementReport:
    market_id: str
    winning_options: frozenset[int]
    payouts: list[Payout] = field(default_factory=list)
    losers: list[LostWager] = field(default_factory=list)
    streak_bonuses: dict[str, int] = field(default_factory=dict)  # user_id -> bonus

    @property
    def total_distributed(self) -> int:
        return sum(p.winnings for p in self.payouts) + sum(self.streak_bonuses.values())


@dataclass
class CancellationReport:
    market_id: str
    refunds: dict[str, int] = field(default_factory=dict)  # user_id -> amount

    @property
    def total_refunded(self) -> int:
        return sum(self.refunds.values())


class SettlementEngine:
    def __init__(
        self,
        registry: MarketRegistry,
        ledger: LedgerStore,
        stats: StatsStore,
        clock: Clock = utc_now,
        winstreak_bonus: int = 0,
    ) -> None:
        self._registry = registry
        self._ledger = ledger
        self._stats = stats
        self._clock = clock
        self._winstreak_bonus = winstreak_bonus

    def _require_settleable(self, market_id: str, caller_id: str) -> Market:
        market = self._registry.require(market_id)
        if caller_id != market.creator_id:
            raise NotMarketCreatorError(market_id, caller_id)
        if not market.is_active:
            raise MarketTerminalError(market_id, market.status.value)
        return market

    def lock(self, market_id: str) -> bool:
        """open -> locked. Returns False when it was already locked."""
        market = self._registry.require(market_id)
        if market.status == MarketStatus.LOCKED:
            return False
        market.transition_to(MarketStatus.LOCKED)
        logger.info("Market %s locked: pool=%d, wagers=%d",
                    market_id, market.total_pool, len(market.bettors))
        return True

    def resolve(
        self, market_id: str, caller_id: str, winning_option_indices: Iterable[int]
    ) -> SettlementReport:
        market = self._require_settleable(market_id, caller_id)
        # empty set: every wager lost
        winners = frozenset(winning_option_indices)
        for index in sorted(winners, key=repr):
            if not market.has_option(index):
                raise InvalidOptionError(market_id, index)

        report = SettlementReport(market_id=market_id, winning_options=winners)
        now = self._clock()
        for user_id, wager in market.bettors.items():
            option_name = market.options[wager.option_index].name
            won = wager.option_index in winners
            user_stats = self._stats.record_outcome(user_id, won)
            if won:
                winnings = calculate_payout(wager.amount, wager.odds_at_placement)
                self._ledger.credit(user_id, winnings, BalanceChangeReason.WAGER_WON, market_id)
                report.payouts.append(
                    Payout(user_id, option_name, wager.amount, wager.odds_at_placement, winnings)
                )
                if self._winstreak_bonus > 0 and user_stats.current_streak >= WINSTREAK_THRESHOLD:
                    self._ledger.credit(
                        user_id, self._winstreak_bonus, BalanceChangeReason.WINSTREAK_BONUS, market_id
                    )
                    report.streak_bonuses[user_id] = self._winstreak_bonus
            else:
                winnings = 0
                report.losers.append(LostWager(user_id, option_name, wager.amount))
            self._stats.append_history(
                user_id,
                HistoryEntry(
                    market_id=market_id,
                    question=market.question,
                    option_name=option_name,
                    amount=wager.amount,
                    winnings=winnings,
                    result=WagerResult.WON if won else WagerResult.LOST,
                    timestamp=now,
                ),
            )

        market.transition_to(MarketStatus.RESOLVED)
        market.winning_options = winners
        market.settled_at = now
        verify_market_invariants(market)
        logger.info(
            "Market %s resolved: options=%s, %d winner(s), %d loser(s), %d paid",
            market_id,
            sorted(winners),
            len(report.payouts),
            len(report.losers),
            report.total_distributed,
        )
        return report

    def cancel(self, market_id: str, caller_id: str) -> CancellationReport:
        market = self._require_settleable(market_id, caller_id)
        return self._cancel(market)

    def cancel_all(self) -> list[CancellationReport]:
        """Cancel every active market with refunds. Authorization is the caller's job."""
        return [self._cancel(market) for market in self._registry.list_active()]

    def _cancel(self, market: Market) -> CancellationReport:
        report = CancellationReport(market_id=market.id)
        for user_id, wager in market.bettors.items():
            self._ledger.credit(
                user_id, wager.amount, BalanceChangeReason.WAGER_REFUNDED, market.id
            )
            report.refunds[user_id] = wager.amount
        market.transition_to(MarketStatus.CANCELLED)
        market.settled_at = self._clock()
        logger.info("Market %s cancelled: %d refund(s), %d refunded",
                    market.id, len(report.refunds), report.total_refunded)
        return report
