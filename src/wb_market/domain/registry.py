"""MarketRegistry: owns every market and the wager-placement rules.

Markets are never deleted; resolved and cancelled ones stay for history.
All precondition checks in place_wager run before the ledger is touched so
a rejected wager leaves no trace.
"""

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime

from src.wb_common.amounts import is_valid_odds, validate_amount
from src.wb_common.datetime_utils import Clock, utc_now
from src.wb_common.enums import BalanceChangeReason, MarketStatus
from src.wb_common.errors import (
    DuplicateWagerError,
    InvalidMarketDefinitionError,
    InvalidOddsError,
    InvalidOptionCountError,
    InvalidOptionError,
    MarketClosedError,
    MarketExistsError,
    MarketNotFoundError,
)
from src.wb_ledger.domain.ledger import LedgerStore
from src.wb_market.domain.models import Market, MarketOption, WagerRecord

logger = logging.getLogger(__name__)

MIN_OPTIONS = 2
MAX_OPTIONS = 10

OptionSpec = tuple[str, float]


def _build_options(specs: Sequence[OptionSpec], minimum: int) -> tuple[MarketOption, ...]:
    if not (minimum <= len(specs) <= MAX_OPTIONS):
        raise InvalidOptionCountError(len(specs), minimum, MAX_OPTIONS)
    options: list[MarketOption] = []
    for name, odds in specs:
        if not isinstance(name, str) or not name.strip():
            raise InvalidMarketDefinitionError("option name must not be blank")
        if not is_valid_odds(odds):
            raise InvalidOddsError(name, odds)
        options.append(MarketOption(name=name.strip(), fixed_odds=float(odds)))
    return tuple(options)


class MarketRegistry:
    def __init__(self, ledger: LedgerStore, clock: Clock = utc_now) -> None:
        self._ledger = ledger
        self._clock = clock
        self._markets: dict[str, Market] = {}

    def get(self, market_id: str) -> Market | None:
        return self._markets.get(market_id)

    def require(self, market_id: str) -> Market:
        market = self._markets.get(market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        return market

    def create_market(
        self,
        market_id: str,
        question: str,
        options: Sequence[OptionSpec],
        creator_id: str,
        closing_time: datetime | None = None,
        channel_id: str | None = None,
    ) -> Market:
        return self._create(
            market_id,
            question,
            _build_options(options, MIN_OPTIONS),
            creator_id,
            closing_time,
            channel_id,
            is_boosted=False,
        )

    def create_boosted_market(
        self,
        market_id: str,
        event_name: str,
        odds: float,
        creator_id: str,
        closing_time: datetime | None = None,
        channel_id: str | None = None,
    ) -> Market:
        """Single-option promotional market on one event at one price."""
        return self._create(
            market_id,
            event_name,
            _build_options([(event_name, odds)], 1),
            creator_id,
            closing_time,
            channel_id,
            is_boosted=True,
        )

    def _create(
        self,
        market_id: str,
        question: str,
        options: tuple[MarketOption, ...],
        creator_id: str,
        closing_time: datetime | None,
        channel_id: str | None,
        is_boosted: bool,
    ) -> Market:
        if not question or not question.strip():
            raise InvalidMarketDefinitionError("question must not be blank")
        if closing_time is not None and closing_time.tzinfo is None:
            raise InvalidMarketDefinitionError("closing_time must be timezone-aware")
        if market_id in self._markets:
            raise MarketExistsError(market_id)

        market = Market(
            id=market_id,
            question=question.strip(),
            options=options,
            creator_id=creator_id,
            created_at=self._clock(),
            closing_time=closing_time,
            is_boosted=is_boosted,
            channel_id=channel_id,
        )
        self._markets[market_id] = market
        logger.info(
            "Market %s created by %s: %d option(s), closing=%s",
            market_id,
            creator_id,
            len(options),
            closing_time.isoformat() if closing_time else "manual",
        )
        return market

    def place_wager(
        self, market_id: str, user_id: str, option_index: int, amount: int
    ) -> WagerRecord:
        market = self.require(market_id)
        if market.status != MarketStatus.OPEN:
            raise MarketClosedError(market_id, market.status.value)
        if user_id in market.bettors:
            raise DuplicateWagerError(market_id, user_id)
        validate_amount(amount)
        if not market.has_option(option_index):
            raise InvalidOptionError(market_id, option_index)
        self._ledger.ensure_funds(user_id, amount)

        self._ledger.debit(user_id, amount, BalanceChangeReason.WAGER_PLACED, market_id)
        wager = WagerRecord(
            user_id=user_id,
            option_index=option_index,
            amount=amount,
            odds_at_placement=market.options[option_index].fixed_odds,
            placed_at=self._clock(),
        )
        market.bettors[user_id] = wager
        market.total_pool += amount
        logger.info(
            "Wager on %s: user=%s option=%d amount=%d odds=%.2f",
            market_id,
            user_id,
            option_index,
            amount,
            wager.odds_at_placement,
        )
        return wager

    def list_active(self) -> list[Market]:
        """Open and locked markets, oldest first."""
        active = [m for m in self._markets.values() if m.is_active]
        active.sort(key=lambda m: (m.created_at, m.id))
        return active

    def list_all(self) -> list[Market]:
        return list(self._markets.values())

    def list_user_wagers(self, user_id: str) -> list[tuple[Market, WagerRecord]]:
        """The user's pending wagers on active markets, oldest market first."""
        return [(m, m.bettors[user_id]) for m in self.list_active() if user_id in m.bettors]

    # ------------------------------------------------------------------
    # Snapshot support
    # ------------------------------------------------------------------

    def export_markets(self) -> dict[str, Market]:
        return dict(self._markets)

    def restore(self, markets: Iterable[Market]) -> None:
        self._markets = {m.id: m for m in markets}
