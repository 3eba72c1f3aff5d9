"""Pydantic snapshot documents.

One document per key; each maps to and from the wb_ledger / wb_market
dataclasses. Keys are independent so a future incremental writer can skip
unchanged ones.
"""

from datetime import datetime

from pydantic import BaseModel, Field, RootModel

from src.wb_common.enums import BalanceChangeReason, MarketStatus, WagerResult
from src.wb_ledger.domain.models import BalanceChange, HistoryEntry, UserAccount, UserStats
from src.wb_market.domain.models import Market, MarketOption, WagerRecord

MARKETS_KEY = "markets"
BALANCES_KEY = "balances"
STATS_KEY = "stats"
HISTORY_KEY = "history"
BALANCE_CHANGES_KEY = "balance_changes"

SNAPSHOT_KEYS = (MARKETS_KEY, BALANCES_KEY, STATS_KEY, HISTORY_KEY, BALANCE_CHANGES_KEY)


# ---------------------------------------------------------------------------
# Markets
# ---------------------------------------------------------------------------


class OptionDoc(BaseModel):
    name: str
    fixed_odds: float = Field(..., ge=1.01)


class WagerDoc(BaseModel):
    user_id: str
    option_index: int = Field(..., ge=0)
    amount: int = Field(..., gt=0)
    odds_at_placement: float = Field(..., ge=1.01)
    placed_at: datetime

    @classmethod
    def from_domain(cls, w: WagerRecord) -> "WagerDoc":
        return cls(
            user_id=w.user_id,
            option_index=w.option_index,
            amount=w.amount,
            odds_at_placement=w.odds_at_placement,
            placed_at=w.placed_at,
        )

    def to_domain(self) -> WagerRecord:
        return WagerRecord(
            user_id=self.user_id,
            option_index=self.option_index,
            amount=self.amount,
            odds_at_placement=self.odds_at_placement,
            placed_at=self.placed_at,
        )


class MarketDoc(BaseModel):
    id: str
    question: str
    options: list[OptionDoc]
    creator_id: str
    created_at: datetime
    closing_time: datetime | None
    status: MarketStatus
    bettors: dict[str, WagerDoc]
    total_pool: int = Field(..., ge=0)
    reminder_sent: bool
    winning_options: list[int]
    is_boosted: bool = False
    channel_id: str | None = None
    settled_at: datetime | None = None

    @classmethod
    def from_domain(cls, m: Market) -> "MarketDoc":
        return cls(
            id=m.id,
            question=m.question,
            options=[OptionDoc(name=o.name, fixed_odds=o.fixed_odds) for o in m.options],
            creator_id=m.creator_id,
            created_at=m.created_at,
            closing_time=m.closing_time,
            status=m.status,
            bettors={uid: WagerDoc.from_domain(w) for uid, w in m.bettors.items()},
            total_pool=m.total_pool,
            reminder_sent=m.reminder_sent,
            winning_options=sorted(m.winning_options),
            is_boosted=m.is_boosted,
            channel_id=m.channel_id,
            settled_at=m.settled_at,
        )

    def to_domain(self) -> Market:
        return Market(
            id=self.id,
            question=self.question,
            options=tuple(MarketOption(name=o.name, fixed_odds=o.fixed_odds) for o in self.options),
            creator_id=self.creator_id,
            created_at=self.created_at,
            closing_time=self.closing_time,
            status=self.status,
            bettors={uid: w.to_domain() for uid, w in self.bettors.items()},
            total_pool=self.total_pool,
            reminder_sent=self.reminder_sent,
            winning_options=frozenset(self.winning_options),
            is_boosted=self.is_boosted,
            channel_id=self.channel_id,
            settled_at=self.settled_at,
        )


class MarketsDoc(RootModel[dict[str, MarketDoc]]):
    pass


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------


class AccountDoc(BaseModel):
    user_id: str
    balance: int = Field(..., ge=0)
    created_at: datetime

    @classmethod
    def from_domain(cls, a: UserAccount) -> "AccountDoc":
        return cls(user_id=a.user_id, balance=a.balance, created_at=a.created_at)

    def to_domain(self) -> UserAccount:
        return UserAccount(user_id=self.user_id, balance=self.balance, created_at=self.created_at)


class BalancesDoc(RootModel[dict[str, AccountDoc]]):
    pass


class BalanceChangeDoc(BaseModel):
    user_id: str
    reason: BalanceChangeReason
    amount: int
    balance_after: int = Field(..., ge=0)
    timestamp: datetime
    reference_id: str | None = None

    @classmethod
    def from_domain(cls, c: BalanceChange) -> "BalanceChangeDoc":
        return cls(
            user_id=c.user_id,
            reason=c.reason,
            amount=c.amount,
            balance_after=c.balance_after,
            timestamp=c.timestamp,
            reference_id=c.reference_id,
        )

    def to_domain(self) -> BalanceChange:
        return BalanceChange(
            user_id=self.user_id,
            reason=self.reason,
            amount=self.amount,
            balance_after=self.balance_after,
            timestamp=self.timestamp,
            reference_id=self.reference_id,
        )


class BalanceChangesDoc(RootModel[dict[str, list[BalanceChangeDoc]]]):
    pass


# ---------------------------------------------------------------------------
# Stats + history
# ---------------------------------------------------------------------------


class StatsDoc(BaseModel):
    user_id: str
    total_bets: int = Field(0, ge=0)
    won_bets: int = Field(0, ge=0)
    lost_bets: int = Field(0, ge=0)
    current_streak: int = Field(0, ge=0)
    best_streak: int = Field(0, ge=0)

    @classmethod
    def from_domain(cls, s: UserStats) -> "StatsDoc":
        return cls(
            user_id=s.user_id,
            total_bets=s.total_bets,
            won_bets=s.won_bets,
            lost_bets=s.lost_bets,
            current_streak=s.current_streak,
            best_streak=s.best_streak,
        )

    def to_domain(self) -> UserStats:
        return UserStats(
            user_id=self.user_id,
            total_bets=self.total_bets,
            won_bets=self.won_bets,
            lost_bets=self.lost_bets,
            current_streak=self.current_streak,
            best_streak=self.best_streak,
        )


class AllStatsDoc(RootModel[dict[str, StatsDoc]]):
    pass


class HistoryEntryDoc(BaseModel):
    market_id: str
    question: str
    option_name: str
    amount: int
    winnings: int = Field(..., ge=0)
    result: WagerResult
    timestamp: datetime

    @classmethod
    def from_domain(cls, h: HistoryEntry) -> "HistoryEntryDoc":
        return cls(
            market_id=h.market_id,
            question=h.question,
            option_name=h.option_name,
            amount=h.amount,
            winnings=h.winnings,
            result=h.result,
            timestamp=h.timestamp,
        )

    def to_domain(self) -> HistoryEntry:
        return HistoryEntry(
            market_id=self.market_id,
            question=self.question,
            option_name=self.option_name,
            amount=self.amount,
            winnings=self.winnings,
            result=self.result,
            timestamp=self.timestamp,
        )


class HistoryDoc(RootModel[dict[str, list[HistoryEntryDoc]]]):
    pass
