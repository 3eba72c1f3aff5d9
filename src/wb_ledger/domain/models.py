"""Domain models for wb_ledger: pure dataclasses, no storage dependency."""

from dataclasses import dataclass
from datetime import datetime

from src.wb_common.enums import BalanceChangeReason, WagerResult


@dataclass
class UserAccount:
    user_id: str
    balance: int             # never negative
    created_at: datetime


@dataclass
class UserStats:
    user_id: str
    total_bets: int = 0
    won_bets: int = 0
    lost_bets: int = 0
    current_streak: int = 0  # consecutive won wagers
    best_streak: int = 0

    @property
    def winrate(self) -> float:
        """Percentage of settled wagers won, one decimal; 0 with no bets."""
        if self.total_bets == 0:
            return 0.0
        return round(self.won_bets / self.total_bets * 100, 1)


@dataclass(frozen=True)
class HistoryEntry:
    market_id: str
    question: str
    option_name: str
    amount: int
    winnings: int            # 0 for a lost wager
    result: WagerResult
    timestamp: datetime

    @property
    def profit(self) -> int:
        return self.winnings - self.amount


@dataclass(frozen=True)
class BalanceChange:
    user_id: str
    reason: BalanceChangeReason
    amount: int              # positive=income negative=expense
    balance_after: int
    timestamp: datetime
    reference_id: str | None = None
