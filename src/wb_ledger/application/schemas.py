"""Pydantic read models for wb_ledger."""

from pydantic import BaseModel

from src.wb_ledger.domain.models import UserStats


class UserProfile(BaseModel):
    user_id: str
    balance: int
    total_bets: int
    won_bets: int
    lost_bets: int
    winrate: float
    current_streak: int
    best_streak: int

    @classmethod
    def from_domain(cls, balance: int, stats: UserStats) -> "UserProfile":
        return cls(
            user_id=stats.user_id,
            balance=balance,
            total_bets=stats.total_bets,
            won_bets=stats.won_bets,
            lost_bets=stats.lost_bets,
            winrate=stats.winrate,
            current_streak=stats.current_streak,
            best_streak=stats.best_streak,
        )


class LeaderboardEntry(BaseModel):
    rank: int
    profile: UserProfile
