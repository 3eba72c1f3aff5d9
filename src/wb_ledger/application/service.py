"""Leaderboard composition over LedgerStore + StatsStore. Read-only."""

from src.wb_common.enums import LeaderboardSort
from src.wb_ledger.application.schemas import LeaderboardEntry, UserProfile
from src.wb_ledger.domain.ledger import LedgerStore
from src.wb_ledger.domain.stats import StatsStore


def build_profile(ledger: LedgerStore, stats: StatsStore, user_id: str) -> UserProfile:
    return UserProfile.from_domain(ledger.get_balance(user_id), stats.get_stats(user_id))


def build_leaderboard(
    ledger: LedgerStore,
    stats: StatsStore,
    sort_by: LeaderboardSort,
    limit: int,
) -> list[LeaderboardEntry]:
    """Top `limit` users.

    BALANCE: every known account, richest first.
    WINRATE: only users with at least one settled wager; ties go to the
    user with more bets.
    STREAK: only users with a best streak above zero, longest first.
    """
    known = {a.user_id for a in ledger.accounts()}
    profiles = [build_profile(ledger, stats, user_id) for user_id in sorted(known)]

    if sort_by == LeaderboardSort.WINRATE:
        profiles = [p for p in profiles if p.total_bets > 0]
        profiles.sort(key=lambda p: (p.winrate, p.total_bets), reverse=True)
    elif sort_by == LeaderboardSort.STREAK:
        profiles = [p for p in profiles if p.best_streak > 0]
        profiles.sort(key=lambda p: p.best_streak, reverse=True)
    else:
        profiles.sort(key=lambda p: p.balance, reverse=True)

    return [
        LeaderboardEntry(rank=i + 1, profile=p) for i, p in enumerate(profiles[:limit])
    ]
