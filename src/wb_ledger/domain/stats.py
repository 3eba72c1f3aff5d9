"""StatsStore: per-user counters, win streaks and the settled-wager history."""

from collections.abc import Iterable

from src.wb_ledger.domain.models import HistoryEntry, UserStats


class StatsStore:
    def __init__(self) -> None:
        self._stats: dict[str, UserStats] = {}
        self._history: dict[str, list[HistoryEntry]] = {}

    def get_stats(self, user_id: str) -> UserStats:
        stats = self._stats.get(user_id)
        if stats is None:
            stats = UserStats(user_id=user_id)
            self._stats[user_id] = stats
        return stats

    def all_stats(self) -> list[UserStats]:
        return list(self._stats.values())

    def record_outcome(self, user_id: str, won: bool) -> UserStats:
        """Count one settled wager and update the streak."""
        stats = self.get_stats(user_id)
        stats.total_bets += 1
        if won:
            stats.won_bets += 1
            stats.current_streak += 1
            stats.best_streak = max(stats.best_streak, stats.current_streak)
        else:
            stats.lost_bets += 1
            stats.current_streak = 0
        return stats

    def append_history(self, user_id: str, entry: HistoryEntry) -> None:
        self._history.setdefault(user_id, []).append(entry)

    def get_history(self, user_id: str, limit: int) -> list[HistoryEntry]:
        """Most recent `limit` entries, newest first."""
        if limit <= 0:
            return []
        return list(reversed(self._history.get(user_id, [])[-limit:]))

    # ------------------------------------------------------------------
    # Snapshot support
    # ------------------------------------------------------------------

    def export_stats(self) -> dict[str, UserStats]:
        return dict(self._stats)

    def export_history(self) -> dict[str, list[HistoryEntry]]:
        return {user_id: list(entries) for user_id, entries in self._history.items()}

    def restore(
        self,
        stats: Iterable[UserStats],
        history: dict[str, list[HistoryEntry]],
    ) -> None:
        self._stats = {s.user_id: s for s in stats}
        self._history = {user_id: list(entries) for user_id, entries in history.items()}
