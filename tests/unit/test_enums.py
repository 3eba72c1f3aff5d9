"""Tests for wb_common.enums: values are persisted in snapshots and must not drift."""

from src.wb_common.enums import (
    BalanceChangeReason,
    ErrorKind,
    LeaderboardSort,
    MarketStatus,
    NotificationKind,
    WagerResult,
)


class TestAllEnumsAreStr:
    """All enums inherit from (str, Enum) for JSON serialization."""

    def test_market_status_is_str(self) -> None:
        assert isinstance(MarketStatus.OPEN, str)
        assert MarketStatus.OPEN == "open"

    def test_wager_result_is_str(self) -> None:
        assert WagerResult.WON == "won"

    def test_error_kind_is_str(self) -> None:
        assert isinstance(ErrorKind.NOT_FOUND, str)


class TestEnumValues:
    def test_market_status_values(self) -> None:
        assert {s.value for s in MarketStatus} == {"open", "locked", "resolved", "cancelled"}

    def test_balance_change_reasons(self) -> None:
        assert {r.value for r in BalanceChangeReason} == {
            "initial_balance",
            "wager_placed",
            "wager_won",
            "wager_refunded",
            "gift_sent",
            "gift_received",
            "admin_edit",
            "winstreak_bonus",
        }

    def test_notification_kinds(self) -> None:
        assert len(NotificationKind) == 6
        assert NotificationKind("reminder") is NotificationKind.REMINDER

    def test_leaderboard_sort(self) -> None:
        assert LeaderboardSort("winrate") is LeaderboardSort.WINRATE
        assert LeaderboardSort("streak") is LeaderboardSort.STREAK
