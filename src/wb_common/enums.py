"""Global enums: values are what ends up in snapshot documents."""

from enum import Enum


class MarketStatus(str, Enum):
    OPEN = "open"
    LOCKED = "locked"
    RESOLVED = "resolved"
    CANCELLED = "cancelled"


class WagerResult(str, Enum):
    WON = "won"
    LOST = "lost"


class BalanceChangeReason(str, Enum):
    INITIAL_BALANCE = "initial_balance"
    WAGER_PLACED = "wager_placed"
    WAGER_WON = "wager_won"
    WAGER_REFUNDED = "wager_refunded"
    WINSTREAK_BONUS = "winstreak_bonus"
    GIFT_SENT = "gift_sent"
    GIFT_RECEIVED = "gift_received"
    ADMIN_EDIT = "admin_edit"


class NotificationKind(str, Enum):
    CREATED = "created"
    WAGER_PLACED = "wager_placed"
    REMINDER = "reminder"
    LOCKED = "locked"
    RESOLVED = "resolved"
    CANCELLED = "cancelled"


class LeaderboardSort(str, Enum):
    BALANCE = "balance"
    WINRATE = "winrate"
    STREAK = "streak"


class ErrorKind(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    INVALID_INPUT = "INVALID_INPUT"
    UNAUTHORIZED = "UNAUTHORIZED"
    STATE_CONFLICT = "STATE_CONFLICT"
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    PERSISTENCE_FAILURE = "PERSISTENCE_FAILURE"
    INTERNAL = "INTERNAL"
