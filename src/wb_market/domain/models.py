"""Domain models for wb_market: dataclasses plus the status transition table."""

from dataclasses import dataclass, field
from datetime import datetime

from src.wb_common.enums import MarketStatus
from src.wb_common.errors import MarketTerminalError

# status -> statuses it may move to; terminal statuses map to nothing
ALLOWED_TRANSITIONS: dict[MarketStatus, frozenset[MarketStatus]] = {
    MarketStatus.OPEN: frozenset(
        {MarketStatus.LOCKED, MarketStatus.RESOLVED, MarketStatus.CANCELLED}
    ),
    MarketStatus.LOCKED: frozenset({MarketStatus.RESOLVED, MarketStatus.CANCELLED}),
    MarketStatus.RESOLVED: frozenset(),
    MarketStatus.CANCELLED: frozenset(),
}

ACTIVE_STATUSES = frozenset({MarketStatus.OPEN, MarketStatus.LOCKED})


@dataclass(frozen=True)
class MarketOption:
    name: str
    fixed_odds: float


@dataclass(frozen=True)
class WagerRecord:
    user_id: str
    option_index: int
    amount: int
    odds_at_placement: float
    placed_at: datetime


@dataclass
class Market:
    id: str
    question: str
    options: tuple[MarketOption, ...]
    creator_id: str
    created_at: datetime
    closing_time: datetime | None = None
    status: MarketStatus = MarketStatus.OPEN
    bettors: dict[str, WagerRecord] = field(default_factory=dict)
    total_pool: int = 0
    reminder_sent: bool = False
    winning_options: frozenset[int] = frozenset()
    is_boosted: bool = False
    channel_id: str | None = None
    settled_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return not ALLOWED_TRANSITIONS[self.status]

    def has_option(self, option_index: object) -> bool:
        return (
            isinstance(option_index, int)
            and not isinstance(option_index, bool)
            and 0 <= option_index < len(self.options)
        )

    def pool_for(self, option_index: int) -> int:
        return sum(w.amount for w in self.bettors.values() if w.option_index == option_index)

    def can_transition_to(self, target: MarketStatus) -> bool:
        return target in ALLOWED_TRANSITIONS[self.status]

    def transition_to(self, target: MarketStatus) -> None:
        if not self.can_transition_to(target):
            raise MarketTerminalError(self.id, self.status.value)
        self.status = target
