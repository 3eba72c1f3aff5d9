"""Shared test fixtures and in-memory fakes for the Protocols."""

from datetime import datetime, timedelta, timezone
from typing import Any
from unittest.mock import MagicMock

import pytest

from src.wb_common.enums import NotificationKind
from src.wb_engine.application.service import WagerService
from src.wb_ledger.domain.ledger import LedgerStore
from src.wb_ledger.domain.stats import StatsStore
from src.wb_market.domain.registry import MarketRegistry
from src.wb_settlement.domain.settlement import SettlementEngine

T0 = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Deterministic clock; call advance() to move time forward."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class InMemorySnapshotStore:
    """SnapshotStoreProtocol fake; set fail_next to make the next save raise."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.data: dict[str, str] = dict(initial or {})
        self.saves = 0
        self.fail_next = False

    async def load_snapshot(self) -> dict[str, str]:
        return dict(self.data)

    async def save_snapshot(self, state: dict[str, str]) -> None:
        if self.fail_next:
            self.fail_next = False
            raise OSError("disk full")
        self.data.update(state)
        self.saves += 1


class RecordingNotifier:
    def __init__(self) -> None:
        self.calls: list[tuple[str, NotificationKind, dict[str, Any]]] = []

    async def notify(
        self, market_id: str, kind: NotificationKind, payload: dict[str, Any]
    ) -> None:
        self.calls.append((market_id, kind, payload))

    def kinds(self) -> list[NotificationKind]:
        return [kind for _, kind, _ in self.calls]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def ledger(clock: FakeClock) -> LedgerStore:
    return LedgerStore(starting_balance=100, clock=clock)


@pytest.fixture
def stats() -> StatsStore:
    return StatsStore()


@pytest.fixture
def registry(ledger: LedgerStore, clock: FakeClock) -> MarketRegistry:
    return MarketRegistry(ledger, clock=clock)


@pytest.fixture
def settlement(
    registry: MarketRegistry, ledger: LedgerStore, stats: StatsStore, clock: FakeClock
) -> SettlementEngine:
    return SettlementEngine(registry, ledger, stats, clock=clock)


@pytest.fixture
def store() -> InMemorySnapshotStore:
    return InMemorySnapshotStore()


@pytest.fixture
def store_factory() -> type[InMemorySnapshotStore]:
    return InMemorySnapshotStore


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def apscheduler() -> MagicMock:
    sched = MagicMock()
    sched.running = False
    return sched


@pytest.fixture
def service(
    store: InMemorySnapshotStore,
    notifier: RecordingNotifier,
    apscheduler: MagicMock,
    clock: FakeClock,
) -> WagerService:
    return WagerService(
        store,
        notifier,
        starting_balance=100,
        admin_ids={"admin"},
        scheduler=apscheduler,
        clock=clock,
    )
