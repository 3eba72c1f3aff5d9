"""WagerService: the engine's public interface for chat adapters.

Composes the in-memory stores, the settlement engine, the scheduler and
the persistence gateway. Every mutating call follows the same shape:

    async with <market lock>:   # serializes writers per market
        domain mutation         # validates first, raises before touching state
        notify                  # best effort, failures only logged
        persist                 # full snapshot; failure surfaces to the caller
"""

import asyncio
import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta
from typing import Any
from zoneinfo import ZoneInfo

from apscheduler.schedulers.base import BaseScheduler

from config.settings import Settings
from src.wb_common.amounts import calculate_payout
from src.wb_common.datetime_utils import Clock, utc_now
from src.wb_common.enums import LeaderboardSort, MarketStatus, NotificationKind
from src.wb_common.errors import NotAdminError, NotMarketCreatorError
from src.wb_engine.domain.notifier import LoggingNotifier, NotifierProtocol
from src.wb_ledger.application.schemas import LeaderboardEntry, UserProfile
from src.wb_ledger.application.service import build_leaderboard, build_profile
from src.wb_ledger.domain.ledger import LedgerStore
from src.wb_ledger.domain.models import BalanceChange, HistoryEntry, UserStats
from src.wb_ledger.domain.stats import StatsStore
from src.wb_market.domain.models import Market, WagerRecord
from src.wb_market.domain.odds import compute_dynamic_odds
from src.wb_market.domain.registry import MarketRegistry, OptionSpec
from src.wb_persistence.application.service import PersistenceGateway
from src.wb_persistence.domain.repository import SnapshotStoreProtocol
from src.wb_scheduler.closing_time import parse_closing_time
from src.wb_scheduler.scheduler import MarketScheduler
from src.wb_settlement.domain.invariants import (
    verify_ledger_invariants,
    verify_market_invariants,
)
from src.wb_settlement.domain.settlement import (
    CancellationReport,
    SettlementEngine,
    SettlementReport,
)

logger = logging.getLogger("wb.engine")


class WagerService:
    def __init__(
        self,
        store: SnapshotStoreProtocol,
        notifier: NotifierProtocol | None = None,
        *,
        starting_balance: int = 100,
        reminder_lead: timedelta = timedelta(hours=1),
        admin_ids: Iterable[str] = (),
        history_limit: int = 10,
        leaderboard_size: int = 10,
        reference_timezone: str = "Europe/Paris",
        winstreak_bonus: int = 0,
        scheduler: BaseScheduler | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._notifier: NotifierProtocol = notifier or LoggingNotifier()
        self._admin_ids = frozenset(admin_ids)
        self._history_limit = history_limit
        self._leaderboard_size = leaderboard_size
        self._tz = ZoneInfo(reference_timezone)
        self._clock = clock

        self.ledger = LedgerStore(starting_balance, clock=clock)
        self.stats = StatsStore()
        self.registry = MarketRegistry(self.ledger, clock=clock)
        self.settlement = SettlementEngine(
            self.registry, self.ledger, self.stats, clock=clock, winstreak_bonus=winstreak_bonus
        )
        self.gateway = PersistenceGateway(store, self.registry, self.ledger, self.stats)
        self.scheduler = MarketScheduler(
            on_close=self.auto_lock,
            on_reminder=self.send_reminder,
            reminder_lead=reminder_lead,
            scheduler=scheduler,
            clock=clock,
        )
        self._market_locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        store: SnapshotStoreProtocol,
        notifier: NotifierProtocol | None = None,
    ) -> "WagerService":
        return cls(
            store,
            notifier,
            starting_balance=settings.STARTING_BALANCE,
            reminder_lead=timedelta(minutes=settings.REMINDER_LEAD_MINUTES),
            admin_ids=settings.ADMIN_USER_IDS,
            history_limit=settings.HISTORY_LIMIT,
            leaderboard_size=settings.LEADERBOARD_SIZE,
            reference_timezone=settings.REFERENCE_TIMEZONE,
            winstreak_bonus=settings.WINSTREAK_BONUS,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Restore the last snapshot and re-arm timers. Corruption propagates."""
        await self.gateway.restore()
        for msg in verify_ledger_invariants(self.ledger, self.stats):
            logger.warning("Restored state: %s", msg)
        self.scheduler.start()
        armed = self.scheduler.rearm(self.registry.list_all())
        logger.info("Engine started: %d active market(s), %d timer(s) re-armed",
                    len(self.registry.list_active()), armed)

    async def shutdown(self) -> None:
        self.scheduler.shutdown()

    def _lock_for(self, market_id: str) -> asyncio.Lock:
        return self._market_locks[market_id]

    def _require_admin(self, user_id: str) -> None:
        if user_id not in self._admin_ids:
            raise NotAdminError(user_id)

    async def _notify(
        self, market_id: str, kind: NotificationKind, payload: dict[str, Any]
    ) -> None:
        try:
            await self._notifier.notify(market_id, kind, payload)
        except Exception:
            logger.exception("Notifier failed: market=%s kind=%s", market_id, kind.value)

    # ------------------------------------------------------------------
    # Markets
    # ------------------------------------------------------------------

    async def create_market(
        self,
        market_id: str,
        question: str,
        options: Sequence[OptionSpec],
        creator_id: str,
        closing_time: datetime | None = None,
        channel_id: str | None = None,
    ) -> Market:
        async with self._lock_for(market_id):
            market = self.registry.create_market(
                market_id, question, options, creator_id, closing_time, channel_id
            )
            await self._after_create(market)
        return market

    async def create_boosted_market(
        self,
        market_id: str,
        event_name: str,
        odds: float,
        creator_id: str,
        closing_time: datetime | None = None,
        channel_id: str | None = None,
    ) -> Market:
        async with self._lock_for(market_id):
            market = self.registry.create_boosted_market(
                market_id, event_name, odds, creator_id, closing_time, channel_id
            )
            await self._after_create(market)
        return market

    async def _after_create(self, market: Market) -> None:
        if market.closing_time is not None:
            self.scheduler.arm(market.id, market.closing_time)
        await self._notify(
            market.id,
            NotificationKind.CREATED,
            {
                "question": market.question,
                "options": [(o.name, o.fixed_odds) for o in market.options],
                "closing_time": market.closing_time,
                "is_boosted": market.is_boosted,
                "channel_id": market.channel_id,
            },
        )
        await self.gateway.persist()

    async def place_wager(
        self, market_id: str, user_id: str, option_index: int, amount: int
    ) -> WagerRecord:
        async with self._lock_for(market_id):
            wager = self.registry.place_wager(market_id, user_id, option_index, amount)
            market = self.registry.require(market_id)
            verify_market_invariants(market)
            await self._notify(
                market_id,
                NotificationKind.WAGER_PLACED,
                {
                    "user_id": user_id,
                    "option": market.options[option_index].name,
                    "amount": amount,
                    "odds": wager.odds_at_placement,
                    "potential_win": calculate_payout(amount, wager.odds_at_placement),
                    "total_pool": market.total_pool,
                    "bettors": len(market.bettors),
                    "channel_id": market.channel_id,
                },
            )
            await self.gateway.persist()
        return wager

    # ------------------------------------------------------------------
    # Settlement
    # ------------------------------------------------------------------

    async def lock(self, market_id: str, caller_id: str | None = None) -> bool:
        """Stop accepting wagers. With caller_id, only the creator may lock."""
        async with self._lock_for(market_id):
            market = self.registry.require(market_id)
            if caller_id is not None and caller_id != market.creator_id:
                raise NotMarketCreatorError(market_id, caller_id)
            changed = self.settlement.lock(market_id)
            if changed:
                await self._announce_lock(market, automatic=False)
                await self.gateway.persist()
        return changed

    async def resolve(
        self, market_id: str, caller_id: str, winning_option_indices: Iterable[int]
    ) -> SettlementReport:
        async with self._lock_for(market_id):
            report = self.settlement.resolve(market_id, caller_id, winning_option_indices)
            market = self.registry.require(market_id)
            await self._notify(
                market_id,
                NotificationKind.RESOLVED,
                {
                    "winning_options": [market.options[i].name for i in sorted(report.winning_options)],
                    "payouts": [
                        {
                            "user_id": p.user_id,
                            "amount": p.amount,
                            "odds": p.odds,
                            "winnings": p.winnings,
                            "profit": p.profit,
                        }
                        for p in report.payouts
                    ],
                    "losers": [
                        {"user_id": lw.user_id, "option": lw.option_name, "amount": lw.amount}
                        for lw in report.losers
                    ],
                    "streak_bonuses": dict(report.streak_bonuses),
                    "total_distributed": report.total_distributed,
                    "channel_id": market.channel_id,
                },
            )
            await self.gateway.persist()
        return report

    async def cancel(self, market_id: str, caller_id: str) -> CancellationReport:
        async with self._lock_for(market_id):
            report = self.settlement.cancel(market_id, caller_id)
            await self._announce_cancel(self.registry.require(market_id), report)
            await self.gateway.persist()
        return report

    async def cancel_all(self, caller_id: str) -> list[CancellationReport]:
        """Administrator kill switch: cancel and refund every active market."""
        self._require_admin(caller_id)
        reports = self.settlement.cancel_all()
        for report in reports:
            await self._announce_cancel(self.registry.require(report.market_id), report)
        if reports:
            await self.gateway.persist()
        logger.info("cancel_all by %s: %d market(s), %d refunded", caller_id,
                    len(reports), sum(r.total_refunded for r in reports))
        return reports

    async def _announce_lock(self, market: Market, automatic: bool) -> None:
        await self._notify(
            market.id,
            NotificationKind.LOCKED,
            {
                "automatic": automatic,
                "total_pool": market.total_pool,
                "bettors": len(market.bettors),
                "channel_id": market.channel_id,
            },
        )

    async def _announce_cancel(self, market: Market, report: CancellationReport) -> None:
        await self._notify(
            market.id,
            NotificationKind.CANCELLED,
            {
                "refunds": dict(report.refunds),
                "total_refunded": report.total_refunded,
                "channel_id": market.channel_id,
            },
        )

    # ------------------------------------------------------------------
    # Scheduler callbacks
    # ------------------------------------------------------------------

    async def auto_lock(self, market_id: str) -> bool:
        """Closing-time job. No-op unless the market is still open."""
        async with self._lock_for(market_id):
            market = self.registry.get(market_id)
            if market is None or market.status != MarketStatus.OPEN:
                logger.debug("Auto-lock skipped for %s", market_id)
                return False
            self.settlement.lock(market_id)
            await self._announce_lock(market, automatic=True)
            await self.gateway.persist()
        return True

    async def send_reminder(self, market_id: str) -> bool:
        """Reminder job. No-op unless the market is open and not yet reminded."""
        async with self._lock_for(market_id):
            market = self.registry.get(market_id)
            if market is None or market.status != MarketStatus.OPEN or market.reminder_sent:
                logger.debug("Reminder skipped for %s", market_id)
                return False
            market.reminder_sent = True
            await self._notify(
                market_id,
                NotificationKind.REMINDER,
                {
                    "closing_time": market.closing_time,
                    "is_boosted": market.is_boosted,
                    "channel_id": market.channel_id,
                },
            )
            await self.gateway.persist()
        return True

    # ------------------------------------------------------------------
    # Ledger
    # ------------------------------------------------------------------

    async def transfer(self, from_user_id: str, to_user_id: str, amount: int) -> tuple[int, int]:
        balances = self.ledger.transfer(from_user_id, to_user_id, amount)
        await self.gateway.persist()
        return balances

    async def set_balance(self, caller_id: str, user_id: str, new_balance: int) -> int:
        self._require_admin(caller_id)
        balance = self.ledger.set_balance(user_id, new_balance)
        logger.info("Balance of %s set to %d by %s", user_id, new_balance, caller_id)
        await self.gateway.persist()
        return balance

    # ------------------------------------------------------------------
    # Reads (no persistence; lazily created accounts are saved with the next write)
    # ------------------------------------------------------------------

    def get_balance(self, user_id: str) -> int:
        return self.ledger.get_balance(user_id)

    def get_stats(self, user_id: str) -> UserStats:
        return self.stats.get_stats(user_id)

    def get_profile(self, user_id: str) -> UserProfile:
        return build_profile(self.ledger, self.stats, user_id)

    def get_history(self, user_id: str, limit: int | None = None) -> list[HistoryEntry]:
        return self.stats.get_history(user_id, self._history_limit if limit is None else limit)

    def get_balance_history(self, user_id: str, limit: int | None = None) -> list[BalanceChange]:
        return self.ledger.get_balance_history(
            user_id, self._history_limit if limit is None else limit
        )

    def get_market(self, market_id: str) -> Market:
        return self.registry.require(market_id)

    def list_active(self) -> list[Market]:
        return self.registry.list_active()

    def list_user_wagers(self, user_id: str) -> list[tuple[Market, WagerRecord]]:
        return self.registry.list_user_wagers(user_id)

    def compute_dynamic_odds(self, market_id: str) -> list[float]:
        return compute_dynamic_odds(self.registry.require(market_id))

    def parse_closing_time(self, token: str) -> datetime:
        """"21h30" -> next such instant in the reference timezone."""
        return parse_closing_time(token, self._clock(), self._tz)

    def leaderboard(
        self, sort_by: LeaderboardSort = LeaderboardSort.BALANCE, limit: int | None = None
    ) -> list[LeaderboardEntry]:
        return build_leaderboard(
            self.ledger, self.stats, sort_by, self._leaderboard_size if limit is None else limit
        )
