"""MarketScheduler: one-shot close and reminder jobs per market.

Jobs carry only the market id. The callbacks (WagerService.auto_lock /
send_reminder) re-fetch the market under its lock and do nothing if it has
left `open`, so jobs for a market settled early are never cancelled.
Jobs never expire as misfires: a late lock still runs once, however late.
"""

import logging
from collections.abc import Awaitable, Callable, Iterable
from datetime import datetime, timedelta

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.date import DateTrigger

from src.wb_common.datetime_utils import Clock, utc_now
from src.wb_common.enums import MarketStatus
from src.wb_market.domain.models import Market

logger = logging.getLogger(__name__)

MarketCallback = Callable[[str], Awaitable[object]]


class MarketScheduler:
    def __init__(
        self,
        on_close: MarketCallback,
        on_reminder: MarketCallback,
        reminder_lead: timedelta = timedelta(hours=1),
        scheduler: BaseScheduler | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._on_close = on_close
        self._on_reminder = on_reminder
        self._reminder_lead = reminder_lead
        self._scheduler = scheduler or AsyncIOScheduler(timezone="UTC")
        self._clock = clock

    def start(self) -> None:
        if not self._scheduler.running:
            self._scheduler.start()
            logger.info("Scheduler started")

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")

    def arm(self, market_id: str, closing_time: datetime) -> None:
        """Schedule the auto-lock at closing_time and the reminder before it."""
        now = self._clock()
        if closing_time <= now:
            # No trigger: APScheduler runs the job once, as soon as possible
            self._scheduler.add_job(
                self._on_close,
                args=[market_id],
                id=f"lock:{market_id}",
                name=f"Auto-lock {market_id}",
                replace_existing=True,
                misfire_grace_time=None,
                coalesce=True,
            )
            logger.info("Market %s closing time already passed, locking now", market_id)
            return

        self._scheduler.add_job(
            self._on_close,
            DateTrigger(run_date=closing_time),
            args=[market_id],
            id=f"lock:{market_id}",
            name=f"Auto-lock {market_id}",
            replace_existing=True,
            misfire_grace_time=None,
            coalesce=True,
        )

        reminder_at = closing_time - self._reminder_lead
        if reminder_at > now:
            self._scheduler.add_job(
                self._on_reminder,
                DateTrigger(run_date=reminder_at),
                args=[market_id],
                id=f"reminder:{market_id}",
                name=f"Reminder {market_id}",
                replace_existing=True,
                misfire_grace_time=None,
                coalesce=True,
            )
        logger.info(
            "Market %s armed: lock at %s, reminder %s",
            market_id,
            closing_time.isoformat(),
            reminder_at.isoformat() if reminder_at > now else "skipped",
        )

    def rearm(self, markets: Iterable[Market]) -> int:
        """Re-arm open markets with a closing time (after a restart). Returns count."""
        count = 0
        for market in markets:
            if market.status == MarketStatus.OPEN and market.closing_time is not None:
                self.arm(market.id, market.closing_time)
                count += 1
        return count
