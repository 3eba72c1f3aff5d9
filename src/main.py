"""Engine process entry point.

Run with: python -m src.main

Chat adapters embed the engine through build_service(); running this module
directly starts a headless engine whose announcements go to the log.
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import asyncio
import logging

from config.settings import Settings, settings
from src.wb_common.database import dispose_engine, get_session_factory
from src.wb_common.logging_config import configure_logging
from src.wb_engine.application.service import WagerService
from src.wb_engine.domain.notifier import NotifierProtocol
from src.wb_persistence.infrastructure.persistence import SqlSnapshotStore

logger = logging.getLogger("wb.main")


def build_service(
    store: SqlSnapshotStore,
    notifier: NotifierProtocol | None = None,
    app_settings: Settings = settings,
) -> WagerService:
    return WagerService.from_settings(app_settings, store, notifier)


async def run() -> None:
    """Startup: restore snapshot + re-arm timers. Shutdown: stop scheduler, dispose pool."""
    store = SqlSnapshotStore(get_session_factory())
    await store.create_schema()
    service = build_service(store)
    # SnapshotCorruptedError propagates here and aborts startup
    await service.start()
    logger.info("%s running", settings.APP_NAME)
    try:
        await asyncio.Event().wait()
    finally:
        await service.shutdown()
        await dispose_engine()


def main() -> None:
    configure_logging(settings.LOG_LEVEL)
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")


if __name__ == "__main__":
    main()
