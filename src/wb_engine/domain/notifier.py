"""Notifier Protocol: implemented by the chat adapter, called by the engine."""

import logging
from typing import Any, Protocol

from src.wb_common.enums import NotificationKind

logger = logging.getLogger("wb.notify")


class NotifierProtocol(Protocol):
    async def notify(
        self, market_id: str, kind: NotificationKind, payload: dict[str, Any]
    ) -> None: ...


class LoggingNotifier:
    """Headless default: writes announcements to the log."""

    async def notify(
        self, market_id: str, kind: NotificationKind, payload: dict[str, Any]
    ) -> None:
        logger.info("[%s] market=%s %s", kind.value, market_id, payload)
