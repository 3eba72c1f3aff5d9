"""PersistenceGateway: full snapshot/restore of the in-memory stores.

persist() is called after every mutation. A failed write is logged and
surfaced as PersistenceFailureError; the in-memory state is kept as the
source of truth until the next successful snapshot.
"""

import asyncio
import logging

from pydantic import ValidationError

from src.wb_common.errors import PersistenceFailureError, SnapshotCorruptedError
from src.wb_ledger.domain.ledger import LedgerStore
from src.wb_ledger.domain.stats import StatsStore
from src.wb_market.domain.registry import MarketRegistry
from src.wb_persistence.application.schemas import (
    BALANCE_CHANGES_KEY,
    BALANCES_KEY,
    HISTORY_KEY,
    MARKETS_KEY,
    STATS_KEY,
    AccountDoc,
    AllStatsDoc,
    BalanceChangeDoc,
    BalanceChangesDoc,
    BalancesDoc,
    HistoryDoc,
    HistoryEntryDoc,
    MarketDoc,
    MarketsDoc,
    StatsDoc,
)
from src.wb_persistence.domain.repository import SnapshotStoreProtocol
from src.wb_settlement.domain.invariants import verify_market_invariants

logger = logging.getLogger(__name__)


class PersistenceGateway:
    def __init__(
        self,
        store: SnapshotStoreProtocol,
        registry: MarketRegistry,
        ledger: LedgerStore,
        stats: StatsStore,
    ) -> None:
        self._store = store
        self._registry = registry
        self._ledger = ledger
        self._stats = stats
        # Serializes build+write so an older snapshot never lands after a newer one
        self._write_lock = asyncio.Lock()

    def build_snapshot(self) -> dict[str, str]:
        markets = MarketsDoc(
            {mid: MarketDoc.from_domain(m) for mid, m in self._registry.export_markets().items()}
        )
        balances = BalancesDoc(
            {uid: AccountDoc.from_domain(a) for uid, a in self._ledger.export_accounts().items()}
        )
        changes = BalanceChangesDoc(
            {
                uid: [BalanceChangeDoc.from_domain(c) for c in entries]
                for uid, entries in self._ledger.export_changes().items()
            }
        )
        stats = AllStatsDoc(
            {uid: StatsDoc.from_domain(s) for uid, s in self._stats.export_stats().items()}
        )
        history = HistoryDoc(
            {
                uid: [HistoryEntryDoc.from_domain(h) for h in entries]
                for uid, entries in self._stats.export_history().items()
            }
        )
        return {
            MARKETS_KEY: markets.model_dump_json(),
            BALANCES_KEY: balances.model_dump_json(),
            STATS_KEY: stats.model_dump_json(),
            HISTORY_KEY: history.model_dump_json(),
            BALANCE_CHANGES_KEY: changes.model_dump_json(),
        }

    async def persist(self) -> None:
        async with self._write_lock:
            state = self.build_snapshot()
            try:
                await self._store.save_snapshot(state)
            except Exception as exc:
                logger.exception("Snapshot write failed; in-memory state kept")
                raise PersistenceFailureError(str(exc)) from exc
        logger.debug("Snapshot written: %s", ", ".join(f"{k}={len(v)}B" for k, v in state.items()))

    async def restore(self) -> bool:
        """Load the last snapshot into the stores. Returns False on an empty store.

        Raises SnapshotCorruptedError if any document fails validation;
        nothing is restored in that case.
        """
        raw = await self._store.load_snapshot()
        if not raw:
            logger.info("No snapshot found, starting empty")
            return False

        markets = _parse(MarketsDoc, raw, MARKETS_KEY)
        balances = _parse(BalancesDoc, raw, BALANCES_KEY)
        stats = _parse(AllStatsDoc, raw, STATS_KEY)
        history = _parse(HistoryDoc, raw, HISTORY_KEY)
        changes = _parse(BalanceChangesDoc, raw, BALANCE_CHANGES_KEY)

        restored_markets = [doc.to_domain() for doc in markets.root.values()]
        for market in restored_markets:
            try:
                verify_market_invariants(market)
            except AssertionError as exc:
                raise SnapshotCorruptedError(MARKETS_KEY, str(exc)) from exc

        self._registry.restore(restored_markets)
        self._ledger.restore(
            (doc.to_domain() for doc in balances.root.values()),
            {uid: [c.to_domain() for c in entries] for uid, entries in changes.root.items()},
        )
        self._stats.restore(
            (doc.to_domain() for doc in stats.root.values()),
            {uid: [h.to_domain() for h in entries] for uid, entries in history.root.items()},
        )
        logger.info(
            "Snapshot restored: %d market(s), %d account(s)",
            len(markets.root),
            len(balances.root),
        )
        return True


def _parse(model: type, raw: dict[str, str], key: str):  # type: ignore[no-untyped-def]
    payload = raw.get(key)
    if payload is None:
        return model({})
    try:
        return model.model_validate_json(payload)
    except ValidationError as exc:
        raise SnapshotCorruptedError(key, str(exc)) from exc
