"""SqlSnapshotStore: concrete implementation of SnapshotStoreProtocol.

All queries use raw text() SQL (no ORM). The upsert uses
INSERT ... ON CONFLICT, supported by PostgreSQL and SQLite >= 3.24.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.wb_common.datetime_utils import utc_now

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_CREATE_TABLE_SQL = text("""
    CREATE TABLE IF NOT EXISTS engine_snapshots (
        key         VARCHAR(64)     PRIMARY KEY,
        payload     TEXT            NOT NULL,
        updated_at  TIMESTAMP WITH TIME ZONE NOT NULL
    )
""")

_LOAD_SQL = text("SELECT key, payload FROM engine_snapshots")

_UPSERT_SQL = text("""
    INSERT INTO engine_snapshots (key, payload, updated_at)
    VALUES (:key, :payload, :updated_at)
    ON CONFLICT (key) DO UPDATE
    SET payload = excluded.payload,
        updated_at = excluded.updated_at
""")


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class SqlSnapshotStore:
    """One row per snapshot key; a save writes every key in one transaction."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def create_schema(self) -> None:
        """Idempotent; safe to call on every startup."""
        async with self._session_factory() as db:
            await db.execute(_CREATE_TABLE_SQL)
            await db.commit()

    async def load_snapshot(self) -> dict[str, str]:
        async with self._session_factory() as db:
            rows = (await db.execute(_LOAD_SQL)).fetchall()
        return {row.key: row.payload for row in rows}

    async def save_snapshot(self, state: dict[str, str]) -> None:
        updated_at = utc_now()
        async with self._session_factory() as db:
            try:
                for key, payload in state.items():
                    await db.execute(
                        _UPSERT_SQL,
                        {"key": key, "payload": payload, "updated_at": updated_at},
                    )
                await db.commit()
            except Exception:
                await db.rollback()
                raise
