# src/wb_persistence/domain/repository.py
"""Repository Protocol: dependency inversion for testability.

Unit tests inject an in-memory fake that conforms to this Protocol.
Infrastructure layer provides the SQL implementation.
"""

from typing import Protocol


class SnapshotStoreProtocol(Protocol):
    async def load_snapshot(self) -> dict[str, str]:
        """Return every stored document as key -> JSON text (empty on first boot)."""
        ...

    async def save_snapshot(self, state: dict[str, str]) -> None:
        """Replace the stored documents for every key in `state`, atomically."""
        ...
