"""Store Repositories — durable and in-memory implementations of StoreRepository.

Invariants:
    - replace_all rewrites the whole table in ONE transaction (all rows or none)
    - load_all validates every row through store_from_snapshot; a corrupt row
      fails the load instead of yielding a partial store
    - Payloads are the camelCase wire dicts produced by store_to_snapshot

Design Decisions:
    - Delete-then-insert over per-row upserts: the store is small and always
      written whole (ADR: no diffing logic to keep correct)
    - InMemoryStoreRepository keeps serialized snapshots, so tests exercise the
      same round-trip the database path does
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import delete, select

from metaphornik.core.analysis_types import StoreState
from metaphornik.core.errors import DatabaseError, ImportValidationError
from metaphornik.core.store_snapshot import store_from_snapshot, store_to_snapshot
from metaphornik.infrastructure.database import DatabaseSessionManager
from metaphornik.models.stored_analysis import StoredAnalysisRow

logger = logging.getLogger(__name__)


class SqlAlchemyStoreRepository:
    """One row per metaphor in stored_analyses."""

    def __init__(self, db: DatabaseSessionManager):
        self.db = db

    async def load_all(self) -> StoreState:
        async with self.db.session() as session:
            result = await session.execute(select(StoredAnalysisRow))
            rows = result.scalars().all()
        try:
            return store_from_snapshot({row.metaphor: row.payload for row in rows})
        except ImportValidationError as e:
            logger.error(f"Persisted store failed validation: {e.reason}")
            raise DatabaseError("stored analyses failed validation", "load") from e

    async def replace_all(self, state: StoreState) -> None:
        snapshot = store_to_snapshot(state)
        now = datetime.now(timezone.utc)
        async with self.db.session() as session:
            await session.execute(delete(StoredAnalysisRow))
            session.add_all([
                StoredAnalysisRow(metaphor=metaphor, payload=payload, updated_at=now)
                for metaphor, payload in snapshot.items()
            ])
            await session.commit()
        logger.debug(f"Persisted {len(snapshot)} stored analyses")


class InMemoryStoreRepository:
    """Process-local repository for tests and throwaway runs."""

    def __init__(self, snapshot: dict | None = None):
        self.snapshot: dict = dict(snapshot or {})
        self.writes = 0

    async def load_all(self) -> StoreState:
        return store_from_snapshot(self.snapshot)

    async def replace_all(self, state: StoreState) -> None:
        self.snapshot = store_to_snapshot(state)
        self.writes += 1
