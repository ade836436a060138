"""Analysis Store — the durable metaphor-keyed map every workspace reads from.

Invariants:
    - Every mutation: compose with a pure store_state function -> persist the whole
      map -> swap the in-memory reference. Readers see the pre- or post-mutation
      map, never a partial one
    - A no-op (pure function returned the same object) skips the persist
    - A failed persist leaves the in-memory map untouched
    - Mutations are serialized: compose+persist+swap never interleave

Design Decisions:
    - Instance with explicit init()/dispose() held on app.state, no module singleton
      (ADR: independent stores per test, explicit lifecycle)
    - Clock injected (epoch ms) so tests can pin timestamps
    - asyncio.Lock around writes: persistence awaits, and two flows composing from the
      same base map would otherwise drop one of the writes
"""

import asyncio
import logging
import time
from typing import Callable

from metaphornik.core import store_state
from metaphornik.core.analysis_types import (
    Comparison,
    ExploredPerspective,
    GeneratedDocument,
    MappingSet,
    MetaphorAnalysis,
    StoreState,
    StoredMetaphorAnalysis,
)
from metaphornik.core.repository_protocols import StoreRepository
from metaphornik.core.store_snapshot import parse_import_payload, store_to_snapshot

logger = logging.getLogger(__name__)


def epoch_ms() -> int:
    return int(time.time() * 1000)


class AnalysisStore:
    """Shell around the pure store_state functions and a StoreRepository."""

    def __init__(
        self, repository: StoreRepository, clock: Callable[[], int] = epoch_ms,
    ):
        self.repository = repository
        self.clock = clock
        self._state: StoreState = {}
        self._lock = asyncio.Lock()

    async def init(self) -> None:
        self._state = await self.repository.load_all()
        logger.info(f"Analysis store loaded ({len(self._state)} metaphors)")

    async def dispose(self) -> None:
        self._state = {}

    # --- Readers -----------------------------------------------------------

    def all(self) -> StoreState:
        return self._state

    def get(self, metaphor: str) -> StoredMetaphorAnalysis | None:
        return self._state.get(metaphor)

    def find_perspective(
        self, metaphor: str, mapping_set_index: int,
    ) -> ExploredPerspective | None:
        return store_state.find_perspective(self._state, metaphor, mapping_set_index)

    def latest_consequence(self, metaphor: str, mapping_set_index: int) -> str | None:
        return store_state.latest_consequence(self._state, metaphor, mapping_set_index)

    def find_comparison(self, metaphor: str, indices: list[int]) -> Comparison | None:
        return store_state.find_comparison(self._state, metaphor, indices)

    def export(self) -> dict:
        return store_to_snapshot(self._state)

    # --- Mutations ---------------------------------------------------------

    async def upsert_analysis(self, metaphor: str, analysis: MetaphorAnalysis) -> None:
        async with self._lock:
            await self._commit(store_state.upsert_analysis(
                self._state, metaphor, analysis, self.clock(),
            ))

    async def edit_analysis(
        self, metaphor: str, edit: Callable[[MetaphorAnalysis], MetaphorAnalysis],
    ) -> MetaphorAnalysis | None:
        """Apply `edit` to the stored analysis. Returns the result, None if not stored."""
        async with self._lock:
            await self._commit(store_state.edit_analysis(
                self._state, metaphor, edit, self.clock(),
            ))
            stored = self._state.get(metaphor)
            return stored.analysis if stored else None

    async def record_consequence(
        self, metaphor: str, mapping_set_index: int, text: str,
    ) -> None:
        async with self._lock:
            await self._commit(store_state.record_consequence(
                self._state, metaphor, mapping_set_index, text, self.clock(),
            ))

    async def record_document(
        self, metaphor: str, mapping_set_index: int, document_type: str, content: str,
    ) -> None:
        async with self._lock:
            document = GeneratedDocument(
                type=document_type, content=content, timestamp=self.clock(),
            )
            await self._commit(store_state.record_document(
                self._state, metaphor, mapping_set_index, document,
            ))

    async def record_image(
        self, metaphor: str, mapping_set_index: int,
        base64_data: str, mime_type: str, prompt: str,
    ) -> None:
        async with self._lock:
            await self._commit(store_state.record_image(
                self._state, metaphor, mapping_set_index,
                base64_data, mime_type, prompt, self.clock(),
            ))

    async def record_comparison(
        self, metaphor: str, indices: list[int], ai_summary: str, user_notes: str,
    ) -> None:
        async with self._lock:
            await self._commit(store_state.record_comparison(
                self._state, metaphor, indices, ai_summary, user_notes, self.clock(),
            ))

    async def append_custom_perspective(
        self, metaphor: str, mapping_set: MappingSet, consequence: str,
    ) -> int:
        """Append set + first exploration atomically. Returns the new index."""
        async with self._lock:
            new_state, new_index = store_state.append_custom_perspective(
                self._state, metaphor, mapping_set, consequence, self.clock(),
            )
            await self._commit(new_state)
            return new_index

    async def delete_analysis(self, metaphor: str) -> bool:
        async with self._lock:
            return await self._commit(
                store_state.delete_analysis(self._state, metaphor),
            )

    async def import_merge(self, incoming: StoreState) -> None:
        async with self._lock:
            await self._commit(store_state.merge_import(self._state, incoming))
        logger.info(f"Imported {len(incoming)} stored analyses")

    async def import_payload(self, raw: bytes | str) -> int:
        """Parse + validate an export file, then merge it. Returns the entry count."""
        incoming = parse_import_payload(raw)
        await self.import_merge(incoming)
        return len(incoming)

    async def _commit(self, new_state: StoreState) -> bool:
        if new_state is self._state:
            return False
        await self.repository.replace_all(new_state)
        self._state = new_state
        return True
