"""Fact Handlers — drag-and-drop, custom facts and AI-suggested facts.

Invariants:
    - Same-side drop reorders facts and rewrites mapping indices (core/fact_reorder.py),
      applied to the STORED analysis so mapping sets appended by other workspaces
      survive; dropping on the origin is a no-op
    - Cross-side drop only edits the in-progress custom perspective (never persisted
      until the perspective is explored)
    - Added facts are appended (existing indices stay valid) and marked custom
    - Out-of-range positions are no-ops

Design Decisions:
    - Fact ids: "<side>-<hex>" for typed facts, "<side>-gen-<hex>-<i>" for generated
      batches; uuid hex replaces the wall-clock suffix so ids never collide
"""

import logging
import uuid
from typing import Callable

from metaphornik.core.analysis_types import Fact, MetaphorAnalysis
from metaphornik.core.domain_types import LoadingKind, OperationLane, Side
from metaphornik.core.errors import GatewayError
from metaphornik.core.fact_reorder import (
    add_custom_mapping,
    append_facts,
    remove_custom_mapping,
    reorder_facts,
)
from metaphornik.core.repository_protocols import MetaphorGateway
from metaphornik.core.workspace_state import WorkspaceState
from metaphornik.services.analysis_store import AnalysisStore

logger = logging.getLogger(__name__)

FACTS_FAILED = "Failed to generate more facts from AI."


class FactHandlers:
    def __init__(
        self, store: AnalysisStore, gateway: MetaphorGateway, state: WorkspaceState,
    ):
        self.store = store
        self.gateway = gateway
        self.state = state

    def _fact_count(self, side: Side) -> int:
        return len(getattr(self.state.analysis, side.domain_field).facts)

    async def _apply_edit(
        self, edit: Callable[[MetaphorAnalysis], MetaphorAnalysis],
    ) -> None:
        """Edit the stored record and adopt it; an unsaved analysis is edited locally."""
        state = self.state
        edited = await self.store.edit_analysis(state.metaphor, edit)
        state.analysis = edited if edited is not None else edit(state.analysis)

    async def drop_fact(
        self, dragged_side: Side, dragged_index: int, drop_side: Side, drop_index: int,
    ) -> None:
        state = self.state
        if state.analysis is None:
            return
        if not 0 <= dragged_index < self._fact_count(dragged_side):
            return
        if not 0 <= drop_index < self._fact_count(drop_side):
            return

        if dragged_side is drop_side:
            if dragged_index == drop_index:
                return
            await self._apply_edit(lambda analysis: reorder_facts(
                analysis, drop_side, dragged_index, drop_index,
            ))
        elif state.custom_mode and state.custom_perspective is not None:
            state.custom_perspective = add_custom_mapping(
                state.custom_perspective, dragged_side, dragged_index, drop_index,
            )

    def remove_custom_mapping(self, position: int) -> None:
        if self.state.custom_perspective is None:
            return
        self.state.custom_perspective = remove_custom_mapping(
            self.state.custom_perspective, position,
        )

    async def add_fact(self, side: Side, text: str) -> None:
        state = self.state
        text = text.strip()
        if state.analysis is None or not text:
            return
        fact = Fact(id=f"{side.value}-{uuid.uuid4().hex[:12]}", text=text, custom=True)
        await self._apply_edit(lambda analysis: append_facts(analysis, side, [fact]))

    async def generate_more_facts(self, side: Side) -> None:
        state = self.state
        if state.analysis is None:
            return
        domain = getattr(state.analysis, side.domain_field)

        token = state.begin(OperationLane.FACTS, LoadingKind.FACTS)
        try:
            texts = await self.gateway.generate_more_facts(
                domain.name, [f.text for f in domain.facts],
            )
        except GatewayError as e:
            logger.warning(
                f"Fact generation failed: {e.message}",
                extra={"metaphor": state.metaphor},
            )
            state.fail(token, FACTS_FAILED)
            return
        finally:
            state.finish(OperationLane.FACTS, token, LoadingKind.FACTS)
        if token.cancelled or state.analysis is None:
            return

        batch = uuid.uuid4().hex[:8]
        facts = [
            Fact(id=f"{side.value}-gen-{batch}-{i}", text=text, custom=True)
            for i, text in enumerate(texts)
        ]
        await self._apply_edit(lambda analysis: append_facts(analysis, side, facts))
