"""Perspective Orchestrator — consequence, custom-perspective and comparison flows.

Invariants:
    - Batch fetches are strictly sequential; a store hit is adopted without a gateway call
    - After every gateway await the flow's token is checked BEFORE any state mutation;
      a cancelled flow stops without marking remaining indices as failed
    - A per-index gateway failure surfaces one error and the batch continues
    - Custom exploration is all-or-nothing: summary -> consequences -> one atomic append
    - Comparison runs only with >= MIN_COMPARED_PERSPECTIVES selected, every one of
      them with consequences; a failed prefetch aborts with the perspective's name
    - Comparisons are persisted with empty notes; notes edits keep ai_summary

Design Decisions:
    - Exploration and comparison share the EXPLORATION lane: a new selection
      supersedes a running comparison and vice versa
    - Only GatewayError is caught here; store/database failures propagate to the
      API error handlers (they are not model failures)
    - Prefetched comparison consequences are persisted like any other exploration
"""

import logging

from metaphornik.core.analysis_types import ComparedPerspective, MetaphorAnalysis
from metaphornik.core.domain_types import (
    CUSTOM_PERSPECTIVE_PLACEHOLDER_NAME,
    MIN_COMPARED_PERSPECTIVES,
    LoadingKind,
    OperationLane,
)
from metaphornik.core.errors import GatewayError, ResourceNotFoundError
from metaphornik.core.repository_protocols import MetaphorGateway
from metaphornik.core.workspace_state import WorkspaceState
from metaphornik.services.analysis_store import AnalysisStore

logger = logging.getLogger(__name__)

EXPLORE_FAILED = "Failed to explore consequences. Please try again."
CUSTOM_FAILED = "Failed to explore or save the custom perspective."
COMPARISON_FAILED = "Failed to generate comparison."


def _comparison_prefetch_failed(name: str) -> str:
    return f'Failed to load perspective "{name}" for comparison.'


class PerspectiveOrchestrator:
    """Drives the exploration lane of one workspace."""

    def __init__(
        self, store: AnalysisStore, gateway: MetaphorGateway, state: WorkspaceState,
    ):
        self.store = store
        self.gateway = gateway
        self.state = state

    # --- Selection & modes -------------------------------------------------

    async def select_mapping(self, index: int) -> None:
        """Select (or toggle, in comparison mode) a perspective and explore it."""
        analysis = self.state.analysis
        if analysis is None or not 0 <= index < len(analysis.mapping_sets):
            return
        self.state.select(index)
        self.refresh_saved_comparison()
        await self.explore_selected()

    def toggle_comparison_mode(self) -> None:
        self.state.toggle_comparison_mode()

    def start_custom_mode(self) -> None:
        if self.state.analysis is None:
            return
        self.state.stop(
            OperationLane.EXPLORATION, LoadingKind.CONSEQUENCES, LoadingKind.COMPARISON,
        )
        self.state.start_custom_mode()

    def refresh_saved_comparison(self) -> None:
        """Show the persisted comparison for the current selection, if any."""
        state = self.state
        if not state.comparison_mode or len(state.selected_indices) < MIN_COMPARED_PERSPECTIVES:
            state.comparison_result = None
            state.user_notes = ""
            return
        saved = self.store.find_comparison(state.metaphor, state.selected_indices)
        state.comparison_result = saved.ai_summary if saved else None
        state.user_notes = saved.user_notes if saved else ""

    def cancel(self) -> None:
        """Global stop: every lane cancelled, indicators and error cleared."""
        self.state.cancel_all()
        logger.info(
            "Workspace flows cancelled", extra={"workspace_id": self.state.workspace_id},
        )

    # --- Batch exploration -------------------------------------------------

    async def explore_selected(self) -> None:
        state = self.state
        analysis, metaphor = state.analysis, state.metaphor
        if state.custom_mode or not state.selected_indices or analysis is None or not metaphor:
            return

        token = state.begin(OperationLane.EXPLORATION, LoadingKind.CONSEQUENCES)
        to_fetch = [i for i in state.selected_indices if i not in state.consequences]
        state.pending_indices = set(to_fetch)
        try:
            for index in to_fetch:
                cached = self.store.latest_consequence(metaphor, index)
                if cached is not None:
                    state.consequences[index] = cached
                    state.pending_indices.discard(index)
                    continue
                if token.cancelled:
                    break
                try:
                    text = await self._fetch_consequences(metaphor, analysis, index)
                except GatewayError as e:
                    if token.cancelled:
                        break
                    logger.warning(
                        f"Consequence fetch failed: {e.message}",
                        extra={"metaphor": metaphor, "mapping_set_index": index},
                    )
                    state.fail(token, EXPLORE_FAILED)
                    state.pending_indices.discard(index)
                    continue
                if token.cancelled:
                    break
                state.consequences[index] = text
                state.pending_indices.discard(index)
                await self.store.record_consequence(metaphor, index, text)
        finally:
            state.finish(OperationLane.EXPLORATION, token, LoadingKind.CONSEQUENCES)

    async def _fetch_consequences(
        self, metaphor: str, analysis: MetaphorAnalysis, index: int,
    ) -> str:
        return await self.gateway.explore_consequences(
            metaphor, analysis.mapping_sets[index],
            analysis.source_domain, analysis.target_domain,
        )

    # --- Custom perspective ------------------------------------------------

    async def explore_custom(self) -> None:
        """Name (if still placeholder), explore, append, then select the new set."""
        state = self.state
        analysis, metaphor = state.analysis, state.metaphor
        perspective = state.custom_perspective
        if analysis is None or perspective is None or not metaphor:
            return
        if not perspective.mappings:
            return

        token = state.begin(OperationLane.EXPLORATION, LoadingKind.CONSEQUENCES)
        state.consequences = {}
        try:
            final = perspective
            if final.name == CUSTOM_PERSPECTIVE_PLACEHOLDER_NAME:
                summary = await self.gateway.summarize_custom_perspective(
                    analysis.source_domain, analysis.target_domain, final.mappings,
                )
                if token.cancelled:
                    return
                final = final.model_copy(update={
                    "name": summary.name, "description": summary.description,
                })

            text = await self.gateway.explore_consequences(
                metaphor, final, analysis.source_domain, analysis.target_domain,
            )
            if token.cancelled:
                return
            new_index = await self.store.append_custom_perspective(metaphor, final, text)
        except (GatewayError, ResourceNotFoundError) as e:
            logger.warning(
                f"Custom perspective flow failed: {e.message}",
                extra={"metaphor": metaphor},
            )
            state.fail(token, CUSTOM_FAILED)
            return
        finally:
            state.finish(OperationLane.EXPLORATION, token, LoadingKind.CONSEQUENCES)

        stored = self.store.get(metaphor)
        state.analysis = stored.analysis
        state.consequences = {new_index: text}
        state.custom_mode = False
        state.custom_perspective = None
        state.selected_indices = [new_index]
        logger.info(
            f"Custom perspective '{final.name}' appended",
            extra={"metaphor": metaphor, "mapping_set_index": new_index},
        )

    # --- Comparison --------------------------------------------------------

    async def compare(self) -> None:
        state = self.state
        analysis, metaphor = state.analysis, state.metaphor
        selected = list(state.selected_indices)
        if analysis is None or not metaphor or len(selected) < MIN_COMPARED_PERSPECTIVES:
            return

        lane = OperationLane.EXPLORATION
        token = state.begin(lane, LoadingKind.COMPARISON)
        state.comparison_result = None
        state.user_notes = ""
        try:
            if not await self._prefetch_for_comparison(token, analysis, metaphor, selected):
                return
            state.finish(lane, token, LoadingKind.CONSEQUENCES)

            perspectives = [self._compared(metaphor, analysis, i) for i in selected]
            try:
                summary = await self.gateway.compare_perspectives(metaphor, perspectives)
            except GatewayError as e:
                logger.warning(
                    f"Comparison failed: {e.message}", extra={"metaphor": metaphor},
                )
                state.fail(token, COMPARISON_FAILED)
                return
            if token.cancelled:
                return
            state.comparison_result = summary
            await self.store.record_comparison(metaphor, selected, summary, "")
        finally:
            state.finish(lane, token, LoadingKind.CONSEQUENCES)
            state.finish(lane, token, LoadingKind.COMPARISON)

    async def _prefetch_for_comparison(
        self, token, analysis: MetaphorAnalysis, metaphor: str, selected: list[int],
    ) -> bool:
        """Make sure every selected index has consequences. False aborts the comparison."""
        state = self.state
        missing = [i for i in selected if i not in state.consequences]
        if not missing:
            return True
        state.loading.add(LoadingKind.CONSEQUENCES)
        for index in missing:
            text = self.store.latest_consequence(metaphor, index)
            if text is None:
                try:
                    text = await self._fetch_consequences(metaphor, analysis, index)
                except GatewayError as e:
                    logger.warning(
                        f"Comparison prefetch failed: {e.message}",
                        extra={"metaphor": metaphor, "mapping_set_index": index},
                    )
                    state.fail(
                        token,
                        _comparison_prefetch_failed(analysis.mapping_sets[index].name),
                    )
                    return False
                if token.cancelled:
                    return False
                await self.store.record_consequence(metaphor, index, text)
            state.consequences[index] = text
        return True

    def _compared(
        self, metaphor: str, analysis: MetaphorAnalysis, index: int,
    ) -> ComparedPerspective:
        explored = self.store.find_perspective(metaphor, index)
        return ComparedPerspective(
            mapping_set=analysis.mapping_sets[index],
            consequences=self.state.consequences[index],
            documents=(explored.generated_documents or []) if explored else [],
            image=explored.generated_image if explored else None,
        )

    async def update_comparison_notes(self, notes: str) -> None:
        """Re-persist the shown comparison with new notes; ai_summary unchanged."""
        state = self.state
        state.user_notes = notes
        if state.comparison_result is None or not state.metaphor:
            return
        if len(state.selected_indices) < MIN_COMPARED_PERSPECTIVES:
            return
        await self.store.record_comparison(
            state.metaphor, state.selected_indices, state.comparison_result, notes,
        )
