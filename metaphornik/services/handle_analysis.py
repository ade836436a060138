"""Analysis Handlers — analyze a new metaphor or reopen a stored one.

Invariants:
    - Analyzing a new metaphor cancels EVERY lane and resets the workspace first
    - The record is created (exploredPerspectives = []) only after a successful analysis
    - When the analysis has mapping sets, perspective 0 is selected and explored
    - Loading a stored metaphor never calls the gateway for already-explored perspectives

Design Decisions:
    - Analysis runs in the DISCOVERY lane: generate/identify/analyze supersede each other
    - Selection after analyze/load goes through PerspectiveOrchestrator.select_mapping,
      the same path a client click takes
"""

import logging

from metaphornik.core.domain_types import LoadingKind, OperationLane
from metaphornik.core.errors import GatewayError, ResourceNotFoundError
from metaphornik.core.repository_protocols import MetaphorGateway
from metaphornik.core.workspace_state import WorkspaceState
from metaphornik.services.analysis_store import AnalysisStore
from metaphornik.services.perspective_orchestrator import PerspectiveOrchestrator

logger = logging.getLogger(__name__)

ANALYZE_FAILED = (
    "Failed to analyze the metaphor. The model might be unavailable or the "
    "input is invalid. Please try again."
)


class AnalysisHandlers:
    """Entry points that (re)build a workspace around one metaphor."""

    def __init__(
        self, store: AnalysisStore, gateway: MetaphorGateway, state: WorkspaceState,
    ):
        self.store = store
        self.gateway = gateway
        self.state = state
        self.orchestrator = PerspectiveOrchestrator(store, gateway, state)

    async def analyze(self, metaphor: str) -> None:
        state = self.state
        state.cancel_all()
        state.reset()
        state.metaphor = metaphor

        token = state.begin(OperationLane.DISCOVERY, LoadingKind.ANALYSIS)
        try:
            analysis = await self.gateway.analyze_metaphor(metaphor)
        except GatewayError as e:
            logger.warning(
                f"Analysis failed: {e.message}", extra={"metaphor": metaphor},
            )
            state.fail(token, ANALYZE_FAILED)
            return
        finally:
            state.finish(OperationLane.DISCOVERY, token, LoadingKind.ANALYSIS)
        if token.cancelled:
            return

        state.analysis = analysis
        await self.store.upsert_analysis(metaphor, analysis)
        logger.info(
            f"Analyzed metaphor ({len(analysis.mapping_sets)} perspectives)",
            extra={"metaphor": metaphor, "workspace_id": state.workspace_id},
        )
        if analysis.mapping_sets:
            await self.orchestrator.select_mapping(0)

    async def load(self, metaphor: str) -> None:
        stored = self.store.get(metaphor)
        if stored is None:
            raise ResourceNotFoundError("Analysis", metaphor)
        state = self.state
        state.cancel_all()
        state.reset()
        state.metaphor = stored.metaphor
        state.analysis = stored.analysis
        if stored.analysis.mapping_sets:
            await self.orchestrator.select_mapping(0)
