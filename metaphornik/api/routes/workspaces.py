"""Workspace Routes — one client's exploration session and every action on it.

Invariants:
    - Every action responds with the WorkspaceView AFTER the flow has settled
    - Model failures never produce an error status: they land in WorkspaceView.error
    - Unknown workspace ids are 404 (ResourceNotFoundError)
    - Precondition violations (nothing selected, < 2 compared, empty custom
      perspective) return the unchanged view

Design Decisions:
    - Request/response actions over a stream: each flow is a short sequence of
      gateway awaits; a concurrent POST .../cancel discards its late results
    - Handlers are built per request around the workspace's state; they hold no
      state of their own
"""

import logging

from fastapi import APIRouter, Depends, status

from metaphornik.api.dependencies import (
    get_gateway, get_registry, get_store, get_workspace,
)
from metaphornik.core.repository_protocols import MetaphorGateway
from metaphornik.core.workspace_state import WorkspaceState
from metaphornik.schemas.workspace import (
    AddFactRequest,
    AnalyzeRequest,
    DocumentRequest,
    DropFactRequest,
    GenerateFactsRequest,
    ImageRequest,
    LoadRequest,
    NotesRequest,
    SelectRequest,
    StatementRequest,
    TopicRequest,
    WorkspaceView,
)
from metaphornik.services.analysis_store import AnalysisStore
from metaphornik.services.handle_analysis import AnalysisHandlers
from metaphornik.services.handle_artifacts import ArtifactHandlers
from metaphornik.services.handle_discovery import DiscoveryHandlers
from metaphornik.services.handle_facts import FactHandlers
from metaphornik.services.perspective_orchestrator import PerspectiveOrchestrator
from metaphornik.services.workspace_registry import WorkspaceRegistry

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/workspaces", tags=["workspaces"])


def _orchestrator(
    state: WorkspaceState = Depends(get_workspace),
    store: AnalysisStore = Depends(get_store),
    gateway: MetaphorGateway = Depends(get_gateway),
) -> PerspectiveOrchestrator:
    return PerspectiveOrchestrator(store, gateway, state)


def _analysis(
    state: WorkspaceState = Depends(get_workspace),
    store: AnalysisStore = Depends(get_store),
    gateway: MetaphorGateway = Depends(get_gateway),
) -> AnalysisHandlers:
    return AnalysisHandlers(store, gateway, state)


def _facts(
    state: WorkspaceState = Depends(get_workspace),
    store: AnalysisStore = Depends(get_store),
    gateway: MetaphorGateway = Depends(get_gateway),
) -> FactHandlers:
    return FactHandlers(store, gateway, state)


def _artifacts(
    state: WorkspaceState = Depends(get_workspace),
    store: AnalysisStore = Depends(get_store),
    gateway: MetaphorGateway = Depends(get_gateway),
) -> ArtifactHandlers:
    return ArtifactHandlers(store, gateway, state)


def _discovery(
    state: WorkspaceState = Depends(get_workspace),
    gateway: MetaphorGateway = Depends(get_gateway),
) -> DiscoveryHandlers:
    return DiscoveryHandlers(gateway, state)


# ─── Lifecycle ──────────────────────────────────────────────────

@router.post("", response_model=WorkspaceView, status_code=status.HTTP_201_CREATED)
async def create_workspace(registry: WorkspaceRegistry = Depends(get_registry)):
    return WorkspaceView.from_state(registry.create())


@router.get("/{workspace_id}", response_model=WorkspaceView)
async def get_workspace_view(state: WorkspaceState = Depends(get_workspace)):
    return WorkspaceView.from_state(state)


@router.delete("/{workspace_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_workspace(
    workspace_id: str, registry: WorkspaceRegistry = Depends(get_registry),
):
    registry.remove(workspace_id)


@router.post("/{workspace_id}/cancel", response_model=WorkspaceView)
async def cancel_workspace(
    orchestrator: PerspectiveOrchestrator = Depends(_orchestrator),
):
    """Global stop: in-flight results are discarded, indicators and error cleared."""
    orchestrator.cancel()
    return WorkspaceView.from_state(orchestrator.state)


# ─── Analysis ───────────────────────────────────────────────────

@router.post("/{workspace_id}/analyze", response_model=WorkspaceView)
async def analyze(body: AnalyzeRequest, handlers: AnalysisHandlers = Depends(_analysis)):
    await handlers.analyze(body.metaphor)
    return WorkspaceView.from_state(handlers.state)


@router.post("/{workspace_id}/load", response_model=WorkspaceView)
async def load(body: LoadRequest, handlers: AnalysisHandlers = Depends(_analysis)):
    await handlers.load(body.metaphor)
    return WorkspaceView.from_state(handlers.state)


# ─── Perspectives ───────────────────────────────────────────────

@router.post("/{workspace_id}/select", response_model=WorkspaceView)
async def select(
    body: SelectRequest, orchestrator: PerspectiveOrchestrator = Depends(_orchestrator),
):
    await orchestrator.select_mapping(body.mapping_set_index)
    return WorkspaceView.from_state(orchestrator.state)


@router.post("/{workspace_id}/comparison-mode", response_model=WorkspaceView)
async def toggle_comparison_mode(
    orchestrator: PerspectiveOrchestrator = Depends(_orchestrator),
):
    orchestrator.toggle_comparison_mode()
    return WorkspaceView.from_state(orchestrator.state)


@router.post("/{workspace_id}/custom-mode", response_model=WorkspaceView)
async def start_custom_mode(
    orchestrator: PerspectiveOrchestrator = Depends(_orchestrator),
):
    orchestrator.start_custom_mode()
    return WorkspaceView.from_state(orchestrator.state)


@router.post("/{workspace_id}/custom/explore", response_model=WorkspaceView)
async def explore_custom(
    orchestrator: PerspectiveOrchestrator = Depends(_orchestrator),
):
    await orchestrator.explore_custom()
    return WorkspaceView.from_state(orchestrator.state)


@router.delete("/{workspace_id}/custom/mappings/{position}", response_model=WorkspaceView)
async def remove_custom_mapping(position: int, handlers: FactHandlers = Depends(_facts)):
    handlers.remove_custom_mapping(position)
    return WorkspaceView.from_state(handlers.state)


@router.post("/{workspace_id}/compare", response_model=WorkspaceView)
async def compare(orchestrator: PerspectiveOrchestrator = Depends(_orchestrator)):
    await orchestrator.compare()
    return WorkspaceView.from_state(orchestrator.state)


@router.put("/{workspace_id}/comparison/notes", response_model=WorkspaceView)
async def update_comparison_notes(
    body: NotesRequest, orchestrator: PerspectiveOrchestrator = Depends(_orchestrator),
):
    await orchestrator.update_comparison_notes(body.notes)
    return WorkspaceView.from_state(orchestrator.state)


# ─── Facts ──────────────────────────────────────────────────────

@router.post("/{workspace_id}/facts", response_model=WorkspaceView)
async def add_fact(body: AddFactRequest, handlers: FactHandlers = Depends(_facts)):
    await handlers.add_fact(body.side, body.text)
    return WorkspaceView.from_state(handlers.state)


@router.post("/{workspace_id}/facts/generate", response_model=WorkspaceView)
async def generate_facts(
    body: GenerateFactsRequest, handlers: FactHandlers = Depends(_facts),
):
    await handlers.generate_more_facts(body.side)
    return WorkspaceView.from_state(handlers.state)


@router.post("/{workspace_id}/facts/drop", response_model=WorkspaceView)
async def drop_fact(body: DropFactRequest, handlers: FactHandlers = Depends(_facts)):
    await handlers.drop_fact(
        body.dragged_side, body.dragged_index, body.drop_side, body.drop_index,
    )
    return WorkspaceView.from_state(handlers.state)


# ─── Artifacts ──────────────────────────────────────────────────

@router.post("/{workspace_id}/documents", response_model=WorkspaceView)
async def generate_document(
    body: DocumentRequest, handlers: ArtifactHandlers = Depends(_artifacts),
):
    await handlers.generate_document(body.mapping_set_index, body.document_type)
    return WorkspaceView.from_state(handlers.state)


@router.post("/{workspace_id}/images", response_model=WorkspaceView)
async def generate_image(
    body: ImageRequest, handlers: ArtifactHandlers = Depends(_artifacts),
):
    await handlers.generate_image(body.mapping_set_index, body.prompt)
    return WorkspaceView.from_state(handlers.state)


# ─── Discovery ──────────────────────────────────────────────────

@router.post("/{workspace_id}/discover/metaphors", response_model=WorkspaceView)
async def generate_metaphors(
    body: TopicRequest, handlers: DiscoveryHandlers = Depends(_discovery),
):
    await handlers.generate_metaphors(body.topic)
    return WorkspaceView.from_state(handlers.state)


@router.post("/{workspace_id}/discover/identify", response_model=WorkspaceView)
async def identify_metaphors(
    body: StatementRequest, handlers: DiscoveryHandlers = Depends(_discovery),
):
    await handlers.identify_metaphors(body.statement)
    return WorkspaceView.from_state(handlers.state)


@router.post("/{workspace_id}/discover/reframe", response_model=WorkspaceView)
async def reframe(handlers: DiscoveryHandlers = Depends(_discovery)):
    await handlers.reframe()
    return WorkspaceView.from_state(handlers.state)
