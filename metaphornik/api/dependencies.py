"""Route Dependencies — resolve app.state collaborators for FastAPI Depends.

Invariants:
    - Store, gateway and registry are created once by the lifespan and read here
    - get_workspace raises ResourceNotFoundError (404) for unknown ids

Design Decisions:
    - app.state over module globals: tests swap in an InMemoryStoreRepository and a
      scripted gateway by building their own app state
"""

from fastapi import Depends, Request

from metaphornik.core.repository_protocols import MetaphorGateway
from metaphornik.core.workspace_state import WorkspaceState
from metaphornik.services.analysis_store import AnalysisStore
from metaphornik.services.workspace_registry import WorkspaceRegistry


def get_store(request: Request) -> AnalysisStore:
    return request.app.state.store


def get_gateway(request: Request) -> MetaphorGateway:
    return request.app.state.gateway


def get_registry(request: Request) -> WorkspaceRegistry:
    return request.app.state.registry


def get_workspace(
    workspace_id: str, registry: WorkspaceRegistry = Depends(get_registry),
) -> WorkspaceState:
    return registry.get(workspace_id)
