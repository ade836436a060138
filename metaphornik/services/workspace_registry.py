"""Workspace Registry — in-memory WorkspaceState per client.

Invariants:
    - Workspace ids are opaque uuid4 strings
    - Removing a workspace cancels its flows first (late results are discarded)
    - forget_metaphor resets every workspace showing a deleted metaphor

Design Decisions:
    - Held on app.state, not a module-level dict (ADR: one registry per app instance,
      tests build their own)
    - In-memory only: workspaces are UI sessions; the Analysis Store is the durable part
"""

import logging
import uuid

from metaphornik.core.errors import ResourceNotFoundError
from metaphornik.core.workspace_state import WorkspaceState

logger = logging.getLogger(__name__)


class WorkspaceRegistry:
    def __init__(self) -> None:
        self._workspaces: dict[str, WorkspaceState] = {}

    def create(self) -> WorkspaceState:
        workspace_id = str(uuid.uuid4())
        state = WorkspaceState(workspace_id=workspace_id)
        self._workspaces[workspace_id] = state
        logger.info("Workspace created", extra={"workspace_id": workspace_id})
        return state

    def get(self, workspace_id: str) -> WorkspaceState:
        state = self._workspaces.get(workspace_id)
        if state is None:
            raise ResourceNotFoundError("Workspace", workspace_id)
        return state

    def remove(self, workspace_id: str) -> None:
        state = self.get(workspace_id)
        state.cancel_all()
        del self._workspaces[workspace_id]

    def forget_metaphor(self, metaphor: str) -> None:
        for state in self._workspaces.values():
            if state.metaphor == metaphor:
                state.cancel_all()
                state.reset()

    def dispose(self) -> None:
        for state in self._workspaces.values():
            state.cancel_all()
        self._workspaces.clear()
