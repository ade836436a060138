"""Discovery Handlers — metaphor generation, identification and reframing.

Invariants:
    - generate and identify start a fresh workspace (every lane cancelled, state reset)
    - reframe requires an identified statement; otherwise it is a silent no-op
    - Results are applied only while the flow's token is live

Design Decisions:
    - Results live on the workspace only; nothing here touches the Analysis Store
"""

import logging

from metaphornik.core.domain_types import LoadingKind, OperationLane
from metaphornik.core.errors import GatewayError
from metaphornik.core.repository_protocols import MetaphorGateway
from metaphornik.core.workspace_state import WorkspaceState

logger = logging.getLogger(__name__)

GENERATE_FAILED = (
    "Failed to generate metaphors. The model might be unavailable. Please try again."
)
IDENTIFY_FAILED = (
    "Failed to identify metaphors. The model might be unavailable. Please try again."
)
REFRAME_FAILED = (
    "Failed to generate reframes. The model might be unavailable. Please try again."
)


class DiscoveryHandlers:
    def __init__(self, gateway: MetaphorGateway, state: WorkspaceState):
        self.gateway = gateway
        self.state = state

    async def generate_metaphors(self, topic: str) -> None:
        state = self.state
        state.cancel_all()
        state.reset()
        token = state.begin(OperationLane.DISCOVERY, LoadingKind.METAPHORS)
        try:
            metaphors = await self.gateway.generate_metaphors(topic)
        except GatewayError as e:
            logger.warning(f"Metaphor generation failed: {e.message}")
            state.fail(token, GENERATE_FAILED)
            return
        finally:
            state.finish(OperationLane.DISCOVERY, token, LoadingKind.METAPHORS)
        if not token.cancelled:
            state.generated_metaphors = metaphors

    async def identify_metaphors(self, statement: str) -> None:
        state = self.state
        state.cancel_all()
        state.reset()
        state.original_statement = statement
        token = state.begin(OperationLane.DISCOVERY, LoadingKind.IDENTIFIER)
        try:
            identified = await self.gateway.identify_metaphors(statement)
        except GatewayError as e:
            logger.warning(f"Metaphor identification failed: {e.message}")
            state.fail(token, IDENTIFY_FAILED)
            return
        finally:
            state.finish(OperationLane.DISCOVERY, token, LoadingKind.IDENTIFIER)
        if not token.cancelled:
            state.identified_metaphors = identified

    async def reframe(self) -> None:
        state = self.state
        if not state.original_statement or not state.identified_metaphors:
            return
        token = state.begin(OperationLane.DISCOVERY, LoadingKind.REFRAMING)
        try:
            frames = await self.gateway.suggest_alternative_frames(
                state.original_statement, state.identified_metaphors,
            )
        except GatewayError as e:
            logger.warning(f"Reframing failed: {e.message}")
            state.fail(token, REFRAME_FAILED)
            return
        finally:
            state.finish(OperationLane.DISCOVERY, token, LoadingKind.REFRAMING)
        if not token.cancelled:
            state.alternative_frames = frames
