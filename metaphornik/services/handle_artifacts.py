"""Artifact Handlers — documents and images generated from an explored perspective.

Invariants:
    - A document needs the perspective's consequences in the workspace
    - An image needs a stored, explored perspective; the current image (if any) is
      sent as the edit base and the new prompt joins its history
    - Late results from a cancelled flow are never persisted

Design Decisions:
    - Documents and images have their own lanes: generating one never cancels
      an exploration, and vice versa
"""

import logging

from metaphornik.core.domain_types import LoadingKind, OperationLane
from metaphornik.core.errors import GatewayError
from metaphornik.core.repository_protocols import MetaphorGateway
from metaphornik.core.workspace_state import WorkspaceState
from metaphornik.services.analysis_store import AnalysisStore

logger = logging.getLogger(__name__)

DOCUMENT_MISSING_CONTEXT = "Cannot generate document: missing context."
IMAGE_MISSING_CONTEXT = "Cannot generate image: missing context."
IMAGE_NO_PERSPECTIVE = "Cannot find perspective to add image to."
IMAGE_FAILED = "Failed to generate image."


class ArtifactHandlers:
    def __init__(
        self, store: AnalysisStore, gateway: MetaphorGateway, state: WorkspaceState,
    ):
        self.store = store
        self.gateway = gateway
        self.state = state

    async def generate_document(self, mapping_set_index: int, document_type: str) -> None:
        state = self.state
        analysis, metaphor = state.analysis, state.metaphor
        consequences = state.consequences.get(mapping_set_index)
        if analysis is None or not metaphor or not consequences:
            state.error = DOCUMENT_MISSING_CONTEXT
            return

        token = state.begin(OperationLane.DOCUMENT, LoadingKind.DOCUMENT)
        try:
            content = await self.gateway.generate_document(
                metaphor, analysis.mapping_sets[mapping_set_index],
                consequences, document_type,
            )
        except GatewayError as e:
            logger.warning(
                f"Document generation failed: {e.message}",
                extra={"metaphor": metaphor, "mapping_set_index": mapping_set_index},
            )
            state.fail(token, f"Failed to generate document of type: {document_type}")
            return
        finally:
            state.finish(OperationLane.DOCUMENT, token, LoadingKind.DOCUMENT)
        if token.cancelled:
            return
        await self.store.record_document(
            metaphor, mapping_set_index, document_type, content,
        )

    async def generate_image(self, mapping_set_index: int, prompt: str) -> None:
        state = self.state
        metaphor = state.metaphor
        if state.analysis is None or self.store.get(metaphor) is None:
            state.error = IMAGE_MISSING_CONTEXT
            return

        token = state.begin(OperationLane.IMAGE, LoadingKind.IMAGE)
        try:
            explored = self.store.find_perspective(metaphor, mapping_set_index)
            if explored is None:
                state.fail(token, IMAGE_NO_PERSPECTIVE)
                return
            current = explored.generated_image
            base = (current.base64_data, current.mime_type) if current else None
            try:
                base64_data, mime_type = await self.gateway.generate_or_edit_image(
                    prompt, base,
                )
            except GatewayError as e:
                logger.warning(
                    f"Image generation failed: {e.message}",
                    extra={"metaphor": metaphor, "mapping_set_index": mapping_set_index},
                )
                state.fail(token, IMAGE_FAILED)
                return
            if token.cancelled:
                return
            await self.store.record_image(
                metaphor, mapping_set_index, base64_data, mime_type, prompt,
            )
        finally:
            state.finish(OperationLane.IMAGE, token, LoadingKind.IMAGE)
