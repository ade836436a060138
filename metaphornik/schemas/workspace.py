"""Workspace Schemas — request bodies and the workspace view returned by every action.

Invariants:
    - Free-text inputs are stripped and must be non-empty
    - Positions and indices are non-negative (range checks happen in the handlers,
      where an out-of-range value is a silent no-op)
    - WorkspaceView is the only shape workspace routes return

Design Decisions:
    - Snake_case request bodies like the rest of the API; stored records inside the
      view keep their camelCase wire form (to_wire) so clients share one model
"""

from pydantic import BaseModel, Field, field_validator

from metaphornik.core.domain_types import Side
from metaphornik.core.workspace_state import WorkspaceState


class _StrippedText(BaseModel):
    @field_validator("*", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v


class AnalyzeRequest(_StrippedText):
    metaphor: str = Field(min_length=1, max_length=500)


class LoadRequest(BaseModel):
    metaphor: str = Field(min_length=1)


class SelectRequest(BaseModel):
    mapping_set_index: int = Field(ge=0)


class NotesRequest(BaseModel):
    notes: str = Field("", max_length=20_000)


class AddFactRequest(_StrippedText):
    side: Side
    text: str = Field(min_length=1, max_length=500)


class GenerateFactsRequest(BaseModel):
    side: Side


class DropFactRequest(BaseModel):
    dragged_side: Side
    dragged_index: int = Field(ge=0)
    drop_side: Side
    drop_index: int = Field(ge=0)


class DocumentRequest(_StrippedText):
    mapping_set_index: int = Field(ge=0)
    document_type: str = Field(min_length=1, max_length=200)


class ImageRequest(_StrippedText):
    mapping_set_index: int = Field(ge=0)
    prompt: str = Field(min_length=1, max_length=2_000)


class TopicRequest(_StrippedText):
    topic: str = Field(min_length=1, max_length=500)


class StatementRequest(_StrippedText):
    statement: str = Field(min_length=1, max_length=5_000)


class WorkspaceView(BaseModel):
    """Everything a client renders for one workspace."""
    id: str
    metaphor: str
    analysis: dict | None
    selected_indices: list[int]
    consequences: dict[int, str]
    pending_indices: list[int]
    comparison_mode: bool
    comparison_result: str | None
    user_notes: str
    custom_mode: bool
    custom_perspective: dict | None
    generated_metaphors: list[str]
    identified_metaphors: list[dict]
    alternative_frames: list[dict]
    original_statement: str
    loading: list[str]
    status: str
    error: str | None

    @classmethod
    def from_state(cls, state: WorkspaceState) -> "WorkspaceView":
        return cls(
            id=state.workspace_id,
            metaphor=state.metaphor,
            analysis=state.analysis.to_wire() if state.analysis else None,
            selected_indices=state.selected_indices,
            consequences=state.consequences,
            pending_indices=sorted(state.pending_indices),
            comparison_mode=state.comparison_mode,
            comparison_result=state.comparison_result,
            user_notes=state.user_notes,
            custom_mode=state.custom_mode,
            custom_perspective=(
                state.custom_perspective.to_wire() if state.custom_perspective else None
            ),
            generated_metaphors=state.generated_metaphors,
            identified_metaphors=[m.to_wire() for m in state.identified_metaphors],
            alternative_frames=[f.to_wire() for f in state.alternative_frames],
            original_statement=state.original_statement,
            loading=sorted(kind.value for kind in state.loading),
            status=state.status.value,
            error=state.error,
        )
