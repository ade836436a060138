"""Analysis Types — the metaphor domain model and its persisted wrappers.

Invariants:
    - Models are frozen: every change is a model_copy(update=...) producing a new value
    - Wire/persisted names are camelCase (sourceFactIndex, exploredPerspectives, ...)
    - Python attribute names are snake_case; both spellings accepted on input
    - Optional fields absent from persisted data stay None and are omitted on dump
    - Unknown fields in persisted data are ignored (no schema version field exists)

Design Decisions:
    - Pydantic over dataclasses: import is schema-validated field-by-field for free
      (ADR: loosely validated imports were a recurring source of corrupt stores)
    - Mapping keeps positional indices: existing exports are position-based; the
      Fact Reordering Engine keeps them valid (core/fact_reorder.py)
    - Timestamps are epoch milliseconds (ADR: exports stay readable by older clients)
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _Record(BaseModel):
    """Shared config — frozen, camelCase aliases, input by name or alias."""
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_wire(self) -> dict:
        """JSON-safe dict with camelCase keys and no None fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ─── Metaphor structure ─────────────────────────────────────────

class Fact(_Record):
    """An attribute or concept belonging to one domain."""
    id: str
    text: str
    custom: bool = False


class Domain(_Record):
    """Source or target concept with its ordered facts."""
    name: str
    facts: list[Fact] = Field(default_factory=list)


class Mapping(_Record):
    """A positional source-fact to target-fact link."""
    source_fact_index: int
    target_fact_index: int


class MappingSet(_Record):
    """One perspective: a named, partial subset of source->target links."""
    name: str
    description: str
    icon: str | None = None
    mappings: list[Mapping] = Field(default_factory=list)
    custom: bool = False


class MetaphorAnalysis(_Record):
    """Decomposition of a metaphor. mapping_sets is append-only."""
    source_domain: Domain
    target_domain: Domain
    mapping_sets: list[MappingSet] = Field(default_factory=list)


# ─── Derived artifacts ──────────────────────────────────────────

class GeneratedDocument(_Record):
    type: str
    content: str
    timestamp: int


class ImageEdit(_Record):
    prompt: str
    timestamp: int


class GeneratedImage(_Record):
    """Current image plus its append-only prompt history."""
    base64_data: str
    mime_type: str
    history: list[ImageEdit] = Field(default_factory=list)


class ExploredPerspective(_Record):
    """Exploration history of one mapping set. Latest consequence is last."""
    mapping_set_index: int
    consequences: list[str] = Field(default_factory=list)
    generated_documents: list[GeneratedDocument] | None = None
    generated_image: GeneratedImage | None = None

    @property
    def latest_consequence(self) -> str | None:
        return self.consequences[-1] if self.consequences else None


class Comparison(_Record):
    """Synthesized comparison keyed by the sorted participating indices."""
    perspective_indices: list[int]
    ai_summary: str
    user_notes: str = ""
    timestamp: int


class StoredMetaphorAnalysis(_Record):
    """Everything persisted for one metaphor. metaphor is the store key."""
    metaphor: str
    analysis: MetaphorAnalysis
    explored_perspectives: list[ExploredPerspective] = Field(default_factory=list)
    comparisons: list[Comparison] | None = None
    timestamp: int


# ─── Discovery results ──────────────────────────────────────────

class PerspectiveSummary(_Record):
    """AI-proposed name and one-sentence description for a custom perspective."""
    name: str = Field(min_length=1)
    description: str


class IdentifiedMetaphor(_Record):
    metaphor: str
    explanation: str


class AlternativeFrame(_Record):
    proposed_metaphor: str
    reasoning: str


# ─── Gateway payloads ───────────────────────────────────────────

class ComparedPerspective(_Record):
    """One participant of a comparison request (never persisted)."""
    mapping_set: MappingSet
    consequences: str
    documents: list[GeneratedDocument] = Field(default_factory=list)
    image: GeneratedImage | None = None


StoreState = dict[str, StoredMetaphorAnalysis]
