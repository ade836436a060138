"""Store State — pure mutations of the metaphor-keyed analysis map.

Invariants:
    - All functions are PURE: no IO, no clock, no mutation of their inputs
    - Every mutation returns a NEW map; a precondition violation returns the
      input map object itself (callers detect no-ops with `is`)
    - mapping_sets only ever grows (append), so every stored mapping_set_index stays valid
    - Comparisons are keyed by sorted indices: {0,2} and {2,0} are the same record
    - At most one ExploredPerspective per mapping_set_index

Design Decisions:
    - Functional core over in-place edits: the shell persists the composed map in one
      call, so readers never observe a partial write (ADR: impureim sandwich)
    - Timestamps passed in by the shell: tests stay deterministic
    - Fact edits are functions applied to the stored analysis (edit_analysis), never a
      whole-analysis overwrite from a workspace copy that may predate an append
"""

from typing import Callable

from metaphornik.core.analysis_types import (
    Comparison,
    ExploredPerspective,
    GeneratedDocument,
    GeneratedImage,
    ImageEdit,
    MappingSet,
    MetaphorAnalysis,
    StoreState,
    StoredMetaphorAnalysis,
)
from metaphornik.core.errors import ResourceNotFoundError


# ─── Readers ────────────────────────────────────────────────────

def find_perspective(
    state: StoreState, metaphor: str, mapping_set_index: int,
) -> ExploredPerspective | None:
    """ExploredPerspective for (metaphor, index), or None."""
    stored = state.get(metaphor)
    if stored is None:
        return None
    for perspective in stored.explored_perspectives:
        if perspective.mapping_set_index == mapping_set_index:
            return perspective
    return None


def latest_consequence(
    state: StoreState, metaphor: str, mapping_set_index: int,
) -> str | None:
    """Most recent persisted consequence text, or None if never explored."""
    perspective = find_perspective(state, metaphor, mapping_set_index)
    return perspective.latest_consequence if perspective else None


def comparison_key(indices: list[int]) -> list[int]:
    """Canonical comparison key — sorted, order-independent."""
    return sorted(indices)


def find_comparison(
    state: StoreState, metaphor: str, indices: list[int],
) -> Comparison | None:
    """Comparison whose index set equals `indices` exactly (any order)."""
    stored = state.get(metaphor)
    if stored is None or not stored.comparisons:
        return None
    key = comparison_key(indices)
    for comparison in stored.comparisons:
        if comparison_key(comparison.perspective_indices) == key:
            return comparison
    return None


# ─── Analysis lifecycle ─────────────────────────────────────────

def upsert_analysis(
    state: StoreState, metaphor: str, analysis: MetaphorAnalysis, now: int,
) -> StoreState:
    """Create (or recreate) the record for a freshly analyzed metaphor."""
    record = StoredMetaphorAnalysis(
        metaphor=metaphor,
        analysis=analysis,
        explored_perspectives=[],
        timestamp=now,
    )
    return {**state, metaphor: record}


def edit_analysis(
    state: StoreState, metaphor: str,
    edit: Callable[[MetaphorAnalysis], MetaphorAnalysis], now: int,
) -> StoreState:
    """Apply a fact edit to the STORED analysis. History is kept.

    The edit runs against the current record, not a caller's copy, so mapping
    sets appended since that copy was read survive the edit.
    """
    stored = state.get(metaphor)
    if stored is None:
        return state
    analysis = edit(stored.analysis)
    if analysis is stored.analysis:
        return state
    updated = stored.model_copy(update={"analysis": analysis, "timestamp": now})
    return {**state, metaphor: updated}


def delete_analysis(state: StoreState, metaphor: str) -> StoreState:
    if metaphor not in state:
        return state
    return {k: v for k, v in state.items() if k != metaphor}


def merge_import(state: StoreState, incoming: StoreState) -> StoreState:
    """Shallow merge — incoming records replace existing ones with the same metaphor."""
    return {**state, **incoming}


# ─── Perspective artifacts ──────────────────────────────────────

def _with_perspective(
    stored: StoredMetaphorAnalysis, perspective: ExploredPerspective,
) -> list[ExploredPerspective]:
    """Explored list with `perspective` replacing its index's entry (or appended)."""
    replaced = False
    result = []
    for existing in stored.explored_perspectives:
        if existing.mapping_set_index == perspective.mapping_set_index:
            result.append(perspective)
            replaced = True
        else:
            result.append(existing)
    if not replaced:
        result.append(perspective)
    return result


def record_consequence(
    state: StoreState, metaphor: str, mapping_set_index: int, text: str, now: int,
) -> StoreState:
    """Append `text` to the perspective's consequence history (created on first use)."""
    stored = state.get(metaphor)
    if stored is None:
        return state
    existing = find_perspective(state, metaphor, mapping_set_index)
    if existing is None:
        perspective = ExploredPerspective(
            mapping_set_index=mapping_set_index, consequences=[text],
        )
    else:
        perspective = existing.model_copy(
            update={"consequences": [*existing.consequences, text]},
        )
    updated = stored.model_copy(update={
        "explored_perspectives": _with_perspective(stored, perspective),
        "timestamp": now,
    })
    return {**state, metaphor: updated}


def record_document(
    state: StoreState, metaphor: str, mapping_set_index: int,
    document: GeneratedDocument,
) -> StoreState:
    """Append a generated document. Requires an explored perspective."""
    existing = find_perspective(state, metaphor, mapping_set_index)
    if existing is None:
        return state
    documents = [*(existing.generated_documents or []), document]
    perspective = existing.model_copy(update={"generated_documents": documents})
    stored = state[metaphor]
    updated = stored.model_copy(update={
        "explored_perspectives": _with_perspective(stored, perspective),
    })
    return {**state, metaphor: updated}


def record_image(
    state: StoreState, metaphor: str, mapping_set_index: int,
    base64_data: str, mime_type: str, prompt: str, now: int,
) -> StoreState:
    """Replace the current image; the prompt joins the prior image's history."""
    existing = find_perspective(state, metaphor, mapping_set_index)
    if existing is None:
        return state
    prior = existing.generated_image
    history = [*(prior.history if prior else []), ImageEdit(prompt=prompt, timestamp=now)]
    image = GeneratedImage(base64_data=base64_data, mime_type=mime_type, history=history)
    perspective = existing.model_copy(update={"generated_image": image})
    stored = state[metaphor]
    updated = stored.model_copy(update={
        "explored_perspectives": _with_perspective(stored, perspective),
    })
    return {**state, metaphor: updated}


def record_comparison(
    state: StoreState, metaphor: str, indices: list[int],
    ai_summary: str, user_notes: str, now: int,
) -> StoreState:
    """Upsert the comparison keyed by sorted(indices)."""
    stored = state.get(metaphor)
    if stored is None:
        return state
    key = comparison_key(indices)
    comparison = Comparison(
        perspective_indices=key, ai_summary=ai_summary,
        user_notes=user_notes, timestamp=now,
    )
    comparisons = list(stored.comparisons or [])
    for position, existing in enumerate(comparisons):
        if comparison_key(existing.perspective_indices) == key:
            comparisons[position] = comparison
            break
    else:
        comparisons.append(comparison)
    updated = stored.model_copy(update={"comparisons": comparisons})
    return {**state, metaphor: updated}


def append_custom_perspective(
    state: StoreState, metaphor: str, mapping_set: MappingSet,
    consequence: str, now: int,
) -> tuple[StoreState, int]:
    """Append a finished custom MappingSet and its first exploration, atomically.

    Returns (new_state, new_index) where new_index == len(mapping_sets) - 1.
    """
    stored = state.get(metaphor)
    if stored is None:
        raise ResourceNotFoundError("Analysis", metaphor)
    mapping_sets = [*stored.analysis.mapping_sets, mapping_set]
    new_index = len(mapping_sets) - 1
    analysis = stored.analysis.model_copy(update={"mapping_sets": mapping_sets})
    perspective = ExploredPerspective(
        mapping_set_index=new_index, consequences=[consequence],
    )
    updated = stored.model_copy(update={
        "analysis": analysis,
        "explored_perspectives": [*stored.explored_perspectives, perspective],
        "timestamp": now,
    })
    return {**state, metaphor: updated}, new_index
