"""Fact Reordering Engine — keeps positional mappings valid across fact edits.

Invariants:
    - All functions are PURE: inputs are never mutated; no-ops return the input object
    - After reorder_facts every Mapping references the same fact IDENTITIES as before
      (verified via Fact.id, not position)
    - Only the reordered side's indices are rewritten; the other side is untouched
    - A mapping whose fact id cannot be resolved keeps its stale index (never fails)
    - add_custom_mapping never produces duplicate {source, target} pairs

Design Decisions:
    - id -> new-position table rebuilt per reorder: O(facts + mappings), no caching
    - Stale-index fallback preserved as-is: unreachable while reordering preserves the
      id set, and silently "repairing" would change persisted data
      (ADR: identity-based Mapping is the long-term fix, see DESIGN.md)
"""

from metaphornik.core.analysis_types import Fact, Mapping, MappingSet, MetaphorAnalysis
from metaphornik.core.domain_types import Side


def _move(facts: list[Fact], from_index: int, to_index: int) -> list[Fact]:
    """Splice semantics: remove at from_index, reinsert at to_index."""
    moved = list(facts)
    fact = moved.pop(from_index)
    moved.insert(to_index, fact)
    return moved


def _remap_index(
    index: int, old_facts: list[Fact], new_positions: dict[str, int],
) -> int:
    if not 0 <= index < len(old_facts):
        return index
    return new_positions.get(old_facts[index].id, index)


def reorder_facts(
    analysis: MetaphorAnalysis, side: Side, from_index: int, to_index: int,
) -> MetaphorAnalysis:
    """Move a fact within one domain and rewrite every mapping set's indices."""
    domain = getattr(analysis, side.domain_field)
    old_facts = domain.facts
    if from_index == to_index or not 0 <= from_index < len(old_facts):
        return analysis

    new_facts = _move(old_facts, from_index, to_index)
    new_positions = {fact.id: position for position, fact in enumerate(new_facts)}

    mapping_sets = []
    for mapping_set in analysis.mapping_sets:
        mappings = []
        for m in mapping_set.mappings:
            if side is Side.SOURCE:
                m = Mapping(
                    source_fact_index=_remap_index(
                        m.source_fact_index, old_facts, new_positions,
                    ),
                    target_fact_index=m.target_fact_index,
                )
            else:
                m = Mapping(
                    source_fact_index=m.source_fact_index,
                    target_fact_index=_remap_index(
                        m.target_fact_index, old_facts, new_positions,
                    ),
                )
            mappings.append(m)
        mapping_sets.append(mapping_set.model_copy(update={"mappings": mappings}))

    return analysis.model_copy(update={
        side.domain_field: domain.model_copy(update={"facts": new_facts}),
        "mapping_sets": mapping_sets,
    })


def add_custom_mapping(
    mapping_set: MappingSet, dragged_side: Side, dragged_index: int, drop_index: int,
) -> MappingSet:
    """Link a fact dragged from one domain onto a fact of the other domain."""
    if dragged_side is Side.SOURCE:
        mapping = Mapping(source_fact_index=dragged_index, target_fact_index=drop_index)
    else:
        mapping = Mapping(source_fact_index=drop_index, target_fact_index=dragged_index)
    if mapping in mapping_set.mappings:
        return mapping_set
    return mapping_set.model_copy(
        update={"mappings": [*mapping_set.mappings, mapping]},
    )


def remove_custom_mapping(mapping_set: MappingSet, position: int) -> MappingSet:
    """Drop the mapping at `position` from an in-progress custom perspective."""
    if not 0 <= position < len(mapping_set.mappings):
        return mapping_set
    mappings = [m for i, m in enumerate(mapping_set.mappings) if i != position]
    return mapping_set.model_copy(update={"mappings": mappings})


def append_facts(
    analysis: MetaphorAnalysis, side: Side, facts: list[Fact],
) -> MetaphorAnalysis:
    """Append facts to one domain. Existing positions (and mappings) are unaffected."""
    if not facts:
        return analysis
    domain = getattr(analysis, side.domain_field)
    updated = domain.model_copy(update={"facts": [*domain.facts, *facts]})
    return analysis.model_copy(update={side.domain_field: updated})
