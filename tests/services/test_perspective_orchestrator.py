"""Perspective Orchestrator tests — exploration, custom perspectives, comparison.

Tests cover:
    - Idempotent re-selection (store hit, no gateway call)
    - Sequential batch exploration; per-index failure keeps earlier results
    - Cancellation discards late results without surfacing an error
    - Custom perspective: placeholder naming, append-only growth, no-op on empty
    - Comparison: >= 2 required, prefetch, sorted-key persistence, notes
"""

import asyncio

from metaphornik.core.domain_types import (
    CUSTOM_PERSPECTIVE_PLACEHOLDER_NAME,
    LoadingKind,
    Side,
)
from metaphornik.core.fact_reorder import add_custom_mapping
from metaphornik.services.perspective_orchestrator import (
    COMPARISON_FAILED,
    CUSTOM_FAILED,
    EXPLORE_FAILED,
)

METAPHOR = "Time is money"


async def _settle(task: asyncio.Task) -> None:
    await asyncio.wait_for(task, timeout=5)


# --- Selection & caching ------------------------------------------------------

async def test_select_explores_and_persists(orchestrator, gateway, seeded_store):
    await orchestrator.select_mapping(1)

    state = orchestrator.state
    assert state.selected_indices == [1]
    assert state.consequences == {1: "Consequences of Budget"}
    assert seeded_store.latest_consequence(METAPHOR, 1) == "Consequences of Budget"
    assert gateway.count("explore") == 1
    assert state.loading == set()
    assert state.error is None


async def test_reselecting_explored_index_reuses_store(orchestrator, gateway, seeded_store):
    await seeded_store.record_consequence(METAPHOR, 2, "cached waste text")

    await orchestrator.select_mapping(2)
    orchestrator.state.consequences = {}
    await orchestrator.select_mapping(2)

    assert gateway.count("explore") == 0
    assert orchestrator.state.consequences == {2: "cached waste text"}


async def test_reselection_does_not_grow_history(orchestrator, seeded_store):
    await orchestrator.select_mapping(0)
    orchestrator.state.consequences = {}
    await orchestrator.select_mapping(0)
    assert seeded_store.find_perspective(METAPHOR, 0).consequences == [
        "Consequences of Economy",
    ]


async def test_out_of_range_selection_is_noop(orchestrator, gateway):
    await orchestrator.select_mapping(17)
    assert orchestrator.state.selected_indices == []
    assert gateway.calls == []


async def test_select_without_analysis_is_noop(orchestrator, gateway):
    orchestrator.state.analysis = None
    await orchestrator.select_mapping(0)
    assert gateway.calls == []


# --- Batch exploration --------------------------------------------------------

async def test_batch_is_sequential_in_selection_order(orchestrator, gateway):
    orchestrator.toggle_comparison_mode()
    orchestrator.state.selected_indices = [3, 0, 2]
    await orchestrator.explore_selected()
    assert [d for op, d in gateway.calls if op == "explore"] == [
        "Investment", "Economy", "Waste",
    ]


async def test_failed_index_keeps_earlier_results(orchestrator, gateway, seeded_store):
    gateway.fail.add("explore:Budget")
    orchestrator.toggle_comparison_mode()
    orchestrator.state.selected_indices = [0, 1, 2]

    await orchestrator.explore_selected()

    state = orchestrator.state
    assert set(state.consequences) == {0, 2}
    assert state.error == EXPLORE_FAILED
    assert state.pending_indices == set()
    assert seeded_store.latest_consequence(METAPHOR, 1) is None


async def test_cancellation_discards_late_results(orchestrator, gateway, seeded_store):
    gateway.entered["Waste"] = asyncio.Event()
    gateway.gates["Waste"] = asyncio.Event()
    orchestrator.toggle_comparison_mode()
    orchestrator.state.selected_indices = [1, 2]

    task = asyncio.create_task(orchestrator.explore_selected())
    await asyncio.wait_for(gateway.entered["Waste"].wait(), timeout=5)
    orchestrator.cancel()
    gateway.gates["Waste"].set()
    await _settle(task)

    state = orchestrator.state
    assert state.consequences == {1: "Consequences of Budget"}
    assert state.error is None
    assert state.loading == set()
    assert seeded_store.latest_consequence(METAPHOR, 1) == "Consequences of Budget"
    assert seeded_store.latest_consequence(METAPHOR, 2) is None


async def test_cancelled_failure_surfaces_no_error(orchestrator, gateway):
    gateway.entered["Economy"] = asyncio.Event()
    gateway.gates["Economy"] = asyncio.Event()
    gateway.fail.add("explore")

    task = asyncio.create_task(orchestrator.select_mapping(0))
    await asyncio.wait_for(gateway.entered["Economy"].wait(), timeout=5)
    orchestrator.cancel()
    gateway.gates["Economy"].set()
    await _settle(task)

    assert orchestrator.state.error is None


async def test_newer_selection_supersedes_running_batch(orchestrator, gateway, seeded_store):
    gateway.entered["Economy"] = asyncio.Event()
    gateway.gates["Economy"] = asyncio.Event()

    first = asyncio.create_task(orchestrator.select_mapping(0))
    await asyncio.wait_for(gateway.entered["Economy"].wait(), timeout=5)
    await orchestrator.select_mapping(3)
    gateway.gates["Economy"].set()
    await _settle(first)

    state = orchestrator.state
    assert state.selected_indices == [3]
    assert 0 not in state.consequences
    assert state.consequences[3] == "Consequences of Investment"
    assert seeded_store.latest_consequence(METAPHOR, 0) is None


# --- Custom perspective -------------------------------------------------------

def _drag(orchestrator, source_index: int, target_index: int) -> None:
    state = orchestrator.state
    state.custom_perspective = add_custom_mapping(
        state.custom_perspective, Side.SOURCE, source_index, target_index,
    )


async def test_custom_perspective_is_appended(orchestrator, gateway, seeded_store, analysis):
    before = len(analysis.mapping_sets)
    orchestrator.start_custom_mode()
    _drag(orchestrator, 2, 3)

    await orchestrator.explore_custom()

    state = orchestrator.state
    mapping_sets = seeded_store.get(METAPHOR).analysis.mapping_sets
    assert len(mapping_sets) == before + 1
    new_index = len(mapping_sets) - 1
    assert mapping_sets[:before] == analysis.mapping_sets
    assert mapping_sets[new_index].name == "Lending"
    assert mapping_sets[new_index].custom
    assert seeded_store.find_perspective(METAPHOR, new_index).consequences == [
        "Consequences of Lending",
    ]
    assert state.analysis.mapping_sets == mapping_sets
    assert state.selected_indices == [new_index]
    assert state.consequences == {new_index: "Consequences of Lending"}
    assert not state.custom_mode
    assert state.custom_perspective is None
    assert gateway.count("summarize") == 1


async def test_named_custom_perspective_skips_summary(orchestrator, gateway, seeded_store):
    orchestrator.start_custom_mode()
    _drag(orchestrator, 0, 3)
    state = orchestrator.state
    state.custom_perspective = state.custom_perspective.model_copy(
        update={"name": "Idle spending"},
    )

    await orchestrator.explore_custom()

    assert gateway.count("summarize") == 0
    assert seeded_store.get(METAPHOR).analysis.mapping_sets[-1].name == "Idle spending"


async def test_empty_custom_perspective_is_noop(orchestrator, gateway, seeded_store):
    orchestrator.start_custom_mode()
    writes = seeded_store.repository.writes

    await orchestrator.explore_custom()

    assert gateway.calls == []
    assert seeded_store.repository.writes == writes
    assert orchestrator.state.custom_mode


async def test_failed_summary_appends_nothing(orchestrator, gateway, seeded_store, analysis):
    gateway.fail.add("summarize")
    orchestrator.start_custom_mode()
    _drag(orchestrator, 1, 1)

    await orchestrator.explore_custom()

    state = orchestrator.state
    assert state.error == CUSTOM_FAILED
    assert state.custom_mode
    assert state.custom_perspective.name == CUSTOM_PERSPECTIVE_PLACEHOLDER_NAME
    assert len(seeded_store.get(METAPHOR).analysis.mapping_sets) == len(analysis.mapping_sets)
    assert gateway.count("explore") == 0


async def test_start_custom_mode_stops_exploration(orchestrator, gateway, seeded_store):
    gateway.entered["Economy"] = asyncio.Event()
    gateway.gates["Economy"] = asyncio.Event()

    task = asyncio.create_task(orchestrator.select_mapping(0))
    await asyncio.wait_for(gateway.entered["Economy"].wait(), timeout=5)
    orchestrator.start_custom_mode()
    gateway.gates["Economy"].set()
    await _settle(task)

    state = orchestrator.state
    assert state.custom_mode
    assert state.consequences == {}
    assert LoadingKind.CONSEQUENCES not in state.loading
    assert seeded_store.latest_consequence(METAPHOR, 0) is None


# --- Comparison ---------------------------------------------------------------

async def _select_for_comparison(orchestrator, *indices: int) -> None:
    orchestrator.toggle_comparison_mode()
    for index in indices:
        await orchestrator.select_mapping(index)


async def test_compare_requires_two_perspectives(orchestrator, gateway):
    await _select_for_comparison(orchestrator, 0)
    await orchestrator.compare()
    assert gateway.count("compare") == 0
    assert orchestrator.state.comparison_result is None


async def test_compare_persists_under_sorted_key(orchestrator, gateway, seeded_store):
    await _select_for_comparison(orchestrator, 2, 0)

    await orchestrator.compare()

    state = orchestrator.state
    assert state.comparison_result == "Comparison of Waste vs Economy"
    saved = seeded_store.find_comparison(METAPHOR, [0, 2])
    assert saved.perspective_indices == [0, 2]
    assert saved.ai_summary == state.comparison_result
    assert saved.user_notes == ""
    assert state.loading == set()


async def test_compare_prefetches_missing_consequences(orchestrator, gateway, seeded_store):
    orchestrator.toggle_comparison_mode()
    orchestrator.state.selected_indices = [1, 3]

    await orchestrator.compare()

    assert set(orchestrator.state.consequences) == {1, 3}
    assert seeded_store.latest_consequence(METAPHOR, 3) == "Consequences of Investment"
    assert gateway.count("compare") == 1


async def test_failed_prefetch_names_the_perspective(orchestrator, gateway):
    gateway.fail.add("explore:Investment")
    orchestrator.toggle_comparison_mode()
    orchestrator.state.selected_indices = [0, 3]

    await orchestrator.compare()

    assert orchestrator.state.error == 'Failed to load perspective "Investment" for comparison.'
    assert gateway.count("compare") == 0
    assert orchestrator.state.loading == set()


async def test_failed_comparison_surfaces_message(orchestrator, gateway, seeded_store):
    await _select_for_comparison(orchestrator, 0, 1)
    gateway.fail.add("compare")

    await orchestrator.compare()

    assert orchestrator.state.error == COMPARISON_FAILED
    assert seeded_store.find_comparison(METAPHOR, [0, 1]) is None


async def test_saved_comparison_shown_on_reselection(orchestrator, gateway, seeded_store):
    await _select_for_comparison(orchestrator, 0, 2)
    await orchestrator.compare()
    await orchestrator.update_comparison_notes("Waste feels moral")

    orchestrator.toggle_comparison_mode()
    orchestrator.toggle_comparison_mode()
    await orchestrator.select_mapping(2)
    await orchestrator.select_mapping(0)

    state = orchestrator.state
    assert state.comparison_result == "Comparison of Economy vs Waste"
    assert state.user_notes == "Waste feels moral"
    assert gateway.count("compare") == 1


async def test_notes_update_keeps_summary(orchestrator, seeded_store):
    await _select_for_comparison(orchestrator, 1, 0)
    await orchestrator.compare()

    await orchestrator.update_comparison_notes("my notes")

    saved = seeded_store.find_comparison(METAPHOR, [0, 1])
    assert saved.user_notes == "my notes"
    assert saved.ai_summary == "Comparison of Budget vs Economy"
    assert len(seeded_store.get(METAPHOR).comparisons) == 1


async def test_notes_without_comparison_are_not_persisted(orchestrator, seeded_store):
    writes = seeded_store.repository.writes
    await orchestrator.update_comparison_notes("draft")
    assert orchestrator.state.user_notes == "draft"
    assert seeded_store.repository.writes == writes
