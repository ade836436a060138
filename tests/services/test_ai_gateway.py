"""AIGateway tests — prompt-to-result mapping over a mocked Anthropic client.

Tests cover:
    - analyze_metaphor: forced tool call, fact id assignment, index validation
    - Missing / malformed tool results become one-sentence GatewayErrors
    - explore_consequences short-circuits when no mapping resolves
    - Text tasks reject empty responses
    - Summaries use the fast model; generated facts drop blanks
    - Images delegate to the image client with the edit base
"""

import pytest

from metaphornik.core.analysis_types import ComparedPerspective, Mapping, MappingSet
from metaphornik.core.errors import GatewayError
from metaphornik.services.ai_gateway import AIGateway
from metaphornik.services.define_gateway_tools import (
    ANALYZE_METAPHOR_TOOL,
    GENERATE_FACTS_TOOL,
    GENERATE_METAPHORS_TOOL,
    IDENTIFY_METAPHORS_TOOL,
    SUGGEST_FRAMES_TOOL,
    SUMMARIZE_PERSPECTIVE_TOOL,
)
from metaphornik.services.gateway_prompts import NO_MAPPINGS_TEXT

from mock_anthropic import (
    MockAnthropicClient,
    MockImageClient,
    text_response,
    tool_response,
)

METAPHOR = "Time is money"

ANALYSIS_INPUT = {
    "source_domain": {"name": "Money", "facts": ["is spent", "is saved"]},
    "target_domain": {"name": "Time", "facts": ["passes", "is scheduled", "runs out"]},
    "mapping_sets": [
        {
            "name": "Economy",
            "description": "Time as a currency.",
            "icon": "coins",
            "mappings": [
                {"source_fact_index": 0, "target_fact_index": 0},
                {"source_fact_index": 1, "target_fact_index": 2},
            ],
        },
    ],
}


def _gateway(responses, image_client=None):
    anthropic = MockAnthropicClient(responses)
    gateway = AIGateway(
        anthropic, image_client or MockImageClient(),
        analysis_model="analysis-model", fast_model="fast-model", max_tokens=1024,
    )
    return gateway, anthropic


# --- Structured results -------------------------------------------------------

async def test_analyze_metaphor_builds_analysis():
    gateway, anthropic = _gateway([tool_response(ANALYZE_METAPHOR_TOOL["name"], ANALYSIS_INPUT)])

    analysis = await gateway.analyze_metaphor(METAPHOR)

    assert [f.id for f in analysis.source_domain.facts] == ["source-0", "source-1"]
    assert [f.id for f in analysis.target_domain.facts] == [
        "target-0", "target-1", "target-2",
    ]
    assert analysis.mapping_sets[0].icon == "coins"
    assert analysis.mapping_sets[0].mappings[1] == Mapping(
        source_fact_index=1, target_fact_index=2,
    )
    call = anthropic.calls[0]
    assert call["tools"] == [ANALYZE_METAPHOR_TOOL]
    assert call["tool_choice"] == {"type": "tool", "name": "record_metaphor_analysis"}
    assert call["model"] == "analysis-model"
    assert METAPHOR in call["messages"][0]["content"]


async def test_analyze_rejects_out_of_range_mapping():
    bad = {
        **ANALYSIS_INPUT,
        "mapping_sets": [{
            "name": "Broken", "description": "",
            "mappings": [{"source_fact_index": 5, "target_fact_index": 0}],
        }],
    }
    gateway, _ = _gateway([tool_response(ANALYZE_METAPHOR_TOOL["name"], bad)])
    with pytest.raises(GatewayError) as exc:
        await gateway.analyze_metaphor(METAPHOR)
    assert exc.value.api_error_type == "schema_violation"


async def test_missing_tool_use_is_an_error():
    gateway, _ = _gateway([text_response("I'd rather chat.")])
    with pytest.raises(GatewayError) as exc:
        await gateway.analyze_metaphor(METAPHOR)
    assert exc.value.api_error_type == "missing_tool_use"
    assert exc.value.message == "The model returned no structured result."


async def test_malformed_tool_input_is_an_error():
    gateway, _ = _gateway([tool_response(ANALYZE_METAPHOR_TOOL["name"], {"source_domain": "Money"})])
    with pytest.raises(GatewayError) as exc:
        await gateway.analyze_metaphor(METAPHOR)
    assert exc.value.api_error_type == "schema_violation"


async def test_generate_more_facts_drops_blanks():
    gateway, anthropic = _gateway([
        tool_response(GENERATE_FACTS_TOOL["name"], {"facts": ["is lent", "  ", "compounds"]}),
    ])
    facts = await gateway.generate_more_facts("Money", ["is spent"])
    assert facts == ["is lent", "compounds"]
    assert anthropic.calls[0]["tools"] == [GENERATE_FACTS_TOOL]
    assert "is spent" in anthropic.calls[0]["messages"][0]["content"]


async def test_summary_runs_on_fast_model(analysis):
    gateway, anthropic = _gateway([
        tool_response(SUMMARIZE_PERSPECTIVE_TOOL["name"], {"name": "Lending", "description": "Borrowed time."}),
    ])
    summary = await gateway.summarize_custom_perspective(
        analysis.source_domain, analysis.target_domain,
        [Mapping(source_fact_index=2, target_fact_index=3)],
    )
    assert summary.name == "Lending"
    assert anthropic.calls[0]["model"] == "fast-model"
    assert anthropic.calls[0]["tools"] == [SUMMARIZE_PERSPECTIVE_TOOL]


async def test_summary_with_empty_name_is_rejected(analysis):
    gateway, _ = _gateway([
        tool_response(SUMMARIZE_PERSPECTIVE_TOOL["name"], {"name": "", "description": "x"}),
    ])
    with pytest.raises(GatewayError):
        await gateway.summarize_custom_perspective(
            analysis.source_domain, analysis.target_domain,
            [Mapping(source_fact_index=0, target_fact_index=0)],
        )


async def test_identify_and_reframe():
    gateway, anthropic = _gateway([
        tool_response(IDENTIFY_METAPHORS_TOOL["name"], {
            "metaphors": [{"metaphor": "Argument is war", "explanation": "Attack positions."}],
        }),
        tool_response(SUGGEST_FRAMES_TOOL["name"], {
            "frames": [{"proposed_metaphor": "Argument is dance", "reasoning": "Partners."}],
        }),
    ])
    statement = "He attacked every weak point in my argument."

    identified = await gateway.identify_metaphors(statement)
    frames = await gateway.suggest_alternative_frames(statement, identified)

    assert identified[0].metaphor == "Argument is war"
    assert frames[0].proposed_metaphor == "Argument is dance"
    assert anthropic.calls[0]["tools"] == [IDENTIFY_METAPHORS_TOOL]
    assert anthropic.calls[1]["tools"] == [SUGGEST_FRAMES_TOOL]
    assert "Argument is war" in anthropic.calls[1]["messages"][0]["content"]


async def test_generate_metaphors():
    gateway, _ = _gateway([
        tool_response(GENERATE_METAPHORS_TOOL["name"], {"metaphors": ["Ideas are food"]}),
    ])
    assert await gateway.generate_metaphors("ideas") == ["Ideas are food"]


# --- Narrative results --------------------------------------------------------

async def test_explore_consequences_returns_text(analysis):
    gateway, anthropic = _gateway([text_response("  Time becomes a budget line.  ")])
    text = await gateway.explore_consequences(
        METAPHOR, analysis.mapping_sets[0], analysis.source_domain, analysis.target_domain,
    )
    assert text == "Time becomes a budget line."
    prompt = anthropic.calls[0]["messages"][0]["content"]
    assert "Money is spent" in prompt
    assert "Hours pass" in prompt
    assert "tools" not in anthropic.calls[0]


async def test_explore_without_resolvable_mappings_skips_model(analysis):
    gateway, anthropic = _gateway([])
    empty = MappingSet(
        name="Dangling", description="",
        mappings=[Mapping(source_fact_index=40, target_fact_index=41)],
    )
    text = await gateway.explore_consequences(
        METAPHOR, empty, analysis.source_domain, analysis.target_domain,
    )
    assert text == NO_MAPPINGS_TEXT
    assert anthropic.calls == []


async def test_empty_text_is_an_error(analysis):
    gateway, _ = _gateway([text_response("   ")])
    with pytest.raises(GatewayError) as exc:
        await gateway.generate_document(
            METAPHOR, analysis.mapping_sets[0], "consequences", "Essay",
        )
    assert exc.value.api_error_type == "empty_text"


async def test_compare_perspectives_includes_every_participant(analysis):
    gateway, anthropic = _gateway([text_response("Economy is about flow; Waste is moral.")])
    perspectives = [
        ComparedPerspective(mapping_set=analysis.mapping_sets[i], consequences=f"text {i}")
        for i in (0, 2)
    ]
    summary = await gateway.compare_perspectives(METAPHOR, perspectives)
    assert summary.startswith("Economy")
    prompt = anthropic.calls[0]["messages"][0]["content"]
    assert "Economy" in prompt and "Waste" in prompt
    assert "text 0" in prompt and "text 2" in prompt


async def test_transport_errors_propagate_as_gateway_errors(analysis):
    failure = GatewayError("The model is unavailable. Please try again.", "connection_error")
    gateway, _ = _gateway([failure])
    with pytest.raises(GatewayError) as exc:
        await gateway.compare_perspectives(METAPHOR, [])
    assert exc.value is failure


# --- Images -------------------------------------------------------------------

async def test_image_delegates_with_edit_base():
    images = MockImageClient(("Tk VX", "image/webp"))
    gateway, _ = _gateway([], image_client=images)
    result = await gateway.generate_or_edit_image("add rain", ("T0xE", "image/png"))
    assert result == ("Tk VX", "image/webp")
    assert images.calls == [("add rain", ("T0xE", "image/png"))]
