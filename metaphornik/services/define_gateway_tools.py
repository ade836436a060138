"""Define Gateway Tools — Anthropic tool schemas for structured model results.

Invariants:
    - All schemas follow Anthropic tool_use format
    - Every structured gateway call forces exactly one of these tools (tool_choice)
    - Tool input is an object; list results are wrapped in a single array property
    - Property names are snake_case and match the pydantic models that validate them

Design Decisions:
    - Forced tool call over "reply with JSON": the SDK hands back parsed input,
      no fence-stripping or regex fallbacks (ADR: structured output contract)
    - Facts come back as plain strings; ids are assigned server-side
"""

_DOMAIN_SCHEMA = {
    "type": "object",
    "properties": {
        "name": {
            "type": "string",
            "description": "Name of the domain (e.g., 'Interns', 'AI').",
        },
        "facts": {
            "type": "array",
            "items": {"type": "string"},
            "description": "5-7 distinct, concise attributes or concepts of the domain.",
        },
    },
    "required": ["name", "facts"],
}

ANALYZE_METAPHOR_TOOL = {
    "name": "record_metaphor_analysis",
    "description": (
        "Record the decomposition of a conceptual metaphor into a source domain, "
        "a target domain, and 3-4 partial perspectives (mapping sets) that link "
        "source facts to target facts by array index."
    ),
    "input_schema": {
        "type": "object",
        "properties": {
            "source_domain": _DOMAIN_SCHEMA,
            "target_domain": _DOMAIN_SCHEMA,
            "mapping_sets": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "name": {
                            "type": "string",
                            "description": "Short name of the perspective (e.g., 'Skills Mapping').",
                        },
                        "description": {
                            "type": "string",
                            "description": "One sentence on what this perspective focuses on.",
                        },
                        "icon": {
                            "type": "string",
                            "description": (
                                "A single Google Material Symbol name for the theme "
                                "(e.g., 'build', 'groups', 'psychology')."
                            ),
                        },
                        "mappings": {
                            "type": "array",
                            "items": {
                                "type": "object",
                                "properties": {
                                    "source_fact_index": {
                                        "type": "integer",
                                        "description": "Index into source_domain.facts.",
                                    },
                                    "target_fact_index": {
                                        "type": "integer",
                                        "description": "Index into target_domain.facts.",
                                    },
                                },
                                "required": ["source_fact_index", "target_fact_index"],
                            },
                        },
                    },
                    "required": ["name", "description", "icon", "mappings"],
                },
            },
        },
        "required": ["source_domain", "target_domain", "mapping_sets"],
    },
}

GENERATE_FACTS_TOOL = {
    "name": "record_new_facts",
    "description": "Record 3-4 new attributes of a domain that are not already listed.",
    "input_schema": {
        "type": "object",
        "properties": {
            "facts": {"type": "array", "items": {"type": "string"}},
        },
        "required": ["facts"],
    },
}

SUMMARIZE_PERSPECTIVE_TOOL = {
    "name": "record_perspective_summary",
    "description": "Record a short creative name and a one-sentence description for a perspective.",
    "input_schema": {
        "type": "object",
        "properties": {
            "name": {"type": "string"},
            "description": {"type": "string"},
        },
        "required": ["name", "description"],
    },
}

GENERATE_METAPHORS_TOOL = {
    "name": "record_generated_metaphors",
    "description": "Record 5-7 generative metaphors for a topic, each phrased 'X is Y'.",
    "input_schema": {
        "type": "object",
        "properties": {
            "metaphors": {"type": "array", "items": {"type": "string"}},
        },
        "required": ["metaphors"],
    },
}

IDENTIFY_METAPHORS_TOOL = {
    "name": "record_identified_metaphors",
    "description": (
        "Record every conceptual metaphor found in a statement. "
        "Record an empty list if there are none."
    ),
    "input_schema": {
        "type": "object",
        "properties": {
            "metaphors": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "metaphor": {
                            "type": "string",
                            "description": "The metaphor in 'CONCEPT A IS CONCEPT B' form.",
                        },
                        "explanation": {
                            "type": "string",
                            "description": "How the metaphor works in the statement.",
                        },
                    },
                    "required": ["metaphor", "explanation"],
                },
            },
        },
        "required": ["metaphors"],
    },
}

SUGGEST_FRAMES_TOOL = {
    "name": "record_alternative_frames",
    "description": "Record 3-4 alternative conceptual metaphors that reframe a statement.",
    "input_schema": {
        "type": "object",
        "properties": {
            "frames": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "proposed_metaphor": {
                            "type": "string",
                            "description": "The new metaphor, ideally 'A is B' or 'A as B'.",
                        },
                        "reasoning": {
                            "type": "string",
                            "description": (
                                "Why the frame is useful, what it highlights, "
                                "and how it differs from the original."
                            ),
                        },
                    },
                    "required": ["proposed_metaphor", "reasoning"],
                },
            },
        },
        "required": ["frames"],
    },
}


def forced_choice(tool: dict) -> dict:
    """tool_choice value that makes the model call `tool`."""
    return {"type": "tool", "name": tool["name"]}
