"""Root conftest — shared test configuration and a sample metaphor analysis.

Design Decisions:
    - Fake API keys set before any metaphornik import reads settings
    - One realistic analysis ("Time is money") reused across core and service tests:
      4 facts per side, 4 perspectives with overlapping fact usage
"""

import os

import pytest

# Ensure tests don't accidentally use real API keys
os.environ.setdefault("ANTHROPIC_API_KEY", "sk-ant-test-fake-key")
os.environ.setdefault("GEMINI_API_KEY", "gemini-test-fake-key")
os.environ.setdefault(
    "DATABASE_URL",
    "sqlite+aiosqlite:///test.db",
)

from metaphornik.core.analysis_types import (  # noqa: E402
    Domain,
    Fact,
    Mapping,
    MappingSet,
    MetaphorAnalysis,
)


def _domain(side: str, name: str, texts: list[str]) -> Domain:
    return Domain(
        name=name,
        facts=[Fact(id=f"{side}-{i}", text=t) for i, t in enumerate(texts)],
    )


def _mapping_set(name: str, pairs: list[tuple[int, int]]) -> MappingSet:
    return MappingSet(
        name=name,
        description=f"{name} lens",
        mappings=[
            Mapping(source_fact_index=s, target_fact_index=t) for s, t in pairs
        ],
    )


@pytest.fixture
def analysis() -> MetaphorAnalysis:
    """'Time is money' with four perspectives."""
    return MetaphorAnalysis(
        source_domain=_domain("source", "Money", [
            "Money is spent", "Money is saved", "Money is budgeted", "Money is wasted",
        ]),
        target_domain=_domain("target", "Time", [
            "Hours pass", "Time is scheduled", "Time is finite", "Time sits idle",
        ]),
        mapping_sets=[
            _mapping_set("Economy", [(0, 0), (1, 1)]),
            _mapping_set("Budget", [(2, 2)]),
            _mapping_set("Waste", [(3, 3), (0, 2)]),
            _mapping_set("Investment", [(1, 0)]),
        ],
    )
