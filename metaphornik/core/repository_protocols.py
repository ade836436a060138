"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - All IO operations accessed through Protocol types
    - Implementations provided by shell via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy
    - Whole-map contract (load_all / replace_all): the store is persisted in its
      entirety on every mutation, so there is no per-record write path to get wrong
    - MetaphorGateway lets workspace flows run against a scripted fake in tests
"""

from typing import Protocol

from metaphornik.core.analysis_types import (
    AlternativeFrame,
    ComparedPerspective,
    Domain,
    IdentifiedMetaphor,
    Mapping,
    MappingSet,
    MetaphorAnalysis,
    PerspectiveSummary,
    StoreState,
)


class StoreRepository(Protocol):
    """Contract for durable analysis-store persistence — implemented by shell."""
    async def load_all(self) -> StoreState: ...
    async def replace_all(self, state: StoreState) -> None: ...


class MetaphorGateway(Protocol):
    """Contract for the generative-model boundary — implemented by AIGateway."""

    async def analyze_metaphor(self, metaphor: str) -> MetaphorAnalysis: ...

    async def explore_consequences(
        self, metaphor: str, mapping_set: MappingSet, source: Domain, target: Domain,
    ) -> str: ...

    async def generate_more_facts(
        self, domain_name: str, existing: list[str],
    ) -> list[str]: ...

    async def summarize_custom_perspective(
        self, source: Domain, target: Domain, mappings: list[Mapping],
    ) -> PerspectiveSummary: ...

    async def compare_perspectives(
        self, metaphor: str, perspectives: list[ComparedPerspective],
    ) -> str: ...

    async def generate_document(
        self, metaphor: str, mapping_set: MappingSet, consequences: str,
        document_type: str,
    ) -> str: ...

    async def generate_or_edit_image(
        self, prompt: str, base_image: tuple[str, str] | None = None,
    ) -> tuple[str, str]: ...

    async def generate_metaphors(self, topic: str) -> list[str]: ...

    async def identify_metaphors(self, statement: str) -> list[IdentifiedMetaphor]: ...

    async def suggest_alternative_frames(
        self, statement: str, metaphors: list[IdentifiedMetaphor],
    ) -> list[AlternativeFrame]: ...
