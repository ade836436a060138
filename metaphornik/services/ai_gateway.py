"""AI Gateway — request/response boundary to the generative models.

Invariants:
    - Every operation returns a fully validated result or raises GatewayError;
      no partial structured result ever escapes
    - Structured results come from a forced tool call, validated with pydantic
    - analyze_metaphor assigns fact ids "source-<i>" / "target-<i>" and rejects
      mapping indices outside the returned fact lists
    - explore_consequences with no resolvable mappings returns NO_MAPPINGS_TEXT
      without calling the model
    - Empty text responses are failures, not results

Design Decisions:
    - Text + structured tasks on Anthropic (ResilientAnthropicClient owns retries);
      images on Gemini (GeminiImageClient) (ADR: one vendor per modality)
    - Summaries run on the fast model: they only name a perspective
    - Error detail goes to the log; GatewayError.message stays one readable sentence
"""

import logging

from pydantic import BaseModel, Field, ValidationError

from metaphornik.core.analysis_types import (
    AlternativeFrame,
    ComparedPerspective,
    Domain,
    Fact,
    IdentifiedMetaphor,
    Mapping,
    MappingSet,
    MetaphorAnalysis,
    PerspectiveSummary,
)
from metaphornik.core.errors import ErrorContext, GatewayError
from metaphornik.infrastructure.anthropic_client import ResilientAnthropicClient
from metaphornik.infrastructure.image_client import GeminiImageClient
from metaphornik.services import gateway_prompts as prompts
from metaphornik.services.define_gateway_tools import (
    ANALYZE_METAPHOR_TOOL,
    GENERATE_FACTS_TOOL,
    GENERATE_METAPHORS_TOOL,
    IDENTIFY_METAPHORS_TOOL,
    SUGGEST_FRAMES_TOOL,
    SUMMARIZE_PERSPECTIVE_TOOL,
    forced_choice,
)

logger = logging.getLogger(__name__)


# ─── Tool input shapes ──────────────────────────────────────────

class _DomainDraft(BaseModel):
    name: str
    facts: list[str]


class _MappingSetDraft(BaseModel):
    name: str
    description: str
    icon: str | None = None
    mappings: list[Mapping] = Field(default_factory=list)


class _AnalysisDraft(BaseModel):
    source_domain: _DomainDraft
    target_domain: _DomainDraft
    mapping_sets: list[_MappingSetDraft]


class _FactsDraft(BaseModel):
    facts: list[str]


class _MetaphorsDraft(BaseModel):
    metaphors: list[str]


class _IdentifiedDraft(BaseModel):
    metaphors: list[IdentifiedMetaphor]


class _FramesDraft(BaseModel):
    frames: list[AlternativeFrame]


class AIGateway:
    """All model calls of the application. Stateless apart from its clients."""

    def __init__(
        self,
        anthropic_client: ResilientAnthropicClient,
        image_client: GeminiImageClient,
        analysis_model: str,
        fast_model: str,
        max_tokens: int = 8192,
    ):
        self.anthropic = anthropic_client
        self.images = image_client
        self.analysis_model = analysis_model
        self.fast_model = fast_model
        self.max_tokens = max_tokens

    # --- Analysis ----------------------------------------------------------

    async def analyze_metaphor(self, metaphor: str) -> MetaphorAnalysis:
        ctx = ErrorContext(metaphor=metaphor, task="analyze_metaphor")
        draft = await self._structured(
            prompts.build_analysis_prompt(metaphor),
            ANALYZE_METAPHOR_TOOL, _AnalysisDraft, ctx,
        )
        return _to_analysis(draft, ctx)

    async def explore_consequences(
        self, metaphor: str, mapping_set: MappingSet, source: Domain, target: Domain,
    ) -> str:
        details = prompts.mapping_lines(mapping_set.mappings, source, target)
        if not details:
            return prompts.NO_MAPPINGS_TEXT
        ctx = ErrorContext(metaphor=metaphor, task="explore_consequences")
        return await self._text(
            prompts.build_consequences_prompt(metaphor, mapping_set, details, target),
            ctx,
        )

    async def generate_more_facts(
        self, domain_name: str, existing: list[str],
    ) -> list[str]:
        ctx = ErrorContext(task="generate_more_facts")
        draft = await self._structured(
            prompts.build_more_facts_prompt(domain_name, existing),
            GENERATE_FACTS_TOOL, _FactsDraft, ctx,
        )
        return [text for text in draft.facts if text.strip()]

    async def summarize_custom_perspective(
        self, source: Domain, target: Domain, mappings: list[Mapping],
    ) -> PerspectiveSummary:
        ctx = ErrorContext(task="summarize_custom_perspective")
        details = prompts.mapping_lines(mappings, source, target, with_domains=False)
        return await self._structured(
            prompts.build_summary_prompt(source, target, details),
            SUMMARIZE_PERSPECTIVE_TOOL, PerspectiveSummary, ctx,
            model=self.fast_model,
        )

    # --- Narrative ---------------------------------------------------------

    async def compare_perspectives(
        self, metaphor: str, perspectives: list[ComparedPerspective],
    ) -> str:
        ctx = ErrorContext(metaphor=metaphor, task="compare_perspectives")
        return await self._text(
            prompts.build_comparison_prompt(metaphor, perspectives), ctx,
        )

    async def generate_document(
        self, metaphor: str, mapping_set: MappingSet, consequences: str,
        document_type: str,
    ) -> str:
        ctx = ErrorContext(metaphor=metaphor, task="generate_document")
        return await self._text(
            prompts.build_document_prompt(
                metaphor, mapping_set, consequences, document_type,
            ),
            ctx,
        )

    async def generate_or_edit_image(
        self, prompt: str, base_image: tuple[str, str] | None = None,
    ) -> tuple[str, str]:
        ctx = ErrorContext(task="generate_or_edit_image")
        return await self.images.generate(prompt, base_image, context=ctx)

    # --- Discovery ---------------------------------------------------------

    async def generate_metaphors(self, topic: str) -> list[str]:
        ctx = ErrorContext(task="generate_metaphors")
        draft = await self._structured(
            prompts.build_metaphors_prompt(topic),
            GENERATE_METAPHORS_TOOL, _MetaphorsDraft, ctx,
        )
        return draft.metaphors

    async def identify_metaphors(self, statement: str) -> list[IdentifiedMetaphor]:
        ctx = ErrorContext(task="identify_metaphors")
        draft = await self._structured(
            prompts.build_identify_prompt(statement),
            IDENTIFY_METAPHORS_TOOL, _IdentifiedDraft, ctx,
        )
        return draft.metaphors

    async def suggest_alternative_frames(
        self, statement: str, metaphors: list[IdentifiedMetaphor],
    ) -> list[AlternativeFrame]:
        ctx = ErrorContext(task="suggest_alternative_frames")
        draft = await self._structured(
            prompts.build_reframe_prompt(statement, metaphors),
            SUGGEST_FRAMES_TOOL, _FramesDraft, ctx,
        )
        return draft.frames

    # --- Transport helpers -------------------------------------------------

    async def _structured(
        self, prompt: str, tool: dict, shape: type[BaseModel], ctx: ErrorContext,
        model: str | None = None,
    ):
        response = await self.anthropic.create_message(
            model=model or self.analysis_model,
            max_tokens=self.max_tokens,
            system=prompts.SYSTEM,
            messages=[{"role": "user", "content": prompt}],
            tools=[tool],
            tool_choice=forced_choice(tool),
            context=ctx,
        )
        block = next(
            (
                b for b in response.content
                if getattr(b, "type", None) == "tool_use" and b.name == tool["name"]
            ),
            None,
        )
        if block is None:
            logger.warning(
                "No tool_use block in response", extra={"task": ctx.task},
            )
            raise GatewayError(
                "The model returned no structured result.", "missing_tool_use",
                context=ctx,
            )
        try:
            return shape.model_validate(block.input)
        except ValidationError as e:
            logger.warning(
                f"Tool input failed validation: {e.error_count()} error(s)",
                extra={"task": ctx.task},
            )
            raise GatewayError(
                "The model returned a malformed result.", "schema_violation",
                context=ctx,
            ) from e

    async def _text(self, prompt: str, ctx: ErrorContext) -> str:
        response = await self.anthropic.create_message(
            model=self.analysis_model,
            max_tokens=self.max_tokens,
            system=prompts.SYSTEM,
            messages=[{"role": "user", "content": prompt}],
            context=ctx,
        )
        text = "".join(
            b.text for b in response.content if getattr(b, "type", None) == "text"
        ).strip()
        if not text:
            raise GatewayError(
                "The model returned an empty response.", "empty_text", context=ctx,
            )
        return text


def _to_analysis(draft: _AnalysisDraft, ctx: ErrorContext) -> MetaphorAnalysis:
    """Assign fact ids and check every mapping index against the fact lists."""
    source_count = len(draft.source_domain.facts)
    target_count = len(draft.target_domain.facts)
    for mapping_set in draft.mapping_sets:
        for m in mapping_set.mappings:
            if not (0 <= m.source_fact_index < source_count
                    and 0 <= m.target_fact_index < target_count):
                logger.warning(
                    f"Mapping index out of range in '{mapping_set.name}'",
                    extra={"task": ctx.task},
                )
                raise GatewayError(
                    "The model returned a malformed result.", "schema_violation",
                    context=ctx,
                )
    return MetaphorAnalysis(
        source_domain=Domain(
            name=draft.source_domain.name,
            facts=[
                Fact(id=f"source-{i}", text=text)
                for i, text in enumerate(draft.source_domain.facts)
            ],
        ),
        target_domain=Domain(
            name=draft.target_domain.name,
            facts=[
                Fact(id=f"target-{i}", text=text)
                for i, text in enumerate(draft.target_domain.facts)
            ],
        ),
        mapping_sets=[
            MappingSet(
                name=s.name, description=s.description, icon=s.icon,
                mappings=s.mappings,
            )
            for s in draft.mapping_sets
        ],
    )
