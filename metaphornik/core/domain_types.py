"""Domain Types — enums and constants shared across the exploration workflow.

Invariants:
    - Side values match the fact id prefixes ("source-0", "target-3")
    - All valid states encoded as Enums — no raw string matching
    - MAX_COMPARED_PERSPECTIVES bounds comparison-mode selection

Design Decisions:
    - str Enums: serialize to JSON without custom encoders (ADR: workspace view is JSON)
    - Placeholder name is the marker for "never named by the user" (ADR: matches
      persisted exports, no extra flag on MappingSet)
"""

from enum import Enum


# ─── Constants ───────────────────────────────────────────────────

CUSTOM_PERSPECTIVE_PLACEHOLDER_NAME = "My Custom Perspective"
CUSTOM_PERSPECTIVE_PLACEHOLDER_DESCRIPTION = "A set of mappings I created."

MIN_COMPARED_PERSPECTIVES = 2
MAX_COMPARED_PERSPECTIVES = 3


# ─── Enums ───────────────────────────────────────────────────────

class Side(str, Enum):
    """Which domain of a metaphor a fact belongs to."""
    SOURCE = "source"
    TARGET = "target"

    @property
    def domain_field(self) -> str:
        """Attribute name of this side's Domain on MetaphorAnalysis."""
        return "source_domain" if self is Side.SOURCE else "target_domain"


class LoadingKind(str, Enum):
    """Independent loading indicators shown by the client."""
    ANALYSIS = "analysis"
    METAPHORS = "metaphors"
    IDENTIFIER = "identifier"
    REFRAMING = "reframing"
    CONSEQUENCES = "consequences"
    COMPARISON = "comparison"
    DOCUMENT = "document"
    IMAGE = "image"
    FACTS = "facts"


class OperationLane(str, Enum):
    """Cancellation scopes — starting work in a lane supersedes the lane's previous work."""
    EXPLORATION = "exploration"
    DISCOVERY = "discovery"
    DOCUMENT = "document"
    IMAGE = "image"
    FACTS = "facts"


class ExplorationStatus(str, Enum):
    """Exploration session state machine: IDLE -> FETCHING -> IDLE | ERROR."""
    IDLE = "idle"
    FETCHING = "fetching"
    ERROR = "error"
