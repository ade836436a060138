"""Workspace State — per-client exploration session, pure dataclass, no IO.

Invariants:
    - Exactly one error string at a time; begin() clears it, cancel_all() clears it
    - A flow clears its loading flag only while its token is still the lane's live one
      (a superseded or cancelled flow never touches a newer flow's indicators)
    - selected_indices holds at most MAX_COMPARED_PERSPECTIVES entries in comparison mode
      and at most one otherwise
    - consequences maps mapping_set_index -> latest text shown to the client

Design Decisions:
    - One WorkspaceState per client instead of module-level globals
      (ADR: independent sessions and parallel tests)
    - Mutation methods here are synchronous and side-effect free beyond self; all
      awaiting happens in services/ (ADR: functional core, imperative shell)
"""

from dataclasses import dataclass, field

from metaphornik.core.analysis_types import (
    AlternativeFrame,
    IdentifiedMetaphor,
    MappingSet,
    MetaphorAnalysis,
)
from metaphornik.core.cancellation import CancellationScope, CancellationToken
from metaphornik.core.domain_types import (
    CUSTOM_PERSPECTIVE_PLACEHOLDER_DESCRIPTION,
    CUSTOM_PERSPECTIVE_PLACEHOLDER_NAME,
    MAX_COMPARED_PERSPECTIVES,
    ExplorationStatus,
    LoadingKind,
    OperationLane,
)


@dataclass
class WorkspaceState:
    """Everything one client sees while exploring a metaphor."""

    workspace_id: str = ""

    # === Current metaphor ===
    metaphor: str = ""
    analysis: MetaphorAnalysis | None = None

    # === Perspective selection ===
    selected_indices: list[int] = field(default_factory=list)
    consequences: dict[int, str] = field(default_factory=dict)
    pending_indices: set[int] = field(default_factory=set)

    # === Comparison ===
    comparison_mode: bool = False
    comparison_result: str | None = None
    user_notes: str = ""

    # === Custom perspective editing ===
    custom_mode: bool = False
    custom_perspective: MappingSet | None = None

    # === Discovery (generate / identify / reframe) ===
    generated_metaphors: list[str] = field(default_factory=list)
    identified_metaphors: list[IdentifiedMetaphor] = field(default_factory=list)
    alternative_frames: list[AlternativeFrame] = field(default_factory=list)
    original_statement: str = ""

    # === Flow bookkeeping ===
    loading: set[LoadingKind] = field(default_factory=set)
    error: str | None = None
    cancellation: CancellationScope = field(default_factory=CancellationScope)

    # --- Computed properties ---------------------------------------------------

    @property
    def status(self) -> ExplorationStatus:
        if LoadingKind.CONSEQUENCES in self.loading or LoadingKind.COMPARISON in self.loading:
            return ExplorationStatus.FETCHING
        if self.error:
            return ExplorationStatus.ERROR
        return ExplorationStatus.IDLE

    # --- Flow lifecycle --------------------------------------------------------

    def begin(self, lane: OperationLane, kind: LoadingKind) -> CancellationToken:
        """Start a flow: supersede the lane, raise the indicator, clear the error."""
        token = self.cancellation.begin(lane)
        self.loading.add(kind)
        self.error = None
        return token

    def finish(
        self, lane: OperationLane, token: CancellationToken, kind: LoadingKind,
    ) -> None:
        """End a flow. Indicators belong to the live flow only."""
        if self.cancellation.is_current(lane, token):
            self.loading.discard(kind)
            if kind is LoadingKind.CONSEQUENCES:
                self.pending_indices.clear()

    def fail(self, token: CancellationToken, message: str) -> None:
        """Surface one error message unless the flow was cancelled."""
        if not token.cancelled:
            self.error = message

    def stop(self, lane: OperationLane, *kinds: LoadingKind) -> None:
        """Cancel one lane and drop its indicators."""
        self.cancellation.cancel(lane)
        for kind in kinds:
            self.loading.discard(kind)
        if LoadingKind.CONSEQUENCES in kinds:
            self.pending_indices.clear()

    def cancel_all(self) -> None:
        """Global stop — cancel every flow, clear indicators and the error."""
        self.cancellation.cancel_all()
        self.loading.clear()
        self.pending_indices.clear()
        self.error = None

    # --- Selection & modes -----------------------------------------------------

    def reset(self, keep_metaphor: bool = False) -> None:
        """Forget the current analysis and every derived view."""
        self.analysis = None
        self.selected_indices = []
        self.consequences = {}
        self.comparison_result = None
        self.user_notes = ""
        self.custom_mode = False
        self.comparison_mode = False
        self.custom_perspective = None
        self.generated_metaphors = []
        self.identified_metaphors = []
        self.alternative_frames = []
        self.original_statement = ""
        if not keep_metaphor:
            self.metaphor = ""

    def select(self, index: int) -> None:
        """Single mode replaces the selection; comparison mode toggles (max 3)."""
        self.custom_mode = False
        self.custom_perspective = None
        self.comparison_result = None
        self.user_notes = ""

        if not self.comparison_mode:
            self.selected_indices = [index]
            return
        if index in self.selected_indices:
            self.selected_indices = [i for i in self.selected_indices if i != index]
        elif len(self.selected_indices) < MAX_COMPARED_PERSPECTIVES:
            self.selected_indices = [*self.selected_indices, index]

    def toggle_comparison_mode(self) -> None:
        self.comparison_mode = not self.comparison_mode
        self.selected_indices = []
        self.comparison_result = None
        self.user_notes = ""

    def start_custom_mode(self) -> None:
        """Open an empty, placeholder-named custom perspective."""
        self.custom_mode = True
        self.comparison_mode = False
        self.selected_indices = []
        self.consequences = {}
        self.comparison_result = None
        self.user_notes = ""
        self.custom_perspective = MappingSet(
            name=CUSTOM_PERSPECTIVE_PLACEHOLDER_NAME,
            description=CUSTOM_PERSPECTIVE_PLACEHOLDER_DESCRIPTION,
            mappings=[],
            custom=True,
        )
