"""Service test fixtures — in-memory store, scripted gateway, FastAPI test client.

Invariants:
    - Every test gets a fresh AnalysisStore over an InMemoryStoreRepository
    - The store clock is a counter: timestamps are deterministic and increasing
    - FakeGateway records every call and can be scripted per perspective name

Design Decisions:
    - FakeGateway implements the MetaphorGateway protocol instead of patching
      AIGateway: flows are tested against the contract, not the transport
    - Gates (asyncio.Event per perspective name) hold a consequence call open so
      tests can cancel between two awaits deterministically
    - API client built with create_app(use_lifespan=False) and app.state filled by
      hand: no database, no model clients
"""

import asyncio
import itertools

import pytest
from httpx import ASGITransport, AsyncClient

from metaphornik.core.analysis_types import (
    AlternativeFrame,
    IdentifiedMetaphor,
    PerspectiveSummary,
)
from metaphornik.core.errors import GatewayError
from metaphornik.core.workspace_state import WorkspaceState
from metaphornik.main import create_app
from metaphornik.services.analysis_store import AnalysisStore
from metaphornik.services.perspective_orchestrator import PerspectiveOrchestrator
from metaphornik.services.store_repository import InMemoryStoreRepository
from metaphornik.services.workspace_registry import WorkspaceRegistry

METAPHOR = "Time is money"


class FakeGateway:
    """Scripted MetaphorGateway.

    - calls: list of (operation, detail) tuples in call order
    - fail: operation names (or "explore:<perspective name>") that raise GatewayError
    - gates: perspective name -> asyncio.Event awaited before answering
    - entered: perspective name -> asyncio.Event set when the call starts
    """

    def __init__(self, analysis=None):
        self.analysis = analysis
        self.calls: list[tuple[str, object]] = []
        self.fail: set[str] = set()
        self.gates: dict[str, asyncio.Event] = {}
        self.entered: dict[str, asyncio.Event] = {}
        self.summary = PerspectiveSummary(name="Lending", description="Borrowed time.")
        self.facts = ["Money compounds", "Money is lent"]
        self.metaphors = ["Ideas are food", "Ideas are plants"]
        self.identified = [
            IdentifiedMetaphor(metaphor="Argument is war", explanation="Winning a debate."),
        ]
        self.frames = [
            AlternativeFrame(proposed_metaphor="Argument is dance", reasoning="Cooperation."),
        ]
        self.image = ("SU1BR0U=", "image/png")

    def _check(self, operation: str) -> None:
        if operation in self.fail:
            raise GatewayError("The model is unavailable. Please try again.", "connection_error")

    def count(self, operation: str) -> int:
        return sum(1 for op, _ in self.calls if op == operation)

    async def analyze_metaphor(self, metaphor):
        self.calls.append(("analyze", metaphor))
        self._check("analyze")
        return self.analysis

    async def explore_consequences(self, metaphor, mapping_set, source, target):
        name = mapping_set.name
        self.calls.append(("explore", name))
        if name in self.entered:
            self.entered[name].set()
        if name in self.gates:
            await self.gates[name].wait()
        self._check("explore")
        self._check(f"explore:{name}")
        return f"Consequences of {name}"

    async def generate_more_facts(self, domain_name, existing):
        self.calls.append(("facts", domain_name))
        self._check("facts")
        return list(self.facts)

    async def summarize_custom_perspective(self, source, target, mappings):
        self.calls.append(("summarize", len(mappings)))
        self._check("summarize")
        return self.summary

    async def compare_perspectives(self, metaphor, perspectives):
        names = [p.mapping_set.name for p in perspectives]
        self.calls.append(("compare", names))
        self._check("compare")
        return "Comparison of " + " vs ".join(names)

    async def generate_document(self, metaphor, mapping_set, consequences, document_type):
        self.calls.append(("document", document_type))
        self._check("document")
        return f"{document_type} about {mapping_set.name}"

    async def generate_or_edit_image(self, prompt, base_image=None):
        self.calls.append(("image", (prompt, base_image)))
        self._check("image")
        return self.image

    async def generate_metaphors(self, topic):
        self.calls.append(("metaphors", topic))
        self._check("metaphors")
        return list(self.metaphors)

    async def identify_metaphors(self, statement):
        self.calls.append(("identify", statement))
        self._check("identify")
        return list(self.identified)

    async def suggest_alternative_frames(self, statement, metaphors):
        self.calls.append(("reframe", statement))
        self._check("reframe")
        return list(self.frames)


@pytest.fixture
def repository():
    return InMemoryStoreRepository()


@pytest.fixture
async def store(repository):
    clock = itertools.count(1_000)
    store = AnalysisStore(repository, clock=lambda: next(clock))
    await store.init()
    yield store
    await store.dispose()


@pytest.fixture
async def seeded_store(store, analysis):
    """Store holding the sample analysis, nothing explored yet."""
    await store.upsert_analysis(METAPHOR, analysis)
    return store


@pytest.fixture
def gateway(analysis):
    return FakeGateway(analysis)


@pytest.fixture
def state():
    return WorkspaceState(workspace_id="ws-test")


@pytest.fixture
def loaded_state(state, analysis):
    """Workspace showing the sample analysis with nothing selected."""
    state.metaphor = METAPHOR
    state.analysis = analysis
    return state


@pytest.fixture
def orchestrator(seeded_store, gateway, loaded_state):
    return PerspectiveOrchestrator(seeded_store, gateway, loaded_state)


@pytest.fixture
def registry():
    return WorkspaceRegistry()


@pytest.fixture
async def client(store, gateway, registry):
    """FastAPI test client over the in-memory store and the fake gateway."""
    app = create_app(use_lifespan=False)
    app.state.store = store
    app.state.gateway = gateway
    app.state.registry = registry
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c
