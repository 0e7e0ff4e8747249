"""
Pytest fixtures for moderation console tests.

The admin backend is replaced by an in-memory FakeBackend that applies
transitions along the registry edges, so a refetch after a successful action
shows the new state exactly as the real backend would. Calls can be held open
with an asyncio.Event to observe the in-flight state.
"""

import asyncio
from collections import deque
from typing import Deque, Dict, List, Optional, Tuple

import pytest
import pytest_asyncio

from src.engines.moderation.confirmation_gate import ConfirmationPrompt
from src.engines.moderation.console import ModerationConsole
from src.engines.moderation.transition_registry import TransitionRegistry
from src.kernel.identity.session import Credentials, SessionContext
from src.kernel.models.entity import (
    CategoryStatus,
    EntityKind,
    EntityRef,
    ModerableEntity,
    ModerationAction,
    NovelStatus,
    TransitionResult,
)
from src.kernel.models.listing import ListPage, ListQuery
from src.kernel.transport.api_client import TransportError

LOGIN_PATH = "/yushan-admin/login"


def novel(id, status=NovelStatus.UNDER_REVIEW, hidden=False, chapters=0, title=None) -> ModerableEntity:
    return ModerableEntity(
        id=id,
        kind=EntityKind.NOVEL,
        status=status,
        hidden=hidden,
        dependent_resource_count=chapters,
        title=title or f"Novel {id}",
    )


def category(id, status=CategoryStatus.ACTIVE, novels=0, title=None) -> ModerableEntity:
    return ModerableEntity(
        id=id,
        kind=EntityKind.CATEGORY,
        status=status,
        dependent_resource_count=novels,
        title=title or f"Category {id}",
    )


class FakeFetcher:
    """List fetcher over the FakeBackend's current state."""

    def __init__(self, backend: "FakeBackend", kind: EntityKind):
        self.backend = backend
        self.kind = kind
        self.queries: List[ListQuery] = []
        self.gates: Deque[asyncio.Event] = deque()
        self.failures: Deque[BaseException] = deque()

    def hold_next(self) -> asyncio.Event:
        """Hold the next fetch until the returned event is set."""
        gate = asyncio.Event()
        self.gates.append(gate)
        return gate

    def fail_next(self, exc: Optional[BaseException] = None) -> None:
        self.failures.append(exc or TransportError("Service unavailable", 503))

    async def fetch_page(self, query: ListQuery) -> ListPage:
        """Rows are read when the request is issued, like a server answering it."""
        self.queries.append(query)
        gate = self.gates.popleft() if self.gates else None
        failure = self.failures.popleft() if self.failures else None

        status = query.filter_value("status")
        rows = [
            e for e in self.backend.entities.values()
            if e.kind == self.kind and (status is None or e.status.value == status)
        ]
        rows.sort(key=lambda e: str(e.id))
        start = (query.page - 1) * query.page_size
        page = ListPage(
            items=rows[start:start + query.page_size],
            total=len(rows),
            page=query.page,
            page_size=query.page_size,
        )

        if gate is not None:
            await gate.wait()
        if failure is not None:
            raise failure
        return page


class FakeBackend:
    """In-memory stand-in for the admin REST backend."""

    def __init__(self, entities=()):
        self.entities: Dict[EntityRef, ModerableEntity] = {e.ref: e for e in entities}
        self.calls: List[Tuple[EntityRef, ModerationAction, Optional[str]]] = []
        self.gates: Dict[EntityRef, asyncio.Event] = {}
        self.failures: Dict[EntityRef, object] = {}
        self.fetchers = {kind: FakeFetcher(self, kind) for kind in EntityKind}
        self._registry = TransitionRegistry()

    def fetcher(self, kind: EntityKind) -> FakeFetcher:
        return self.fetchers[kind]

    def hold(self, ref: EntityRef) -> asyncio.Event:
        """Keep transition calls for `ref` in flight until the event is set."""
        gate = asyncio.Event()
        self.gates[ref] = gate
        return gate

    def fail(self, ref: EntityRef, failure) -> None:
        """Make the next call for `ref` raise (exception) or return (TransitionResult)."""
        self.failures[ref] = failure

    def calls_for(self, ref: EntityRef) -> List[ModerationAction]:
        return [action for r, action, _ in self.calls if r == ref]

    async def perform(
        self,
        entity: ModerableEntity,
        action: ModerationAction,
        notes: Optional[str] = None,
    ) -> TransitionResult:
        ref = entity.ref
        self.calls.append((ref, action, notes))
        gate = self.gates.get(ref)
        if gate is not None:
            await gate.wait()

        failure = self.failures.pop(ref, None)
        if isinstance(failure, BaseException):
            raise failure
        if isinstance(failure, TransitionResult):
            return failure

        current = self.entities[ref]
        status, hidden = self._registry.expected_state(current, action)
        if status is None:
            del self.entities[ref]
        else:
            self.entities[ref] = current.model_copy(update={"status": status, "hidden": hidden})
        return TransitionResult(success=True, message=f"{action.value} ok")


async def confirm_all(prompt: ConfirmationPrompt) -> bool:
    return True


async def refuse_all(prompt: ConfirmationPrompt) -> bool:
    return False


class RecordingConfirmer:
    """Answers prompts from a script and records what it was asked."""

    def __init__(self, *answers: bool):
        self.answers = list(answers)
        self.prompts: List[ConfirmationPrompt] = []

    async def __call__(self, prompt: ConfirmationPrompt) -> bool:
        self.prompts.append(prompt)
        return self.answers.pop(0) if self.answers else False


@pytest.fixture
def backend() -> FakeBackend:
    """Backend seeded with a few novels and categories."""
    return FakeBackend([
        novel(1, NovelStatus.UNDER_REVIEW, title="Dragon's Path"),
        novel(2, NovelStatus.UNDER_REVIEW, title="Silent Moon"),
        novel(3, NovelStatus.PUBLISHED, title="Iron Crown", chapters=12),
        novel(4, NovelStatus.PUBLISHED, hidden=True, title="Lost Tide"),
        novel(5, NovelStatus.DRAFT, title="First Draft"),
        category(1, CategoryStatus.ACTIVE, novels=3, title="Fantasy"),
        category(2, CategoryStatus.ACTIVE, novels=0, title="Poetry"),
        category(3, CategoryStatus.INACTIVE, novels=0, title="Western"),
    ])


@pytest.fixture
def session() -> SessionContext:
    session = SessionContext(login_path=LOGIN_PATH)
    session.init(Credentials(access_token="test-token"))
    return session


@pytest.fixture
def console(backend: FakeBackend, session: SessionContext) -> ModerationConsole:
    return ModerationConsole(backend, session)


@pytest_asyncio.fixture
async def novel_view(console: ModerationConsole, backend: FakeBackend):
    """Novel list view with its first page loaded."""
    view = console.open_view(EntityKind.NOVEL, backend.fetcher(EntityKind.NOVEL))
    await view.load(ListQuery(page_size=10))
    return view


@pytest_asyncio.fixture
async def category_view(console: ModerationConsole, backend: FakeBackend):
    """Category list view with its first page loaded."""
    view = console.open_view(EntityKind.CATEGORY, backend.fetcher(EntityKind.CATEGORY))
    await view.load(ListQuery(page_size=10))
    return view
