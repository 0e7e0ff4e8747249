"""
Moderation console - the facade the view layer talks to.

One ModerationView per entity kind (novels list, categories list). Each view
owns its ListConsistencyCoordinator; the registry, lock table, classifier and
failure log are shared by the whole console so that an entity is locked no
matter which view triggered the action.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from src.engines.moderation.action_executor import (
    ActionExecutor,
    Outcome,
    TransitionCollaborator,
)
from src.engines.moderation.concurrency_guard import ConcurrencyGuard
from src.engines.moderation.confirmation_gate import (
    ConfirmationGate,
    ConfirmationPrompt,
    Confirmer,
)
from src.engines.moderation.error_classifier import ClassifiedError, ErrorClassifier
from src.engines.moderation.errors import EntityNotFoundError
from src.engines.moderation.failure_log import FailureLog
from src.engines.moderation.list_consistency import ListConsistencyCoordinator, ListFetcher
from src.engines.moderation.transition_registry import TransitionRegistry
from src.kernel.identity.session import SessionContext
from src.kernel.models.entity import (
    EntityId,
    EntityKind,
    ModerableEntity,
    ModerationAction,
)
from src.kernel.models.listing import ListPage, ListQuery
from src.logging_config import get_logger

logger = get_logger(__name__)

# Display order of row actions
_ACTION_ORDER = list(ModerationAction)


@dataclass
class ActionAffordance:
    """One action button on a row."""

    action: ModerationAction
    enabled: bool
    irreversible: bool
    confirmation_tiers: int
    in_progress: bool = False


@dataclass
class RowState:
    """Everything the view needs to render one row."""

    entity: ModerableEntity
    actions: List[ActionAffordance] = field(default_factory=list)
    busy_action: Optional[ModerationAction] = None
    error: Optional[ClassifiedError] = None
    stale: bool = False


class ModerationView:
    """A list view of one entity kind, bound to the console's shared engine."""

    def __init__(
        self,
        kind: EntityKind,
        coordinator: ListConsistencyCoordinator,
        console: "ModerationConsole",
    ):
        self.kind = kind
        self.coordinator = coordinator
        self._console = console

    @property
    def page(self) -> Optional[ListPage]:
        return self.coordinator.page

    @property
    def query(self) -> ListQuery:
        return self.coordinator.query

    @property
    def closed(self) -> bool:
        return self.coordinator.closed

    async def load(self, query: Optional[ListQuery] = None) -> Optional[ListPage]:
        return await self.coordinator.load(query)

    def close(self) -> None:
        self.coordinator.close()

    def find(self, entity_id: EntityId) -> ModerableEntity:
        """
        Entity with `entity_id` on the current page.

        Raises:
            EntityNotFoundError: If the page is not loaded or the entity is not on it
        """
        page = self.coordinator.page
        if page is not None:
            for item in page.items:
                if str(item.id) == str(entity_id):
                    return item
        raise EntityNotFoundError(
            f"{self.kind.value.capitalize()} {entity_id} is not on the current page",
            details={"kind": self.kind.value, "id": str(entity_id)},
        )

    def row_state(self, entity: ModerableEntity) -> RowState:
        console = self._console
        ref = entity.ref
        busy_action = console.guard.current_action(ref)
        legal = console.legal_actions(entity)
        actions = [
            ActionAffordance(
                action=action,
                # While any action runs on the entity, every action on it is disabled
                enabled=busy_action is None,
                irreversible=console.registry.is_irreversible(action),
                confirmation_tiers=console.registry.confirmation_tiers(action),
                in_progress=busy_action == action,
            )
            for action in _ACTION_ORDER
            if action in legal
        ]
        return RowState(
            entity=entity,
            actions=actions,
            busy_action=busy_action,
            error=console.current_error(entity),
            stale=self.coordinator.is_stale(ref),
        )

    def rows(self) -> List[RowState]:
        page = self.coordinator.page
        if page is None:
            return []
        return [self.row_state(item) for item in page.items]

    def prompts_for(self, entity: ModerableEntity, action: ModerationAction) -> List[ConfirmationPrompt]:
        return self._console.gate.prompts_for(entity, action)

    async def request_transition(
        self,
        entity: ModerableEntity,
        action: ModerationAction,
        confirmer: Confirmer,
        notes: Optional[str] = None,
    ) -> Outcome:
        return await self._console.gate.request(entity, action, confirmer, self.coordinator, notes)


class ModerationConsole:
    """
    Wires the moderation engine together.

    Usage:
        console = ModerationConsole(gateway, session)
        view = console.open_view(EntityKind.NOVEL, gateway.fetcher(EntityKind.NOVEL))
        await view.load(ListQuery(filters={"status": "UNDER_REVIEW"}))
        outcome = await view.request_transition(entity, ModerationAction.APPROVE, confirmer)
    """

    def __init__(
        self,
        collaborator: TransitionCollaborator,
        session: SessionContext,
        *,
        classifier: Optional[ErrorClassifier] = None,
        failure_log: Optional[FailureLog] = None,
    ):
        self.session = session
        self.registry = TransitionRegistry()
        self.guard = ConcurrencyGuard()
        self.classifier = classifier or ErrorClassifier()
        self.failure_log = failure_log if failure_log is not None else FailureLog()
        self.executor = ActionExecutor(
            self.registry,
            self.guard,
            self.classifier,
            collaborator,
            session,
            self.failure_log,
        )
        self.gate = ConfirmationGate(self.registry, self.guard, self.executor)
        self._views: Dict[EntityKind, ModerationView] = {}

    def open_view(
        self,
        kind: EntityKind,
        fetcher: ListFetcher,
        query: Optional[ListQuery] = None,
    ) -> ModerationView:
        """Open the list view for `kind`, tearing down any previous one."""
        previous = self._views.get(kind)
        if previous is not None:
            previous.close()
        view = ModerationView(kind, ListConsistencyCoordinator(kind, fetcher, query), self)
        self._views[kind] = view
        logger.debug("Opened view", extra={"kind": kind.value})
        return view

    def view(self, kind: EntityKind) -> Optional[ModerationView]:
        return self._views.get(kind)

    def close(self) -> None:
        for view in self._views.values():
            view.close()
        self._views.clear()

    def legal_actions(self, entity: ModerableEntity) -> frozenset:
        return self.registry.legal_actions(entity)

    def is_busy(self, entity: ModerableEntity) -> bool:
        return self.guard.is_busy(entity.ref)

    def current_error(self, entity: ModerableEntity) -> Optional[ClassifiedError]:
        return self.executor.current_error(entity.ref)

    async def request_transition(
        self,
        entity: ModerableEntity,
        action: ModerationAction,
        confirmer: Confirmer,
        notes: Optional[str] = None,
    ) -> Outcome:
        """
        Run `action` through the view that shows `entity`.

        Raises:
            EntityNotFoundError: If no view is open for the entity's kind
        """
        view = self._views.get(entity.kind)
        if view is None:
            raise EntityNotFoundError(
                f"No {entity.kind.value} view is open",
                details={"kind": entity.kind.value},
            )
        return await view.request_transition(entity, action, confirmer, notes)
