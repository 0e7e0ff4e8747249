"""
Action executor - performs one moderation transition.

Order of operations for execute():
1. Reject actions not offered for the observed state (no lock, no call)
2. Acquire the entity's lock, or answer BUSY (no call)
3. Call the transition collaborator
4. Success: refetch the view's page while still holding the lock
   Failure: classify, record as the row's current error, expire the session on AuthError
5. Release the lock, whatever happened

There is no automatic retry. A transition may have partially applied
server-side effects (notifications, counters), so only the operator
re-triggers a failed action.
"""

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Protocol

from src.engines.moderation.concurrency_guard import ConcurrencyGuard
from src.engines.moderation.error_classifier import (
    ClassifiedError,
    ErrorClass,
    ErrorClassifier,
    RawFailure,
)
from src.engines.moderation.failure_log import FailureLog
from src.engines.moderation.list_consistency import ListConsistencyCoordinator
from src.engines.moderation.transition_registry import TransitionRegistry
from src.kernel.identity.session import SessionContext
from src.kernel.models.entity import (
    EntityRef,
    ModerableEntity,
    ModerationAction,
    TransitionRequest,
    TransitionResult,
)
from src.kernel.models.listing import ListPage
from src.logging_config import action_id_var, get_logger

logger = get_logger(__name__)


class OutcomeStatus(str, Enum):
    """How a transition request ended."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    BUSY = "busy"            # another action holds the entity's lock
    REJECTED = "rejected"    # not legal for the observed state
    CANCELLED = "cancelled"  # operator declined a confirmation
    DISCARDED = "discarded"  # view torn down before the response arrived


@dataclass
class Outcome:
    """Result of one transition request, as rendered by the view."""

    status: OutcomeStatus
    ref: EntityRef
    action: ModerationAction
    message: Optional[str] = None
    error: Optional[ClassifiedError] = None
    page: Optional[ListPage] = None
    stale: bool = False
    session_expired: bool = False
    pending_prompt: Optional[Any] = None
    request: Optional[TransitionRequest] = None

    @property
    def ok(self) -> bool:
        return self.status == OutcomeStatus.SUCCEEDED


class TransitionCollaborator(Protocol):
    """Per-entity transition endpoints."""

    async def perform(
        self,
        entity: ModerableEntity,
        action: ModerationAction,
        notes: Optional[str] = None,
    ) -> TransitionResult:
        ...


class ActionExecutor:
    """
    Runs transitions through the lock table and owns the per-row error state.

    The lock table is only touched through ConcurrencyGuard.try_acquire/release,
    and only from here.
    """

    def __init__(
        self,
        registry: TransitionRegistry,
        guard: ConcurrencyGuard,
        classifier: ErrorClassifier,
        collaborator: TransitionCollaborator,
        session: SessionContext,
        failure_log: Optional[FailureLog] = None,
    ):
        self._registry = registry
        self._guard = guard
        self._classifier = classifier
        self._collaborator = collaborator
        self._session = session
        self._failure_log = failure_log
        self._errors: Dict[EntityRef, ClassifiedError] = {}

    def current_error(self, ref: EntityRef) -> Optional[ClassifiedError]:
        return self._errors.get(ref)

    def clear_error(self, ref: EntityRef) -> None:
        self._errors.pop(ref, None)

    async def execute(
        self,
        entity: ModerableEntity,
        action: ModerationAction,
        coordinator: ListConsistencyCoordinator,
        notes: Optional[str] = None,
    ) -> Outcome:
        ref = entity.ref

        if not self._registry.is_legal(entity, action):
            logger.info(
                "Rejected action not offered for observed state",
                extra={"entity": str(ref), "action": action.value, "status": entity.status.value},
            )
            return Outcome(
                status=OutcomeStatus.REJECTED,
                ref=ref,
                action=action,
                message=f"Cannot {action.value.replace('_', ' ')} a {entity.kind.value} in status {entity.status.value}",
            )

        if not self._guard.try_acquire(ref, action):
            held = self._guard.current_action(ref)
            return Outcome(
                status=OutcomeStatus.BUSY,
                ref=ref,
                action=action,
                message=f"Another action ({held.value if held else 'unknown'}) is in progress for this {entity.kind.value}",
            )

        action_id = uuid.uuid4().hex[:12]
        token = action_id_var.set(action_id)
        query = coordinator.query
        try:
            self._errors.pop(ref, None)
            logger.info("Transition started", extra={"entity": str(ref), "action": action.value})

            try:
                result = await self._collaborator.perform(entity, action, notes)
            except Exception as e:
                return self._fail(
                    RawFailure.from_exception(e, action, entity.kind),
                    ref,
                    action,
                    coordinator,
                    action_id,
                )

            if not result.success:
                return self._fail(
                    RawFailure(message=result.message or "", action=action, kind=entity.kind),
                    ref,
                    action,
                    coordinator,
                    action_id,
                )

            if coordinator.closed:
                logger.info("Discarding result for closed view", extra={"entity": str(ref)})
                return Outcome(status=OutcomeStatus.DISCARDED, ref=ref, action=action, message=result.message)

            page = await coordinator.refetch(query, transitioned=ref)
            stale = coordinator.is_stale(ref)
            logger.info(
                "Transition succeeded",
                extra={"entity": str(ref), "action": action.value, "stale": stale},
            )
            return Outcome(
                status=OutcomeStatus.SUCCEEDED,
                ref=ref,
                action=action,
                message=result.message,
                page=page if page is not None or stale else coordinator.page,
                stale=stale,
            )
        finally:
            self._guard.release(ref)
            action_id_var.reset(token)

    def _fail(
        self,
        failure: RawFailure,
        ref: EntityRef,
        action: ModerationAction,
        coordinator: ListConsistencyCoordinator,
        action_id: str,
    ) -> Outcome:
        error = self._classifier.classify(failure)
        logger.warning(
            "Transition failed",
            extra={
                "entity": str(ref),
                "action": action.value,
                "error_class": error.error_class.value,
                "status_code": error.status_code,
                "raw_message": error.raw_message,
            },
        )
        if self._failure_log is not None:
            self._failure_log.record(ref, action, error, action_id)

        session_expired = False
        if error.error_class == ErrorClass.AUTH:
            # Global teardown happens even when the view is gone
            self._session.expire(f"{action.value} on {ref}: {error.raw_message}")
            session_expired = True

        if coordinator.closed:
            return Outcome(
                status=OutcomeStatus.DISCARDED,
                ref=ref,
                action=action,
                error=error,
                session_expired=session_expired,
            )

        self._errors[ref] = error
        return Outcome(
            status=OutcomeStatus.FAILED,
            ref=ref,
            action=action,
            message=error.raw_message,
            error=error,
            session_expired=session_expired,
        )
