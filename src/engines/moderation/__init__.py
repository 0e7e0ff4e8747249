"""
Moderation Engine

Lifecycle transitions for novels and categories: legal-transition lookup,
per-entity action locking, tiered confirmation, failure classification and
list consistency after each action.
"""

from src.engines.moderation.action_executor import (
    ActionExecutor,
    Outcome,
    OutcomeStatus,
    TransitionCollaborator,
)
from src.engines.moderation.concurrency_guard import ConcurrencyGuard
from src.engines.moderation.confirmation_gate import (
    AcknowledgementConfirmer,
    ConfirmationGate,
    ConfirmationPrompt,
    Confirmer,
    build_prompts,
)
from src.engines.moderation.console import (
    ActionAffordance,
    ModerationConsole,
    ModerationView,
    RowState,
)
from src.engines.moderation.error_classifier import (
    ClassificationRule,
    ClassifiedError,
    ErrorClass,
    ErrorClassifier,
    RawFailure,
)
from src.engines.moderation.errors import (
    EntityNotFoundError,
    IllegalTransitionError,
    ModerationError,
    SessionExpiredError,
)
from src.engines.moderation.failure_log import FailureLog, FailureRecord
from src.engines.moderation.list_consistency import ListConsistencyCoordinator, ListFetcher
from src.engines.moderation.transition_registry import TransitionRegistry

__all__ = [
    "AcknowledgementConfirmer",
    "ActionAffordance",
    "ActionExecutor",
    "ClassificationRule",
    "ClassifiedError",
    "ConcurrencyGuard",
    "ConfirmationGate",
    "ConfirmationPrompt",
    "Confirmer",
    "EntityNotFoundError",
    "ErrorClass",
    "ErrorClassifier",
    "FailureLog",
    "FailureRecord",
    "IllegalTransitionError",
    "ListConsistencyCoordinator",
    "ListFetcher",
    "ModerationConsole",
    "ModerationError",
    "ModerationView",
    "Outcome",
    "OutcomeStatus",
    "RawFailure",
    "RowState",
    "SessionExpiredError",
    "TransitionCollaborator",
    "TransitionRegistry",
    "build_prompts",
]
