"""
Confirmation gate - explicit operator consent before any transition.

Every action passes one confirmation describing its effect. Irreversible
actions (archive, hard delete) then need a second, separate confirmation.
The tiers form a flat pipeline: each prompt is asked in order and the first
refusal cancels the whole request before any lock or collaborator call.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Tuple

from src.engines.moderation.action_executor import ActionExecutor, Outcome, OutcomeStatus
from src.engines.moderation.concurrency_guard import ConcurrencyGuard
from src.engines.moderation.list_consistency import ListConsistencyCoordinator
from src.engines.moderation.transition_registry import TransitionRegistry
from src.kernel.models.entity import (
    CategoryStatus,
    EntityKind,
    EntityRef,
    ModerableEntity,
    ModerationAction,
)
from src.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ConfirmationPrompt:
    """One confirmation dialog."""

    tier: int
    total_tiers: int
    ref: EntityRef
    action: ModerationAction
    title: str
    body: str
    confirm_label: str
    warning: Optional[str] = None
    cancel_label: str = "Cancel"
    danger: bool = False


class Confirmer(Protocol):
    """Asks the operator; True means an explicit yes."""

    async def __call__(self, prompt: ConfirmationPrompt) -> bool:
        ...


class AcknowledgementConfirmer:
    """
    Answers from acknowledgements the operator already gave, e.g. the tiers a
    client confirmed before posting the request. Unacknowledged tiers are refused.
    """

    def __init__(self, acknowledged_tiers: int):
        self.acknowledged_tiers = acknowledged_tiers

    async def __call__(self, prompt: ConfirmationPrompt) -> bool:
        return prompt.tier <= self.acknowledged_tiers


# action -> (title, body, confirm label) for the first tier
_FIRST_TIER: Dict[ModerationAction, Tuple[str, str, str]] = {
    ModerationAction.APPROVE: (
        "Approve Novel",
        'Are you sure you want to approve and publish "{label}"? It becomes visible to readers.',
        "Approve",
    ),
    ModerationAction.REJECT: (
        "Reject Novel",
        'Are you sure you want to reject "{label}"? It returns to draft and leaves the review queue.',
        "Reject",
    ),
    ModerationAction.HIDE: (
        "Hide Novel",
        'Are you sure you want to hide "{label}"? Readers will no longer see it.',
        "Hide",
    ),
    ModerationAction.UNHIDE: (
        "Unhide Novel",
        'Are you sure you want to unhide "{label}"? Readers will be able to see it again.',
        "Unhide",
    ),
    ModerationAction.ARCHIVE: (
        "Archive Novel",
        'Are you sure you want to archive "{label}"? This action may be irreversible.',
        "Archive",
    ),
    ModerationAction.SOFT_DELETE: (
        "Delete Category",
        'Soft delete "{label}"? It is marked as deleted and can be recovered later '
        "(recommended if the category has novels).",
        "Soft Delete",
    ),
    ModerationAction.HARD_DELETE: (
        "Delete Category",
        'Hard delete "{label}"? It is permanently removed from the database '
        "(only works if the category has no novels).",
        "Hard Delete",
    ),
}

_TOGGLE_TIER: Dict[CategoryStatus, Tuple[str, str, str]] = {
    CategoryStatus.ACTIVE: (
        "Deactivate Category",
        'Deactivate "{label}"? It will no longer be offered to authors and readers.',
        "Deactivate",
    ),
    CategoryStatus.INACTIVE: (
        "Activate Category",
        'Activate "{label}"? It becomes available to authors and readers again.',
        "Activate",
    ),
}

_SECOND_TIER: Dict[ModerationAction, Tuple[str, str, str]] = {
    ModerationAction.ARCHIVE: (
        "Confirm Archive",
        'Are you absolutely sure? Archiving "{label}" is PERMANENT. An archived novel '
        "cannot be approved, hidden or restored from this console.",
        "Yes, Archive",
    ),
    ModerationAction.HARD_DELETE: (
        "Confirm Hard Delete",
        'Are you absolutely sure? Hard deleting "{label}" is PERMANENT and cannot be undone!',
        "Yes, Hard Delete",
    ),
}


def _dependents_noun(kind: EntityKind) -> str:
    return "novel(s)" if kind == EntityKind.CATEGORY else "chapter(s)"


def _warning(entity: ModerableEntity, action: ModerationAction, tier: int, registry: TransitionRegistry) -> Optional[str]:
    count = entity.dependent_resource_count
    if count <= 0:
        return None
    noun = _dependents_noun(entity.kind)
    if registry.blocked_by_dependents(action):
        if tier == 1:
            return (
                f"This {entity.kind.value} currently has {count} {noun}. "
                f"Hard delete will fail unless all {noun} are removed first."
            )
        return (
            f"Warning: This {entity.kind.value} has {count} {noun}. "
            "Hard delete will fail due to database constraints. "
            f"You must first remove or reassign all {noun} in this {entity.kind.value}."
        )
    if registry.is_irreversible(action):
        return (
            f"This {entity.kind.value} has {count} {noun}. They stay attached to it "
            "but will no longer be reachable from this console."
        )
    return None


def build_prompts(entity: ModerableEntity, action: ModerationAction, registry: TransitionRegistry) -> List[ConfirmationPrompt]:
    """The ordered confirmation pipeline for `action` on `entity`."""
    total = registry.confirmation_tiers(action)
    if total == 0:
        return []

    if action == ModerationAction.TOGGLE_STATUS:
        first = _TOGGLE_TIER[entity.status]
    else:
        first = _FIRST_TIER[action]
    texts = [first]
    if total > 1:
        texts.append(_SECOND_TIER[action])

    danger = registry.is_irreversible(action) or action == ModerationAction.SOFT_DELETE
    prompts = []
    for tier, (title, body, confirm_label) in enumerate(texts, start=1):
        prompts.append(
            ConfirmationPrompt(
                tier=tier,
                total_tiers=total,
                ref=entity.ref,
                action=action,
                title=title,
                body=body.format(label=entity.label),
                confirm_label=confirm_label,
                warning=_warning(entity, action, tier, registry),
                danger=danger,
            )
        )
    return prompts


class ConfirmationGate:
    """
    Intercepts requested actions and only delegates to the executor once every
    tier has been explicitly confirmed.
    """

    def __init__(self, registry: TransitionRegistry, guard: ConcurrencyGuard, executor: ActionExecutor):
        self._registry = registry
        self._guard = guard
        self._executor = executor

    def prompts_for(self, entity: ModerableEntity, action: ModerationAction) -> List[ConfirmationPrompt]:
        return build_prompts(entity, action, self._registry)

    async def request(
        self,
        entity: ModerableEntity,
        action: ModerationAction,
        confirmer: Confirmer,
        coordinator: ListConsistencyCoordinator,
        notes: Optional[str] = None,
    ) -> Outcome:
        ref = entity.ref
        transition = self._registry.describe(entity, action, notes)
        if not self._registry.is_legal(entity, action):
            return Outcome(
                status=OutcomeStatus.REJECTED,
                ref=ref,
                action=action,
                message=f"Cannot {action.value.replace('_', ' ')} a {entity.kind.value} in status {entity.status.value}",
                request=transition,
            )
        if self._guard.is_busy(ref):
            held = self._guard.current_action(ref)
            return Outcome(
                status=OutcomeStatus.BUSY,
                ref=ref,
                action=action,
                message=f"Another action ({held.value if held else 'unknown'}) is in progress for this {entity.kind.value}",
                request=transition,
            )

        prompts = self.prompts_for(entity, action) if transition.requires_confirmation else []
        for prompt in prompts:
            try:
                confirmed = await confirmer(prompt)
            except Exception:
                logger.exception(
                    "Confirmation failed; treating as cancel",
                    extra={"entity": str(ref), "action": action.value, "tier": prompt.tier},
                )
                confirmed = False
            if confirmed is not True:
                logger.info(
                    "Transition cancelled at confirmation",
                    extra={"entity": str(ref), "action": action.value, "tier": prompt.tier},
                )
                return Outcome(
                    status=OutcomeStatus.CANCELLED,
                    ref=ref,
                    action=action,
                    message=f"{prompt.title} was not confirmed",
                    pending_prompt=prompt,
                    request=transition,
                )

        outcome = await self._executor.execute(entity, action, coordinator, transition.notes)
        outcome.request = transition
        return outcome
