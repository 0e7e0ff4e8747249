"""
Transition registry for novel and category moderation.

The backend enforces state legality authoritatively; this table only
encodes the transitions the console expects to be legal so that it can
gate affordances and avoid pointless round trips.
"""

from typing import Dict, FrozenSet, Optional, Tuple

from src.kernel.models.entity import (
    CategoryStatus,
    EntityKind,
    EntityStatus,
    ModerableEntity,
    ModerationAction,
    NovelStatus,
    TransitionRequest,
)

# (kind, from_status, action) -> to_status; None means the entity is removed
_TRANSITIONS: Dict[Tuple[EntityKind, EntityStatus, ModerationAction], Optional[EntityStatus]] = {
    # Review outcomes
    (EntityKind.NOVEL, NovelStatus.UNDER_REVIEW, ModerationAction.APPROVE): NovelStatus.PUBLISHED,
    (EntityKind.NOVEL, NovelStatus.UNDER_REVIEW, ModerationAction.REJECT): NovelStatus.DRAFT,
    # Archive is terminal
    (EntityKind.NOVEL, NovelStatus.DRAFT, ModerationAction.ARCHIVE): NovelStatus.ARCHIVED,
    (EntityKind.NOVEL, NovelStatus.UNDER_REVIEW, ModerationAction.ARCHIVE): NovelStatus.ARCHIVED,
    (EntityKind.NOVEL, NovelStatus.PUBLISHED, ModerationAction.ARCHIVE): NovelStatus.ARCHIVED,
    # Category activation toggles
    (EntityKind.CATEGORY, CategoryStatus.ACTIVE, ModerationAction.TOGGLE_STATUS): CategoryStatus.INACTIVE,
    (EntityKind.CATEGORY, CategoryStatus.INACTIVE, ModerationAction.TOGGLE_STATUS): CategoryStatus.ACTIVE,
    # Category deletes
    (EntityKind.CATEGORY, CategoryStatus.ACTIVE, ModerationAction.SOFT_DELETE): CategoryStatus.DELETED,
    (EntityKind.CATEGORY, CategoryStatus.INACTIVE, ModerationAction.SOFT_DELETE): CategoryStatus.DELETED,
    (EntityKind.CATEGORY, CategoryStatus.ACTIVE, ModerationAction.HARD_DELETE): None,
    (EntityKind.CATEGORY, CategoryStatus.INACTIVE, ModerationAction.HARD_DELETE): None,
}

# hidden is orthogonal to status; toggles are offered on any non-archived novel
_VISIBILITY_ACTIONS: Dict[ModerationAction, bool] = {
    ModerationAction.HIDE: True,
    ModerationAction.UNHIDE: False,
}

_IRREVERSIBLE: FrozenSet[ModerationAction] = frozenset({
    ModerationAction.ARCHIVE,
    ModerationAction.HARD_DELETE,
})

# Every action here changes state, so every one needs at least one confirmation
_STATE_CHANGING: FrozenSet[ModerationAction] = frozenset(ModerationAction)

# Actions the backend refuses while dependent records reference the entity
_BLOCKED_BY_DEPENDENTS: FrozenSet[ModerationAction] = frozenset({ModerationAction.HARD_DELETE})


def legal_actions(kind: EntityKind, status: EntityStatus, hidden: bool = False) -> FrozenSet[ModerationAction]:
    """Actions the console offers for an entity in the given state."""
    actions = {
        action
        for (k, from_status, action) in _TRANSITIONS
        if k == kind and from_status == status
    }
    if kind == EntityKind.NOVEL and status != NovelStatus.ARCHIVED:
        actions.add(ModerationAction.UNHIDE if hidden else ModerationAction.HIDE)
    return frozenset(actions)


def is_irreversible(action: ModerationAction) -> bool:
    return action in _IRREVERSIBLE


def requires_confirmation(action: ModerationAction) -> bool:
    return action in _STATE_CHANGING


def confirmation_tiers(action: ModerationAction) -> int:
    """Number of separate confirmations: two for irreversible actions, else one."""
    if not requires_confirmation(action):
        return 0
    return 2 if is_irreversible(action) else 1


def blocked_by_dependents(action: ModerationAction) -> bool:
    """True when dependent records make the backend refuse this action."""
    return action in _BLOCKED_BY_DEPENDENTS


def target_status(
    kind: EntityKind,
    status: EntityStatus,
    action: ModerationAction,
) -> Optional[EntityStatus]:
    """
    Status the entity is expected to reach. Visibility toggles keep the status;
    None means the entity is removed (hard delete).

    Raises:
        ValueError: If the action is not a legal edge from this status
    """
    if action in _VISIBILITY_ACTIONS:
        if kind != EntityKind.NOVEL or status == NovelStatus.ARCHIVED:
            raise ValueError(f"Invalid transition: {kind.value} {status.value} --{action.value}-->")
        return status
    key = (kind, status, action)
    if key not in _TRANSITIONS:
        raise ValueError(f"Invalid transition: {kind.value} {status.value} --{action.value}-->")
    return _TRANSITIONS[key]


def target_hidden(action: ModerationAction, hidden: bool) -> bool:
    """Hidden flag after the action (unchanged for non-visibility actions)."""
    return _VISIBILITY_ACTIONS.get(action, hidden)


class TransitionRegistry:
    """
    Entity-level view over the transition table.

    Stateless; the module functions above are the source of truth.
    """

    def legal_actions(self, entity: ModerableEntity) -> FrozenSet[ModerationAction]:
        return legal_actions(entity.kind, entity.status, entity.hidden)

    def is_legal(self, entity: ModerableEntity, action: ModerationAction) -> bool:
        return action in self.legal_actions(entity)

    def is_irreversible(self, action: ModerationAction) -> bool:
        return is_irreversible(action)

    def requires_confirmation(self, action: ModerationAction) -> bool:
        return requires_confirmation(action)

    def confirmation_tiers(self, action: ModerationAction) -> int:
        return confirmation_tiers(action)

    def blocked_by_dependents(self, action: ModerationAction) -> bool:
        return blocked_by_dependents(action)

    def expected_state(
        self,
        entity: ModerableEntity,
        action: ModerationAction,
    ) -> Tuple[Optional[EntityStatus], bool]:
        """(status, hidden) the backend should report after a successful action."""
        return (
            target_status(entity.kind, entity.status, action),
            target_hidden(action, entity.hidden),
        )

    def describe(
        self,
        entity: ModerableEntity,
        action: ModerationAction,
        notes: Optional[str] = None,
    ) -> TransitionRequest:
        """The request the gate works from, with its confirmation policy filled in."""
        return TransitionRequest(
            entity_id=entity.id,
            action=action,
            requires_confirmation=self.requires_confirmation(action),
            irreversible=self.is_irreversible(action),
            notes=notes,
        )
