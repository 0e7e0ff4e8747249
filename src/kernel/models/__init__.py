"""
Kernel Data Models

Entities the moderation console observes, the actions it can apply, and the
list shapes used to fetch them.
"""

from src.kernel.models.entity import (
    CategoryStatus,
    EntityId,
    EntityKind,
    EntityRef,
    EntityStatus,
    ModerableEntity,
    ModerationAction,
    NovelStatus,
    TransitionRequest,
    TransitionResult,
)
from src.kernel.models.listing import ListPage, ListQuery, SortOrder

__all__ = [
    # Entities
    "CategoryStatus",
    "EntityId",
    "EntityKind",
    "EntityRef",
    "EntityStatus",
    "ModerableEntity",
    "ModerationAction",
    "NovelStatus",
    "TransitionRequest",
    "TransitionResult",
    # Listing
    "ListPage",
    "ListQuery",
    "SortOrder",
]
