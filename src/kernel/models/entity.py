"""
Moderable entities - novels and categories as observed by the console.

Entities are created and destroyed by the backend; the console only ever
changes status/hidden through moderation actions (plus the category
hard-delete, which removes the entity).
"""

from enum import Enum
from typing import Any, NamedTuple, Optional, Union

from pydantic import BaseModel, Field, model_validator

EntityId = Union[int, str]


class EntityKind(str, Enum):
    """Kind of moderable entity."""

    NOVEL = "novel"
    CATEGORY = "category"


class NovelStatus(str, Enum):
    """Administrative status of a novel."""

    DRAFT = "DRAFT"
    UNDER_REVIEW = "UNDER_REVIEW"
    PUBLISHED = "PUBLISHED"
    ARCHIVED = "ARCHIVED"


class CategoryStatus(str, Enum):
    """Administrative status of a category."""

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    DELETED = "DELETED"  # soft-deleted; recoverable only at the data layer


EntityStatus = Union[NovelStatus, CategoryStatus]

STATUS_ENUMS = {
    EntityKind.NOVEL: NovelStatus,
    EntityKind.CATEGORY: CategoryStatus,
}


class ModerationAction(str, Enum):
    """Operator-triggered transition."""

    # Novels
    APPROVE = "approve"
    REJECT = "reject"
    HIDE = "hide"
    UNHIDE = "unhide"
    ARCHIVE = "archive"
    # Categories
    TOGGLE_STATUS = "toggle_status"
    SOFT_DELETE = "soft_delete"
    HARD_DELETE = "hard_delete"


class EntityRef(NamedTuple):
    """Identity of an entity across kinds (lock, error and stale key)."""

    kind: EntityKind
    id: EntityId

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.id}"


class ModerableEntity(BaseModel):
    """A novel or category row as last observed from the backend."""

    id: EntityId
    kind: EntityKind
    status: EntityStatus
    hidden: bool = False
    dependent_resource_count: int = Field(default=0, ge=0)
    title: Optional[str] = None

    @model_validator(mode="after")
    def _check_kind(self) -> "ModerableEntity":
        # Raises ValueError when the status belongs to the other kind
        self.status = STATUS_ENUMS[self.kind](self.status.value)
        if self.kind == EntityKind.CATEGORY and self.hidden:
            raise ValueError("hidden applies to novels only")
        return self

    @property
    def ref(self) -> EntityRef:
        return EntityRef(self.kind, self.id)

    @property
    def label(self) -> str:
        """Human-readable name for prompts and messages."""
        if self.title:
            return self.title
        return f"{self.kind.value} #{self.id}"


class TransitionRequest(BaseModel):
    """An operator's request to move one entity along one edge."""

    entity_id: EntityId
    action: ModerationAction
    requires_confirmation: bool = True
    irreversible: bool = False
    notes: Optional[str] = None


class TransitionResult(BaseModel):
    """What a transition endpoint reported back."""

    success: bool = True
    message: Optional[str] = None
    data: Optional[Any] = None
