"""
Moderation console schemas.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from src.engines.moderation.action_executor import Outcome, OutcomeStatus
from src.engines.moderation.confirmation_gate import ConfirmationPrompt
from src.engines.moderation.console import RowState
from src.engines.moderation.error_classifier import ClassifiedError
from src.engines.moderation.failure_log import FailureRecord
from src.kernel.models.entity import EntityKind, ModerationAction
from src.schemas.common import PaginatedResponse


class SessionCreate(BaseModel):
    """Credentials obtained from the admin login endpoint."""

    access_token: str = Field(..., min_length=1)
    refresh_token: Optional[str] = None
    token_type: str = "Bearer"
    expires_in: Optional[int] = None
    user: Dict[str, Any] = Field(default_factory=dict)


class SessionResponse(BaseModel):
    """Operator session state."""

    authenticated: bool
    expired: bool = False
    reason: Optional[str] = None
    redirect_to: Optional[str] = None


class ActionAffordanceResponse(BaseModel):
    action: ModerationAction
    enabled: bool
    irreversible: bool
    confirmation_tiers: int
    in_progress: bool = False


class RowResponse(BaseModel):
    """One list row with its moderation state."""

    id: Any
    kind: EntityKind
    status: str
    hidden: bool = False
    dependent_resource_count: int = 0
    title: Optional[str] = None
    actions: List[ActionAffordanceResponse] = Field(default_factory=list)
    busy_action: Optional[ModerationAction] = None
    error: Optional[ClassifiedError] = None
    stale: bool = False

    @classmethod
    def from_state(cls, row: RowState) -> "RowResponse":
        entity = row.entity
        return cls(
            id=entity.id,
            kind=entity.kind,
            status=entity.status.value,
            hidden=entity.hidden,
            dependent_resource_count=entity.dependent_resource_count,
            title=entity.title,
            actions=[
                ActionAffordanceResponse(
                    action=a.action,
                    enabled=a.enabled,
                    irreversible=a.irreversible,
                    confirmation_tiers=a.confirmation_tiers,
                    in_progress=a.in_progress,
                )
                for a in row.actions
            ],
            busy_action=row.busy_action,
            error=row.error,
            stale=row.stale,
        )


RowsResponse = PaginatedResponse[RowResponse]


class PromptResponse(BaseModel):
    """A confirmation dialog the operator must accept."""

    tier: int
    total_tiers: int
    title: str
    body: str
    warning: Optional[str] = None
    confirm_label: str
    cancel_label: str = "Cancel"
    danger: bool = False

    @classmethod
    def from_prompt(cls, prompt: ConfirmationPrompt) -> "PromptResponse":
        return cls(
            tier=prompt.tier,
            total_tiers=prompt.total_tiers,
            title=prompt.title,
            body=prompt.body,
            warning=prompt.warning,
            confirm_label=prompt.confirm_label,
            cancel_label=prompt.cancel_label,
            danger=prompt.danger,
        )


class PromptPlanResponse(BaseModel):
    entity: str
    action: ModerationAction
    prompts: List[PromptResponse]


class TransitionBody(BaseModel):
    """Request to run an action; `acknowledged_tiers` counts the prompts already accepted."""

    acknowledged_tiers: int = Field(default=0, ge=0, le=2)
    notes: Optional[str] = Field(default=None, max_length=2000)


class OutcomeResponse(BaseModel):
    """Result of a transition request."""

    status: OutcomeStatus
    entity: str
    action: ModerationAction
    message: Optional[str] = None
    error: Optional[ClassifiedError] = None
    irreversible: bool = False
    stale: bool = False
    session_expired: bool = False
    pending_prompt: Optional[PromptResponse] = None
    rows: Optional[RowsResponse] = None

    @classmethod
    def from_outcome(cls, outcome: Outcome, rows: Optional[RowsResponse] = None) -> "OutcomeResponse":
        prompt = outcome.pending_prompt
        return cls(
            status=outcome.status,
            entity=str(outcome.ref),
            action=outcome.action,
            message=outcome.message,
            error=outcome.error,
            irreversible=outcome.request.irreversible if outcome.request is not None else False,
            stale=outcome.stale,
            session_expired=outcome.session_expired,
            pending_prompt=PromptResponse.from_prompt(prompt) if prompt is not None else None,
            rows=rows,
        )


class FailureLogResponse(BaseModel):
    items: List[FailureRecord]
    capacity: int
