"""
Moderation endpoints.

Rows, confirmation plans and transitions for the novel and category list
views, plus the recent-failures log.
"""

from typing import Dict, Optional

from fastapi import APIRouter, Query, Response, status

from src.api.deps import ActiveSession, Console, View
from src.config import get_settings
from src.engines.moderation.action_executor import OutcomeStatus
from src.engines.moderation.confirmation_gate import AcknowledgementConfirmer
from src.engines.moderation.console import ModerationView
from src.engines.moderation.errors import IllegalTransitionError, SessionExpiredError
from src.kernel.models.entity import ModerationAction
from src.kernel.models.listing import ListQuery, SortOrder
from src.logging_config import get_logger
from src.schemas.moderation import (
    FailureLogResponse,
    OutcomeResponse,
    PromptPlanResponse,
    PromptResponse,
    RowResponse,
    RowsResponse,
    TransitionBody,
)

router = APIRouter()
logger = get_logger(__name__)

_OUTCOME_STATUS_CODES: Dict[OutcomeStatus, int] = {
    OutcomeStatus.SUCCEEDED: status.HTTP_200_OK,
    OutcomeStatus.FAILED: status.HTTP_200_OK,
    OutcomeStatus.DISCARDED: status.HTTP_200_OK,
    OutcomeStatus.BUSY: status.HTTP_409_CONFLICT,
    OutcomeStatus.REJECTED: status.HTTP_409_CONFLICT,
    OutcomeStatus.CANCELLED: status.HTTP_428_PRECONDITION_REQUIRED,
}


def _rows(view: ModerationView) -> RowsResponse:
    page = view.page
    if page is None:
        return RowsResponse.create(items=[], total=0, page=view.query.page, page_size=view.query.page_size)
    return RowsResponse.create(
        items=[RowResponse.from_state(row) for row in view.rows()],
        total=page.total,
        page=page.page,
        page_size=page.page_size,
    )


@router.get("/{kind}/rows", response_model=RowsResponse)
async def list_rows(
    view: View,
    _: ActiveSession,
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, ge=1, le=200),
    sort: Optional[str] = None,
    order: Optional[SortOrder] = None,
    search: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    category: Optional[str] = None,
    author_name: Optional[str] = None,
    author_id: Optional[str] = None,
):
    """Load a page of the list view and return its rows with their moderation state."""
    settings = get_settings()
    filters = {
        "status": status_filter,
        "category": category,
        "author_name": author_name,
        "author_id": author_id,
    }
    query = ListQuery(
        page=page,
        page_size=page_size or settings.default_page_size,
        sort=sort or settings.default_sort,
        order=order or SortOrder(settings.default_order),
        search=search or None,
        filters={k: v for k, v in filters.items() if v not in (None, "")},
    )
    await view.load(query)
    return _rows(view)


@router.get("/{kind}/{entity_id}/actions/{action}/prompts", response_model=PromptPlanResponse)
async def get_prompts(
    entity_id: str,
    action: ModerationAction,
    view: View,
    console: Console,
    _: ActiveSession,
):
    """Confirmation dialogs the operator must accept, in order, before the action runs."""
    if view.page is None:
        await view.load()
    entity = view.find(entity_id)
    if action not in console.legal_actions(entity):
        raise IllegalTransitionError(
            f"Cannot {action.value.replace('_', ' ')} {entity.label} in status {entity.status.value}",
            details={"entity": str(entity.ref), "action": action.value},
        )
    return PromptPlanResponse(
        entity=str(entity.ref),
        action=action,
        prompts=[PromptResponse.from_prompt(p) for p in view.prompts_for(entity, action)],
    )


@router.post("/{kind}/{entity_id}/actions/{action}", response_model=OutcomeResponse)
async def run_action(
    entity_id: str,
    action: ModerationAction,
    view: View,
    session: ActiveSession,
    response: Response,
    body: Optional[TransitionBody] = None,
):
    """
    Run an action on one row.

    The body states how many confirmation tiers the operator accepted; any
    tier not accepted cancels the request with 428 and the pending prompt.
    """
    body = body or TransitionBody()
    if view.page is None:
        await view.load()
    entity = view.find(entity_id)

    outcome = await view.request_transition(
        entity,
        action,
        AcknowledgementConfirmer(body.acknowledged_tiers),
        notes=body.notes,
    )
    if outcome.session_expired:
        expiry = session.expiry
        raise SessionExpiredError(
            expiry.reason if expiry else "Session expired",
            redirect_to=session.login_path,
            details={"entity": str(outcome.ref), "action": action.value},
        )

    response.status_code = _OUTCOME_STATUS_CODES[outcome.status]
    rows = _rows(view) if not view.closed else None
    return OutcomeResponse.from_outcome(outcome, rows)


@router.get("/failures", response_model=FailureLogResponse)
async def list_failures(
    _: ActiveSession,
    console: Console,
    limit: Optional[int] = Query(None, ge=1),
):
    """Recent classified failures, newest first."""
    log = console.failure_log
    return FailureLogResponse(items=log.recent(limit), capacity=log.capacity)


@router.delete("/failures", status_code=status.HTTP_204_NO_CONTENT)
async def clear_failures(_: ActiveSession, console: Console):
    console.failure_log.clear()
    logger.info("Failure log cleared")
