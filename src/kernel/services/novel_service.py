"""
Novel Service - admin endpoints for novels.

Transitions map one-to-one onto POST /novels/{id}/<action>. The list comes
from the admin listing endpoint, which pages 0-based.
"""

from typing import Any, Dict, Optional

from src.kernel.models.entity import (
    EntityKind,
    ModerableEntity,
    ModerationAction,
    NovelStatus,
    TransitionResult,
)
from src.kernel.models.listing import ListPage, ListQuery
from src.kernel.transport.api_client import AdminApiClient, ApiEnvelope, TransportError
from src.logging_config import get_logger

logger = get_logger(__name__)

NOVEL_ACTIONS = frozenset({
    ModerationAction.APPROVE,
    ModerationAction.REJECT,
    ModerationAction.HIDE,
    ModerationAction.UNHIDE,
    ModerationAction.ARCHIVE,
})

_SUCCESS_MESSAGES = {
    ModerationAction.APPROVE: "Novel approved and published successfully",
    ModerationAction.REJECT: "Novel rejected successfully",
    ModerationAction.HIDE: "Novel hidden successfully",
    ModerationAction.UNHIDE: "Novel unhidden successfully",
    ModerationAction.ARCHIVE: "Novel archived successfully",
}

# ListQuery filter name -> admin listing query parameter
_FILTER_PARAMS = {
    "status": "status",
    "category": "category",
    "author_name": "authorName",
    "author_id": "authorId",
}


def novel_from_payload(payload: Dict[str, Any]) -> ModerableEntity:
    """
    Build a ModerableEntity from an admin novel payload.

    Raises:
        ValueError: If the status is missing or unknown
    """
    status = str(payload.get("status") or "").upper()
    hidden = payload.get("isHidden", payload.get("hidden", False))
    return ModerableEntity(
        id=payload["id"],
        kind=EntityKind.NOVEL,
        status=NovelStatus(status),
        hidden=bool(hidden),
        dependent_resource_count=int(payload.get("chapterCnt") or 0),
        title=payload.get("title"),
    )


def result_from_envelope(envelope: ApiEnvelope, default_message: str) -> TransitionResult:
    """Turn a decoded envelope into a TransitionResult; {success: false} bodies are failures."""
    data = envelope.data
    if isinstance(data, dict) and data.get("success") is False:
        return TransitionResult(
            success=False,
            message=data.get("message") or envelope.message,
            data=data,
        )
    return TransitionResult(success=True, message=envelope.message or default_message, data=data)


class NovelService:
    """Transition and list-fetch collaborator for novels."""

    def __init__(self, client: AdminApiClient):
        self.client = client

    async def transition(
        self,
        novel_id: Any,
        action: ModerationAction,
        notes: Optional[str] = None,
    ) -> TransitionResult:
        """
        POST /novels/{id}/<action>.

        Raises:
            ValueError: If the action does not apply to novels
            TransportError: If the request fails
        """
        if action not in NOVEL_ACTIONS:
            raise ValueError(f"{action.value} is not a novel action")
        body = {"notes": notes} if notes else None
        envelope = await self.client.post(f"/novels/{novel_id}/{action.value}", json=body)
        return result_from_envelope(envelope, _SUCCESS_MESSAGES[action])

    async def fetch_page(self, query: ListQuery) -> ListPage:
        params: Dict[str, Any] = {
            "page": query.page - 1,
            "size": query.page_size,
            "sort": query.sort,
            "order": query.order.value,
            "search": query.search,
        }
        for name, param in _FILTER_PARAMS.items():
            params[param] = query.filter_value(name)

        envelope = await self.client.get("/novels/admin/all", params=params)
        data = envelope.data
        if not isinstance(data, dict):
            raise TransportError("Failed to fetch novels", endpoint="GET /novels/admin/all")

        items = []
        for payload in data.get("content") or []:
            try:
                items.append(novel_from_payload(payload))
            except (KeyError, ValueError) as e:
                logger.warning("Skipping novel row: %s", e, extra={"novel_id": payload.get("id")})

        current = data.get("currentPage")
        return ListPage(
            items=items,
            total=int(data.get("totalElements") or 0),
            page=current + 1 if isinstance(current, int) else query.page,
            page_size=int(data.get("size") or query.page_size),
        )
