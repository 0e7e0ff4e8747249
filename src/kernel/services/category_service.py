"""
Category Service - admin endpoints for categories.

The backend returns the whole category list in one response, so search,
status filtering, sorting and paging happen here. Each row's dependent count
is the number of novels filed under it, fetched concurrently per row.
"""

import asyncio
from typing import Any, Dict, List, Optional, Tuple

from src.kernel.models.entity import (
    CategoryStatus,
    EntityKind,
    ModerableEntity,
    ModerationAction,
    TransitionResult,
)
from src.kernel.models.listing import ListPage, ListQuery, SortOrder
from src.kernel.services.novel_service import result_from_envelope
from src.kernel.transport.api_client import AdminApiClient, TransportError
from src.logging_config import get_logger

logger = get_logger(__name__)

CATEGORY_ACTIONS = frozenset({
    ModerationAction.TOGGLE_STATUS,
    ModerationAction.SOFT_DELETE,
    ModerationAction.HARD_DELETE,
})

# ListQuery sort name -> category payload field
_SORT_FIELDS = {
    "createTime": "createdAt",
    "updateTime": "updatedAt",
}


def category_status(payload: Dict[str, Any]) -> CategoryStatus:
    if payload.get("isDeleted") or payload.get("deleted"):
        return CategoryStatus.DELETED
    return CategoryStatus.ACTIVE if payload.get("isActive") else CategoryStatus.INACTIVE


def category_from_payload(payload: Dict[str, Any], novel_count: int = 0) -> ModerableEntity:
    return ModerableEntity(
        id=payload["id"],
        kind=EntityKind.CATEGORY,
        status=category_status(payload),
        dependent_resource_count=novel_count,
        title=payload.get("name"),
    )


def _matches(payload: Dict[str, Any], search: Optional[str], status: Optional[str]) -> bool:
    if status and category_status(payload).value != str(status).upper():
        return False
    if search:
        needle = search.lower()
        haystack = " ".join(str(payload.get(f) or "") for f in ("name", "description", "slug")).lower()
        if needle not in haystack:
            return False
    return True


def _sort_key(field: str):
    def _key(payload: Dict[str, Any]) -> Tuple[bool, Any]:
        value = payload.get(field)
        if isinstance(value, str):
            value = value.lower()
        return (value is None, value if value is not None else "")

    return _key


class CategoryService:
    """Transition and list-fetch collaborator for categories."""

    def __init__(self, client: AdminApiClient):
        self.client = client

    async def transition(
        self,
        entity: ModerableEntity,
        action: ModerationAction,
    ) -> TransitionResult:
        """
        Raises:
            ValueError: If the action does not apply to categories
            TransportError: If the request fails
        """
        category_id = entity.id
        if action == ModerationAction.TOGGLE_STATUS:
            is_active = entity.status != CategoryStatus.ACTIVE
            envelope = await self.client.put(f"/categories/{category_id}", json={"isActive": is_active})
            default = f"Category {'activated' if is_active else 'deactivated'} successfully"
        elif action == ModerationAction.SOFT_DELETE:
            envelope = await self.client.delete(f"/categories/{category_id}")
            default = "Category deleted successfully"
        elif action == ModerationAction.HARD_DELETE:
            envelope = await self.client.delete(f"/categories/{category_id}/hard")
            default = "Category permanently deleted"
        else:
            raise ValueError(f"{action.value} is not a category action")
        return result_from_envelope(envelope, default)

    async def novel_count(self, category_id: Any) -> int:
        """Novels filed under the category; 0 when the count cannot be fetched."""
        try:
            envelope = await self.client.get(
                "/novels",
                params={"page": 0, "size": 1, "category": category_id},
            )
        except TransportError as e:
            logger.warning(
                "Novel count unavailable: %s",
                e.message,
                extra={"category_id": category_id, "status_code": e.status_code},
            )
            return 0
        data = envelope.data if isinstance(envelope.data, dict) else {}
        return int(data.get("totalElements") or 0)

    async def fetch_page(self, query: ListQuery) -> ListPage:
        status = query.filter_value("status")
        active_only = status is not None and str(status).upper() == CategoryStatus.ACTIVE.value
        path = "/categories/active" if active_only else "/categories"

        envelope = await self.client.get(path)
        data = envelope.data
        if not isinstance(data, dict):
            raise TransportError("Failed to fetch categories", endpoint=f"GET {path}")

        payloads: List[Dict[str, Any]] = [
            p for p in data.get("categories") or [] if "id" in p and _matches(p, query.search, status)
        ]
        field = _SORT_FIELDS.get(query.sort, query.sort)
        payloads.sort(key=_sort_key(field), reverse=query.order == SortOrder.DESC)

        start = (query.page - 1) * query.page_size
        window = payloads[start:start + query.page_size]
        counts = await asyncio.gather(*(self.novel_count(p["id"]) for p in window))

        items = []
        for payload, count in zip(window, counts):
            try:
                items.append(category_from_payload(payload, count))
            except (KeyError, ValueError) as e:
                logger.warning("Skipping category row: %s", e, extra={"category_id": payload.get("id")})

        return ListPage(
            items=items,
            total=len(payloads),
            page=query.page,
            page_size=query.page_size,
        )
