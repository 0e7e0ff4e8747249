"""
List query and page shapes shared by the list-fetch collaborators and the
consistency coordinator.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from src.kernel.models.entity import EntityRef, ModerableEntity


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class ListQuery(BaseModel):
    """Page, sort and filters of a list view (page is 1-based)."""

    model_config = {"frozen": True}

    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=10, ge=1, le=200)
    sort: str = "createTime"
    order: SortOrder = SortOrder.DESC
    search: Optional[str] = None
    filters: Dict[str, Any] = Field(default_factory=dict)

    def filter_value(self, name: str) -> Any:
        value = self.filters.get(name)
        return None if value == "" else value


class ListPage(BaseModel):
    """One page of entities as returned by the backend."""

    items: List[ModerableEntity] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 10

    def find(self, ref: EntityRef) -> Optional[ModerableEntity]:
        for item in self.items:
            if item.ref == ref:
                return item
        return None
