"""
Recent moderation failures, kept in memory for operator debugging.

Bounded ring (newest first on read); older entries fall off the end.
"""

from collections import deque
from datetime import datetime, timezone
from typing import Deque, List, Optional

from pydantic import BaseModel

from src.engines.moderation.error_classifier import ClassifiedError, ErrorClass
from src.kernel.models.entity import EntityRef, ModerationAction


class FailureRecord(BaseModel):
    """One classified failure with the context it happened in."""

    occurred_at: datetime
    entity: str
    action: ModerationAction
    error_class: ErrorClass
    raw_message: str
    recovery_hint: str
    status_code: Optional[int] = None
    action_id: Optional[str] = None


class FailureLog:
    """In-memory ring of the most recent failures."""

    def __init__(self, capacity: int = 50):
        self.capacity = capacity
        self._records: Deque[FailureRecord] = deque(maxlen=capacity)

    def record(
        self,
        ref: EntityRef,
        action: ModerationAction,
        error: ClassifiedError,
        action_id: Optional[str] = None,
    ) -> FailureRecord:
        entry = FailureRecord(
            occurred_at=datetime.now(timezone.utc),
            entity=str(ref),
            action=action,
            error_class=error.error_class,
            raw_message=error.raw_message,
            recovery_hint=error.recovery_hint,
            status_code=error.status_code,
            action_id=action_id,
        )
        self._records.append(entry)
        return entry

    def recent(self, limit: Optional[int] = None) -> List[FailureRecord]:
        """Newest first."""
        records = list(reversed(self._records))
        return records[:limit] if limit is not None else records

    def clear(self) -> None:
        self._records.clear()

    def __len__(self) -> int:
        return len(self._records)
