"""
Per-entity action lock table.

The only shared mutable state in the moderation engine. Acquisition is a
synchronous check-and-set with no await in between, so on a single asyncio
event loop two triggers for the same entity can never both acquire before
the first call is even issued. Distinct entities never block each other.
"""

from typing import Dict, Optional

from src.kernel.models.entity import EntityRef, ModerationAction
from src.logging_config import get_logger

logger = get_logger(__name__)


class ConcurrencyGuard:
    """
    Lock table: EntityRef -> action in flight.

    Usage:
        if not guard.try_acquire(ref, ModerationAction.ARCHIVE):
            return busy
        try:
            await call()
        finally:
            guard.release(ref)
    """

    def __init__(self):
        self._held: Dict[EntityRef, ModerationAction] = {}

    def try_acquire(self, ref: EntityRef, action: ModerationAction) -> bool:
        """Hold `action` for `ref`; False if any action is already held for it."""
        current = self._held.get(ref)
        if current is not None:
            logger.debug(
                "Lock busy",
                extra={"entity": str(ref), "held": current.value, "requested": action.value},
            )
            return False
        self._held[ref] = action
        return True

    def release(self, ref: EntityRef) -> None:
        """Release whatever is held for `ref` (no-op if nothing is)."""
        self._held.pop(ref, None)

    def current_action(self, ref: EntityRef) -> Optional[ModerationAction]:
        return self._held.get(ref)

    def is_busy(self, ref: EntityRef) -> bool:
        return ref in self._held

    def __len__(self) -> int:
        return len(self._held)
