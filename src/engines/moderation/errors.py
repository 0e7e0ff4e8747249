"""Moderation engine exception hierarchy."""

from typing import Any, Dict, Optional


class ModerationError(Exception):
    """Base exception for moderation domain errors."""

    def __init__(self, message: str, code: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}


class IllegalTransitionError(ModerationError):
    """Raised when an action is not offered for the entity's observed state."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, "illegal_transition", details)


class EntityNotFoundError(ModerationError):
    """Raised when an entity is not on the view's current page."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, "entity_not_found", details)


class SessionExpiredError(ModerationError):
    """Raised when the operator session has expired or was never initialised."""

    def __init__(self, message: str, redirect_to: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, "session_expired", details)
        self.redirect_to = redirect_to
