"""
Operator session context.

Holds the operator's credentials for the admin backend and owns their
lifecycle: `init` installs them, `teardown` clears them, and `expire`
clears them *and* tells every registered listener to send the operator
back to the login page. Components receive the context explicitly.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from src.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class Credentials:
    """Tokens issued by the admin backend's login endpoint."""

    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "Bearer"
    expires_in: Optional[int] = None
    user: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SessionExpiry:
    """Why and when the session ended, and where the operator goes next."""

    reason: str
    redirect_to: str
    expired_at: datetime


ExpiryListener = Callable[[SessionExpiry], None]


class SessionContext:
    """
    Credential holder with an explicit init/teardown lifecycle.

    Usage:
        session = SessionContext(login_path="/yushan-admin/login")
        session.init(Credentials(access_token=token))
        session.on_expire(lambda expiry: redirect(expiry.redirect_to))
        ...
        session.expire("401 from /novels/42/approve")
    """

    def __init__(self, login_path: str):
        self.login_path = login_path
        self._credentials: Optional[Credentials] = None
        self._listeners: List[ExpiryListener] = []
        self._expiry: Optional[SessionExpiry] = None

    @property
    def credentials(self) -> Optional[Credentials]:
        return self._credentials

    @property
    def is_authenticated(self) -> bool:
        return self._credentials is not None

    @property
    def expiry(self) -> Optional[SessionExpiry]:
        """Set once the session has been expired, until the next init."""
        return self._expiry

    @property
    def is_expired(self) -> bool:
        return self._expiry is not None

    def init(self, credentials: Credentials) -> None:
        """Install credentials (after a login performed elsewhere)."""
        self._credentials = credentials
        self._expiry = None
        logger.info("Operator session initialised")

    def teardown(self) -> None:
        """Clear credentials without signalling expiry (explicit logout)."""
        if self._credentials is not None:
            logger.info("Operator session torn down")
        self._credentials = None

    def expire(self, reason: str) -> SessionExpiry:
        """
        Clear credentials and notify listeners. Idempotent: a second call
        while already expired returns the first expiry without re-notifying.
        """
        if self._expiry is not None:
            return self._expiry
        self._credentials = None
        self._expiry = SessionExpiry(
            reason=reason,
            redirect_to=self.login_path,
            expired_at=datetime.now(timezone.utc),
        )
        logger.warning("Operator session expired", extra={"reason": reason})
        for listener in list(self._listeners):
            listener(self._expiry)
        return self._expiry

    def on_expire(self, listener: ExpiryListener) -> Callable[[], None]:
        """Register an expiry listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def authorization_header(self) -> Dict[str, str]:
        """Authorization header for the current credentials (empty when signed out)."""
        if self._credentials is None:
            return {}
        return {"Authorization": f"{self._credentials.token_type} {self._credentials.access_token}"}
