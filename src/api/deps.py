"""
FastAPI dependencies for the operator session and the moderation console.
"""

from typing import Annotated

from fastapi import Depends, Request

from src.engines.moderation.console import ModerationConsole, ModerationView
from src.engines.moderation.errors import EntityNotFoundError, SessionExpiredError
from src.kernel.identity.session import SessionContext
from src.kernel.models.entity import EntityKind


def get_session(request: Request) -> SessionContext:
    """Operator session opened by the application lifespan."""
    return request.app.state.session


def get_console(request: Request) -> ModerationConsole:
    """Moderation console opened by the application lifespan."""
    return request.app.state.console


Session = Annotated[SessionContext, Depends(get_session)]
Console = Annotated[ModerationConsole, Depends(get_console)]


async def require_session(session: Session) -> SessionContext:
    """Require installed credentials; otherwise send the operator to the login page."""
    if not session.is_authenticated:
        expiry = session.expiry
        raise SessionExpiredError(
            expiry.reason if expiry else "Not signed in",
            redirect_to=session.login_path,
        )
    return session


ActiveSession = Annotated[SessionContext, Depends(require_session)]


def get_view(kind: EntityKind, console: Console) -> ModerationView:
    """The open list view for the `kind` path parameter."""
    view = console.view(kind)
    if view is None:
        raise EntityNotFoundError(f"No {kind.value} view is open", details={"kind": kind.value})
    return view


View = Annotated[ModerationView, Depends(get_view)]
