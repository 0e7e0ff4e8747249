"""
Operator session endpoints.

Login itself happens against the admin backend; the console only receives
the issued tokens and holds them for the lifetime of the session.
"""

from fastapi import APIRouter, status

from src.api.deps import Session
from src.kernel.identity.session import Credentials, SessionContext
from src.schemas.moderation import SessionCreate, SessionResponse

router = APIRouter()


def _state(session: SessionContext) -> SessionResponse:
    expiry = session.expiry
    return SessionResponse(
        authenticated=session.is_authenticated,
        expired=expiry is not None,
        reason=expiry.reason if expiry else None,
        redirect_to=expiry.redirect_to if expiry else None,
    )


@router.post("", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def open_session(data: SessionCreate, session: Session):
    """Install the operator's credentials."""
    session.init(
        Credentials(
            access_token=data.access_token,
            refresh_token=data.refresh_token,
            token_type=data.token_type,
            expires_in=data.expires_in,
            user=data.user,
        )
    )
    return _state(session)


@router.get("", response_model=SessionResponse)
async def get_session_state(session: Session):
    return _state(session)


@router.delete("", response_model=SessionResponse)
async def close_session(session: Session):
    """Sign out: clear credentials without marking the session expired."""
    session.teardown()
    return _state(session)
