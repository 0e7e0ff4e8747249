"""
Yushan Moderation Console

FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import httpx
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api.middleware.request_id import RequestIdMiddleware
from src.api.v1 import router as api_v1_router
from src.config import Settings, get_settings
from src.engines.moderation.console import ModerationConsole
from src.engines.moderation.error_classifier import ErrorClassifier
from src.engines.moderation.errors import (
    EntityNotFoundError,
    IllegalTransitionError,
    ModerationError,
    SessionExpiredError,
)
from src.engines.moderation.failure_log import FailureLog
from src.kernel.identity.session import SessionContext
from src.kernel.models.entity import EntityKind
from src.kernel.models.listing import ListQuery, SortOrder
from src.kernel.services.gateway import ModerationGateway
from src.kernel.transport.api_client import AdminApiClient, TransportError
from src.logging_config import configure_logging, get_logger
from src.schemas.common import HealthResponse

settings = get_settings()
logger = get_logger(__name__)


def open_console(
    app: FastAPI,
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ModerationConsole:
    """
    Build the session, admin client and console, open one view per entity
    kind and store them on app.state.
    """
    session = SessionContext(login_path=settings.login_path)
    client = AdminApiClient(
        settings.admin_api_base_url,
        session,
        timeout=settings.admin_api_timeout_seconds,
        transport=transport,
    )
    gateway = ModerationGateway.from_client(client)
    console = ModerationConsole(
        gateway,
        session,
        classifier=ErrorClassifier.from_markers(settings.referential_integrity_markers),
        failure_log=FailureLog(settings.failure_log_size),
    )
    default_query = ListQuery(
        page_size=settings.default_page_size,
        sort=settings.default_sort,
        order=SortOrder(settings.default_order),
    )
    for kind in EntityKind:
        console.open_view(kind, gateway.fetcher(kind), default_query)

    session.on_expire(
        lambda expiry: logger.warning(
            "Operator must sign in again",
            extra={"reason": expiry.reason, "redirect_to": expiry.redirect_to},
        )
    )

    app.state.session = session
    app.state.admin_client = client
    app.state.console = console
    return console


async def close_console(app: FastAPI) -> None:
    """Tear down views, credentials and the admin client."""
    app.state.console.close()
    app.state.session.teardown()
    await app.state.admin_client.aclose()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan handler.

    Runs startup and shutdown tasks.
    """
    # Configure logging first
    configure_logging(
        log_level=settings.log_level,
        environment=settings.environment,
        debug=settings.debug,
    )

    # Startup
    logger.info("Starting %s v%s", settings.project_name, settings.version)
    open_console(app, settings)
    logger.info("Moderation console ready", extra={"admin_api": settings.admin_api_base_url})

    yield

    # Shutdown
    logger.info("Shutting down...")
    await close_console(app)
    logger.info("Admin API client closed")


# Create FastAPI application
app = FastAPI(
    title=settings.project_name,
    description="""
    Yushan Moderation Console

    Backend of the content platform's admin console for moderating novels
    and categories.

    ## Features

    - **Novels**: approve, reject, hide, unhide and archive
    - **Categories**: activate/deactivate, soft delete and hard delete
    - **Confirmation**: every action is confirmed; irreversible ones twice
    - **Per-row state**: in-progress action, classified error, stale marker
    - **Failure log**: the most recent classified failures for debugging
    """,
    version=settings.version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# Middleware order: add_middleware stacks innermost-first, so LAST added = OUTERMOST.
# CORS must be outermost so it adds headers to ALL responses.
_cors_origins = list(settings.cors_origins)

app.add_middleware(RequestIdMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _cors_headers(request: Request) -> dict:
    """Return CORS headers for error responses so browser receives them (500s often bypass CORS middleware)."""
    origin = request.headers.get("origin") or ""
    allow_origin = origin if origin in _cors_origins else (_cors_origins[0] if _cors_origins else "*")
    return {
        "Access-Control-Allow-Origin": allow_origin,
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Allow-Methods": "*",
        "Access-Control-Allow-Headers": "*",
    }


def _error_response(request: Request, status_code: int, content: dict) -> JSONResponse:
    headers = _cors_headers(request)
    req_id = getattr(request.state, "request_id", None)
    if req_id:
        headers["X-Request-ID"] = req_id
        if status_code >= 500:
            content["request_id"] = req_id
    return JSONResponse(status_code=status_code, content=content, headers=headers)


_MODERATION_STATUS_CODES = {
    IllegalTransitionError: status.HTTP_409_CONFLICT,
    EntityNotFoundError: status.HTTP_404_NOT_FOUND,
}


@app.exception_handler(SessionExpiredError)
async def session_expired_handler(request: Request, exc: SessionExpiredError):
    """Session teardown wins over any row error: send the operator to the login page."""
    return _error_response(
        request,
        status.HTTP_401_UNAUTHORIZED,
        {"detail": exc.message, "code": exc.code, "redirect_to": exc.redirect_to},
    )


@app.exception_handler(ModerationError)
async def moderation_exception_handler(request: Request, exc: ModerationError):
    status_code = _MODERATION_STATUS_CODES.get(type(exc), status.HTTP_400_BAD_REQUEST)
    return _error_response(
        request,
        status_code,
        {"detail": exc.message, "code": exc.code, **({"details": exc.details} if exc.details else {})},
    )


@app.exception_handler(TransportError)
async def transport_exception_handler(request: Request, exc: TransportError):
    """A list fetch failed at the admin backend."""
    session = request.app.state.session
    if exc.status_code == 401 or session.is_expired:
        return _error_response(
            request,
            status.HTTP_401_UNAUTHORIZED,
            {"detail": exc.message, "code": "session_expired", "redirect_to": session.login_path},
        )
    logger.warning(
        "Admin API request failed: %s",
        exc.message,
        extra={"endpoint": exc.endpoint, "status_code": exc.status_code},
    )
    status_code = status.HTTP_504_GATEWAY_TIMEOUT if exc.timeout else status.HTTP_502_BAD_GATEWAY
    return _error_response(request, status_code, {"detail": exc.message, "code": "admin_api_error"})


# Exception handlers (include CORS headers so 4xx/5xx responses are not blocked by browser)
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Ensure 401/403/404 etc. responses have CORS headers."""
    return _error_response(request, exc.status_code, {"detail": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
):
    errors = []
    for error in exc.errors():
        errors.append({
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        })
    content = {"detail": "Validation error", "errors": errors}
    req_id = getattr(request.state, "request_id", None)
    if req_id:
        content["request_id"] = req_id
    return _error_response(request, status.HTTP_422_UNPROCESSABLE_ENTITY, content)


@app.exception_handler(Exception)
async def general_exception_handler(
    request: Request,
    exc: Exception,
):
    """Handle unexpected exceptions. CORS headers added so browser does not hide 500 behind CORS error."""
    logger.exception("Unhandled exception: %s", exc)
    req_id = getattr(request.state, "request_id", None)
    if settings.debug:
        content = {
            "detail": str(exc),
            "type": type(exc).__name__,
            "request_id": req_id,
        }
    else:
        content = {"detail": "Internal server error", "request_id": req_id}
    return _error_response(request, status.HTTP_500_INTERNAL_SERVER_ERROR, content)


# Health check endpoint
@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(request: Request):
    """Check application health."""
    session = getattr(request.app.state, "session", None)
    if session is None:
        session_state = "not_started"
    elif session.is_authenticated:
        session_state = "signed_in"
    elif session.is_expired:
        session_state = "expired"
    else:
        session_state = "signed_out"
    return HealthResponse(
        status="ok",
        version=settings.version,
        admin_api=settings.admin_api_base_url,
        session=session_state,
    )


# Root endpoint
@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": settings.project_name,
        "version": settings.version,
        "docs": "/docs" if settings.debug else "disabled",
        "api": {
            "v1": "/api/v1",
        },
    }


# Mount API v1 routes
app.include_router(
    api_v1_router,
    prefix=settings.api_v1_prefix,
)


# Main entry point for development
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
