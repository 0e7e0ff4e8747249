"""
Pydantic schemas for API request/response validation.
"""

from src.schemas.common import (
    ErrorResponse,
    HealthResponse,
    PaginatedResponse,
    SuccessResponse,
)
from src.schemas.moderation import (
    FailureLogResponse,
    OutcomeResponse,
    PromptPlanResponse,
    PromptResponse,
    RowResponse,
    RowsResponse,
    SessionCreate,
    SessionResponse,
    TransitionBody,
)

__all__ = [
    # Common
    "ErrorResponse",
    "HealthResponse",
    "PaginatedResponse",
    "SuccessResponse",
    # Moderation
    "FailureLogResponse",
    "OutcomeResponse",
    "PromptPlanResponse",
    "PromptResponse",
    "RowResponse",
    "RowsResponse",
    "SessionCreate",
    "SessionResponse",
    "TransitionBody",
]
