"""
API v1 routes.
"""

from fastapi import APIRouter

from src.api.v1 import moderation, session

router = APIRouter()

router.include_router(session.router, prefix="/session", tags=["Session"])
router.include_router(moderation.router, prefix="/moderation", tags=["Moderation"])
