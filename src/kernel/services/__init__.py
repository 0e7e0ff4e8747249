"""
Kernel Services

REST collaborators of the moderation console.
"""

from src.kernel.services.category_service import CategoryService, category_from_payload
from src.kernel.services.gateway import ModerationGateway
from src.kernel.services.novel_service import NovelService, novel_from_payload

__all__ = [
    "CategoryService",
    "ModerationGateway",
    "NovelService",
    "category_from_payload",
    "novel_from_payload",
]
