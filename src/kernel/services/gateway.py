"""
Moderation gateway - routes transitions and list fetches to the service for
the entity's kind.
"""

from typing import Optional

from src.kernel.models.entity import EntityKind, ModerableEntity, ModerationAction, TransitionResult
from src.kernel.services.category_service import CategoryService
from src.kernel.services.novel_service import NovelService
from src.kernel.transport.api_client import AdminApiClient


class ModerationGateway:
    """
    Single transition collaborator for the moderation console.

    Usage:
        gateway = ModerationGateway.from_client(client)
        result = await gateway.perform(entity, ModerationAction.APPROVE)
    """

    def __init__(self, novels: NovelService, categories: CategoryService):
        self.novels = novels
        self.categories = categories

    @classmethod
    def from_client(cls, client: AdminApiClient) -> "ModerationGateway":
        return cls(NovelService(client), CategoryService(client))

    async def perform(
        self,
        entity: ModerableEntity,
        action: ModerationAction,
        notes: Optional[str] = None,
    ) -> TransitionResult:
        if entity.kind == EntityKind.NOVEL:
            return await self.novels.transition(entity.id, action, notes)
        return await self.categories.transition(entity, action)

    def fetcher(self, kind: EntityKind):
        """List-fetch collaborator for `kind`."""
        return self.novels if kind == EntityKind.NOVEL else self.categories
