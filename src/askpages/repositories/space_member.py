"""Repository for space membership lookups."""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from askpages.models.space import Space, SpaceMember


class SpaceMemberRepository:
    """Handle space membership read operations."""

    @staticmethod
    async def get_user_space_ids(
        session: AsyncSession,
        user_id: uuid.UUID,
        workspace_id: uuid.UUID,
    ) -> set[uuid.UUID]:
        """Return the ids of the workspace spaces the user is a member of."""
        result = await session.execute(
            select(SpaceMember.space_id)
            .join(Space, Space.id == SpaceMember.space_id)
            .where(
                SpaceMember.user_id == user_id,
                Space.workspace_id == workspace_id,
            )
            .distinct()
        )
        return set(result.scalars().all())
