"""Access scoping: which spaces a user may retrieve content from."""

import uuid
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from askpages.repositories.space_member import SpaceMemberRepository


class AccessResolver(Protocol):
    """Resolves the set of spaces a user may query within a workspace."""

    async def accessible_space_ids(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        workspace_id: uuid.UUID,
    ) -> set[uuid.UUID]: ...


class SpaceMembershipResolver:
    """Access resolver backed by the space membership table."""

    async def accessible_space_ids(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        workspace_id: uuid.UUID,
    ) -> set[uuid.UUID]:
        return await SpaceMemberRepository.get_user_space_ids(
            session, user_id=user_id, workspace_id=workspace_id
        )
