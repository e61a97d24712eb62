"""Repository for reading pages owned by the editor service."""

import uuid
from collections.abc import Collection
from typing import NamedTuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from askpages.models.page import Page
from askpages.models.space import Space


class PageSource(NamedTuple):
    """Citation metadata for a page."""

    page_id: uuid.UUID
    title: str | None
    slug_id: str
    space_slug: str


class PageRepository:
    """Handle page read operations."""

    @staticmethod
    async def get_for_embedding(
        session: AsyncSession, page_id: uuid.UUID
    ) -> Page | None:
        """Retrieve a live (not soft-deleted) page by its ID."""
        result = await session.execute(
            select(Page).where(Page.id == page_id, Page.deleted_at.is_(None))
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def list_for_workspace(
        session: AsyncSession, workspace_id: uuid.UUID
    ) -> list[Page]:
        """Retrieve every live page of a workspace."""
        result = await session.execute(
            select(Page)
            .where(Page.workspace_id == workspace_id, Page.deleted_at.is_(None))
            .order_by(Page.created_at, Page.id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_sources(
        session: AsyncSession, page_ids: Collection[uuid.UUID]
    ) -> dict[uuid.UUID, PageSource]:
        """Look up title, slug and space slug for live pages, keyed by page id."""
        if not page_ids:
            return {}

        result = await session.execute(
            select(
                Page.id,
                Page.title,
                Page.slug_id,
                Space.slug.label("space_slug"),
            )
            .join(Space, Space.id == Page.space_id)
            .where(Page.id.in_(list(page_ids)), Page.deleted_at.is_(None))
        )
        return {
            row.id: PageSource(
                page_id=row.id,
                title=row.title,
                slug_id=row.slug_id,
                space_slug=row.space_slug,
            )
            for row in result.all()
        }
