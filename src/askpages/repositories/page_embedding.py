"""Repository for page embedding (vector store) operations."""

import uuid
from collections.abc import Collection

from sqlalchemy import Select, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import defer

from askpages.models.page_embedding import PageEmbedding
from askpages.services.chunking import ChunkData


class PageEmbeddingRepository:
    """Persist embedded chunks and run nearest-neighbour queries over them."""

    @staticmethod
    async def create_bulk(
        session: AsyncSession,
        *,
        page_id: uuid.UUID,
        space_id: uuid.UUID,
        workspace_id: uuid.UUID,
        model_name: str,
        model_dimensions: int,
        generation_id: uuid.UUID,
        chunks: list[ChunkData],
        embeddings: list[list[float]],
    ) -> list[PageEmbedding]:
        """Insert one row per chunk. Existing rows are never updated."""
        rows = [
            PageEmbedding(
                page_id=page_id,
                space_id=space_id,
                workspace_id=workspace_id,
                model_name=model_name,
                model_dimensions=model_dimensions,
                embedding=embedding,
                chunk_index=chunk.chunk_index,
                chunk_start=chunk.chunk_start,
                chunk_length=chunk.chunk_length,
                chunk_metadata={"text": chunk.content},
                generation_id=generation_id,
            )
            for chunk, embedding in zip(chunks, embeddings, strict=True)
        ]
        session.add_all(rows)
        await session.flush()
        return rows

    @staticmethod
    async def delete_by_page_id(session: AsyncSession, page_id: uuid.UUID) -> int:
        """Remove every chunk of a page. Returns the number of rows deleted."""
        result = await session.execute(
            delete(PageEmbedding).where(PageEmbedding.page_id == page_id)
        )
        return result.rowcount or 0

    @staticmethod
    async def delete_by_workspace_id(
        session: AsyncSession, workspace_id: uuid.UUID
    ) -> int:
        """Remove every chunk of every page in a workspace."""
        result = await session.execute(
            delete(PageEmbedding).where(PageEmbedding.workspace_id == workspace_id)
        )
        return result.rowcount or 0

    @staticmethod
    async def delete_stale_generations(
        session: AsyncSession,
        page_id: uuid.UUID,
        keep_generation_id: uuid.UUID,
    ) -> int:
        """Remove rows of a page written by any other regeneration run."""
        result = await session.execute(
            delete(PageEmbedding).where(
                PageEmbedding.page_id == page_id,
                PageEmbedding.generation_id != keep_generation_id,
            )
        )
        return result.rowcount or 0

    @staticmethod
    async def delete_generation(
        session: AsyncSession,
        page_id: uuid.UUID,
        generation_id: uuid.UUID,
    ) -> int:
        """Remove the rows a single regeneration run wrote for a page."""
        result = await session.execute(
            delete(PageEmbedding).where(
                PageEmbedding.page_id == page_id,
                PageEmbedding.generation_id == generation_id,
            )
        )
        return result.rowcount or 0

    @staticmethod
    async def count_by_generation(
        session: AsyncSession,
        page_id: uuid.UUID,
        generation_id: uuid.UUID,
    ) -> int:
        """Count the rows a single regeneration run wrote for a page."""
        count = await session.scalar(
            select(func.count())
            .select_from(PageEmbedding)
            .where(
                PageEmbedding.page_id == page_id,
                PageEmbedding.generation_id == generation_id,
            )
        )
        return count or 0

    @staticmethod
    async def get_by_page_id(
        session: AsyncSession,
        page_id: uuid.UUID,
    ) -> list[PageEmbedding]:
        """Retrieve all chunks for a page, ordered by chunk_index."""
        result = await session.execute(
            select(PageEmbedding)
            .where(PageEmbedding.page_id == page_id)
            .order_by(PageEmbedding.chunk_index, PageEmbedding.id)
        )
        return list(result.scalars().all())

    @staticmethod
    def build_nearest_neighbors_query(
        query_embedding: list[float],
        workspace_id: uuid.UUID,
        space_ids: Collection[uuid.UUID],
        top_k: int,
        model_name: str | None = None,
    ) -> Select:
        """Build the cosine-distance query scoped to a workspace and space set."""
        distance_expr = PageEmbedding.embedding.cosine_distance(query_embedding)
        stmt = (
            select(PageEmbedding, distance_expr.label("distance"))
            .options(defer(PageEmbedding.embedding))
            .where(
                PageEmbedding.workspace_id == workspace_id,
                PageEmbedding.space_id.in_(list(space_ids)),
            )
        )
        if model_name is not None:
            stmt = stmt.where(PageEmbedding.model_name == model_name)
        # id breaks distance ties in insertion order
        return stmt.order_by(distance_expr, PageEmbedding.id).limit(top_k)

    @staticmethod
    async def nearest_neighbors(
        session: AsyncSession,
        query_embedding: list[float],
        workspace_id: uuid.UUID,
        space_ids: Collection[uuid.UUID],
        top_k: int,
        model_name: str | None = None,
    ) -> list[tuple[PageEmbedding, float]]:
        """Find the chunks closest to a query embedding using cosine distance.

        Args:
            session: Database session
            query_embedding: The query vector to compare against
            workspace_id: Only chunks of this workspace are considered
            space_ids: Only chunks of these spaces are considered
            top_k: Maximum number of results to return
            model_name: If given, only chunks embedded by this model

        Returns:
            List of (PageEmbedding, distance) tuples ordered by ascending
            distance. Empty without querying when ``space_ids`` is empty.
        """
        if not space_ids:
            return []

        stmt = PageEmbeddingRepository.build_nearest_neighbors_query(
            query_embedding, workspace_id, space_ids, top_k, model_name
        )
        result = await session.execute(stmt)
        return [(row.PageEmbedding, float(row.distance)) for row in result.all()]
