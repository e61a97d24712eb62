"""Retrieval service for access-scoped similarity search over page chunks."""

import uuid
from dataclasses import dataclass
from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from askpages.config import settings
from askpages.exceptions import DomainValidationError
from askpages.repositories.page import PageRepository
from askpages.repositories.page_embedding import PageEmbeddingRepository
from askpages.schemas.ai_search import SourceResult
from askpages.services.access import AccessResolver, SpaceMembershipResolver
from askpages.services.embedding import EmbeddingProvider


@dataclass
class RetrievalResult:
    """A single chunk result from similarity search, with its citation."""

    page_id: uuid.UUID
    space_id: uuid.UUID
    title: str
    slug_id: str
    space_slug: str
    chunk_index: int
    text: str
    distance: float
    excerpt_length: int = 200

    @property
    def similarity(self) -> float:
        return 1.0 - self.distance

    @property
    def excerpt(self) -> str:
        return self.text[: self.excerpt_length]

    def to_source(self) -> dict[str, Any]:
        """Citation payload sent to the client after the answer."""
        return SourceResult(
            page_id=self.page_id,
            title=self.title,
            slug_id=self.slug_id,
            space_slug=self.space_slug,
            similarity=self.similarity,
            distance=self.distance,
            chunk_index=self.chunk_index,
            excerpt=self.excerpt,
        ).model_dump(mode="json", by_alias=True)


class RetrievalService:
    """Retrieve the chunks most relevant to a question that a user may see."""

    def __init__(
        self,
        embedding_provider: EmbeddingProvider,
        access_resolver: AccessResolver | None = None,
    ) -> None:
        self.embedding_provider = embedding_provider
        self.access_resolver = access_resolver or SpaceMembershipResolver()

    async def resolve_scope(
        self,
        session: AsyncSession,
        workspace_id: uuid.UUID,
        user_id: uuid.UUID,
        space_id: uuid.UUID | None = None,
    ) -> set[uuid.UUID]:
        """Spaces to search: the accessible ones, or the requested one if allowed."""
        accessible = await self.access_resolver.accessible_space_ids(
            session, user_id, workspace_id
        )
        if space_id is None:
            return accessible
        return {space_id} if space_id in accessible else set()

    async def retrieve(
        self,
        session: AsyncSession,
        query: str,
        workspace_id: uuid.UUID,
        user_id: uuid.UUID,
        space_id: uuid.UUID | None = None,
        top_k: int | None = None,
    ) -> list[RetrievalResult]:
        """Search for chunks most similar to the query within the user's scope.

        Args:
            session: Database session
            query: Natural language question
            workspace_id: Workspace to search within
            user_id: Caller whose space membership bounds the search
            space_id: Restrict the search to this space (must be accessible)
            top_k: Number of results (defaults to config value)

        Returns:
            List of RetrievalResult ordered by ascending distance. Empty,
            without embedding the query, when the user can access no space.

        Raises:
            DomainValidationError: If the query is blank.
        """
        if not query or not query.strip():
            raise DomainValidationError("Query must not be blank", field="query")

        if top_k is None:
            top_k = settings.top_k_retrieval

        scope = await self.resolve_scope(session, workspace_id, user_id, space_id)
        if not scope:
            logger.info(
                "No accessible spaces for query",
                workspace_id=str(workspace_id),
                user_id=str(user_id),
                space_id=str(space_id) if space_id else None,
            )
            return []

        query_embedding = await self.embedding_provider.embed_query(query)

        neighbors = await PageEmbeddingRepository.nearest_neighbors(
            session,
            query_embedding=query_embedding,
            workspace_id=workspace_id,
            space_ids=scope,
            top_k=top_k,
            model_name=self.embedding_provider.model_name,
        )
        if not neighbors:
            return []

        sources = await PageRepository.get_sources(
            session, {chunk.page_id for chunk, _ in neighbors}
        )

        results = []
        for chunk, distance in neighbors:
            source = sources.get(chunk.page_id)
            # Page deleted after it was embedded
            if source is None:
                continue
            results.append(
                RetrievalResult(
                    page_id=chunk.page_id,
                    space_id=chunk.space_id,
                    title=source.title or "Untitled",
                    slug_id=source.slug_id,
                    space_slug=source.space_slug,
                    chunk_index=chunk.chunk_index,
                    text=chunk.text,
                    distance=distance,
                    excerpt_length=settings.excerpt_length,
                )
            )

        logger.debug(
            "Retrieved chunks",
            workspace_id=str(workspace_id),
            spaces=len(scope),
            candidates=len(neighbors),
            results=len(results),
        )
        return results
