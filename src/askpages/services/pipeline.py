"""Embedding pipeline: delete-then-rebuild of a page's embedded chunks.

Regeneration is not transactional across the delete and the per-batch
inserts. A crash in between leaves the page with fewer (or no) chunks until
the next regeneration trigger; every row carries the ``generation_id`` of the
run that wrote it so partial sets can be told apart and removed.
"""

import asyncio
import uuid
from dataclasses import dataclass

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from askpages.config import settings
from askpages.db import async_session_factory
from askpages.exceptions import ProcessingError
from askpages.models.page import Page
from askpages.repositories.page import PageRepository
from askpages.repositories.page_embedding import PageEmbeddingRepository
from askpages.services.chunking import ChunkData, ChunkingService
from askpages.services.embedding import EmbeddingProvider, resolve_embedding_provider


@dataclass
class PageForEmbedding:
    """The fields of a page the pipeline needs."""

    id: uuid.UUID
    space_id: uuid.UUID
    workspace_id: uuid.UUID
    text_content: str | None

    @classmethod
    def from_page(cls, page: Page) -> "PageForEmbedding":
        return cls(
            id=page.id,
            space_id=page.space_id,
            workspace_id=page.workspace_id,
            text_content=page.text_content,
        )

    @property
    def has_text(self) -> bool:
        return bool(self.text_content and self.text_content.strip())


@dataclass
class WorkspaceEmbeddingReport:
    """Outcome of a workspace-wide regeneration run."""

    workspace_id: uuid.UUID
    total: int = 0
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    chunk_count: int = 0


class EmbeddingPipeline:
    """Chunk page text, embed it in batches and store the vectors."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        chunking_service: ChunkingService | None = None,
        embedding_provider: EmbeddingProvider | None = None,
        batch_size: int | None = None,
        max_concurrent_pages: int | None = None,
    ) -> None:
        self.session_factory = session_factory or async_session_factory
        self.chunking_service = chunking_service or ChunkingService()
        self.embedding_provider = embedding_provider
        self.batch_size = batch_size or settings.embedding_batch_size
        self.max_concurrent_pages = (
            max_concurrent_pages or settings.embedding_max_concurrent_pages
        )

    def get_embedding_provider(self) -> EmbeddingProvider:
        """Resolve the configured provider once and reuse it afterwards."""
        if self.embedding_provider is None:
            self.embedding_provider = resolve_embedding_provider()
        return self.embedding_provider

    async def regenerate(self, page: PageForEmbedding) -> int:
        """Replace all embeddings of a page with freshly generated ones.

        A page without text is left untouched. Errors propagate so that the
        job system can retry; batches the failed run already committed are
        removed first, so the page may then hold zero chunks.

        Returns:
            Number of chunks written.
        """
        if not page.has_text:
            logger.debug("Page has no text, skipping embeddings", page_id=str(page.id))
            return 0

        generation_id: uuid.UUID | None = None

        async with self.session_factory() as session:
            try:
                removed = await PageEmbeddingRepository.delete_by_page_id(
                    session, page.id
                )
                await session.commit()

                chunks = self.chunking_service.chunk_text(page.text_content)
                if not chunks:
                    return 0

                provider = self.get_embedding_provider()
                generation_id = uuid.uuid4()

                for start in range(0, len(chunks), self.batch_size):
                    batch = chunks[start : start + self.batch_size]
                    await self._embed_and_store(
                        session, page, batch, provider, generation_id
                    )
                    await session.commit()

                    logger.debug(
                        "Embedding batch stored",
                        page_id=str(page.id),
                        batch_start=start,
                        batch_end=start + len(batch),
                        total=len(chunks),
                    )

                await self._ensure_complete(session, page, generation_id, len(chunks))
                stale = await PageEmbeddingRepository.delete_stale_generations(
                    session, page.id, generation_id
                )
                await session.commit()
            except Exception:
                await session.rollback()
                if generation_id is not None:
                    await self._discard_generation(session, page, generation_id)
                raise

        logger.info(
            "Generated page embeddings",
            page_id=str(page.id),
            chunk_count=len(chunks),
            model=provider.model_name,
            replaced=removed,
            stale_removed=stale,
        )
        return len(chunks)

    async def _embed_and_store(
        self,
        session: AsyncSession,
        page: PageForEmbedding,
        batch: list[ChunkData],
        provider: EmbeddingProvider,
        generation_id: uuid.UUID,
    ) -> None:
        embeddings = await provider.embed([chunk.content for chunk in batch])

        if len(embeddings) != len(batch):
            raise ProcessingError(
                "Embedding backend returned the wrong number of vectors",
                page_id=page.id,
                details={"expected": len(batch), "received": len(embeddings)},
            )
        for embedding in embeddings:
            if len(embedding) != provider.dimension:
                raise ProcessingError(
                    "Embedding dimension does not match the configured dimension",
                    page_id=page.id,
                    details={
                        "model": provider.model_name,
                        "expected": provider.dimension,
                        "received": len(embedding),
                    },
                )

        await PageEmbeddingRepository.create_bulk(
            session,
            page_id=page.id,
            space_id=page.space_id,
            workspace_id=page.workspace_id,
            model_name=provider.model_name,
            model_dimensions=provider.dimension,
            generation_id=generation_id,
            chunks=batch,
            embeddings=embeddings,
        )

    @staticmethod
    async def _discard_generation(
        session: AsyncSession,
        page: PageForEmbedding,
        generation_id: uuid.UUID,
    ) -> None:
        """Remove the batches a failed run already committed."""
        try:
            discarded = await PageEmbeddingRepository.delete_generation(
                session, page.id, generation_id
            )
            await session.commit()
        except Exception as cleanup_exc:
            await session.rollback()
            logger.error(
                "Failed to remove partial page embeddings",
                page_id=str(page.id),
                generation_id=str(generation_id),
                error=f"{type(cleanup_exc).__name__}: {cleanup_exc}",
            )
            return

        logger.warning(
            "Removed partial page embeddings after failure",
            page_id=str(page.id),
            generation_id=str(generation_id),
            discarded=discarded,
        )

    @staticmethod
    async def _ensure_complete(
        session: AsyncSession,
        page: PageForEmbedding,
        generation_id: uuid.UUID,
        expected: int,
    ) -> None:
        """Fail if a concurrent run removed part of this run's rows."""
        stored = await PageEmbeddingRepository.count_by_generation(
            session, page.id, generation_id
        )
        if stored != expected:
            raise ProcessingError(
                "Embedding generation was interrupted by a concurrent run",
                page_id=page.id,
                details={"expected": expected, "stored": stored},
            )

    async def regenerate_workspace(
        self, workspace_id: uuid.UUID
    ) -> WorkspaceEmbeddingReport:
        """Regenerate embeddings for every live page of a workspace.

        A page that fails is logged and counted; the remaining pages are still
        processed. Configuration errors abort the whole run.
        """
        logger.info(
            "Starting embedding generation for workspace",
            workspace_id=str(workspace_id),
        )

        async with self.session_factory() as session:
            pages = [
                PageForEmbedding.from_page(page)
                for page in await PageRepository.list_for_workspace(
                    session, workspace_id
                )
            ]

        report = WorkspaceEmbeddingReport(workspace_id=workspace_id, total=len(pages))
        pending = [page for page in pages if page.has_text]
        report.skipped = len(pages) - len(pending)

        if pending:
            self.get_embedding_provider()

        semaphore = asyncio.Semaphore(self.max_concurrent_pages)

        async def run(page: PageForEmbedding) -> None:
            async with semaphore:
                try:
                    chunk_count = await self.regenerate(page)
                except Exception as exc:
                    report.failed += 1
                    logger.error(
                        "Failed to generate page embeddings",
                        page_id=str(page.id),
                        workspace_id=str(workspace_id),
                        error=f"{type(exc).__name__}: {exc}",
                    )
                    return
                report.processed += 1
                report.chunk_count += chunk_count

        await asyncio.gather(*(run(page) for page in pending))

        logger.info(
            "Workspace embedding generation complete",
            workspace_id=str(workspace_id),
            processed=report.processed,
            skipped=report.skipped,
            failed=report.failed,
        )
        return report

    async def delete_page(self, page_id: uuid.UUID) -> int:
        """Delete all embeddings of one page."""
        async with self.session_factory() as session:
            removed = await PageEmbeddingRepository.delete_by_page_id(session, page_id)
            await session.commit()

        logger.info("Deleted page embeddings", page_id=str(page_id), removed=removed)
        return removed

    async def delete_workspace(self, workspace_id: uuid.UUID) -> int:
        """Delete all embeddings of a workspace."""
        async with self.session_factory() as session:
            removed = await PageEmbeddingRepository.delete_by_workspace_id(
                session, workspace_id
            )
            await session.commit()

        logger.info(
            "Deleted all embeddings for workspace",
            workspace_id=str(workspace_id),
            removed=removed,
        )
        return removed
