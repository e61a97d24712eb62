"""Background job handler: dispatches embedding jobs to the pipeline."""

from enum import StrEnum
from typing import Any

from loguru import logger
from pydantic import BaseModel, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from askpages.db import async_session_factory
from askpages.repositories.page import PageRepository
from askpages.schemas.jobs import (
    PageDeleteJobPayload,
    PageJobPayload,
    WorkspaceJobPayload,
)
from askpages.services.pipeline import EmbeddingPipeline, PageForEmbedding


class EmbeddingJob(StrEnum):
    """Names of the jobs this service consumes."""

    WORKSPACE_CREATE_EMBEDDINGS = "workspace-create-embeddings"
    WORKSPACE_DELETE_EMBEDDINGS = "workspace-delete-embeddings"
    GENERATE_PAGE_EMBEDDINGS = "generate-page-embeddings"
    DELETE_PAGE_EMBEDDINGS = "delete-page-embeddings"


_PAYLOADS: dict[EmbeddingJob, type[BaseModel]] = {
    EmbeddingJob.WORKSPACE_CREATE_EMBEDDINGS: WorkspaceJobPayload,
    EmbeddingJob.WORKSPACE_DELETE_EMBEDDINGS: WorkspaceJobPayload,
    EmbeddingJob.GENERATE_PAGE_EMBEDDINGS: PageJobPayload,
    EmbeddingJob.DELETE_PAGE_EMBEDDINGS: PageDeleteJobPayload,
}


class EmbeddingJobHandler:
    """Route job names to pipeline operations."""

    def __init__(
        self,
        pipeline: EmbeddingPipeline | None = None,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ) -> None:
        self.session_factory = session_factory or async_session_factory
        self.pipeline = pipeline or EmbeddingPipeline(
            session_factory=self.session_factory
        )

    async def process(self, name: str, data: dict[str, Any]) -> None:
        """Handle one job.

        Unknown job names and malformed payloads are logged and dropped.
        Pipeline errors propagate so the job system can retry.
        """
        try:
            job = EmbeddingJob(name)
        except ValueError:
            logger.warning("Dropping unknown job", job=name)
            return

        try:
            payload = _PAYLOADS[job].model_validate(data)
        except ValidationError as exc:
            logger.warning(
                "Dropping job with malformed payload",
                job=job.value,
                errors=exc.error_count(),
            )
            return

        logger.info("Processing job", job=job.value)

        match job:
            case EmbeddingJob.WORKSPACE_CREATE_EMBEDDINGS:
                await self.pipeline.regenerate_workspace(payload.workspace_id)
            case EmbeddingJob.WORKSPACE_DELETE_EMBEDDINGS:
                await self.pipeline.delete_workspace(payload.workspace_id)
            case EmbeddingJob.GENERATE_PAGE_EMBEDDINGS:
                await self._generate_page(payload)
            case EmbeddingJob.DELETE_PAGE_EMBEDDINGS:
                await self.pipeline.delete_page(payload.page_id)

    async def _generate_page(self, payload: PageJobPayload) -> None:
        async with self.session_factory() as session:
            page = await PageRepository.get_for_embedding(session, payload.page_id)
            target = PageForEmbedding.from_page(page) if page else None

        if target is None:
            logger.warning(
                "Page not found, skipping embedding generation",
                page_id=str(payload.page_id),
            )
            return

        await self.pipeline.regenerate(target)

    async def process_in_background(self, name: str, data: dict[str, Any]) -> None:
        """Run a job outside any request; failures are logged, not raised."""
        try:
            await self.process(name, data)
        except Exception as exc:
            logger.error(
                "Job failed",
                job=name,
                error=f"{type(exc).__name__}: {exc}",
            )
