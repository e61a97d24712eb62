"""AI search and embedding job endpoints."""

import uuid
from collections.abc import AsyncGenerator
from contextlib import aclosing
from dataclasses import dataclass
from functools import lru_cache

from fastapi import APIRouter, BackgroundTasks, Depends, Header, status
from fastapi.responses import StreamingResponse
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from askpages.db import async_session_factory
from askpages.schemas.ai_search import AiSearchRequest
from askpages.schemas.common import ErrorResponse
from askpages.schemas.jobs import EmbeddingJobAccepted, EmbeddingJobRequest
from askpages.services.answer import AnswerService
from askpages.services.embedding import EmbeddingProvider, resolve_embedding_provider
from askpages.services.jobs import EmbeddingJobHandler
from askpages.services.llm import LLMService
from askpages.services.retrieval import RetrievalService

router = APIRouter(prefix="/ai", tags=["AI"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


@dataclass
class Caller:
    """Identity of the authenticated caller, set by the upstream gateway."""

    user_id: uuid.UUID
    workspace_id: uuid.UUID


async def get_caller(
    x_user_id: uuid.UUID = Header(..., description="Authenticated user ID"),
    x_workspace_id: uuid.UUID = Header(..., description="Caller's workspace ID"),
) -> Caller:
    return Caller(user_id=x_user_id, workspace_id=x_workspace_id)


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return async_session_factory


@lru_cache
def get_embedding_provider() -> EmbeddingProvider:
    """Shared embedding provider, resolved on first use."""
    return resolve_embedding_provider()


@lru_cache
def get_llm_service() -> LLMService:
    """Shared LLM service, so one API client serves every request."""
    return LLMService()


def get_answer_service(
    embedding_provider: EmbeddingProvider = Depends(get_embedding_provider),
    llm_service: LLMService = Depends(get_llm_service),
) -> AnswerService:
    return AnswerService(
        retrieval_service=RetrievalService(embedding_provider),
        llm_service=llm_service,
    )


def get_job_handler(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> EmbeddingJobHandler:
    return EmbeddingJobHandler(session_factory=session_factory)


@router.post(
    "/ask",
    summary="Ask a question about workspace content",
    description=(
        "Stream an answer grounded in the pages the caller can access, "
        "as Server-Sent Events, followed by the cited sources."
    ),
    response_class=StreamingResponse,
    responses={
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
)
async def ask(
    request: AiSearchRequest,
    caller: Caller = Depends(get_caller),
    answer_service: AnswerService = Depends(get_answer_service),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> StreamingResponse:
    """Answer a question as an SSE stream.

    SSE Format:
        data: {"content": "..."}      zero or more answer increments
        data: {"sources": [...]}      cited chunks, once
        data: {"error": "..."}        on failure
        data: [DONE]                  end of stream
    """
    logger.info(
        "AI search query received",
        workspace_id=str(caller.workspace_id),
        user_id=str(caller.user_id),
        space_id=str(request.space_id) if request.space_id else None,
        query_length=len(request.query),
    )

    async def event_stream() -> AsyncGenerator[str, None]:
        # Owned by the stream; the handler returns before the body is sent
        async with session_factory() as session:
            events = answer_service.answer(
                session,
                query=request.query,
                workspace_id=caller.workspace_id,
                user_id=caller.user_id,
                space_id=request.space_id,
            )
            async with aclosing(events):
                async for event in events:
                    yield event.to_sse()

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.post(
    "/jobs",
    response_model=EmbeddingJobAccepted,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Submit an embedding job",
    description="Queue an embedding job to run in the background.",
)
async def submit_job(
    job: EmbeddingJobRequest,
    background_tasks: BackgroundTasks,
    handler: EmbeddingJobHandler = Depends(get_job_handler),
) -> EmbeddingJobAccepted:
    """Accept a job and run it after the response is sent."""
    background_tasks.add_task(handler.process_in_background, job.name, job.data)

    logger.info("Embedding job enqueued", job=job.name)

    return EmbeddingJobAccepted(name=job.name)
