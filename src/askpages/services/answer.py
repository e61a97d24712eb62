"""Answer synthesis: ground a streamed LLM answer in retrieved page chunks."""

import asyncio
import json
import uuid
from collections.abc import AsyncIterator
from contextlib import aclosing
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from askpages.config import settings
from askpages.exceptions import AskPagesException
from askpages.services.llm import LLMService
from askpages.services.retrieval import RetrievalResult, RetrievalService

NO_RESULTS_MESSAGE = "No relevant content found in your workspace for this query."
UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred"

SYSTEM_PROMPT_TEMPLATE = """You are a helpful AI assistant that answers questions based on the user's workspace documents.
Use ONLY the following context to answer. If the context does not contain enough information, say so clearly.
Keep your answer concise and well-structured. Use markdown formatting where appropriate.

--- Context ---
{context}
--- End Context ---"""


class AnswerEventType(StrEnum):
    """Kinds of events emitted while answering a question."""

    CONTENT = "content"
    SOURCES = "sources"
    ERROR = "error"
    DONE = "done"


@dataclass
class AnswerEvent:
    """One event of the answer stream."""

    type: AnswerEventType
    data: Any = None

    def to_sse(self) -> str:
        """Format as a Server-Sent Events frame."""
        if self.type is AnswerEventType.DONE:
            return "data: [DONE]\n\n"
        return f"data: {json.dumps({self.type.value: self.data})}\n\n"


def build_system_prompt(results: list[RetrievalResult]) -> str:
    """Instruction block plus the retrieved chunks as a numbered list."""
    context = "\n\n".join(
        f"[{number}] {result.text}" for number, result in enumerate(results, start=1)
    )
    return SYSTEM_PROMPT_TEMPLATE.format(context=context)


# Marks the end of the model stream on the relay queue
_END_OF_STREAM = object()


class AnswerService:
    """Answer questions from workspace content as a stream of events."""

    def __init__(
        self,
        retrieval_service: RetrievalService,
        llm_service: LLMService,
        buffer_size: int | None = None,
    ) -> None:
        self.retrieval_service = retrieval_service
        self.llm_service = llm_service
        self.buffer_size = buffer_size or settings.answer_stream_buffer

    async def answer(
        self,
        session: AsyncSession,
        query: str,
        workspace_id: uuid.UUID,
        user_id: uuid.UUID,
        space_id: uuid.UUID | None = None,
    ) -> AsyncIterator[AnswerEvent]:
        """Retrieve context, stream the answer, then cite the sources.

        Yields content events in the order the model produced them, a single
        sources event and a final done event. A failure at any point yields
        one error event followed by done.
        """
        try:
            results = await self.retrieval_service.retrieve(
                session,
                query=query,
                workspace_id=workspace_id,
                user_id=user_id,
                space_id=space_id,
            )

            if not results:
                yield AnswerEvent(AnswerEventType.CONTENT, NO_RESULTS_MESSAGE)
                yield AnswerEvent(AnswerEventType.SOURCES, [])
                yield AnswerEvent(AnswerEventType.DONE)
                return

            system_prompt = build_system_prompt(results)
            async with aclosing(self._relay(system_prompt, query)) as increments:
                async for text in increments:
                    yield AnswerEvent(AnswerEventType.CONTENT, text)

            yield AnswerEvent(
                AnswerEventType.SOURCES, [result.to_source() for result in results]
            )
        except AskPagesException as exc:
            logger.error(
                "Answer generation failed",
                workspace_id=str(workspace_id),
                error_code=exc.error_code,
                error=exc.message,
            )
            yield AnswerEvent(AnswerEventType.ERROR, exc.message)
        except Exception as exc:
            logger.exception(
                "Unexpected error during answer generation",
                workspace_id=str(workspace_id),
                error=str(exc),
            )
            yield AnswerEvent(AnswerEventType.ERROR, UNEXPECTED_ERROR_MESSAGE)

        yield AnswerEvent(AnswerEventType.DONE)

    async def _relay(self, system_prompt: str, query: str) -> AsyncIterator[str]:
        """Run the model stream in a producer task and relay its increments.

        The producer is cancelled when this generator is closed, which closes
        the upstream HTTP stream.
        """
        queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=self.buffer_size)

        async def produce() -> None:
            stream = self.llm_service.stream_text(system_prompt, query)
            try:
                async with aclosing(stream):
                    async for text in stream:
                        await queue.put(text)
            except Exception as exc:
                await queue.put(exc)
                return
            await queue.put(_END_OF_STREAM)

        producer = asyncio.create_task(produce())
        try:
            while True:
                item = await queue.get()
                if item is _END_OF_STREAM:
                    break
                if isinstance(item, Exception):
                    raise item
                yield item
        finally:
            if not producer.done():
                producer.cancel()
                logger.debug("Cancelled answer stream producer")
            await asyncio.gather(producer, return_exceptions=True)
