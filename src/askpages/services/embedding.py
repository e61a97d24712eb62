"""Embedding provider: resolves the configured backend into an embed function."""

import asyncio
from dataclasses import dataclass
from functools import lru_cache
from typing import Protocol

from loguru import logger
from openai import AsyncOpenAI, OpenAIError
from sentence_transformers import SentenceTransformer

from askpages.config import Settings, settings
from askpages.exceptions import UpstreamTimeoutError
from askpages.services.ai_driver import (
    AiDriver,
    create_client,
    parse_driver,
    translate_openai_error,
)

DEFAULT_EMBEDDING_DIMENSION = 1536

# Output dimensions of well-known embedding models
PRESET_DIMENSIONS: dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
    "text-embedding-004": 768,
    "nomic-embed-text": 768,
    "mxbai-embed-large": 1024,
    "BAAI/bge-base-en-v1.5": 768,
    "all-MiniLM-L6-v2": 384,
}


def resolve_dimension(model_name: str, explicit_dimension: int | None = None) -> int:
    """Explicit setting first, then the preset table, then the 1536 default."""
    if explicit_dimension:
        return explicit_dimension
    return PRESET_DIMENSIONS.get(model_name, DEFAULT_EMBEDDING_DIMENSION)


class EmbeddingBackend(Protocol):
    """Anything that turns a batch of texts into one vector per text."""

    async def embed(self, texts: list[str]) -> list[list[float]]: ...


class OpenAICompatibleEmbeddingBackend:
    """Embeddings through an OpenAI-compatible API (OpenAI, Gemini, Ollama)."""

    def __init__(
        self,
        client: AsyncOpenAI,
        model_name: str,
        service: str,
        dimensions: int | None = None,
    ) -> None:
        self.client = client
        self.model_name = model_name
        self.service = service
        self.dimensions = dimensions

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed a batch of texts with a single API call.

        Raises:
            ExternalServiceError: If the API call fails (timeouts and rate
                limits are raised as their dedicated subclasses).
        """
        extra = {"dimensions": self.dimensions} if self.dimensions else {}
        try:
            response = await self.client.embeddings.create(
                model=self.model_name,
                input=texts,
                **extra,
            )
        except OpenAIError as exc:
            logger.error(
                "Embedding request failed",
                service=self.service,
                model=self.model_name,
                batch_size=len(texts),
                error=str(exc),
            )
            raise translate_openai_error(exc, self.service) from exc

        ordered = sorted(response.data, key=lambda item: item.index)
        return [list(item.embedding) for item in ordered]


@lru_cache(maxsize=4)
def _load_sentence_transformer(model_name: str) -> SentenceTransformer:
    logger.info("Loading local embedding model", model=model_name)
    return SentenceTransformer(model_name)


class SentenceTransformerEmbeddingBackend:
    """Embeddings from a local Sentence Transformer model."""

    def __init__(self, model_name: str, timeout_seconds: float) -> None:
        self.model_name = model_name
        self.timeout_seconds = timeout_seconds
        self.model = _load_sentence_transformer(model_name)

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Encode texts off the event loop."""
        try:
            embeddings = await asyncio.wait_for(
                asyncio.to_thread(
                    self.model.encode,
                    texts,
                    show_progress_bar=False,
                    convert_to_numpy=True,
                ),
                timeout=self.timeout_seconds,
            )
        except TimeoutError as exc:
            raise UpstreamTimeoutError(
                service=AiDriver.LOCAL.service_name
            ) from exc
        return embeddings.tolist()


@dataclass
class EmbeddingProvider:
    """A resolved embedding backend together with its model and dimension."""

    driver: AiDriver
    model_name: str
    dimension: int
    backend: EmbeddingBackend

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Return one vector per input text, in input order."""
        if not texts:
            return []
        return await self.backend.embed(texts)

    async def embed_query(self, text: str) -> list[float]:
        """Embed a single query string."""
        vectors = await self.embed([text])
        return vectors[0]


def resolve_embedding_provider(config: Settings = settings) -> EmbeddingProvider:
    """Build the embedding provider described by the configuration.

    Raises:
        ConfigurationError: If the configured driver is not supported.
    """
    driver = parse_driver(
        config.embedding_driver_name,
        setting="ai_embedding_driver" if config.ai_embedding_driver else "ai_driver",
    )
    model_name = config.ai_embedding_model
    dimension = resolve_dimension(model_name, config.ai_embedding_dimension)

    backend: EmbeddingBackend
    if driver is AiDriver.LOCAL:
        backend = SentenceTransformerEmbeddingBackend(
            model_name, timeout_seconds=config.ai_request_timeout_seconds
        )
    else:
        # Only OpenAI honours a requested output size
        requested = (
            config.ai_embedding_dimension if driver is AiDriver.OPENAI else None
        )
        backend = OpenAICompatibleEmbeddingBackend(
            client=create_client(driver, config),
            model_name=model_name,
            service=driver.service_name,
            dimensions=requested,
        )

    logger.debug(
        "Resolved embedding provider",
        driver=driver.value,
        model=model_name,
        dimension=dimension,
    )
    return EmbeddingProvider(
        driver=driver,
        model_name=model_name,
        dimension=dimension,
        backend=backend,
    )
