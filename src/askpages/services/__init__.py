"""Service layer for business logic."""

from askpages.services.chunking import ChunkData, ChunkingService
from askpages.services.embedding import EmbeddingProvider, resolve_embedding_provider

__all__ = [
    "ChunkData",
    "ChunkingService",
    "EmbeddingProvider",
    "resolve_embedding_provider",
]
