"""Pydantic schemas for API requests and responses."""

from askpages.schemas.ai_search import AiSearchRequest, SourceResult
from askpages.schemas.common import ErrorResponse, HealthResponse
from askpages.schemas.jobs import EmbeddingJobAccepted, EmbeddingJobRequest

__all__ = [
    "AiSearchRequest",
    "EmbeddingJobAccepted",
    "EmbeddingJobRequest",
    "ErrorResponse",
    "HealthResponse",
    "SourceResult",
]
