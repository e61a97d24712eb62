"""Pydantic schemas for the AI search endpoint."""

import uuid

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class AiSearchRequest(BaseModel):
    """Request model for asking a question about workspace content."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    query: str = Field(
        ...,
        min_length=1,
        max_length=2000,
        description="Natural language question",
    )
    space_id: uuid.UUID | None = Field(
        None,
        description="Restrict the search to one space",
    )


class SourceResult(BaseModel):
    """A cited page chunk, as sent in the sources event."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    page_id: uuid.UUID = Field(..., description="Cited page ID")
    title: str = Field(..., description="Page title")
    slug_id: str = Field(..., description="Page slug id")
    space_slug: str = Field(..., description="Slug of the page's space")
    similarity: float = Field(..., description="Cosine similarity (1 - distance)")
    distance: float = Field(..., description="Cosine distance to the query")
    chunk_index: int = Field(..., description="Position of the chunk in the page")
    excerpt: str = Field(..., description="Start of the chunk text")
