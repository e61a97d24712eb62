"""PageEmbedding model: one embedded chunk of a page's text."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

from pgvector.sqlalchemy import Vector
from sqlalchemy import JSON, DateTime, ForeignKey, Index, String, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from askpages.models.base import Base

if TYPE_CHECKING:
    from askpages.models.page import Page


class PageEmbedding(Base):
    """A chunk of page text with its embedding vector.

    Rows are never updated in place: regeneration deletes every row of the
    page and inserts a fresh set tagged with a new ``generation_id``.
    """

    __tablename__ = "page_embeddings"
    __table_args__ = (
        Index("ix_page_embeddings_workspace_space", "workspace_id", "space_id"),
        Index("ix_page_embeddings_page_model", "page_id", "model_name"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    page_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("pages.id", ondelete="CASCADE"), nullable=False
    )
    space_id: Mapped[uuid.UUID] = mapped_column(nullable=False)
    workspace_id: Mapped[uuid.UUID] = mapped_column(nullable=False)
    model_name: Mapped[str] = mapped_column(String(255), nullable=False)
    model_dimensions: Mapped[int] = mapped_column(nullable=False)
    # Dimension varies with the configured model, so the column is unsized
    embedding: Mapped[list[float]] = mapped_column(Vector(), nullable=False)
    chunk_index: Mapped[int] = mapped_column(nullable=False)
    chunk_start: Mapped[int] = mapped_column(nullable=False, default=0)
    chunk_length: Mapped[int] = mapped_column(nullable=False)
    chunk_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=False,
        default=dict,
    )
    generation_id: Mapped[uuid.UUID] = mapped_column(nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationships
    page: Mapped[Page] = relationship("Page", back_populates="embeddings")

    @property
    def text(self) -> str:
        """Raw chunk text stored in the metadata."""
        return (self.chunk_metadata or {}).get("text", "")
