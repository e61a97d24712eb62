"""Page model (read-only view of pages owned by the editor service)."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from askpages.models.base import Base

if TYPE_CHECKING:
    from askpages.models.page_embedding import PageEmbedding
    from askpages.models.space import Space


class Page(Base):
    """Represents a workspace page whose text content gets embedded."""

    __tablename__ = "pages"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    space_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("spaces.id", ondelete="CASCADE"), nullable=False
    )
    workspace_id: Mapped[uuid.UUID] = mapped_column(nullable=False, index=True)
    title: Mapped[str | None] = mapped_column(String(512))
    slug_id: Mapped[str] = mapped_column(String(64), nullable=False)
    text_content: Mapped[str | None] = mapped_column(Text)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # Relationships
    space: Mapped[Space] = relationship("Space", back_populates="pages")
    embeddings: Mapped[list[PageEmbedding]] = relationship(
        "PageEmbedding", back_populates="page", passive_deletes=True
    )
