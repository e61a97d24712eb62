"""Space and membership models (read-only views of the workspace schema)."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from askpages.models.base import Base

if TYPE_CHECKING:
    from askpages.models.page import Page


class Space(Base):
    """A group of pages inside a workspace."""

    __tablename__ = "spaces"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    workspace_id: Mapped[uuid.UUID] = mapped_column(nullable=False, index=True)
    name: Mapped[str | None] = mapped_column(String(255))
    slug: Mapped[str] = mapped_column(String(255), nullable=False)

    # Relationships
    pages: Mapped[list[Page]] = relationship("Page", back_populates="space")
    members: Mapped[list[SpaceMember]] = relationship(
        "SpaceMember", back_populates="space", cascade="all, delete-orphan"
    )


class SpaceMember(Base):
    """Grants a user access to a space."""

    __tablename__ = "space_members"
    __table_args__ = (UniqueConstraint("space_id", "user_id"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    space_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("spaces.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(nullable=False, index=True)

    # Relationships
    space: Mapped[Space] = relationship("Space", back_populates="members")
