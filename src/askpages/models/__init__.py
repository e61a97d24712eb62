"""Database models package."""

from askpages.models.base import Base
from askpages.models.page import Page
from askpages.models.page_embedding import PageEmbedding
from askpages.models.space import Space, SpaceMember

__all__ = ["Base", "Page", "PageEmbedding", "Space", "SpaceMember"]
