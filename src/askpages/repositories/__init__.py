"""Repository layer for database operations."""

from askpages.repositories.page import PageRepository, PageSource
from askpages.repositories.page_embedding import PageEmbeddingRepository
from askpages.repositories.space_member import SpaceMemberRepository

__all__ = [
    "PageEmbeddingRepository",
    "PageRepository",
    "PageSource",
    "SpaceMemberRepository",
]
