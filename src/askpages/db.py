"""Database session management."""


from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from askpages.config import settings


def _get_async_url(url: str) -> str:
    """Convert sync database URL to async format."""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


engine = create_async_engine(
    _get_async_url(settings.database_url),
    echo=settings.debug and not settings.is_production,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)
