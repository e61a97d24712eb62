"""Shared fixtures: in-memory SQLite database and seed data helpers."""

import uuid
from collections.abc import AsyncGenerator
from dataclasses import dataclass

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from askpages.models import Base, Page, Space, SpaceMember

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def engine():
    """Create an async SQLite engine with all tables."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    """Create the session factory."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Provide a session for direct repository calls."""
    async with session_factory() as session:
        yield session


@dataclass
class SeededWorkspace:
    """Ids of the seeded workspace fixture."""

    workspace_id: uuid.UUID
    user_id: uuid.UUID
    space_a: Space
    space_b: Space
    space_c: Space
    page_a: Page
    page_c: Page


@pytest.fixture
async def seeded_workspace(session_factory) -> SeededWorkspace:
    """Workspace with three spaces; the user is a member of A and B only."""
    workspace_id = uuid.uuid4()
    user_id = uuid.uuid4()

    async with session_factory() as session:
        space_a = Space(workspace_id=workspace_id, name="Alpha", slug="alpha")
        space_b = Space(workspace_id=workspace_id, name="Beta", slug="beta")
        space_c = Space(workspace_id=workspace_id, name="Gamma", slug="gamma")
        session.add_all([space_a, space_b, space_c])
        await session.flush()

        session.add_all(
            [
                SpaceMember(space_id=space_a.id, user_id=user_id),
                SpaceMember(space_id=space_b.id, user_id=user_id),
                SpaceMember(space_id=space_c.id, user_id=uuid.uuid4()),
            ]
        )

        page_a = Page(
            space_id=space_a.id,
            workspace_id=workspace_id,
            title="Onboarding",
            slug_id="onb123",
            text_content="Welcome to the team. Read the handbook first.",
        )
        page_c = Page(
            space_id=space_c.id,
            workspace_id=workspace_id,
            title="Salaries",
            slug_id="sal456",
            text_content="Confidential compensation bands.",
        )
        session.add_all([page_a, page_c])
        await session.commit()

    return SeededWorkspace(
        workspace_id=workspace_id,
        user_id=user_id,
        space_a=space_a,
        space_b=space_b,
        space_c=space_c,
        page_a=page_a,
        page_c=page_c,
    )
