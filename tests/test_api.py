"""Tests for FastAPI application endpoints and middleware."""

import json
import uuid
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from askpages.exceptions import ConfigurationError
from askpages.main import app
from askpages.routers.ai import (
    get_answer_service,
    get_job_handler,
    get_llm_service,
    get_session_factory,
)
from askpages.services.answer import AnswerEvent, AnswerEventType

USER_ID = uuid.uuid4()
WORKSPACE_ID = uuid.uuid4()
CALLER_HEADERS = {"X-User-Id": str(USER_ID), "X-Workspace-Id": str(WORKSPACE_ID)}


class FakeAnswerService:
    """Answer service stand-in emitting a fixed event sequence."""

    def __init__(self, events: list[AnswerEvent]) -> None:
        self.events = events
        self.calls: list[dict] = []

    async def answer(self, session, query, workspace_id, user_id, space_id=None):
        self.calls.append(
            {
                "query": query,
                "workspace_id": workspace_id,
                "user_id": user_id,
                "space_id": space_id,
            }
        )
        for event in self.events:
            yield event


def _fake_session_factory():
    @asynccontextmanager
    async def factory():
        yield AsyncMock()

    return factory


@pytest.fixture
def client() -> TestClient:
    """Create test client for API testing."""
    app.dependency_overrides[get_session_factory] = _fake_session_factory
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def answer_service() -> FakeAnswerService:
    service = FakeAnswerService(
        [
            AnswerEvent(AnswerEventType.CONTENT, "Read "),
            AnswerEvent(AnswerEventType.CONTENT, "the handbook."),
            AnswerEvent(AnswerEventType.SOURCES, [{"pageId": "p1", "chunkIndex": 0}]),
            AnswerEvent(AnswerEventType.DONE),
        ]
    )
    app.dependency_overrides[get_answer_service] = lambda: service
    return service


class TestHealthEndpoint:
    """Tests for /health endpoint."""

    def test_health_returns_healthy(self, client: TestClient) -> None:
        """Verify /health returns 200 with healthy status."""
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "askpages-api"
        assert data["version"] == "0.1.0"

    def test_request_id_header(self, client: TestClient) -> None:
        """Verify X-Request-ID header is present in response."""
        response = client.get("/health")

        request_id = response.headers["X-Request-ID"]
        assert len(request_id) == 36
        assert request_id.count("-") == 4

    def test_request_id_is_propagated(self, client: TestClient) -> None:
        """An incoming X-Request-ID should be echoed back."""
        response = client.get("/health", headers={"X-Request-ID": "trace-123"})

        assert response.headers["X-Request-ID"] == "trace-123"


class TestAskEndpoint:
    """Tests for POST /api/ai/ask."""

    def test_streams_sse_frames(
        self, client: TestClient, answer_service: FakeAnswerService
    ) -> None:
        """Events should be framed as SSE data lines ending in [DONE]."""
        response = client.post(
            "/api/ai/ask", json={"query": "How do I start?"}, headers=CALLER_HEADERS
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache"

        frames = [f for f in response.text.split("\n\n") if f]
        assert all(frame.startswith("data: ") for frame in frames)
        payloads = [frame[len("data: ") :] for frame in frames]
        assert payloads[-1] == "[DONE]"
        assert [json.loads(p) for p in payloads[:-1]] == [
            {"content": "Read "},
            {"content": "the handbook."},
            {"sources": [{"pageId": "p1", "chunkIndex": 0}]},
        ]

    def test_passes_caller_and_space(
        self, client: TestClient, answer_service: FakeAnswerService
    ) -> None:
        """Caller headers and spaceId should reach the answer service."""
        space_id = uuid.uuid4()

        client.post(
            "/api/ai/ask",
            json={"query": "q", "spaceId": str(space_id)},
            headers=CALLER_HEADERS,
        )

        call = answer_service.calls[0]
        assert call["user_id"] == USER_ID
        assert call["workspace_id"] == WORKSPACE_ID
        assert call["space_id"] == space_id

    def test_empty_query_rejected(
        self, client: TestClient, answer_service: FakeAnswerService
    ) -> None:
        response = client.post("/api/ai/ask", json={"query": ""}, headers=CALLER_HEADERS)

        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    def test_whitespace_query_rejected(
        self, client: TestClient, answer_service: FakeAnswerService
    ) -> None:
        """A query of only whitespace is stripped to empty and rejected."""
        response = client.post(
            "/api/ai/ask", json={"query": "  \n\t "}, headers=CALLER_HEADERS
        )

        assert response.status_code == 422
        assert answer_service.calls == []

    def test_query_is_stripped(
        self, client: TestClient, answer_service: FakeAnswerService
    ) -> None:
        client.post(
            "/api/ai/ask", json={"query": "  How do I start?  "}, headers=CALLER_HEADERS
        )

        assert answer_service.calls[0]["query"] == "How do I start?"

    def test_llm_service_is_shared_across_requests(self) -> None:
        """One LLM service (and API client) should be built per process."""
        get_llm_service.cache_clear()
        try:
            with patch("askpages.routers.ai.LLMService") as llm_service_cls:
                first = get_llm_service()
                second = get_llm_service()
        finally:
            get_llm_service.cache_clear()

        assert first is second
        llm_service_cls.assert_called_once_with()

    def test_query_too_long_rejected(
        self, client: TestClient, answer_service: FakeAnswerService
    ) -> None:
        response = client.post(
            "/api/ai/ask", json={"query": "x" * 2001}, headers=CALLER_HEADERS
        )

        assert response.status_code == 422

    def test_missing_caller_headers_rejected(
        self, client: TestClient, answer_service: FakeAnswerService
    ) -> None:
        response = client.post("/api/ai/ask", json={"query": "q"})

        assert response.status_code == 422
        assert answer_service.calls == []

    def test_configuration_error_is_500(self, client: TestClient) -> None:
        """A misconfigured driver should produce a structured error response."""

        def broken_service():
            raise ConfigurationError("Unsupported AI driver: bogus", setting="ai_driver")

        app.dependency_overrides[get_answer_service] = broken_service

        response = client.post("/api/ai/ask", json={"query": "q"}, headers=CALLER_HEADERS)

        assert response.status_code == 500
        data = response.json()
        assert data["error_code"] == "CONFIGURATION_ERROR"
        assert data["detail"] == "Unsupported AI driver: bogus"
        assert data["request_id"] == response.headers["X-Request-ID"]


class TestJobsEndpoint:
    """Tests for POST /api/ai/jobs."""

    def test_job_is_accepted_and_run(self, client: TestClient) -> None:
        """Jobs return 202 and run in the background."""
        handler = MagicMock()
        handler.process_in_background = AsyncMock()
        app.dependency_overrides[get_job_handler] = lambda: handler
        workspace_id = str(uuid.uuid4())

        response = client.post(
            "/api/ai/jobs",
            json={
                "name": "workspace-create-embeddings",
                "data": {"workspaceId": workspace_id},
            },
        )

        assert response.status_code == 202
        assert response.json() == {
            "name": "workspace-create-embeddings",
            "status": "accepted",
        }
        handler.process_in_background.assert_awaited_once_with(
            "workspace-create-embeddings", {"workspaceId": workspace_id}
        )

    def test_job_without_name_rejected(self, client: TestClient) -> None:
        response = client.post("/api/ai/jobs", json={"data": {}})

        assert response.status_code == 422


class TestErrorHandling:
    """Tests for error handling."""

    def test_404_returns_error_response(self, client: TestClient) -> None:
        """Verify unknown route returns proper 404 error."""
        response = client.get("/nonexistent")

        assert response.status_code == 404
        assert "detail" in response.json()
        assert "X-Request-ID" in response.headers
