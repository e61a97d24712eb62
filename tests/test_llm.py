"""Tests for the streaming LLM service."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from openai import APITimeoutError

from askpages.config import Settings
from askpages.exceptions import ConfigurationError, UpstreamTimeoutError
from askpages.services.ai_driver import AiDriver
from askpages.services.llm import LLMService

_REQUEST = httpx.Request("POST", "https://api.example.com/v1/chat/completions")


def _chunk(content: str | None) -> MagicMock:
    """Build a mock streamed completion chunk."""
    chunk = MagicMock()
    chunk.choices = [MagicMock()]
    chunk.choices[0].delta.content = content
    return chunk


class FakeStream:
    """Async-iterable, async-closable stand-in for an SDK stream."""

    def __init__(self, chunks: list[MagicMock], fail_after: int | None = None):
        self.chunks = chunks
        self.fail_after = fail_after
        self.closed = False

    async def __aenter__(self) -> "FakeStream":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.closed = True

    async def __aiter__(self):
        for position, chunk in enumerate(self.chunks):
            if self.fail_after is not None and position == self.fail_after:
                raise APITimeoutError(request=_REQUEST)
            yield chunk


@pytest.fixture
def client() -> MagicMock:
    """Create a mocked AsyncOpenAI client."""
    client = MagicMock()
    client.chat.completions.create = AsyncMock()
    return client


@pytest.fixture
def llm_service(client: MagicMock) -> LLMService:
    """Create an LLMService on the OpenAI driver with a mocked client."""
    return LLMService(
        driver=AiDriver.OPENAI,
        model="gpt-4o-mini",
        client=client,
        config=Settings(_env_file=None),
    )


class TestStreamText:
    """Tests for LLMService.stream_text."""

    @pytest.mark.asyncio
    async def test_yields_increments_in_order(
        self, llm_service: LLMService, client: MagicMock
    ) -> None:
        """Text increments should be relayed in production order."""
        stream = FakeStream([_chunk("Hel"), _chunk("lo"), _chunk(" world")])
        client.chat.completions.create.return_value = stream

        parts = [part async for part in llm_service.stream_text("system", "question")]

        assert parts == ["Hel", "lo", " world"]
        assert stream.closed

    @pytest.mark.asyncio
    async def test_skips_empty_deltas(
        self, llm_service: LLMService, client: MagicMock
    ) -> None:
        """Role-only and empty chunks should not produce increments."""
        empty_choices = MagicMock()
        empty_choices.choices = []
        client.chat.completions.create.return_value = FakeStream(
            [_chunk(None), empty_choices, _chunk(""), _chunk("answer")]
        )

        parts = [part async for part in llm_service.stream_text("system", "q")]

        assert parts == ["answer"]

    @pytest.mark.asyncio
    async def test_sends_system_and_user_messages(
        self, llm_service: LLMService, client: MagicMock
    ) -> None:
        """The grounding prompt goes in the system message, the query as user."""
        client.chat.completions.create.return_value = FakeStream([])

        async for _ in llm_service.stream_text("grounding", "what is it?"):
            pass

        kwargs = client.chat.completions.create.await_args.kwargs
        assert kwargs["stream"] is True
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["messages"] == [
            {"role": "system", "content": "grounding"},
            {"role": "user", "content": "what is it?"},
        ]

    @pytest.mark.asyncio
    async def test_error_before_stream_is_translated(
        self, llm_service: LLMService, client: MagicMock
    ) -> None:
        """A failing request should raise the mapped application error."""
        client.chat.completions.create.side_effect = APITimeoutError(request=_REQUEST)

        with pytest.raises(UpstreamTimeoutError):
            async for _ in llm_service.stream_text("system", "q"):
                pass

    @pytest.mark.asyncio
    async def test_error_mid_stream_is_translated(
        self, llm_service: LLMService, client: MagicMock
    ) -> None:
        """Increments before a mid-stream failure are delivered, then it raises."""
        stream = FakeStream([_chunk("partial"), _chunk("never")], fail_after=1)
        client.chat.completions.create.return_value = stream
        parts = []

        with pytest.raises(UpstreamTimeoutError):
            async for part in llm_service.stream_text("system", "q"):
                parts.append(part)

        assert parts == ["partial"]
        assert stream.closed


class TestLLMServiceConfiguration:
    """Tests for driver selection."""

    def test_local_driver_rejected(self) -> None:
        """The embeddings-only local driver cannot serve completions."""
        with pytest.raises(ConfigurationError):
            LLMService(driver=AiDriver.LOCAL, client=MagicMock())

    def test_unknown_driver_rejected(self) -> None:
        """An unsupported ai_driver should fail at construction time."""
        with pytest.raises(ConfigurationError):
            LLMService(config=Settings(_env_file=None, ai_driver="bogus"))

    def test_settings_defaults(self) -> None:
        """Model parameters should default to configuration values."""
        service = LLMService(
            driver=AiDriver.OPENAI,
            client=MagicMock(),
            config=Settings(_env_file=None, llm_temperature=0.0, llm_max_tokens=512),
        )

        assert service.temperature == 0.0
        assert service.max_tokens == 512
