"""Supported AI backends and the OpenAI-compatible client for each of them."""

from collections.abc import Callable
from enum import StrEnum

from openai import APITimeoutError, AsyncOpenAI, OpenAIError, RateLimitError

from askpages.config import Settings, settings
from askpages.exceptions import (
    ConfigurationError,
    ExternalServiceError,
    UpstreamRateLimitError,
    UpstreamTimeoutError,
)


class AiDriver(StrEnum):
    """AI backend selected through configuration."""

    OPENAI = "openai"
    GEMINI = "gemini"
    OLLAMA = "ollama"
    LOCAL = "local"  # in-process sentence-transformers, embeddings only

    @property
    def service_name(self) -> str:
        """Human-readable backend name used in error messages."""
        return _SERVICE_NAMES[self]


_SERVICE_NAMES = {
    AiDriver.OPENAI: "OpenAI",
    AiDriver.GEMINI: "Gemini",
    AiDriver.OLLAMA: "Ollama",
    AiDriver.LOCAL: "SentenceTransformers",
}


def parse_driver(name: str | None, setting: str = "ai_driver") -> AiDriver:
    """Resolve a configured driver name.

    Raises:
        ConfigurationError: If the name is not a supported driver.
    """
    try:
        return AiDriver((name or "").strip().lower())
    except ValueError as exc:
        raise ConfigurationError(
            f"Unsupported AI driver: {name}",
            setting=setting,
            details={"supported": [driver.value for driver in AiDriver]},
        ) from exc


def _openai_client(config: Settings) -> AsyncOpenAI:
    return AsyncOpenAI(
        api_key=config.openai_api_key,
        timeout=config.ai_request_timeout_seconds,
    )


def _gemini_client(config: Settings) -> AsyncOpenAI:
    return AsyncOpenAI(
        api_key=config.gemini_api_key,
        base_url=config.gemini_base_url,
        timeout=config.ai_request_timeout_seconds,
    )


def _ollama_client(config: Settings) -> AsyncOpenAI:
    # Ollama ignores the key but the SDK requires one
    return AsyncOpenAI(
        api_key="ollama",
        base_url=config.ollama_api_url.rstrip("/") + "/v1",
        timeout=config.ai_request_timeout_seconds,
    )


_CLIENT_FACTORIES: dict[AiDriver, Callable[[Settings], AsyncOpenAI]] = {
    AiDriver.OPENAI: _openai_client,
    AiDriver.GEMINI: _gemini_client,
    AiDriver.OLLAMA: _ollama_client,
}


def create_client(driver: AiDriver, config: Settings = settings) -> AsyncOpenAI:
    """Build the OpenAI-compatible client for an API-backed driver.

    Raises:
        ConfigurationError: If the driver has no remote API (e.g. ``local``).
    """
    factory = _CLIENT_FACTORIES.get(driver)
    if factory is None:
        raise ConfigurationError(
            f"AI driver '{driver}' does not provide a remote API client",
            setting="ai_driver",
        )
    return factory(config)


def translate_openai_error(exc: OpenAIError, service: str) -> ExternalServiceError:
    """Map an OpenAI SDK error onto the application error kinds."""
    if isinstance(exc, APITimeoutError):
        return UpstreamTimeoutError(service=service)
    if isinstance(exc, RateLimitError):
        return UpstreamRateLimitError(service=service, message=str(exc))
    return ExternalServiceError(service=service, message=str(exc))
