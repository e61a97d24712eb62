"""LLM service: streaming chat completions over an OpenAI-compatible API."""

from collections.abc import AsyncIterator

from loguru import logger
from openai import AsyncOpenAI, OpenAIError

from askpages.config import Settings, settings
from askpages.exceptions import ConfigurationError
from askpages.services.ai_driver import (
    AiDriver,
    create_client,
    parse_driver,
    translate_openai_error,
)


class LLMService:
    """Centralized wrapper for language model calls on the configured driver."""

    def __init__(
        self,
        driver: AiDriver | None = None,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        client: AsyncOpenAI | None = None,
        config: Settings = settings,
    ) -> None:
        self.driver = driver or parse_driver(config.ai_driver)
        if self.driver is AiDriver.LOCAL:
            raise ConfigurationError(
                "The local driver only supports embeddings; "
                "configure an API driver for answers",
                setting="ai_driver",
            )
        self.model = model or config.ai_completion_model
        self.temperature = (
            config.llm_temperature if temperature is None else temperature
        )
        self.max_tokens = max_tokens or config.llm_max_tokens
        self.client = client or create_client(self.driver, config)

    async def stream_text(self, system_prompt: str, prompt: str) -> AsyncIterator[str]:
        """Stream the model's answer as text increments, in production order.

        Closing the generator closes the underlying HTTP stream.

        Raises:
            ExternalServiceError: If the API call fails before or during
                streaming.
        """
        service = self.driver.service_name
        try:
            stream = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": prompt},
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                stream=True,
            )
            async with stream:
                async for chunk in stream:
                    if not chunk.choices:
                        continue
                    delta = chunk.choices[0].delta.content
                    if delta:
                        yield delta
        except OpenAIError as exc:
            logger.error(
                "Completion stream failed",
                service=service,
                model=self.model,
                error=str(exc),
            )
            raise translate_openai_error(exc, service) from exc
