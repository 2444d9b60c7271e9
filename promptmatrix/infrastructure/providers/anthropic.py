import os
import time
from typing import Any

import anthropic
import structlog
from anthropic import AsyncAnthropic

from ...domain.contracts.provider import ChatMessage, ProviderResponse
from ...domain.errors import ConfigurationError, RequestError
from .base import Provider

log = structlog.get_logger()


class AnthropicProvider(Provider):
    def __init__(
        self, api_key_env_var: str = "ANTHROPIC_API_KEY", timeout: float = 120.0
    ) -> None:
        api_key = os.getenv(api_key_env_var)
        if not api_key:
            raise ConfigurationError(f"{api_key_env_var} environment variable not set")
        self.client = AsyncAnthropic(api_key=api_key, timeout=timeout, max_retries=0)

    @property
    def name(self) -> str:
        return "anthropic"

    async def chat(
        self,
        model: str,
        messages: list[ChatMessage],
        temperature: float | None = None,
        json_mode: bool = False,
        options: dict[str, Any] | None = None,
    ) -> ProviderResponse:
        system_content, conversation = self.split_system(messages)

        kwargs: dict[str, Any] = {
            "max_tokens": 4096,
            **(options or {}),
            "model": model,
            "messages": conversation,
        }
        if system_content:
            kwargs["system"] = system_content
        if temperature is not None:
            kwargs["temperature"] = temperature
        # No JSON response format on this API; the judge prompt asks for JSON.

        log.debug("provider.request", provider="anthropic", model=model, json_mode=json_mode)

        start_time = time.perf_counter()
        try:
            response = await self.client.messages.create(**kwargs)
        except anthropic.APIStatusError as e:
            raise RequestError(
                f"API request failed ({e.status_code}): {e.message}"
            ) from e
        except anthropic.APIError as e:
            raise RequestError(f"Request failed: {e}") from e
        latency_ms = int((time.perf_counter() - start_time) * 1000)

        texts = [block.text for block in response.content if block.type == "text"]
        if not texts:
            raise RequestError(f"No content in response from {model}")

        return ProviderResponse(
            content="".join(texts),
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            latency_ms=latency_ms,
            model=response.model,
            raw=response.model_dump(),
        )
