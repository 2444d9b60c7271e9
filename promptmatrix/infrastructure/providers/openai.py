import os
import time
from typing import Any, Mapping

import openai
import structlog
from openai import AsyncOpenAI

from ...domain.contracts.provider import ChatMessage, ProviderResponse
from ...domain.errors import ConfigurationError, RequestError
from .base import Provider

log = structlog.get_logger()

COST_HEADER = "x-openrouter-cost"


def _to_float(value: Any) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def extract_cost(headers: Mapping[str, str], data: dict[str, Any]) -> float | None:
    header_cost = _to_float(headers.get(COST_HEADER))
    if header_cost is not None:
        return header_cost

    usage = data.get("usage") or {}
    for value in (usage.get("cost"), usage.get("total_cost"), data.get("cost")):
        cost = _to_float(value)
        if cost is not None:
            return cost
    return None


class OpenAIProvider(Provider):
    """OpenAI chat completions, also used for OpenAI-compatible gateways."""

    def __init__(
        self,
        api_key_env_var: str = "OPENAI_API_KEY",
        base_url: str | None = None,
        timeout: float = 120.0,
        name: str = "openai",
    ) -> None:
        api_key = os.getenv(api_key_env_var)
        if not api_key:
            raise ConfigurationError(f"{api_key_env_var} environment variable not set")
        self._name = name
        self.client = AsyncOpenAI(
            api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0
        )

    @property
    def name(self) -> str:
        return self._name

    async def chat(
        self,
        model: str,
        messages: list[ChatMessage],
        temperature: float | None = None,
        json_mode: bool = False,
        options: dict[str, Any] | None = None,
    ) -> ProviderResponse:
        kwargs: dict[str, Any] = {
            **(options or {}),
            "model": model,
            "messages": messages,
        }
        if temperature is not None:
            kwargs["temperature"] = temperature
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        log.debug("provider.request", provider=self._name, model=model, json_mode=json_mode)

        start_time = time.perf_counter()
        try:
            raw = await self.client.chat.completions.with_raw_response.create(**kwargs)
            completion = raw.parse()
        except openai.APIStatusError as e:
            raise RequestError(
                f"API request failed ({e.status_code}): {e.message}"
            ) from e
        except openai.APIError as e:
            raise RequestError(f"Request failed: {e}") from e
        except ValueError as e:
            raise RequestError(f"Malformed response body: {e}") from e
        latency_ms = int((time.perf_counter() - start_time) * 1000)

        data = completion.model_dump()
        choices = completion.choices or []
        message = choices[0].message if choices else None
        content = getattr(message, "content", None)
        if content is None:
            raise RequestError(f"No content in response: {str(data)[:200]}")

        usage = completion.usage
        return ProviderResponse(
            content=content,
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
            latency_ms=latency_ms,
            cost=extract_cost(raw.headers, data),
            model=completion.model,
            raw=data,
        )
