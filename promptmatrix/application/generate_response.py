from typing import Any, Iterable

from ..domain.contracts.cache import CacheContract
from ..domain.contracts.provider import (
    ChatMessage,
    ProviderContract,
    ProviderFactory,
    ProviderResponse,
)
from ..domain.contracts.suite import Candidate
from ..domain.errors import ConfigurationError

ANTHROPIC_MAX_TEMPERATURE = 1.0
DEFAULT_MAX_TEMPERATURE = 2.0


def parse_model_id(model_id: str) -> tuple[str, str]:
    if ":" not in model_id:
        raise ConfigurationError(
            f"Invalid model ID '{model_id}'. Expected format: 'provider:model'"
        )
    provider, model = model_id.split(":", 1)
    return provider, model


def normalize_temperature(model_id: str, temperature: float | None) -> float | None:
    """Clamp into the range the target provider accepts; None means provider default."""
    if temperature is None:
        return None
    upper = (
        ANTHROPIC_MAX_TEMPERATURE
        if "anthropic" in model_id.lower()
        else DEFAULT_MAX_TEMPERATURE
    )
    return max(0.0, min(upper, float(temperature)))


def build_messages(
    prompt: str,
    system_prompt: str | None = None,
    history: Iterable[ChatMessage] = (),
) -> list[ChatMessage]:
    messages: list[ChatMessage] = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    messages.extend({"role": m["role"], "content": m["content"]} for m in history)
    messages.append({"role": "user", "content": prompt})
    return messages


class CandidateClient:
    """Sends chat requests for candidates and the judge through provider adapters.

    Provider adapters are created once per provider name. ``prepare`` creates
    them up front so unknown providers and missing API keys surface as
    configuration errors before the first request.
    """

    def __init__(
        self,
        provider_factory: ProviderFactory,
        cache: CacheContract | None = None,
    ) -> None:
        self._provider_factory = provider_factory
        self._cache = cache
        self._providers: dict[str, ProviderContract] = {}

    def prepare(self, model_ids: Iterable[str]) -> None:
        for model_id in model_ids:
            provider_name, _ = parse_model_id(model_id)
            self._provider(provider_name)

    def _provider(self, provider_name: str) -> ProviderContract:
        if provider_name not in self._providers:
            try:
                self._providers[provider_name] = self._provider_factory(provider_name)
            except ValueError as e:
                raise ConfigurationError(str(e)) from e
        return self._providers[provider_name]

    async def generate(
        self,
        candidate: Candidate,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float | None = None,
        history: Iterable[ChatMessage] = (),
    ) -> ProviderResponse:
        messages = build_messages(prompt, system_prompt, history)
        return await self.complete(
            candidate.model,
            messages,
            temperature=normalize_temperature(candidate.model, temperature),
            options=candidate.options,
        )

    async def complete(
        self,
        model_id: str,
        messages: list[ChatMessage],
        temperature: float | None = None,
        json_mode: bool = False,
        options: dict[str, Any] | None = None,
    ) -> ProviderResponse:
        provider_name, model = parse_model_id(model_id)
        provider = self._provider(provider_name)

        cache_key = None
        if self._cache is not None and not json_mode:
            cache_key = self._cache.make_key(
                model=model_id,
                messages=messages,
                temperature=temperature,
                options=options,
            )
            cached = self._cache.get(cache_key)
            if cached is not None:
                return cached

        response = await provider.chat(
            model=model,
            messages=messages,
            temperature=temperature,
            json_mode=json_mode,
            options=options,
        )

        if cache_key is not None:
            self._cache.put(cache_key, response)

        return response
