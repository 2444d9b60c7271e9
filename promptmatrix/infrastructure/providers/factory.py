from ...domain.contracts.provider import ProviderContract
from ...domain.errors import ConfigurationError
from ..settings import Settings


def known_providers() -> frozenset[str]:
    return frozenset({"openai", "anthropic", "openrouter"})


def get_provider(
    provider_name: str, settings: Settings | None = None
) -> ProviderContract:
    from .anthropic import AnthropicProvider
    from .openai import OpenAIProvider

    settings = settings or Settings()

    if provider_name == "openai":
        return OpenAIProvider(timeout=settings.request_timeout)
    if provider_name == "anthropic":
        return AnthropicProvider(timeout=settings.request_timeout)
    if provider_name == "openrouter":
        return OpenAIProvider(
            api_key_env_var=settings.api_key_env_var,
            base_url=settings.api_url,
            timeout=settings.request_timeout,
            name="openrouter",
        )

    raise ConfigurationError(
        f"Unknown provider '{provider_name}'. "
        f"Available: {', '.join(sorted(known_providers()))}"
    )
