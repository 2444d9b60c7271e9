from .anthropic import AnthropicProvider
from .base import Provider, ProviderResponse
from .openai import OpenAIProvider

__all__ = ["Provider", "ProviderResponse", "OpenAIProvider", "AnthropicProvider"]
