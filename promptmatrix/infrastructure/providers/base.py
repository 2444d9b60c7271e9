from abc import ABC

from ...domain.contracts.provider import ChatMessage, ProviderContract, ProviderResponse
from .factory import get_provider

__all__ = [
    "Provider",
    "ProviderContract",
    "ProviderResponse",
    "get_provider",
]


class Provider(ProviderContract, ABC):
    def split_system(
        self, messages: list[ChatMessage]
    ) -> tuple[str | None, list[ChatMessage]]:
        """Pull system messages out for APIs that take them as a separate field."""
        system_parts = [m["content"] for m in messages if m["role"] == "system"]
        rest = [m for m in messages if m["role"] != "system"]
        system = "\n\n".join(system_parts) if system_parts else None
        return system, rest
