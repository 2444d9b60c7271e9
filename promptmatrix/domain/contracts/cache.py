from abc import ABC, abstractmethod
from typing import Any

from .provider import ChatMessage, ProviderResponse


class CacheContract(ABC):
    @abstractmethod
    def make_key(
        self,
        model: str,
        messages: list[ChatMessage],
        temperature: float | None = None,
        options: dict[str, Any] | None = None,
    ) -> str:
        pass

    @abstractmethod
    def get(self, key: str) -> ProviderResponse | None:
        pass

    @abstractmethod
    def put(self, key: str, response: ProviderResponse) -> None:
        pass

    @abstractmethod
    def has(self, key: str) -> bool:
        pass

    @abstractmethod
    def clear(self) -> None:
        pass
