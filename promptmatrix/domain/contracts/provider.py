from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Protocol

ChatMessage = dict[str, str]


@dataclass
class ProviderResponse:
    content: str
    input_tokens: int = 0
    output_tokens: int = 0
    latency_ms: int = 0
    cost: float | None = None
    model: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)


class ProviderFactory(Protocol):
    def __call__(self, provider_name: str) -> "ProviderContract": ...


class ProviderContract(ABC):
    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    async def chat(
        self,
        model: str,
        messages: list[ChatMessage],
        temperature: float | None = None,
        json_mode: bool = False,
        options: dict[str, Any] | None = None,
    ) -> ProviderResponse:
        """Send one chat-completion request.

        Raises RequestError for any transport or protocol failure, including a
        response without assistant content.
        """
