import json
from typing import Any, Callable

import pytest
import structlog

from promptmatrix.application.generate_response import CandidateClient
from promptmatrix.application.judge import Judge
from promptmatrix.domain.contracts.provider import (
    ChatMessage,
    ProviderContract,
    ProviderResponse,
)
from promptmatrix.domain.contracts.suite import Combination, JudgeConfig

JUDGE = "judge"
JUDGE_MODEL = f"fake:{JUDGE}"

Reply = str | Exception | Callable[[list[ChatMessage]], str]


class FakeProvider(ProviderContract):
    """Replies per model with a fixed string, an exception, or a callable."""

    def __init__(self, replies: dict[str, Reply] | None = None, name: str = "fake"):
        self._name = name
        self.replies: dict[str, Reply] = dict(replies or {})
        self.calls: list[dict[str, Any]] = []

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
        self.calls.append(
            {
                "model": model,
                "messages": messages,
                "temperature": temperature,
                "json_mode": json_mode,
                "options": options,
            }
        )
        reply = self.replies.get(model, f"response from {model}")
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            reply = reply(messages)
        return ProviderResponse(
            content=reply,
            input_tokens=3,
            output_tokens=5,
            latency_ms=10,
            cost=0.001,
        )

    def calls_for(self, model: str) -> list[dict[str, Any]]:
        return [c for c in self.calls if c["model"] == model]


class RecordingObserver:
    def __init__(self) -> None:
        self.events: list[tuple[Any, ...]] = []

    def run_started(
        self, suite: str, total_combinations: int, candidates: list[str]
    ) -> None:
        self.events.append(("run_started", suite, total_combinations, candidates))

    def combination_started(self, combination: Combination) -> None:
        self.events.append(("combination_started", combination.index))

    def candidate_completed(self, combination, candidate, duration_ms) -> None:
        self.events.append(("candidate_completed", combination.index, candidate.name))

    def candidate_failed(self, combination, candidate, reason) -> None:
        self.events.append(("candidate_failed", combination.index, candidate.name))

    def judging_started(self, combination, candidates, comparative) -> None:
        self.events.append(("judging_started", combination.index, comparative))

    def combination_completed(self, combination: Combination) -> None:
        self.events.append(("combination_completed", combination.index))

    def run_completed(
        self, suite: str, total_evaluations: int, elapsed_seconds: float
    ) -> None:
        self.events.append(("run_completed", suite, total_evaluations))

    def names(self) -> list[str]:
        return [e[0] for e in self.events]


def judge_json(**payload: Any) -> str:
    return json.dumps(payload)


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider({JUDGE: judge_json(score=8, reasoning="Solid")})


@pytest.fixture
def client(provider: FakeProvider) -> CandidateClient:
    return CandidateClient(lambda name: provider)


@pytest.fixture
def judge(client: CandidateClient) -> Judge:
    return Judge(client, JudgeConfig(model=JUDGE_MODEL))


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()
