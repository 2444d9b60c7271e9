"""Observer port for suite runs. Events are emitted in combination order."""

from typing import Protocol

from .contracts.suite import Candidate, Combination


class RunObserver(Protocol):
    def run_started(
        self, suite: str, total_combinations: int, candidates: list[str]
    ) -> None: ...

    def combination_started(self, combination: Combination) -> None: ...

    def candidate_completed(
        self, combination: Combination, candidate: Candidate, duration_ms: int
    ) -> None: ...

    def candidate_failed(
        self, combination: Combination, candidate: Candidate, reason: str
    ) -> None: ...

    def judging_started(
        self, combination: Combination, candidates: list[str], comparative: bool
    ) -> None: ...

    def combination_completed(self, combination: Combination) -> None: ...

    def run_completed(
        self, suite: str, total_evaluations: int, elapsed_seconds: float
    ) -> None: ...


class NullRunObserver:
    def run_started(
        self, suite: str, total_combinations: int, candidates: list[str]
    ) -> None:
        pass

    def combination_started(self, combination: Combination) -> None:
        pass

    def candidate_completed(
        self, combination: Combination, candidate: Candidate, duration_ms: int
    ) -> None:
        pass

    def candidate_failed(
        self, combination: Combination, candidate: Candidate, reason: str
    ) -> None:
        pass

    def judging_started(
        self, combination: Combination, candidates: list[str], comparative: bool
    ) -> None:
        pass

    def combination_completed(self, combination: Combination) -> None:
        pass

    def run_completed(
        self, suite: str, total_evaluations: int, elapsed_seconds: float
    ) -> None:
        pass
