import structlog

from ..domain.contracts.suite import Candidate, Combination
from ..domain.observer import RunObserver


class StructlogRunObserver:
    """Logs suite run events to structlog."""

    def __init__(self) -> None:
        self._log = structlog.get_logger()

    def run_started(
        self, suite: str, total_combinations: int, candidates: list[str]
    ) -> None:
        self._log.info(
            "suite.started",
            suite=suite,
            total_combinations=total_combinations,
            candidates=candidates,
        )

    def combination_started(self, combination: Combination) -> None:
        self._log.info(
            "combination.started",
            index=combination.index,
            total=combination.total,
            scenario=combination.scenario.name,
            variant=combination.variant.name,
            temperature=combination.temperature,
        )

    def candidate_completed(
        self, combination: Combination, candidate: Candidate, duration_ms: int
    ) -> None:
        self._log.debug(
            "candidate.completed",
            index=combination.index,
            candidate=candidate.name,
            model=candidate.model,
            duration_ms=duration_ms,
        )

    def candidate_failed(
        self, combination: Combination, candidate: Candidate, reason: str
    ) -> None:
        self._log.error(
            "candidate.failed",
            index=combination.index,
            scenario=combination.scenario.name,
            variant=combination.variant.name,
            candidate=candidate.name,
            model=candidate.model,
            reason=reason,
        )

    def judging_started(
        self, combination: Combination, candidates: list[str], comparative: bool
    ) -> None:
        self._log.debug(
            "judging.started",
            index=combination.index,
            candidates=candidates,
            mode="comparative" if comparative else "single",
        )

    def combination_completed(self, combination: Combination) -> None:
        self._log.debug(
            "combination.completed",
            index=combination.index,
            total=combination.total,
        )

    def run_completed(
        self, suite: str, total_evaluations: int, elapsed_seconds: float
    ) -> None:
        self._log.info(
            "suite.completed",
            suite=suite,
            total_evaluations=total_evaluations,
            elapsed_seconds=round(elapsed_seconds, 2),
        )


class CompositeRunObserver:
    """Delegates every run event to each observer in order."""

    def __init__(self, observers: list[RunObserver]) -> None:
        self._observers = observers

    def run_started(
        self, suite: str, total_combinations: int, candidates: list[str]
    ) -> None:
        for obs in self._observers:
            obs.run_started(
                suite=suite,
                total_combinations=total_combinations,
                candidates=candidates,
            )

    def combination_started(self, combination: Combination) -> None:
        for obs in self._observers:
            obs.combination_started(combination)

    def candidate_completed(
        self, combination: Combination, candidate: Candidate, duration_ms: int
    ) -> None:
        for obs in self._observers:
            obs.candidate_completed(combination, candidate, duration_ms)

    def candidate_failed(
        self, combination: Combination, candidate: Candidate, reason: str
    ) -> None:
        for obs in self._observers:
            obs.candidate_failed(combination, candidate, reason)

    def judging_started(
        self, combination: Combination, candidates: list[str], comparative: bool
    ) -> None:
        for obs in self._observers:
            obs.judging_started(combination, candidates, comparative)

    def combination_completed(self, combination: Combination) -> None:
        for obs in self._observers:
            obs.combination_completed(combination)

    def run_completed(
        self, suite: str, total_evaluations: int, elapsed_seconds: float
    ) -> None:
        for obs in self._observers:
            obs.run_completed(
                suite=suite,
                total_evaluations=total_evaluations,
                elapsed_seconds=elapsed_seconds,
            )
