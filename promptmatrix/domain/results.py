import statistics as stats
from collections import defaultdict
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Callable, Hashable, Iterable

from .evaluation import Evaluation, Winner
from .variants import Variant

DEFAULT_TEMPERATURE_LABEL = "default"


def temperature_label(temperature: float | None) -> str:
    return DEFAULT_TEMPERATURE_LABEL if temperature is None else str(temperature)


@dataclass(frozen=True)
class ResponseRecord:
    content: str
    variant: dict[str, Any]
    duration_ms: int | None = None
    cost: float | None = None
    input_tokens: int = 0
    output_tokens: int = 0


@dataclass(frozen=True)
class EvaluationRecord:
    candidate: str
    scenario: str
    variant: str
    temperature: float | None
    criteria: tuple[str, ...]
    evaluation: Evaluation

    @property
    def score(self) -> int:
        return self.evaluation.score

    @property
    def passed(self) -> bool:
        return self.evaluation.passed

    @property
    def winner(self) -> Winner | None:
        return self.evaluation.winner

    def to_dict(self) -> dict[str, Any]:
        return {
            "candidate": self.candidate,
            "scenario": self.scenario,
            "variant": self.variant,
            "temperature": self.temperature,
            "criteria": list(self.criteria),
            "criteria_count": len(self.criteria),
            "score": self.evaluation.score,
            "pass": self.evaluation.passed,
            "reasoning": self.evaluation.reasoning,
            "error": self.evaluation.error,
            "winner": self.winner.value if self.winner else None,
        }


@dataclass
class ScoreSummary:
    total: int
    passed: int
    pass_rate: float
    avg_score: float


@dataclass
class ScenarioScore:
    score: int
    passed: bool
    reasoning: str | None
    variant: str
    temperature: float | None
    winner: Winner | None = None
    error: str | None = None


@dataclass
class TimingSummary:
    total_ms: int
    avg_ms: int
    count: int


@dataclass
class Results:
    """Append-only evaluation log and response table for one suite run."""

    suite_name: str
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: datetime | None = None
    _evaluations: list[EvaluationRecord] = field(default_factory=list, repr=False)
    # candidate -> scenario -> variant -> temperature -> response
    _responses: dict[str, dict[str, dict[str, dict[float | None, ResponseRecord]]]] = (
        field(default_factory=dict, repr=False)
    )
    # candidate -> (scenario, variant) -> durations
    _timing: dict[str, dict[tuple[str, str], list[int]]] = field(
        default_factory=dict, repr=False
    )
    _costs: dict[str, float] = field(default_factory=dict, repr=False)

    @property
    def evaluations(self) -> list[EvaluationRecord]:
        return list(self._evaluations)

    @property
    def responses(
        self,
    ) -> dict[str, dict[str, dict[str, dict[float | None, ResponseRecord]]]]:
        return {
            candidate: {
                scenario: {variant: dict(by_temp) for variant, by_temp in variants.items()}
                for scenario, variants in scenarios.items()
            }
            for candidate, scenarios in self._responses.items()
        }

    @property
    def costs(self) -> dict[str, float]:
        return dict(self._costs)

    @property
    def is_finished(self) -> bool:
        return self.finished_at is not None

    def record_response(
        self,
        candidate: str,
        scenario: str,
        variant: Variant,
        temperature: float | None,
        content: str,
        duration_ms: int | None = None,
        cost: float | None = None,
        input_tokens: int = 0,
        output_tokens: int = 0,
    ) -> ResponseRecord:
        record = ResponseRecord(
            content=content,
            variant=variant.to_dict(),
            duration_ms=duration_ms,
            cost=cost,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )
        by_scenario = self._responses.setdefault(candidate, {})
        by_variant = by_scenario.setdefault(scenario, {})
        by_variant.setdefault(variant.name, {})[temperature] = record

        if duration_ms is not None:
            by_key = self._timing.setdefault(candidate, {})
            by_key.setdefault((scenario, variant.name), []).append(duration_ms)

        if cost is not None and cost > 0:
            self._costs[candidate] = self._costs.get(candidate, 0.0) + cost

        return record

    def record_evaluation(
        self,
        candidate: str,
        scenario: str,
        variant: str,
        temperature: float | None,
        criteria: Iterable[str],
        evaluation: Evaluation,
    ) -> EvaluationRecord:
        record = EvaluationRecord(
            candidate=candidate,
            scenario=scenario,
            variant=variant,
            temperature=temperature,
            criteria=tuple(criteria),
            evaluation=evaluation,
        )
        self._evaluations.append(record)
        return record

    def finish(self) -> None:
        self.finished_at = datetime.now()

    # --- aggregation views ---

    def scores_by_candidate(self) -> dict[str, ScoreSummary]:
        return self._summarize_by(lambda r: r.candidate)

    def scores_by_variant(self) -> dict[str, ScoreSummary]:
        return self._summarize_by(lambda r: r.variant)

    def scores_by_temperature(self) -> dict[float | None, ScoreSummary]:
        return self._summarize_by(lambda r: r.temperature)

    def scores_by_scenario(self) -> dict[str, dict[str, ScenarioScore]]:
        return self._first_by(lambda r: r.scenario)

    def scores_by_scenario_variant(
        self,
    ) -> dict[tuple[str, str], dict[str, ScenarioScore]]:
        return self._first_by(lambda r: (r.scenario, r.variant))

    def wins_by_candidate(self) -> dict[str, int]:
        return self._count_marks(Winner.WON)

    def ties_by_candidate(self) -> dict[str, int]:
        return self._count_marks(Winner.TIE)

    def scenario_winner(
        self, scenario: str, variant: str | None = None
    ) -> str | Winner | None:
        records = [
            r
            for r in self._evaluations
            if r.scenario == scenario and (variant is None or r.variant == variant)
        ]
        for record in records:
            if record.winner is Winner.WON:
                return record.candidate
        if any(r.winner is Winner.TIE for r in records):
            return Winner.TIE
        return None

    def timing_by_candidate(self) -> dict[str, TimingSummary]:
        summaries = {}
        for candidate, by_key in self._timing.items():
            durations = [ms for values in by_key.values() for ms in values]
            total_ms = sum(durations)
            summaries[candidate] = TimingSummary(
                total_ms=total_ms,
                avg_ms=round(total_ms / len(durations)) if durations else 0,
                count=len(durations),
            )
        return summaries

    def scenario_timing(self, candidate: str, scenario: str, variant: str) -> int | None:
        durations = self._timing.get(candidate, {}).get((scenario, variant))
        if not durations:
            return None
        return round(sum(durations) / len(durations))

    def _summarize_by(
        self, key: Callable[[EvaluationRecord], Hashable]
    ) -> dict[Any, ScoreSummary]:
        grouped: dict[Any, list[EvaluationRecord]] = defaultdict(list)
        for record in self._evaluations:
            grouped[key(record)].append(record)

        summaries = {}
        for group_key, group in grouped.items():
            total = len(group)
            passed = sum(1 for r in group if r.passed)
            summaries[group_key] = ScoreSummary(
                total=total,
                passed=passed,
                pass_rate=round(passed / total * 100, 1),
                avg_score=round(stats.mean(r.score for r in group), 2),
            )
        return summaries

    def _first_by(
        self, key: Callable[[EvaluationRecord], Hashable]
    ) -> dict[Any, dict[str, ScenarioScore]]:
        grouped: dict[Any, dict[str, ScenarioScore]] = {}
        for record in self._evaluations:
            by_candidate = grouped.setdefault(key(record), {})
            if record.candidate in by_candidate:
                continue
            by_candidate[record.candidate] = ScenarioScore(
                score=record.score,
                passed=record.passed,
                reasoning=record.evaluation.reasoning,
                variant=record.variant,
                temperature=record.temperature,
                winner=record.winner,
                error=record.evaluation.error,
            )
        return grouped

    def _count_marks(self, mark: Winner) -> dict[str, int]:
        counts: dict[str, int] = defaultdict(int)
        for record in self._evaluations:
            if record.winner is mark:
                counts[record.candidate] += 1
        return dict(counts)

    def to_dict(self) -> dict[str, Any]:
        def scenario_scores(scores: dict[str, ScenarioScore]) -> dict[str, Any]:
            return {
                candidate: {
                    **asdict(score),
                    "winner": score.winner.value if score.winner else None,
                }
                for candidate, score in scores.items()
            }

        return {
            "suite_name": self.suite_name,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "summary": {
                name: asdict(s) for name, s in self.scores_by_candidate().items()
            },
            "wins": self.wins_by_candidate(),
            "by_variant": {
                name: asdict(s) for name, s in self.scores_by_variant().items()
            },
            "by_temperature": {
                temperature_label(t): asdict(s)
                for t, s in self.scores_by_temperature().items()
            },
            "by_scenario": {
                scenario: scenario_scores(scores)
                for scenario, scores in self.scores_by_scenario().items()
            },
            "by_scenario_variant": {
                f"{scenario}/{variant}": scenario_scores(scores)
                for (scenario, variant), scores in self.scores_by_scenario_variant().items()
            },
            "timing": {
                name: asdict(t) for name, t in self.timing_by_candidate().items()
            },
            "costs": self.costs,
            "evaluations": [r.to_dict() for r in self._evaluations],
            "responses": {
                candidate: {
                    scenario: {
                        variant: {
                            temperature_label(t): asdict(record)
                            for t, record in by_temperature.items()
                        }
                        for variant, by_temperature in by_variant.items()
                    }
                    for scenario, by_variant in by_scenario.items()
                }
                for candidate, by_scenario in self._responses.items()
            },
        }
