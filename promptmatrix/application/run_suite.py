import asyncio
import time
from dataclasses import dataclass, replace
from enum import Enum

from ..domain.contracts.provider import ProviderResponse
from ..domain.contracts.suite import Candidate, Combination, SuiteDefinition
from ..domain.errors import RequestError
from ..domain.evaluation import Evaluation, Winner
from ..domain.observer import NullRunObserver, RunObserver
from ..domain.results import Results
from ..domain.variants import TraitComposer, Variant, build_variants
from .generate_response import CandidateClient
from .judge import Judge


class RunSuiteError(Exception):
    pass


class RunState(str, Enum):
    NOT_STARTED = "not_started"
    ITERATING = "iterating"
    FINISHED = "finished"


@dataclass
class _Generation:
    candidate: Candidate
    variant: Variant
    response: ProviderResponse | None = None
    error: str | None = None


def describe_error(error: Exception) -> str:
    message = str(error)
    name = type(error).__name__
    return f"{name}: {message}" if message else name


def build_context(combination: Combination, prompt: str) -> str:
    scenario = combination.scenario
    system_prompt = scenario.compose_system_prompt(combination.variant)

    parts = []
    if system_prompt:
        parts.append(f"System prompt: {system_prompt}")
    parts.append(f"User prompt: {prompt}")
    if scenario.context:
        parts.append(scenario.context)
    return "\n\n".join(parts)


class RunSuite:
    """Drives one suite run over every (scenario, variant, temperature) combination.

    For each combination all candidates are asked for a response, then the
    judge scores whatever came back: single mode for a lone response,
    comparative mode otherwise. Failed candidates still get one zero-score
    evaluation so every candidate appears in every combination.
    """

    def __init__(
        self,
        definition: SuiteDefinition,
        client: CandidateClient,
        judge: Judge,
        composer: TraitComposer | None = None,
        observer: RunObserver | None = None,
        concurrent: bool = True,
    ) -> None:
        self._definition = definition
        self._client = client
        self._judge = judge
        self._composer = composer
        self._observer = observer or NullRunObserver()
        self._concurrent = concurrent
        self._variants: list[Variant] | None = None
        self.state = RunState.NOT_STARTED
        self.results = Results(definition.name)

    @property
    def variants(self) -> list[Variant]:
        if self._variants is None:
            self._variants = build_variants(self._definition.variants, self._composer)
        return self._variants

    def count_combinations(self) -> int:
        return (
            len(self._definition.scenarios)
            * len(self.variants)
            * len(self._definition.temperatures)
        )

    def combinations(self) -> list[Combination]:
        total = self.count_combinations()
        combos = []
        for scenario in self._definition.scenarios:
            for variant in self.variants:
                for temperature in self._definition.temperatures:
                    combos.append(
                        Combination(
                            index=len(combos) + 1,
                            total=total,
                            scenario=scenario,
                            variant=variant,
                            temperature=temperature,
                        )
                    )
        return combos

    async def run(self) -> Results:
        if self.state is not RunState.NOT_STARTED:
            raise RunSuiteError(
                f"Suite '{self._definition.name}' runner already used ({self.state.value})"
            )

        # Configuration problems surface here, before any request is sent.
        combinations = self.combinations()
        self._client.prepare(
            [c.model for c in self._definition.candidates] + [self._judge.model]
        )

        self.state = RunState.ITERATING
        start_time = time.perf_counter()
        self._observer.run_started(
            suite=self._definition.name,
            total_combinations=len(combinations),
            candidates=self._definition.candidate_names,
        )

        for combination in combinations:
            self._observer.combination_started(combination)
            await self._run_combination(combination)
            self._observer.combination_completed(combination)

        self.results.finish()
        self.state = RunState.FINISHED
        self._observer.run_completed(
            suite=self._definition.name,
            total_evaluations=len(self.results.evaluations),
            elapsed_seconds=time.perf_counter() - start_time,
        )
        return self.results

    async def _run_combination(self, combination: Combination) -> None:
        scenario = combination.scenario
        candidates = self._definition.candidates

        if self._concurrent:
            generations = await asyncio.gather(
                *(self._generate(candidate, combination) for candidate in candidates)
            )
        else:
            generations = [
                await self._generate(candidate, combination) for candidate in candidates
            ]

        responses: dict[str, str] = {}
        failures: list[_Generation] = []
        # Outcomes are handled in candidate order whether or not they ran concurrently.
        for generation in generations:
            candidate = generation.candidate
            if generation.response is None:
                self._observer.candidate_failed(
                    combination, candidate, generation.error or "unknown error"
                )
                failures.append(generation)
                continue

            response = generation.response
            responses[candidate.name] = response.content
            self.results.record_response(
                candidate=candidate.name,
                scenario=scenario.name,
                variant=generation.variant,
                temperature=combination.temperature,
                content=response.content,
                duration_ms=response.latency_ms,
                cost=response.cost,
                input_tokens=response.input_tokens,
                output_tokens=response.output_tokens,
            )
            self._observer.candidate_completed(
                combination, candidate, response.latency_ms
            )

        if responses:
            await self._judge_combination(combination, responses)

        criterion = "\n".join(scenario.criteria)
        for failure in failures:
            self._record(
                combination,
                failure.candidate.name,
                Evaluation.failed(criterion, failure.error or "unknown error"),
            )

    async def _generate(
        self, candidate: Candidate, combination: Combination
    ) -> _Generation:
        scenario = combination.scenario
        prompt = scenario.compose_prompt(combination.variant)
        variant = combination.variant.with_composed_prompt(prompt)
        system_prompt = scenario.compose_system_prompt(
            combination.variant, candidate.system_prompt
        )

        start_time = time.perf_counter()
        try:
            response = await self._client.generate(
                candidate,
                prompt=prompt,
                system_prompt=system_prompt,
                temperature=combination.effective_temperature,
                history=combination.variant.context_history,
            )
        except RequestError as e:
            return _Generation(candidate=candidate, variant=variant, error=str(e))
        except Exception as e:
            return _Generation(
                candidate=candidate, variant=variant, error=describe_error(e)
            )

        if not response.latency_ms:
            response.latency_ms = int((time.perf_counter() - start_time) * 1000)
        return _Generation(candidate=candidate, variant=variant, response=response)

    async def _judge_combination(
        self, combination: Combination, responses: dict[str, str]
    ) -> None:
        scenario = combination.scenario
        context = build_context(combination, scenario.compose_prompt(combination.variant))
        comparative = len(responses) > 1
        self._observer.judging_started(combination, list(responses), comparative)

        try:
            evaluations = await self._evaluate(combination, responses, context)
        except Exception as e:
            criterion = "\n".join(scenario.criteria)
            evaluations = {
                candidate: Evaluation.failed(criterion, f"Judge failed: {describe_error(e)}")
                for candidate in responses
            }
        for candidate, evaluation in evaluations.items():
            self._record(combination, candidate, evaluation)

    async def _evaluate(
        self, combination: Combination, responses: dict[str, str], context: str
    ) -> dict[str, Evaluation]:
        scenario = combination.scenario
        if len(responses) == 1:
            candidate, content = next(iter(responses.items()))
            evaluation = await self._judge.evaluate(
                response=content,
                criterion="\n".join(scenario.criteria),
                context=context,
            )
            # A lone candidate wins its own combination.
            return {candidate: replace(evaluation, winner=Winner.WON)}

        return await self._judge.evaluate_comparison(
            responses=responses,
            criteria=scenario.criteria,
            context=context,
        )

    def _record(
        self, combination: Combination, candidate: str, evaluation: Evaluation
    ) -> None:
        self.results.record_evaluation(
            candidate=candidate,
            scenario=combination.scenario.name,
            variant=combination.variant.name,
            temperature=combination.temperature,
            criteria=combination.scenario.criteria,
            evaluation=evaluation,
        )
