import json
from dataclasses import replace
from typing import Any, Iterable

from ..domain.contracts.provider import ChatMessage
from ..domain.contracts.suite import JudgeConfig
from ..domain.errors import RequestError
from ..domain.evaluation import SCORE_MAX, SCORE_MIN, Evaluation, Winner, clamp_score
from ..domain.rubrics import Rubric, RubricRegistry, number_criteria
from .generate_response import CandidateClient
from .prompts import render_prompt

TIE = "tie"
RAW_EXCERPT_CHARS = 200
MISSING_CANDIDATE_ERROR = "No result for candidate in judge response"


class JudgeOutputError(Exception):
    pass


def _parse_json_object(raw: str) -> dict[str, Any]:
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise JudgeOutputError(str(e)) from e
    if not isinstance(data, dict):
        raise JudgeOutputError(f"expected a JSON object, got {type(data).__name__}")
    return data


def _invalid_json_message(raw: str) -> str:
    return f"Judge returned invalid JSON: {raw[:RAW_EXCERPT_CHARS]}"


class Judge:
    """Scores candidate responses against criteria using a judge model.

    Judging never raises for request or output problems: those become
    zero-score failing evaluations carrying the error message, one per
    requested candidate.
    """

    def __init__(
        self,
        client: CandidateClient,
        config: JudgeConfig | None = None,
        rubrics: RubricRegistry | None = None,
    ) -> None:
        self._client = client
        self._config = config or JudgeConfig()
        self._rubrics = rubrics or RubricRegistry.with_builtins()

    @property
    def model(self) -> str:
        return self._config.model

    @property
    def pass_threshold(self) -> int:
        return self._config.pass_threshold

    async def evaluate(
        self,
        response: str,
        criterion: str,
        context: str | None = None,
        pass_threshold: int | None = None,
    ) -> Evaluation:
        threshold = self._threshold(pass_threshold)
        system_prompt = self._config.system_prompt or render_prompt(
            "judge_system", min=SCORE_MIN, max=SCORE_MAX
        )
        user_prompt = render_prompt(
            "judge_user",
            response=response,
            context=context,
            criterion=criterion,
            min=SCORE_MIN,
            max=SCORE_MAX,
        )

        try:
            raw = await self._request(system_prompt, user_prompt)
        except RequestError as e:
            return Evaluation.failed(criterion, str(e))

        try:
            data = _parse_json_object(raw)
        except JudgeOutputError:
            return Evaluation.failed(criterion, _invalid_json_message(raw))

        score = clamp_score(data.get("score"))
        return Evaluation(
            criterion=criterion,
            score=score,
            passed=score >= threshold,
            reasoning=data.get("reasoning"),
        )

    async def evaluate_comparison(
        self,
        responses: dict[str, str],
        criteria: Iterable[str],
        context: str | None = None,
        pass_threshold: int | None = None,
    ) -> dict[str, Evaluation]:
        threshold = self._threshold(pass_threshold)
        criteria_text = number_criteria(criteria)
        candidates = list(responses)
        names = ", ".join(f'"{name}"' for name in candidates)

        system_prompt = render_prompt("comparison_system", min=SCORE_MIN, max=SCORE_MAX)
        user_prompt = render_prompt(
            "comparison_user",
            criteria=criteria_text,
            context=context,
            names=names,
            responses=responses,
            min=SCORE_MIN,
            max=SCORE_MAX,
        )

        try:
            raw = await self._request(system_prompt, user_prompt)
        except RequestError as e:
            return {c: Evaluation.failed(criteria_text, str(e)) for c in candidates}

        try:
            data = _parse_json_object(raw)
        except JudgeOutputError:
            message = _invalid_json_message(raw)
            return {c: Evaluation.failed(criteria_text, message) for c in candidates}

        declared = data.get("winner")
        evaluations = {}
        for candidate in candidates:
            result = data.get(candidate)
            if not isinstance(result, dict):
                evaluations[candidate] = Evaluation.failed(
                    criteria_text, MISSING_CANDIDATE_ERROR
                )
                continue

            score = clamp_score(result.get("score"))
            evaluations[candidate] = Evaluation(
                criterion=criteria_text,
                score=score,
                passed=score >= threshold,
                reasoning=result.get("reasoning"),
                winner=Winner.WON if declared == candidate else None,
            )

        if declared == TIE:
            evaluations = {
                c: replace(e, winner=Winner.TIE) for c, e in evaluations.items()
            }

        return evaluations

    async def evaluate_rubric(
        self,
        response: str,
        rubric: Rubric | str,
        context: str | None = None,
        pass_threshold: int | None = None,
    ) -> Evaluation:
        if not isinstance(rubric, Rubric):
            rubric = self._rubrics.find(rubric)
        return await self.evaluate(
            response=response,
            criterion=rubric.numbered(),
            context=context,
            pass_threshold=pass_threshold,
        )

    def _threshold(self, pass_threshold: int | None) -> int:
        if pass_threshold is None:
            return self._config.pass_threshold
        return pass_threshold

    async def _request(self, system_prompt: str, user_prompt: str) -> str:
        messages: list[ChatMessage] = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]
        response = await self._client.complete(
            self._config.model,
            messages,
            temperature=self._config.temperature,
            json_mode=True,
        )
        return response.content
