import asyncio

import pytest
from conftest import JUDGE, JUDGE_MODEL, FakeProvider, judge_json

from promptmatrix.application.judge import MISSING_CANDIDATE_ERROR, Judge
from promptmatrix.domain.contracts.suite import JudgeConfig
from promptmatrix.domain.errors import ConfigurationError, RequestError
from promptmatrix.domain.evaluation import Winner
from promptmatrix.domain.rubrics import Rubric


# --- single mode ---


def test_evaluate_parses_score_and_reasoning(judge: Judge):
    evaluation = asyncio.run(judge.evaluate("Hello!", "is friendly"))

    assert evaluation.score == 8
    assert evaluation.passed is True
    assert evaluation.reasoning == "Solid"
    assert evaluation.error is None
    assert evaluation.winner is None


def test_evaluate_requests_json_from_judge_model(judge: Judge, provider: FakeProvider):
    asyncio.run(judge.evaluate("Hello!", "is friendly", context="User prompt: hi"))

    (call,) = provider.calls_for(JUDGE)
    assert call["json_mode"] is True
    assert call["temperature"] == 0.0
    assert call["messages"][0]["role"] == "system"
    user_prompt = call["messages"][1]["content"]
    assert "Hello!" in user_prompt
    assert "is friendly" in user_prompt
    assert "User prompt: hi" in user_prompt


@pytest.mark.parametrize(
    "raw_score,expected",
    [
        (15, 10),
        (-3, 0),
        (7.9, 7),
        ("6", 6),
        ("not a number", 0),
        (None, 0),
    ],
)
def test_evaluate_clamps_scores(
    judge: Judge, provider: FakeProvider, raw_score: object, expected: int
):
    provider.replies[JUDGE] = judge_json(score=raw_score, reasoning="r")

    evaluation = asyncio.run(judge.evaluate("x", "y"))

    assert evaluation.score == expected
    assert 0 <= evaluation.score <= 10


@pytest.mark.parametrize("score,passed", [(6, False), (7, True), (10, True)])
def test_evaluate_pass_threshold_is_inclusive(
    judge: Judge, provider: FakeProvider, score: int, passed: bool
):
    provider.replies[JUDGE] = judge_json(score=score, reasoning="r")

    assert asyncio.run(judge.evaluate("x", "y")).passed is passed


def test_evaluate_threshold_override(judge: Judge, provider: FakeProvider):
    provider.replies[JUDGE] = judge_json(score=8, reasoning="r")

    evaluation = asyncio.run(judge.evaluate("x", "y", pass_threshold=9))

    assert evaluation.passed is False


def test_evaluate_uses_configured_threshold(client):
    judge = Judge(client, JudgeConfig(model=JUDGE_MODEL, pass_threshold=9))

    assert asyncio.run(judge.evaluate("x", "y")).passed is False


def test_evaluate_invalid_json_becomes_failed_evaluation(
    judge: Judge, provider: FakeProvider
):
    raw = "I think this deserves an 8" + "!" * 300
    provider.replies[JUDGE] = raw

    evaluation = asyncio.run(judge.evaluate("x", "y"))

    assert evaluation.score == 0
    assert evaluation.passed is False
    assert evaluation.error == f"Judge returned invalid JSON: {raw[:200]}"


def test_evaluate_non_object_json_is_invalid(judge: Judge, provider: FakeProvider):
    provider.replies[JUDGE] = "[8]"

    evaluation = asyncio.run(judge.evaluate("x", "y"))

    assert evaluation.error.startswith("Judge returned invalid JSON")


def test_evaluate_request_error_becomes_failed_evaluation(
    judge: Judge, provider: FakeProvider
):
    provider.replies[JUDGE] = RequestError("API request failed (500): boom")

    evaluation = asyncio.run(judge.evaluate("x", "y"))

    assert evaluation.score == 0
    assert evaluation.passed is False
    assert evaluation.error == "API request failed (500): boom"


def test_evaluate_uses_custom_system_prompt(client, provider: FakeProvider):
    judge = Judge(client, JudgeConfig(model=JUDGE_MODEL, system_prompt="Be harsh."))

    asyncio.run(judge.evaluate("x", "y"))

    assert provider.calls_for(JUDGE)[0]["messages"][0]["content"] == "Be harsh."


# --- comparative mode ---


def test_comparison_marks_declared_winner(judge: Judge, provider: FakeProvider):
    provider.replies[JUDGE] = judge_json(
        A={"score": 8, "reasoning": "clear"},
        B={"score": 5, "reasoning": "vague"},
        winner="A",
    )

    evaluations = asyncio.run(
        judge.evaluate_comparison({"A": "first", "B": "second"}, ["is clear"])
    )

    assert list(evaluations) == ["A", "B"]
    assert evaluations["A"].score == 8
    assert evaluations["A"].passed is True
    assert evaluations["A"].winner is Winner.WON
    assert evaluations["B"].score == 5
    assert evaluations["B"].passed is False
    assert evaluations["B"].winner is None


def test_comparison_tie_marks_everyone(judge: Judge, provider: FakeProvider):
    provider.replies[JUDGE] = judge_json(
        A={"score": 7, "reasoning": "ok"},
        B={"score": 7, "reasoning": "ok"},
        C={"score": 6, "reasoning": "meh"},
        winner="tie",
    )

    evaluations = asyncio.run(
        judge.evaluate_comparison({"A": "a", "B": "b", "C": "c"}, ["is clear"])
    )

    assert {e.winner for e in evaluations.values()} == {Winner.TIE}


def test_comparison_missing_candidate_gets_error(judge: Judge, provider: FakeProvider):
    provider.replies[JUDGE] = judge_json(
        A={"score": 9, "reasoning": "great"}, winner="A"
    )

    evaluations = asyncio.run(
        judge.evaluate_comparison({"A": "a", "B": "b"}, ["is clear"])
    )

    assert evaluations["A"].score == 9
    assert evaluations["A"].winner is Winner.WON
    assert evaluations["B"].score == 0
    assert evaluations["B"].passed is False
    assert evaluations["B"].error == MISSING_CANDIDATE_ERROR


def test_comparison_malformed_json_fails_every_candidate(
    judge: Judge, provider: FakeProvider
):
    provider.replies[JUDGE] = "{not json"

    evaluations = asyncio.run(
        judge.evaluate_comparison({"A": "a", "B": "b"}, ["is clear"])
    )

    assert set(evaluations) == {"A", "B"}
    for evaluation in evaluations.values():
        assert evaluation.score == 0
        assert evaluation.passed is False
        assert evaluation.winner is None
        assert evaluation.error == "Judge returned invalid JSON: {not json"


def test_comparison_request_error_fails_every_candidate(
    judge: Judge, provider: FakeProvider
):
    provider.replies[JUDGE] = RequestError("Request failed: timeout")

    evaluations = asyncio.run(
        judge.evaluate_comparison({"A": "a", "B": "b"}, ["is clear"])
    )

    assert [e.error for e in evaluations.values()] == ["Request failed: timeout"] * 2


def test_comparison_prompt_numbers_criteria_and_names_candidates(
    judge: Judge, provider: FakeProvider
):
    provider.replies[JUDGE] = judge_json(
        A={"score": 8}, B={"score": 8}, winner="tie"
    )

    evaluations = asyncio.run(
        judge.evaluate_comparison(
            {"A": "alpha text", "B": "beta text"}, ["is clear", "is short"]
        )
    )

    user_prompt = provider.calls_for(JUDGE)[0]["messages"][1]["content"]
    assert "1. is clear\n2. is short" in user_prompt
    assert '"A", "B"' in user_prompt
    assert "alpha text" in user_prompt
    assert "beta text" in user_prompt
    assert evaluations["A"].criterion == "1. is clear\n2. is short"


# --- rubrics ---


def test_evaluate_rubric_by_name_uses_numbered_criteria(
    judge: Judge, provider: FakeProvider
):
    evaluation = asyncio.run(judge.evaluate_rubric("x", "concise"))

    assert evaluation.criterion.startswith("1. ")
    assert "2. " in evaluation.criterion


def test_evaluate_rubric_accepts_rubric_value(judge: Judge):
    rubric = Rubric("custom", ("mentions pricing", "stays polite"))

    evaluation = asyncio.run(judge.evaluate_rubric("x", rubric))

    assert evaluation.criterion == "1. mentions pricing\n2. stays polite"


def test_evaluate_rubric_unknown_name_raises(judge: Judge):
    with pytest.raises(ConfigurationError, match="Rubric 'nope' not found"):
        asyncio.run(judge.evaluate_rubric("x", "nope"))
