import json

import pytest

from promptmatrix.domain.evaluation import Evaluation, Winner, clamp_score
from promptmatrix.domain.results import Results
from promptmatrix.domain.variants import Variant


def _evaluation(score: int, winner: Winner | None = None, error: str | None = None):
    return Evaluation(
        criterion="c",
        score=score,
        passed=score >= 7,
        reasoning=f"scored {score}",
        error=error,
        winner=winner,
    )


@pytest.fixture
def results() -> Results:
    results = Results("demo")
    rows = [
        ("alpha", "greet", "default", None, 9, Winner.WON),
        ("beta", "greet", "default", None, 6, None),
        ("alpha", "greet", "formal", 0.5, 7, Winner.TIE),
        ("beta", "greet", "formal", 0.5, 7, Winner.TIE),
        ("alpha", "bye", "default", None, 4, None),
        ("beta", "bye", "default", None, 8, Winner.WON),
    ]
    for candidate, scenario, variant, temperature, score, winner in rows:
        results.record_evaluation(
            candidate=candidate,
            scenario=scenario,
            variant=variant,
            temperature=temperature,
            criteria=("c",),
            evaluation=_evaluation(score, winner),
        )
    return results


def test_scores_by_candidate(results: Results):
    scores = results.scores_by_candidate()

    assert scores["alpha"].total == 3
    assert scores["alpha"].passed == 2
    assert scores["alpha"].pass_rate == 66.7
    assert scores["alpha"].avg_score == 6.67
    assert scores["beta"].passed == 2
    assert scores["beta"].avg_score == 7.0


def test_scores_by_variant_and_temperature(results: Results):
    by_variant = results.scores_by_variant()
    by_temperature = results.scores_by_temperature()

    assert list(by_variant) == ["default", "formal"]
    assert by_variant["formal"].pass_rate == 100.0
    assert by_variant["default"].total == 4
    assert set(by_temperature) == {None, 0.5}
    assert by_temperature[0.5].avg_score == 7.0


def test_scores_by_scenario_keeps_first_occurrence(results: Results):
    greet = results.scores_by_scenario()["greet"]

    assert greet["alpha"].score == 9
    assert greet["alpha"].variant == "default"
    assert greet["alpha"].winner is Winner.WON
    assert greet["beta"].score == 6


def test_scores_by_scenario_variant(results: Results):
    by_pair = results.scores_by_scenario_variant()

    assert set(by_pair) == {("greet", "default"), ("greet", "formal"), ("bye", "default")}
    assert by_pair[("greet", "formal")]["alpha"].winner is Winner.TIE


def test_wins_and_ties_are_counted_separately(results: Results):
    assert results.wins_by_candidate() == {"alpha": 1, "beta": 1}
    assert results.ties_by_candidate() == {"alpha": 1, "beta": 1}


def test_scenario_winner(results: Results):
    assert results.scenario_winner("greet") == "alpha"
    assert results.scenario_winner("greet", "formal") is Winner.TIE
    assert results.scenario_winner("bye") == "beta"
    assert results.scenario_winner("missing") is None


def test_scenario_winner_is_none_without_marks():
    results = Results("demo")
    results.record_evaluation("alpha", "s", "default", None, ("c",), _evaluation(3))

    assert results.scenario_winner("s") is None


def test_record_response_builds_nested_table_and_timing():
    results = Results("demo")
    variant = Variant(name="formal", credential="I'm a nurse.")

    results.record_response("alpha", "greet", variant, None, "hi", duration_ms=100, cost=0.002)
    results.record_response("alpha", "greet", variant, 0.5, "hello", duration_ms=300, cost=0.0)
    results.record_response("beta", "greet", variant, None, "hey", duration_ms=50)

    record = results.responses["alpha"]["greet"]["formal"][0.5]
    assert record.content == "hello"
    assert record.variant["credential"] == "I'm a nurse."

    timing = results.timing_by_candidate()
    assert timing["alpha"].total_ms == 400
    assert timing["alpha"].avg_ms == 200
    assert timing["alpha"].count == 2
    assert results.scenario_timing("alpha", "greet", "formal") == 200
    assert results.scenario_timing("alpha", "greet", "other") is None

    # zero and missing costs are not accumulated
    assert results.costs == {"alpha": 0.002}


def test_responses_view_cannot_modify_store():
    results = Results("demo")
    results.record_response("alpha", "greet", Variant(), None, "hi", duration_ms=10)

    view = results.responses
    view["alpha"]["greet"]["default"].clear()
    view["mallory"] = {}

    assert set(results.responses) == {"alpha"}
    assert results.responses["alpha"]["greet"]["default"][None].content == "hi"


def test_finish_and_to_dict_is_json_safe(results: Results):
    results.record_response("alpha", "greet", Variant(), None, "hi", duration_ms=10)
    results.finish()

    data = results.to_dict()
    encoded = json.loads(json.dumps(data))

    assert results.is_finished
    assert encoded["suite_name"] == "demo"
    assert encoded["wins"] == {"alpha": 1, "beta": 1}
    assert encoded["by_temperature"]["default"]["total"] == 4
    assert encoded["by_scenario"]["greet"]["alpha"]["winner"] == "won"
    assert encoded["by_scenario_variant"]["greet/formal"]["beta"]["winner"] == "tie"
    assert encoded["responses"]["alpha"]["greet"]["default"]["default"]["content"] == "hi"
    assert len(encoded["evaluations"]) == 6
    assert encoded["evaluations"][0]["pass"] is True


def test_evaluations_view_is_a_copy(results: Results):
    results.evaluations.clear()

    assert len(results.evaluations) == 6


def test_failed_evaluation_shape():
    evaluation = Evaluation.failed("c", "boom")

    assert evaluation.score == 0
    assert evaluation.passed is False
    assert evaluation.has_error
    assert evaluation.winner is None
    assert evaluation.to_dict() == {"criterion": "c", "score": 0, "pass": False, "error": "boom"}


@pytest.mark.parametrize(
    "value,expected",
    [
        (11, 10),
        (-1, 0),
        (5.5, 5),
        ("8", 8),
        ("x", 0),
        (None, 0),
        (float("inf"), 10),
        (float("-inf"), 0),
        (float("nan"), 0),
    ],
)
def test_clamp_score(value, expected):
    assert clamp_score(value) == expected
