import io

import pytest
from rich.console import Console

from promptmatrix.domain.contracts.suite import Candidate, Combination, Scenario
from promptmatrix.domain.evaluation import Evaluation, Winner
from promptmatrix.domain.results import Results
from promptmatrix.domain.variants import Variant
from promptmatrix.infrastructure.console_display import (
    ConsoleProgressObserver,
    display_report,
    format_cost,
    format_duration,
    score_bar,
)


def _console() -> tuple[Console, io.StringIO]:
    buffer = io.StringIO()
    return Console(file=buffer, width=120, color_system=None), buffer


def _results(alpha_score: int, beta_score: int, winner: str | None) -> Results:
    results = Results("demo")
    for candidate, score, duration in (("alpha", alpha_score, 1500), ("beta", beta_score, 500)):
        results.record_response(
            candidate, "greet", Variant(), None, f"{candidate} says hi", duration_ms=duration, cost=0.004
        )
        if winner == "tie":
            mark = Winner.TIE
        else:
            mark = Winner.WON if winner == candidate else None
        results.record_evaluation(
            candidate,
            "greet",
            "default",
            None,
            ("c",),
            Evaluation(criterion="c", score=score, passed=score >= 7, reasoning="r", winner=mark),
        )
    results.finish()
    return results


@pytest.mark.parametrize("ms,expected", [(250, "250ms"), (1000, "1.0s"), (1534, "1.53s")])
def test_format_duration(ms: int, expected: str):
    assert format_duration(ms) == expected


@pytest.mark.parametrize("cost,expected", [(0.0042, "$0.0042"), (0.25, "$0.25")])
def test_format_cost(cost: float, expected: str):
    assert format_cost(cost) == expected


def test_score_bar():
    assert score_bar(7) == "███████░░░"
    assert score_bar(0) == "░" * 10
    assert score_bar(12) == "█" * 10


def test_report_announces_winner_and_fastest():
    out, buffer = _console()

    display_report(_results(9, 5, "alpha"), output=out)

    text = buffer.getvalue()
    assert "demo" in text
    assert "Summary" in text
    assert "Performance" in text
    assert "By Scenario" in text
    assert "Winner: alpha" in text
    assert "Beat beta by 4.0 points" in text
    assert "Fastest: beta" in text
    assert "3.0x faster than alpha" in text


def test_report_declares_tie_on_equal_averages():
    out, buffer = _console()

    display_report(_results(7, 7, "tie"), output=out)

    text = buffer.getvalue()
    assert "Result: TIE between alpha, beta" in text
    assert "tie" in text


def test_report_shows_responses_when_requested():
    out, buffer = _console()

    display_report(_results(9, 5, "alpha"), show_responses=True, output=out)

    assert "alpha says hi" in buffer.getvalue()


def test_report_without_results():
    out, buffer = _console()

    display_report(Results("empty"), output=out)

    assert "No results" in buffer.getvalue()


def test_progress_observer_lifecycle():
    out, buffer = _console()
    observer = ConsoleProgressObserver(out)
    combination = Combination(1, 1, Scenario(name="greet", prompt="hi"), Variant(), None)
    candidate = Candidate(name="alpha", model="openai:gpt-4o")

    observer.run_started("demo", 1, ["alpha"])
    observer.combination_started(combination)
    observer.candidate_failed(combination, candidate, "timeout")
    observer.judging_started(combination, [], False)
    observer.combination_completed(combination)
    observer.run_completed("demo", 1, 0.1)

    assert "alpha failed on greet: timeout" in buffer.getvalue()
