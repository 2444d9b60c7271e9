from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table
from rich.text import Text

from ..domain.contracts.suite import Candidate, Combination
from ..domain.evaluation import SCORE_MAX, Winner
from ..domain.results import Results, ScoreSummary, temperature_label

RESPONSE_PREVIEW_CHARS = 500

console = Console()


def format_duration(ms: int) -> str:
    if ms >= 1000:
        return f"{round(ms / 1000, 2)}s"
    return f"{ms}ms"


def format_cost(cost: float) -> str:
    if cost < 0.01:
        return f"${cost:.4f}"
    return f"${cost:.2f}"


def score_bar(score: float) -> str:
    filled = max(0, min(SCORE_MAX, round(score)))
    return "█" * filled + "░" * (SCORE_MAX - filled)


def _ranked(results: Results) -> list[tuple[str, ScoreSummary]]:
    return sorted(
        results.scores_by_candidate().items(), key=lambda item: -item[1].avg_score
    )


class ConsoleProgressObserver:
    """Renders a rich progress bar, one step per combination."""

    def __init__(self, output: Console | None = None) -> None:
        self._console = output or console
        self._progress: Progress | None = None
        self._task_id: TaskID | None = None

    def run_started(
        self, suite: str, total_combinations: int, candidates: list[str]
    ) -> None:
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            TextColumn("({task.completed}/{task.total})"),
            TimeElapsedColumn(),
            console=self._console,
            transient=True,
        )
        self._progress.start()
        self._task_id = self._progress.add_task(
            f"Running {suite}", total=total_combinations
        )

    def combination_started(self, combination: Combination) -> None:
        if self._progress is not None and self._task_id is not None:
            self._progress.update(self._task_id, description=combination.label)

    def candidate_completed(
        self, combination: Combination, candidate: Candidate, duration_ms: int
    ) -> None:
        pass

    def candidate_failed(
        self, combination: Combination, candidate: Candidate, reason: str
    ) -> None:
        self._console.print(
            f"[red]✗[/red] {candidate.name} failed on {combination.label}: "
            f"[dim]{reason}[/dim]"
        )

    def judging_started(
        self, combination: Combination, candidates: list[str], comparative: bool
    ) -> None:
        if self._progress is not None and self._task_id is not None:
            self._progress.update(
                self._task_id, description=f"{combination.label} [dim](judging)[/dim]"
            )

    def combination_completed(self, combination: Combination) -> None:
        if self._progress is not None and self._task_id is not None:
            self._progress.advance(self._task_id)

    def run_completed(
        self, suite: str, total_evaluations: int, elapsed_seconds: float
    ) -> None:
        if self._progress is not None:
            self._progress.stop()
            self._progress = None
            self._task_id = None


def display_report(
    results: Results,
    show_responses: bool = False,
    output: Console | None = None,
) -> None:
    out = output or console
    out.print()
    out.rule(f"[bold]{results.suite_name}[/bold]")
    display_summary_table(results, out)
    display_performance_table(results, out)
    display_scenario_breakdown(results, out)
    if show_responses:
        display_responses(results, out)
    display_winner(results, out)


def display_summary_table(results: Results, output: Console | None = None) -> None:
    out = output or console
    ranked = _ranked(results)
    if not ranked:
        out.print("[dim]No results[/dim]")
        return

    wins = results.wins_by_candidate()
    ties = results.ties_by_candidate()

    table = Table(title="Summary", show_header=True, header_style="bold cyan")
    table.add_column("Candidate")
    table.add_column("Score", justify="center")
    table.add_column("Wins", justify="right")
    table.add_column("Ties", justify="right")
    table.add_column("Pass Rate", justify="right")

    for candidate, summary in ranked:
        table.add_row(
            candidate,
            Text(f"{summary.avg_score}/{SCORE_MAX}", style=_score_style(summary.avg_score)),
            str(wins.get(candidate, 0)),
            str(ties.get(candidate, 0)),
            f"{summary.pass_rate}%",
        )

    out.print()
    out.print(table)

    by_variant = results.scores_by_variant()
    if len(by_variant) > 1:
        _display_dimension_table("By Variant", by_variant, out)

    by_temperature = results.scores_by_temperature()
    if len(by_temperature) > 1:
        _display_dimension_table(
            "By Temperature",
            {temperature_label(t): s for t, s in by_temperature.items()},
            out,
        )


def _display_dimension_table(
    title: str, summaries: dict[str, ScoreSummary], out: Console
) -> None:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column(title.removeprefix("By "), style="dim")
    table.add_column("Score", justify="center")
    table.add_column("Passed", justify="right")
    table.add_column("Pass Rate", justify="right")

    for key, summary in summaries.items():
        table.add_row(
            str(key),
            Text(f"{summary.avg_score}/{SCORE_MAX}", style=_score_style(summary.avg_score)),
            f"{summary.passed}/{summary.total}",
            f"{summary.pass_rate}%",
        )

    out.print()
    out.print(table)


def display_performance_table(results: Results, output: Console | None = None) -> None:
    out = output or console
    timing = results.timing_by_candidate()
    if not timing:
        return

    costs = results.costs
    table = Table(title="Performance", show_header=True, header_style="bold cyan")
    table.add_column("Candidate")
    table.add_column("Avg Latency", justify="right")
    table.add_column("Total", justify="right")
    table.add_column("Responses", justify="right")
    table.add_column("Cost", justify="right")

    for candidate, summary in sorted(timing.items(), key=lambda item: item[1].avg_ms):
        cost = costs.get(candidate)
        table.add_row(
            candidate,
            format_duration(summary.avg_ms),
            format_duration(summary.total_ms),
            str(summary.count),
            format_cost(cost) if cost else "[dim]-[/dim]",
        )

    out.print()
    out.print(table)


def display_scenario_breakdown(results: Results, output: Console | None = None) -> None:
    out = output or console
    by_scenario_variant = results.scores_by_scenario_variant()
    if not by_scenario_variant:
        return

    candidates = list(results.scores_by_candidate())
    show_variant = len({variant for _, variant in by_scenario_variant}) > 1

    table = Table(title="By Scenario", show_header=True, header_style="bold cyan")
    table.add_column("Scenario", style="dim")
    if show_variant:
        table.add_column("Variant", style="dim")
    table.add_column("Candidate")
    table.add_column("Score", justify="left")
    table.add_column("Latency", justify="right")
    table.add_column("Winner", justify="center")

    for (scenario, variant), scores in by_scenario_variant.items():
        winner = results.scenario_winner(scenario, variant)
        for candidate in candidates:
            score = scores.get(candidate)
            if score is None:
                continue

            duration = results.scenario_timing(candidate, scenario, variant)
            if winner is Winner.TIE:
                marker = "[yellow]tie[/yellow]"
            elif winner == candidate:
                marker = "[green]★[/green]"
            else:
                marker = ""

            style = "bold red" if score.error else _score_style(score.score)
            row = [scenario]
            if show_variant:
                row.append(variant)
            row.extend(
                [
                    candidate,
                    Text(f"{score_bar(score.score)} {score.score}/{SCORE_MAX}", style=style),
                    format_duration(duration) if duration is not None else "[dim]-[/dim]",
                    marker,
                ]
            )
            table.add_row(*row)

    out.print()
    out.print(table)


def display_responses(results: Results, output: Console | None = None) -> None:
    out = output or console
    for candidate, by_scenario in results.responses.items():
        for scenario, by_variant in by_scenario.items():
            for variant, by_temperature in by_variant.items():
                for temperature, record in by_temperature.items():
                    text = record.content.strip()
                    if len(text) > RESPONSE_PREVIEW_CHARS:
                        text = text[:RESPONSE_PREVIEW_CHARS] + "..."

                    title = f"[bold]{scenario} × {candidate}[/bold]"
                    if variant != "default" or temperature is not None:
                        title += f" [dim]({variant}, t={temperature_label(temperature)})[/dim]"

                    out.print()
                    out.print(
                        Panel(
                            text or "[dim]No content[/dim]",
                            title=title,
                            border_style="blue",
                        )
                    )


def display_winner(results: Results, output: Console | None = None) -> None:
    out = output or console
    ranked = _ranked(results)
    if not ranked:
        return

    out.print()
    leader, leader_summary = ranked[0]
    if len(ranked) == 1:
        out.print(
            f"[bold]Result:[/bold] {leader} scored "
            f"{leader_summary.avg_score}/{SCORE_MAX}"
        )
    elif leader_summary.avg_score == ranked[1][1].avg_score:
        tied = [c for c, s in ranked if s.avg_score == leader_summary.avg_score]
        out.print(f"[bold yellow]Result: TIE[/bold yellow] between {', '.join(tied)}")
        out.print(f"[dim]All scored {leader_summary.avg_score}/{SCORE_MAX} average[/dim]")
    else:
        runner_up, runner_up_summary = ranked[1]
        margin = round(leader_summary.avg_score - runner_up_summary.avg_score, 2)
        wins = results.wins_by_candidate().get(leader, 0)
        out.print(f"[bold green]Winner:[/bold green] {leader}")
        out.print(
            f"[dim]{leader_summary.avg_score}/{SCORE_MAX} avg | {wins} scenario wins | "
            f"{leader_summary.pass_rate}% pass rate[/dim]"
        )
        out.print(f"[dim]Beat {runner_up} by {margin} points[/dim]")

    timing = results.timing_by_candidate()
    if len(timing) > 1:
        fastest = min(timing.items(), key=lambda item: item[1].avg_ms)
        slowest = max(timing.items(), key=lambda item: item[1].avg_ms)
        if fastest[0] != slowest[0] and fastest[1].avg_ms > 0:
            speedup = round(slowest[1].avg_ms / fastest[1].avg_ms, 1)
            out.print()
            out.print(
                f"[bold]Fastest:[/bold] {fastest[0]} "
                f"({format_duration(fastest[1].avg_ms)} avg), "
                f"{speedup}x faster than {slowest[0]}"
            )


def _score_style(score: float) -> str:
    if score >= 8:
        return "bold green"
    elif score >= 6:
        return "yellow"
    elif score >= 4:
        return "orange3"
    else:
        return "bold red"
