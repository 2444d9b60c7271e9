import asyncio
import json
from functools import partial
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from rich.table import Table

from .application import CandidateClient, Judge, RunSuite
from .domain.errors import PromptMatrixError
from .domain.observer import RunObserver
from .domain.rubrics import RubricRegistry
from .infrastructure import FileCache, LoadedSuite, Settings, YamlSuiteLoader
from .infrastructure.console_display import (
    ConsoleProgressObserver,
    console,
    display_report,
)
from .infrastructure.logging import configure_logging
from .infrastructure.observers import CompositeRunObserver, StructlogRunObserver
from .infrastructure.providers.factory import get_provider

load_dotenv()

app = typer.Typer(
    name="prompt-matrix",
    help="Compare LLM candidates across scenarios, prompt variants and temperatures with an LLM judge",
    no_args_is_help=True,
)

cache_app = typer.Typer(help="Cache management commands")
app.add_typer(cache_app, name="cache")


def _load_suite(path: Path, settings: Settings) -> LoadedSuite:
    loader = YamlSuiteLoader(default_judge_model=settings.judge_model)
    return loader.load(path)


def _create_runner(
    loaded: LoadedSuite,
    settings: Settings,
    use_cache: bool = False,
    observer: RunObserver | None = None,
    concurrent: bool = True,
) -> RunSuite:
    cache = FileCache(settings.cache_dir) if use_cache else None
    client = CandidateClient(partial(get_provider, settings=settings), cache=cache)
    judge = Judge(client, loaded.definition.judge, loaded.rubrics)
    return RunSuite(
        loaded.definition,
        client=client,
        judge=judge,
        composer=loaded.composer,
        observer=observer,
        concurrent=concurrent,
    )


@app.command(help="Run a suite and print the comparison report.")
def run(
    suite: Annotated[
        Path, typer.Argument(help="Path to suite directory or suite YAML file")
    ],
    json_path: Annotated[
        Path | None, typer.Option("--json", help="Write results as JSON to this path")
    ] = None,
    sequential: Annotated[
        bool,
        typer.Option("--sequential", help="Query candidates one at a time"),
    ] = False,
    use_cache: Annotated[
        bool, typer.Option("--cache", help="Reuse cached candidate responses")
    ] = False,
    show_responses: Annotated[
        bool, typer.Option("--show-responses", help="Print candidate responses")
    ] = False,
    log_format: Annotated[
        str, typer.Option("--log-format", help="Log output format: console or json")
    ] = "console",
    log_level: Annotated[
        str, typer.Option("--log-level", help="Minimum log level")
    ] = "warning",
    quiet: Annotated[
        bool, typer.Option("--quiet", "-q", help="Hide the progress bar")
    ] = False,
) -> None:
    try:
        configure_logging(log_format, log_level)
        settings = Settings.from_env()
        loaded = _load_suite(suite, settings)

        observers: list[RunObserver] = [StructlogRunObserver()]
        if not quiet:
            observers.append(ConsoleProgressObserver())

        runner = _create_runner(
            loaded,
            settings,
            use_cache=use_cache,
            observer=CompositeRunObserver(observers),
            concurrent=not sequential,
        )

        definition = loaded.definition
        console.print(
            f"[bold]{definition.name}[/bold]: {runner.count_combinations()} combinations "
            f"× {len(definition.candidates)} candidates"
        )
        results = asyncio.run(runner.run())
    except PromptMatrixError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    display_report(results, show_responses=show_responses)

    if json_path is not None:
        json_path.parent.mkdir(parents=True, exist_ok=True)
        json_path.write_text(json.dumps(results.to_dict(), indent=2, default=str))
        console.print(f"\n[dim]Results written to {json_path}[/dim]")


@app.command(help="Show how many combinations a suite expands to.")
def count(
    suite: Annotated[
        Path, typer.Argument(help="Path to suite directory or suite YAML file")
    ],
) -> None:
    try:
        settings = Settings.from_env()
        loaded = _load_suite(suite, settings)
        runner = _create_runner(loaded, settings)
        combinations = runner.count_combinations()
    except PromptMatrixError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    definition = loaded.definition
    candidates = len(definition.candidates)
    typer.echo(
        f"{len(definition.scenarios)} scenarios × {len(runner.variants)} variants × "
        f"{len(definition.temperatures)} temperatures = {combinations} combinations"
    )
    typer.echo(
        f"{combinations} combinations × {candidates} candidates = "
        f"{combinations * candidates} responses"
    )


@app.command(help="List built-in rubrics.")
def rubrics() -> None:
    registry = RubricRegistry.with_builtins()

    table = Table(title="Rubrics", show_header=True, header_style="bold cyan")
    table.add_column("Name", no_wrap=True)
    table.add_column("Criteria")

    for name in registry.names():
        table.add_row(name, registry.find(name).numbered())

    console.print(table)


@cache_app.command("clear", help="Clear all cached responses.")
def cache_clear() -> None:
    try:
        FileCache(Settings.from_env().cache_dir).clear()
        typer.echo("Cache cleared.")
    except (OSError, PromptMatrixError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
