"""CLI commands for StudyTrack."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from studytrack import __version__
from studytrack.cli_output import (
    render_module,
    render_patterns,
    render_streak,
    render_summary,
)
from studytrack.config import build_store, get_config
from studytrack.core.course import CourseProgress
from studytrack.core.tracker import ProgressTracker
from studytrack.storage.base import StorageError
from studytrack.ui.web.export_manager import ProgressExporter

MAIN_HELP = """
[bold cyan]StudyTrack[/] - engagement and progress analytics for your course

StudyTrack records how you study (time per module, video watching, submissions)
and turns it into progress summaries, activity patterns and study streaks.

[bold yellow]Quick Start:[/]
  studytrack serve                 [dim]# run the API the dashboard talks to[/]
  studytrack summary               [dim]# see where you stand[/]
  studytrack streak                [dim]# check your study streak[/]

Run [bold]studytrack <command> --help[/] for detailed help on any command.
"""

app = typer.Typer(
    name="studytrack",
    help=MAIN_HELP,
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)
console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show debug logging",
    ),
) -> None:
    """Configure logging before any command runs."""
    level = "DEBUG" if verbose else get_config().logging.level
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _build_tracker() -> ProgressTracker:
    """Create a tracker wired to the configured store."""
    config = get_config()
    settings = config.tracker_settings()
    return ProgressTracker(
        build_store(config),
        CourseProgress(total_modules=settings.total_modules),
        settings,
    )


def _load_tracker() -> ProgressTracker:
    """Build a tracker and load stored state, exiting on storage errors."""
    tracker = _build_tracker()

    async def _load() -> None:
        try:
            await tracker.load()
        finally:
            await tracker.store.close()

    try:
        asyncio.run(_load())
    except StorageError as e:
        console.print(f"[red]Error:[/red] Could not read stored progress: {e}")
        raise typer.Exit(1)
    return tracker


def _print_json(data: dict) -> None:
    console.print_json(json.dumps(data))


@app.command()
def summary(
    as_json: bool = typer.Option(False, "--json", help="Print raw JSON"),
) -> None:
    """
    Show overall progress, time spent and activity counts.

    [bold yellow]Example:[/]
      studytrack summary
    """
    result = _load_tracker().summary()
    if as_json:
        _print_json(result.to_dict())
    else:
        render_summary(console, result)


@app.command()
def patterns(
    as_json: bool = typer.Option(False, "--json", help="Print raw JSON"),
) -> None:
    """
    Show when you study: activity by hour and day, and module access counts.
    """
    result = _load_tracker().learning_patterns()
    if as_json:
        _print_json(result.to_dict())
    else:
        render_patterns(console, result)


@app.command()
def streak(
    as_json: bool = typer.Option(False, "--json", help="Print raw JSON"),
) -> None:
    """
    Show your current and longest study streaks.

    The current streak counts consecutive days ending today; it is 0 if
    you have not studied yet today.
    """
    result = _load_tracker().study_streak()
    if as_json:
        _print_json(result.to_dict())
    else:
        render_streak(console, result)


@app.command()
def module(
    module_id: int = typer.Argument(..., min=1, help="Module number"),
    as_json: bool = typer.Option(False, "--json", help="Print raw JSON"),
) -> None:
    """
    Show time spent, completion and activity for one module.
    """
    try:
        result = _load_tracker().module_progress(module_id)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    if as_json:
        _print_json(result.to_dict())
    else:
        render_module(console, result)


@app.command()
def export(
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Directory to write to (default: [export].directory)",
        metavar="DIR",
    ),
    csv: bool = typer.Option(
        False,
        "--csv",
        help="Also export the interaction log as CSV",
    ),
) -> None:
    """
    Export all progress data to a JSON file.

    [bold yellow]Examples:[/]

      [dim]# Export to the configured directory[/]
      studytrack export

      [dim]# Export JSON and CSV to a folder[/]
      studytrack export -o ./backup --csv
    """
    tracker = _load_tracker()
    exporter = ProgressExporter(output or get_config().export.path)

    try:
        json_path = exporter.export_json(tracker.export_snapshot())
        console.print(f"[green]Exported:[/green] {json_path}")
        if csv:
            csv_path = exporter.export_interactions_csv(tracker.log)
            console.print(f"[green]Exported:[/green] {csv_path}")
    except OSError as e:
        console.print(f"[red]Error:[/red] Export failed: {e}")
        raise typer.Exit(1)


@app.command()
def complete(
    module_id: int = typer.Argument(..., min=1, help="Module number"),
) -> None:
    """
    Toggle a module between completed and not completed.
    """
    tracker = _load_tracker()
    try:
        completed = tracker.toggle_completion(module_id)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    async def _save() -> None:
        try:
            await tracker.save()
        finally:
            await tracker.store.close()

    try:
        asyncio.run(_save())
    except StorageError as e:
        console.print(f"[red]Error:[/red] Could not save progress: {e}")
        raise typer.Exit(1)

    if completed:
        console.print(f"[green]Module {module_id} completed![/green]")
    else:
        console.print(f"[yellow]Module {module_id} marked as incomplete[/yellow]")


@app.command()
def serve(
    host: str | None = typer.Option(None, "--host", help="Address to bind"),
    port: int | None = typer.Option(None, "--port", "-p", help="Port to listen on"),
) -> None:
    """
    Run the HTTP API the dashboard posts events to.

    State is loaded on startup, flushed periodically, and saved again on
    shutdown (Ctrl+C).
    """
    from studytrack.ui.web.app import run_web_ui

    config = get_config()
    bind_host = host or config.web.host
    bind_port = port or config.web.port
    console.print(f"[cyan]StudyTrack API on http://{bind_host}:{bind_port}[/cyan]")
    run_web_ui(
        _build_tracker(),
        host=bind_host,
        port=bind_port,
        exporter=ProgressExporter(config.export.path),
    )


# Config subcommand group
config_app = typer.Typer(
    name="config",
    help="Manage StudyTrack configuration",
    no_args_is_help=True,
)
app.add_typer(config_app, name="config")


@config_app.command(name="show")
def config_show() -> None:
    """
    Show current configuration.

    Displays settings from ~/.studytrack/config.toml, or the defaults if
    no config file exists.
    """
    from studytrack.config import DEFAULT_CONFIG_PATH

    config = get_config()
    config_exists = DEFAULT_CONFIG_PATH.exists()

    lines = [
        f"[bold]Config file:[/bold] {DEFAULT_CONFIG_PATH}",
        f"[bold]Status:[/bold] {'[green]exists[/green]' if config_exists else '[yellow]using defaults[/yellow]'}",
        "",
        "[bold cyan]Tracker[/bold cyan]",
        f"  Total modules: {config.tracker.total_modules}",
        f"  Max interactions: {config.tracker.max_interactions}",
        f"  Watch session gap: {config.tracker.watch_session_gap_seconds}s",
        f"  Autosave interval: {config.tracker.autosave_interval_seconds}s",
        "",
        "[bold cyan]Storage[/bold cyan]",
        f"  Backend: {config.storage.backend.value}",
        f"  Directory: {config.storage.path}",
        "",
        "[bold cyan]Web[/bold cyan]",
        f"  Address: {config.web.host}:{config.web.port}",
        "",
        "[bold cyan]Export[/bold cyan]",
        f"  Directory: {config.export.path}",
        "",
        "[bold cyan]Logging[/bold cyan]",
        f"  Level: {config.logging.level}",
    ]

    console.print(
        Panel(
            Text.from_markup("\n".join(lines)),
            title="[bold cyan]StudyTrack Configuration[/bold cyan]",
            border_style="cyan",
        )
    )


@config_app.command(name="init")
def config_init(
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite existing config file",
    ),
) -> None:
    """
    Create a default configuration file at ~/.studytrack/config.toml.
    """
    from studytrack.config import (
        DEFAULT_CONFIG_PATH,
        ensure_config_dir,
        generate_default_config,
    )

    ensure_config_dir()

    if DEFAULT_CONFIG_PATH.exists() and not force:
        console.print(f"[yellow]Config file already exists:[/yellow] {DEFAULT_CONFIG_PATH}")
        console.print("Use --force to overwrite.")
        return

    DEFAULT_CONFIG_PATH.write_text(generate_default_config())
    console.print(f"[green]Created config file:[/green] {DEFAULT_CONFIG_PATH}")


@app.command()
def version() -> None:
    """Show version number."""
    console.print(f"StudyTrack v{__version__}")


if __name__ == "__main__":
    app()
