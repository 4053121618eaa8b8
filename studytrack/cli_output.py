"""Rich rendering of tracker analytics for the CLI."""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from studytrack.core.analytics import (
    LearningPatterns,
    ModuleProgress,
    ProgressSummary,
    StudyStreak,
)

DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")

# Width of the longest histogram bar
BAR_WIDTH = 30


def format_duration(milliseconds: float) -> str:
    """Format a duration compactly: "2h 5m", "12m" or "40s"."""
    seconds = int(milliseconds // 1000)
    minutes = seconds // 60
    hours = minutes // 60

    if hours > 0:
        return f"{hours}h {minutes % 60}m"
    elif minutes > 0:
        return f"{minutes}m"
    return f"{seconds}s"


def _bar(count: int, peak: int) -> str:
    if peak <= 0:
        return ""
    return "█" * max(1 if count else 0, round(count / peak * BAR_WIDTH))


def render_summary(console: Console, summary: ProgressSummary) -> None:
    """Print the headline progress panel."""
    lines = [
        f"[bold]Overall progress:[/bold] [green]{summary.overall_progress}%[/green]",
        f"[bold]Modules completed:[/bold] {summary.completed_modules}/{summary.total_modules}",
        f"[bold]Total time:[/bold] {format_duration(summary.time_spent_total)}",
        f"[bold]Average per module:[/bold] {format_duration(summary.average_time_per_module)}",
        f"[bold]Videos watched:[/bold] {summary.videos_watched}",
        f"[bold]Assignments submitted:[/bold] {summary.assignments_submitted}",
    ]
    console.print(
        Panel(
            Text.from_markup("\n".join(lines)),
            title="[bold cyan]Progress Summary[/bold cyan]",
            border_style="cyan",
        )
    )


def render_patterns(console: Console, patterns: LearningPatterns) -> None:
    """Print activity histograms and module access counts."""
    if patterns.total_interactions == 0:
        console.print("[dim]No interactions recorded yet.[/dim]")
        return

    console.print(
        f"[bold]Most active hour:[/bold] {patterns.most_active_hour:02d}:00   "
        f"[bold]Most active day:[/bold] {DAY_NAMES[patterns.most_active_day]}   "
        f"[bold]Interactions:[/bold] {patterns.total_interactions}"
    )

    hours = Table(title="Activity by Hour", show_edge=False)
    hours.add_column("Hour", style="cyan", justify="right")
    hours.add_column("Count", justify="right")
    hours.add_column("")
    peak = max(patterns.hourly)
    for hour, count in enumerate(patterns.hourly):
        if count:
            hours.add_row(f"{hour:02d}", str(count), _bar(count, peak))
    console.print(hours)

    days = Table(title="Activity by Day", show_edge=False)
    days.add_column("Day", style="cyan")
    days.add_column("Count", justify="right")
    days.add_column("")
    peak = max(patterns.daily)
    for day, count in enumerate(patterns.daily):
        days.add_row(DAY_NAMES[day], str(count), _bar(count, peak))
    console.print(days)

    if patterns.module_access:
        modules = Table(title="Module Access")
        modules.add_column("Module", style="cyan", justify="right")
        modules.add_column("Interactions", justify="right")
        for module_id, count in sorted(patterns.module_access.items()):
            modules.add_row(str(module_id), str(count))
        console.print(modules)


def render_streak(console: Console, streak: StudyStreak) -> None:
    """Print study streak statistics."""
    flame = "[bold yellow]" if streak.current_streak else "[dim]"
    console.print(
        Panel(
            Text.from_markup(
                f"{flame}Current streak: {streak.current_streak} day(s)[/]\n"
                f"[bold]Longest streak:[/bold] {streak.max_streak} day(s)\n"
                f"[bold]Days active:[/bold] {streak.total_days_active}"
            ),
            title="[bold cyan]Study Streak[/bold cyan]",
            border_style="cyan",
        )
    )


def render_module(console: Console, progress: ModuleProgress) -> None:
    """Print progress for one module."""
    status = "[green]completed[/green]" if progress.completed else "[yellow]in progress[/yellow]"
    body = (
        f"[bold]Status:[/bold] {status}\n"
        f"[bold]Time spent:[/bold] {format_duration(progress.time_spent)}\n"
        f"[bold]Interactions:[/bold] {progress.interactions}\n"
        f"[bold]Last accessed:[/bold] {progress.last_accessed or '-'}"
    )
    if progress.submission:
        kind = progress.submission.get("assignmentType", "assignment")
        body += f"\n[bold]Last submission:[/bold] {kind} at {progress.submission['submittedAt']}"
    console.print(
        Panel(
            Text.from_markup(body),
            title=f"[bold cyan]Module {progress.module_id}[/bold cyan]",
            border_style="cyan",
        )
    )
