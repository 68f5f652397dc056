"""CLI entrypoints for tokenbar usage tooling."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import UTC, datetime
from pathlib import Path
from zoneinfo import ZoneInfo

import orjson
import typer
from rich.console import Console

from .config import UsageConfig
from .ingestion.schemas import IngestionCounters, LogSource
from .stats.render import render_usage_snapshot
from .stats.windows import CalendarConfig

LOGGER = logging.getLogger(__name__)

TYPER_APP = typer.Typer(help="Claude and Codex token usage tooling.")


@TYPER_APP.callback()
def main() -> None:
    """Root CLI callback."""


@TYPER_APP.command("stats")
def stats_command(
    sources: list[LogSource] | None = typer.Option(
        None,
        "--source",
        "-s",
        help="Log source to include; repeat for several. Defaults to all sources.",
    ),
    claude_dirs: list[Path] | None = typer.Option(
        None,
        "--claude-dir",
        help="Claude config directory containing `projects/`; overrides CLAUDE_CONFIG_DIR.",
    ),
    codex_home: Path | None = typer.Option(
        None,
        "--codex-home",
        help="Codex home directory containing `sessions/`; overrides CODEX_HOME.",
    ),
    timezone: str | None = typer.Option(
        None,
        "--timezone",
        "-tz",
        help="Timezone for day/week/month boundaries (e.g., 'UTC', 'Europe/Warsaw'). Defaults to local system time.",
    ),
    first_weekday: int = typer.Option(
        0,
        "--first-weekday",
        help="First day of the week, 0 = Monday ... 6 = Sunday.",
    ),
    min_days_in_first_week: int = typer.Option(
        4,
        "--min-days-in-first-week",
        help="Minimum days of the new year in week 1 (used for week numbering).",
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the snapshot as JSON instead of tables."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable info-level logging."),
) -> None:
    """Summarize token usage and cost for today, this week and this month."""
    _configure_logging(verbose)
    calendar = _build_calendar(timezone, first_weekday, min_days_in_first_week)

    try:
        config = UsageConfig.from_environment(sources=sources or list(LogSource))
    except RuntimeError as exc:
        raise typer.BadParameter(f"Cannot resolve log directories: {exc}") from exc
    if claude_dirs:
        config = replace(config, claude_roots=tuple(claude_dirs))
    if codex_home is not None:
        config = replace(config, codex_roots=(codex_home,))

    service = config.build_service()
    LOGGER.info("Start computing usage for sources: %s", ", ".join(config.sources))
    snapshot = service.fetch_usage(now=datetime.now(UTC), calendar=calendar)
    LOGGER.info("Finished computing usage.")
    if verbose:
        _emit_summary(service.last_counters)

    if as_json:
        typer.echo(orjson.dumps(snapshot.to_dict(), option=orjson.OPT_INDENT_2).decode())
        return
    render_usage_snapshot(snapshot, Console(), calendar)


def _configure_logging(verbose: bool) -> None:
    """Initialize default logging for CLI usage."""
    level = logging.INFO if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="[%(asctime)s][%(levelname)s][%(name)s] %(message)s",
    )


def _emit_summary(counters: IngestionCounters) -> None:
    """Print ingestion counters to stderr."""
    summary_lines = [
        f"files_scanned={counters.files_scanned}",
        f"files_failed={counters.files_failed}",
        f"lines_read={counters.lines_read}",
        f"entries_parsed={counters.entries_parsed}",
        f"lines_skipped_malformed={counters.lines_skipped_malformed}",
        f"lines_skipped_no_usage={counters.lines_skipped_no_usage}",
        f"duplicate_rows_skipped={counters.duplicate_rows_skipped}",
    ]
    for line in summary_lines:
        typer.echo(line, err=True)

    for failed_file in counters.failed_files:
        typer.echo(f"failed_file={failed_file}", err=True)


def _build_calendar(timezone: str | None, first_weekday: int, min_days_in_first_week: int) -> CalendarConfig:
    """Build the calendar from CLI options."""
    try:
        return CalendarConfig(
            timezone=_parse_timezone(timezone),
            first_weekday=first_weekday,
            minimum_days_in_first_week=min_days_in_first_week,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _parse_timezone(timezone: str | None) -> ZoneInfo | None:
    """Parse timezone option into a ZoneInfo instance."""
    if timezone is None:
        return None
    try:
        return ZoneInfo(timezone)
    except Exception as exc:
        raise typer.BadParameter(f"Invalid timezone: {timezone}.") from exc


def module_cli_entry_point() -> None:
    TYPER_APP()
