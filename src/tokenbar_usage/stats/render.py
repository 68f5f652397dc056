"""Rich rendering helpers for usage snapshots."""

from __future__ import annotations

from decimal import Decimal

from rich.console import Console
from rich.table import Table

from .schemas import UsagePeriod, UsageSnapshot
from .windows import CalendarConfig, week_of_year

TABLE_ROW_STYLES = ["white", "yellow"]


def format_usd(value: Decimal) -> str:
    return f"${value:,.2f}"


def render_usage_snapshot(snapshot: UsageSnapshot, console: Console, calendar: CalendarConfig | None = None) -> None:
    """Render period totals and today's model and session breakdowns."""
    calendar = calendar if calendar is not None else CalendarConfig.system_default()
    _print_period_table(snapshot, console, calendar)

    if not snapshot.model_breakdown_today:
        console.print("No token usage recorded today.")
        return

    console.print("\n")
    _print_model_table(snapshot, console)
    if snapshot.session_breakdown_today:
        console.print("\n")
        _print_session_table(snapshot, console, calendar)


def _print_period_table(snapshot: UsageSnapshot, console: Console, calendar: CalendarConfig) -> None:
    updated = snapshot.updated_at.astimezone(calendar.timezone)
    table = Table(title=f"Token Usage (updated {updated:%Y-%m-%d %H:%M})", title_justify="left")
    table.add_column("Period", justify="left", no_wrap=True)
    table.add_column("Input Tokens", justify="right")
    table.add_column("Output Tokens", justify="right")
    table.add_column("Cache Tokens", justify="right")
    table.add_column("Total Tokens", justify="right")
    table.add_column("Sessions", justify="right")
    table.add_column("Cost", justify="right")

    for index, period_usage in enumerate(snapshot.periods):
        title = period_usage.period.title
        if period_usage.period is UsagePeriod.WEEK and period_usage.window is not None:
            week_number = week_of_year(calendar.local_date(period_usage.window.start), calendar)
            title = f"{title} (W{week_number:02d})"
        metrics = period_usage.metrics
        table.add_row(
            title,
            f"{metrics.input_tokens:,}",
            f"{metrics.output_tokens:,}",
            f"{metrics.cache_tokens:,}",
            f"{metrics.total_tokens:,}",
            str(metrics.session_count),
            format_usd(metrics.cost_usd),
            style=TABLE_ROW_STYLES[index % len(TABLE_ROW_STYLES)],
        )

    console.print(table)


def _print_model_table(snapshot: UsageSnapshot, console: Console) -> None:
    table = Table(title="Today by Model", show_footer=True, footer_style="bold", title_justify="left")
    table.add_column("Model", footer="Total", justify="left")
    table.add_column("Input Tokens", justify="right")
    table.add_column("Output Tokens", justify="right")
    table.add_column("Cache Tokens", justify="right")
    table.add_column("Total Tokens", justify="right")
    table.add_column("Cost", justify="right")

    total_tokens = 0
    total_cost = Decimal(0)
    for index, model in enumerate(snapshot.model_breakdown_today):
        total_tokens += model.total_tokens
        total_cost += model.cost_usd
        table.add_row(
            model.model_name,
            f"{model.input_tokens:,}",
            f"{model.output_tokens:,}",
            f"{model.cache_tokens:,}",
            f"{model.total_tokens:,}",
            format_usd(model.cost_usd),
            style=TABLE_ROW_STYLES[index % len(TABLE_ROW_STYLES)],
        )

    table.columns[4].footer = f"{total_tokens:,}"
    table.columns[5].footer = format_usd(total_cost)
    console.print(table)


def _print_session_table(snapshot: UsageSnapshot, console: Console, calendar: CalendarConfig) -> None:
    table = Table(title="Today by Session", title_justify="left")
    table.add_column("Session", justify="left")
    table.add_column("Requests", justify="right")
    table.add_column("Total Tokens", justify="right")
    table.add_column("Cost", justify="right")
    table.add_column("First Seen", justify="right")
    table.add_column("Last Seen", justify="right")

    for index, session in enumerate(snapshot.session_breakdown_today):
        table.add_row(
            session.display_name,
            str(session.request_count),
            f"{session.total_tokens:,}",
            format_usd(session.cost_usd),
            f"{session.first_seen.astimezone(calendar.timezone):%H:%M}",
            f"{session.last_seen.astimezone(calendar.timezone):%H:%M}",
            style=TABLE_ROW_STYLES[index % len(TABLE_ROW_STYLES)],
        )

    console.print(table)
