"""Aggregation of usage entries into windowed totals and today's breakdowns."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from pathlib import PurePath

from ..ingestion.schemas import UsageEntry
from .schemas import (
    ModelUsage,
    PeriodUsage,
    SessionUsage,
    UsageAccumulator,
    UsageMetrics,
    UsagePeriod,
    UsageSnapshot,
    UsageWindow,
)
from .windows import CalendarConfig, compute_windows

UNKNOWN_MODEL = "unknown"
SESSION_SUFFIX_LENGTH = 8


def aggregate(entries: Sequence[UsageEntry], now: datetime, calendar: CalendarConfig) -> UsageSnapshot:
    """Compute period totals and today's model/session breakdowns."""
    windows = compute_windows(now, calendar)
    today = windows[UsagePeriod.TODAY]

    return UsageSnapshot(
        periods=[
            PeriodUsage(period=period, metrics=summarize(entries, window), window=window)
            for period, window in windows.items()
        ],
        model_breakdown_today=summarize_models(entries, today),
        session_breakdown_today=summarize_sessions(entries, today),
        updated_at=now,
    )


def empty_snapshot(now: datetime, calendar: CalendarConfig) -> UsageSnapshot:
    """Snapshot with all-zero metrics, used when no log files exist."""
    return UsageSnapshot(
        periods=[
            PeriodUsage(period=period, metrics=UsageMetrics(), window=window)
            for period, window in compute_windows(now, calendar).items()
        ],
        model_breakdown_today=[],
        session_breakdown_today=[],
        updated_at=now,
    )


def summarize(entries: Iterable[UsageEntry], window: UsageWindow) -> UsageMetrics:
    """Sum tokens and cost of entries inside the window and count distinct sessions."""
    totals = UsageAccumulator()
    sessions: set[str] = set()

    for entry in _within(entries, window):
        _accumulate(totals, entry)
        if entry.session_id is not None:
            sessions.add(entry.session_id)

    return UsageMetrics(
        input_tokens=totals.input_tokens,
        output_tokens=totals.output_tokens,
        cache_tokens=totals.cache_tokens,
        cost_usd=totals.cost,
        session_count=len(sessions),
    )


def summarize_models(entries: Iterable[UsageEntry], window: UsageWindow) -> list[ModelUsage]:
    """Group window entries by model, most expensive first; ties go to more tokens."""
    aggregates: dict[str, UsageAccumulator] = defaultdict(UsageAccumulator)
    for entry in _within(entries, window):
        _accumulate(aggregates[entry.model or UNKNOWN_MODEL], entry)

    models = [
        ModelUsage(
            model_name=name,
            input_tokens=totals.input_tokens,
            output_tokens=totals.output_tokens,
            cache_tokens=totals.cache_tokens,
            cost_usd=totals.cost,
        )
        for name, totals in aggregates.items()
    ]
    return sorted(models, key=lambda model: (-model.cost_usd, -model.total_tokens))


@dataclass
class _SessionAccumulator:
    totals: UsageAccumulator
    first_seen: datetime
    last_seen: datetime
    cwd: str | None = None
    git_branch: str | None = None


def summarize_sessions(entries: Iterable[UsageEntry], window: UsageWindow) -> list[SessionUsage]:
    """Group window entries by session id, most recently active first.

    Entries without a session id are left out. The first entry that supplies a
    cwd or branch names the session; later entries never overwrite it.
    """
    sessions: dict[str, _SessionAccumulator] = {}
    for entry in _within(entries, window):
        if entry.session_id is None:
            continue

        data = sessions.get(entry.session_id)
        if data is None:
            data = _SessionAccumulator(
                totals=UsageAccumulator(),
                first_seen=entry.timestamp,
                last_seen=entry.timestamp,
            )
            sessions[entry.session_id] = data

        _accumulate(data.totals, entry)
        data.first_seen = min(data.first_seen, entry.timestamp)
        data.last_seen = max(data.last_seen, entry.timestamp)
        if data.cwd is None:
            data.cwd = entry.cwd
        if data.git_branch is None:
            data.git_branch = entry.git_branch

    breakdown = [
        SessionUsage(
            session_id=session_id,
            display_name=derive_session_display_name(data.cwd, data.git_branch, session_id),
            input_tokens=data.totals.input_tokens,
            output_tokens=data.totals.output_tokens,
            cache_tokens=data.totals.cache_tokens,
            cost_usd=data.totals.cost,
            first_seen=data.first_seen,
            last_seen=data.last_seen,
            request_count=data.totals.count,
        )
        for session_id, data in sessions.items()
    ]
    return sorted(breakdown, key=lambda session: session.last_seen, reverse=True)


def derive_session_display_name(cwd: str | None, git_branch: str | None, session_id: str) -> str:
    """Name a session after its project directory and branch, else after its id."""
    if cwd:
        project_name = PurePath(cwd).name or cwd
        if git_branch:
            return f"{project_name} ({git_branch})"
        return project_name
    return f"Session {session_id[-SESSION_SUFFIX_LENGTH:]}"


def _within(entries: Iterable[UsageEntry], window: UsageWindow) -> Iterable[UsageEntry]:
    return (entry for entry in entries if window.contains(entry.timestamp))


def _accumulate(totals: UsageAccumulator, entry: UsageEntry) -> None:
    totals.input_tokens += entry.usage.input_tokens
    totals.output_tokens += entry.usage.output_tokens
    totals.cache_tokens += entry.usage.cache_tokens
    totals.cost += entry.cost
    totals.count += 1
