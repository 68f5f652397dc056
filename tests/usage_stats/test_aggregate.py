"""Tests for usage aggregation."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from decimal import Decimal

from tokenbar_usage.ingestion.schemas import LogSource, TokenCounts, UsageEntry
from tokenbar_usage.stats.schemas import UsagePeriod, UsageWindow
from tokenbar_usage.stats.service import (
    UNKNOWN_MODEL,
    aggregate,
    derive_session_display_name,
    summarize,
    summarize_models,
    summarize_sessions,
)
from tokenbar_usage.stats.windows import CalendarConfig

DAY = UsageWindow(
    start=datetime(2024, 1, 2, tzinfo=UTC),
    end=datetime(2024, 1, 3, tzinfo=UTC),
)


def test_summarize_uses_half_open_window() -> None:
    """An entry at the window start counts; one at the window end does not."""
    entries = [
        _entry(DAY.start, input_tokens=10, session_id="a"),
        _entry(DAY.end - timedelta(microseconds=1), input_tokens=20, session_id="b"),
        _entry(DAY.end, input_tokens=40, session_id="c"),
        _entry(DAY.start - timedelta(microseconds=1), input_tokens=80, session_id="d"),
    ]

    metrics = summarize(entries, DAY)

    assert metrics.input_tokens == 30
    assert metrics.session_count == 2


def test_summarize_counts_distinct_sessions_and_sums_cost() -> None:
    entries = [
        _entry(DAY.start + timedelta(hours=1), cost="0.01", session_id="a"),
        _entry(DAY.start + timedelta(hours=2), cost="0.02", session_id="a"),
        _entry(DAY.start + timedelta(hours=3), cost="0.03", session_id=None),
    ]

    metrics = summarize(entries, DAY)

    assert metrics.cost_usd == Decimal("0.06")
    assert metrics.session_count == 1


def test_summarize_models_sorts_by_cost_then_tokens() -> None:
    """Equal costs fall back to total tokens, largest first."""
    noon = DAY.start + timedelta(hours=12)
    entries = [
        _entry(noon, model="model-a", input_tokens=900, cost="0.05"),
        _entry(noon, model="model-b", input_tokens=1200, cost="0.05"),
        _entry(noon, model="model-c", input_tokens=10, cost="0.50"),
        _entry(noon, model=None, input_tokens=1, cost="0"),
    ]

    models = summarize_models(entries, DAY)

    assert [model.model_name for model in models] == ["model-c", "model-b", "model-a", UNKNOWN_MODEL]


def test_summarize_sessions_orders_by_last_activity() -> None:
    entries = [
        _entry(DAY.start + timedelta(hours=1), session_id="early-session"),
        _entry(DAY.start + timedelta(hours=9), session_id="late-session"),
        _entry(DAY.start + timedelta(hours=2), session_id="early-session"),
        _entry(DAY.start + timedelta(hours=3), session_id=None),
    ]

    sessions = summarize_sessions(entries, DAY)

    assert [session.session_id for session in sessions] == ["late-session", "early-session"]
    early = sessions[1]
    assert early.request_count == 2
    assert early.first_seen == DAY.start + timedelta(hours=1)
    assert early.last_seen == DAY.start + timedelta(hours=2)


def test_summarize_sessions_keeps_first_known_context() -> None:
    """Later entries never overwrite a cwd or branch that is already set."""
    entries = [
        _entry(DAY.start + timedelta(hours=1), session_id="s1"),
        _entry(DAY.start + timedelta(hours=2), session_id="s1", cwd="/work/First", git_branch="main"),
        _entry(DAY.start + timedelta(hours=3), session_id="s1", cwd="/work/Second", git_branch="dev"),
    ]

    sessions = summarize_sessions(entries, DAY)

    assert sessions[0].display_name == "First (main)"


def test_derive_session_display_name() -> None:
    assert derive_session_display_name("/Users/me/MyProject", "main", "abc") == "MyProject (main)"
    assert derive_session_display_name("/Users/me/MyProject", None, "abc") == "MyProject"
    assert derive_session_display_name(None, "main", "abcdefghijklmnopqrstuv") == "Session opqrstuv"
    assert derive_session_display_name(None, None, "short") == "Session short"


def test_aggregate_builds_all_periods_and_today_breakdowns() -> None:
    now = datetime(2024, 1, 2, 12, tzinfo=UTC)
    entries = [
        _entry(datetime(2024, 1, 2, 9, tzinfo=UTC), model="m", cost="1", session_id="today"),
        _entry(datetime(2024, 1, 1, 9, tzinfo=UTC), model="m", cost="2", session_id="monday"),
        _entry(datetime(2023, 12, 31, 9, tzinfo=UTC), model="m", cost="4", session_id="last-year"),
    ]

    snapshot = aggregate(entries, now, CalendarConfig(timezone=UTC))

    costs = {period.period: period.metrics.cost_usd for period in snapshot.periods}
    assert costs == {
        UsagePeriod.TODAY: Decimal("1"),
        UsagePeriod.WEEK: Decimal("3"),
        UsagePeriod.MONTH: Decimal("3"),
    }
    assert [session.session_id for session in snapshot.session_breakdown_today] == ["today"]
    assert snapshot.model_breakdown_today[0].cost_usd == Decimal("1")


def test_snapshot_to_dict_serializes_money_as_strings() -> None:
    now = datetime(2024, 1, 2, 12, tzinfo=UTC)
    snapshot = aggregate(
        [_entry(datetime(2024, 1, 2, 9, tzinfo=UTC), model="m", cost="0.0123", session_id="s")],
        now,
        CalendarConfig(timezone=UTC),
    )

    payload = snapshot.to_dict()

    assert payload["updated_at"] == "2024-01-02T12:00:00+00:00"
    assert payload["periods"][0]["period"] == "today"
    assert payload["periods"][0]["start"] == "2024-01-02T00:00:00+00:00"
    assert payload["periods"][0]["cost_usd"] == "0.0123"
    assert payload["models_today"][0]["model"] == "m"
    assert payload["sessions_today"][0]["display_name"] == "Session s"


def _entry(
    timestamp: datetime,
    *,
    input_tokens: int = 100,
    cost: str = "0.01",
    model: str | None = "claude-sonnet-4",
    session_id: str | None = "session",
    cwd: str | None = None,
    git_branch: str | None = None,
) -> UsageEntry:
    return UsageEntry(
        timestamp=timestamp,
        usage=TokenCounts(input_tokens=input_tokens),
        cost=Decimal(cost),
        source=LogSource.CLAUDE,
        session_id=session_id,
        model=model,
        cwd=cwd,
        git_branch=git_branch,
    )
