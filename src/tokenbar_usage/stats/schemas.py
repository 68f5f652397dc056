"""Typed schemas used by the aggregation pipeline."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any


class UsagePeriod(enum.StrEnum):
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"

    @property
    def title(self) -> str:
        return {
            UsagePeriod.TODAY: "Today",
            UsagePeriod.WEEK: "This Week",
            UsagePeriod.MONTH: "This Month",
        }[self]


@dataclass(frozen=True)
class UsageWindow:
    """Half-open time interval `[start, end)`."""

    start: datetime
    end: datetime

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end


@dataclass(frozen=True)
class UsageMetrics:
    """Totals over one window."""

    input_tokens: int = 0
    output_tokens: int = 0
    cache_tokens: int = 0
    cost_usd: Decimal = Decimal(0)
    session_count: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens + self.cache_tokens


@dataclass(frozen=True)
class PeriodUsage:
    period: UsagePeriod
    metrics: UsageMetrics
    window: UsageWindow | None = None


@dataclass(frozen=True)
class ModelUsage:
    """Today's usage for one model."""

    model_name: str
    input_tokens: int
    output_tokens: int
    cache_tokens: int
    cost_usd: Decimal

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens + self.cache_tokens


@dataclass(frozen=True)
class SessionUsage:
    """Today's usage for one session."""

    session_id: str
    display_name: str
    input_tokens: int
    output_tokens: int
    cache_tokens: int
    cost_usd: Decimal
    first_seen: datetime
    last_seen: datetime
    request_count: int

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens + self.cache_tokens


@dataclass
class UsageAccumulator:
    """Mutable running totals for one group of entries."""

    input_tokens: int = 0
    output_tokens: int = 0
    cache_tokens: int = 0
    cost: Decimal = field(default_factory=Decimal)
    count: int = 0


@dataclass(frozen=True)
class UsageSnapshot:
    """Result of one usage computation."""

    periods: list[PeriodUsage]
    model_breakdown_today: list[ModelUsage]
    session_breakdown_today: list[SessionUsage]
    updated_at: datetime

    def metrics_for(self, period: UsagePeriod) -> UsageMetrics | None:
        for period_usage in self.periods:
            if period_usage.period is period:
                return period_usage.metrics
        return None

    @property
    def today_metrics(self) -> UsageMetrics | None:
        return self.metrics_for(UsagePeriod.TODAY)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready mapping; money as decimal strings, instants as ISO-8601."""
        return {
            "updated_at": self.updated_at.isoformat(),
            "periods": [
                {
                    "period": period_usage.period.value,
                    "start": period_usage.window.start.isoformat() if period_usage.window else None,
                    "end": period_usage.window.end.isoformat() if period_usage.window else None,
                    "input_tokens": period_usage.metrics.input_tokens,
                    "output_tokens": period_usage.metrics.output_tokens,
                    "cache_tokens": period_usage.metrics.cache_tokens,
                    "total_tokens": period_usage.metrics.total_tokens,
                    "cost_usd": str(period_usage.metrics.cost_usd),
                    "session_count": period_usage.metrics.session_count,
                }
                for period_usage in self.periods
            ],
            "models_today": [
                {
                    "model": model.model_name,
                    "input_tokens": model.input_tokens,
                    "output_tokens": model.output_tokens,
                    "cache_tokens": model.cache_tokens,
                    "total_tokens": model.total_tokens,
                    "cost_usd": str(model.cost_usd),
                }
                for model in self.model_breakdown_today
            ],
            "sessions_today": [
                {
                    "session_id": session.session_id,
                    "display_name": session.display_name,
                    "input_tokens": session.input_tokens,
                    "output_tokens": session.output_tokens,
                    "cache_tokens": session.cache_tokens,
                    "total_tokens": session.total_tokens,
                    "cost_usd": str(session.cost_usd),
                    "first_seen": session.first_seen.isoformat(),
                    "last_seen": session.last_seen.isoformat(),
                    "request_count": session.request_count,
                }
                for session in self.session_breakdown_today
            ],
        }
