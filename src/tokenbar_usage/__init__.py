"""Token usage and cost summaries from local Claude and Codex session logs."""

from .config import UsageConfig
from .ingestion.schemas import LogSource, UsageEntry
from .ingestion.service import UsageService
from .stats.schemas import UsagePeriod, UsageSnapshot
from .stats.windows import CalendarConfig

__all__ = [
    "CalendarConfig",
    "LogSource",
    "UsageConfig",
    "UsageEntry",
    "UsagePeriod",
    "UsageService",
    "UsageSnapshot",
]
