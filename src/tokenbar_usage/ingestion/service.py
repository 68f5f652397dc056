"""Service orchestration for usage snapshots."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import UTC, datetime

from model_pricing import PricingProvider

from ..stats.schemas import UsageSnapshot
from ..stats.service import aggregate, empty_snapshot
from ..stats.windows import CalendarConfig
from .claude_parser import read_claude_file
from .codex_parser import read_codex_file
from .discovery import LogDiscoverer
from .schemas import DiscoveredFile, IngestionCounters, LogSource, ParsedLogFile, UsageEntry

LOGGER = logging.getLogger(__name__)
ALL_SOURCES: tuple[LogSource, ...] = (LogSource.CLAUDE, LogSource.CODEX)


class UsageService:
    """Coordinates discovery, parsing, and aggregation into a usage snapshot.

    Every call re-scans the log roots and recomputes the snapshot from scratch.
    The pricing provider is the only state shared between calls.
    """

    def __init__(
        self,
        discoverer: LogDiscoverer,
        pricing: PricingProvider,
        sources: Sequence[LogSource] = ALL_SOURCES,
    ) -> None:
        self._discoverer = discoverer
        self._pricing = pricing
        self._sources = tuple(sources)
        self.last_counters = IngestionCounters()

    def fetch_usage(self, now: datetime | None = None, calendar: CalendarConfig | None = None) -> UsageSnapshot:
        """Return usage totals for today, this week and this month as of `now`."""
        now = now if now is not None else datetime.now(UTC)
        calendar = calendar if calendar is not None else CalendarConfig.system_default()
        counters = IngestionCounters()
        self.last_counters = counters

        discovered_files = self._discoverer.discover_all(self._sources)
        if not discovered_files:
            LOGGER.info("No session log files found for sources: %s", ", ".join(self._sources))
            return empty_snapshot(now, calendar)

        entries: list[UsageEntry] = []
        for discovered in discovered_files:
            counters.files_scanned += 1
            try:
                parsed = self._read_file(discovered)
            except OSError as exc:
                counters.files_failed += 1
                counters.failed_files.append(str(discovered.path))
                LOGGER.debug("Skipping %s: %s", discovered.path, exc)
                continue

            counters.add_file(parsed.counters)
            entries.extend(parsed.entries)

        LOGGER.info(
            "Parsed %d entries from %d files (%d failed, %d malformed lines, %d duplicates).",
            counters.entries_parsed,
            counters.files_scanned,
            counters.files_failed,
            counters.lines_skipped_malformed,
            counters.duplicate_rows_skipped,
        )
        return aggregate(entries, now, calendar)

    def _read_file(self, discovered: DiscoveredFile) -> ParsedLogFile:
        if discovered.source is LogSource.CLAUDE:
            return read_claude_file(discovered.path, discovered.session_id_hint, self._pricing)
        return read_codex_file(discovered.path, discovered.session_id_hint)
