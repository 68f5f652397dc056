"""Typed schemas used by the ingestion pipeline."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from pathlib import Path


class LogSource(enum.StrEnum):
    """Coding-agent tool that wrote a log file."""

    CLAUDE = "claude"
    CODEX = "codex"

    @property
    def required_subdirectory(self) -> str:
        """Subdirectory a root must contain to be scanned."""
        return "projects" if self is LogSource.CLAUDE else "sessions"


@dataclass(frozen=True)
class TokenCounts:
    """Token counters for one usage entry."""

    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_tokens: int = 0
    cache_read_tokens: int = 0

    @property
    def cache_tokens(self) -> int:
        return self.cache_creation_tokens + self.cache_read_tokens

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens + self.cache_tokens


@dataclass(frozen=True)
class UsageEntry:
    """One normalized usage record derived from a single log line."""

    timestamp: datetime
    usage: TokenCounts
    cost: Decimal
    source: LogSource
    session_id: str | None = None
    request_id: str | None = None
    message_id: str | None = None
    model: str | None = None
    cwd: str | None = None
    git_branch: str | None = None


@dataclass(frozen=True)
class DiscoveredFile:
    """A candidate log file found under a source root."""

    path: Path
    session_id_hint: str | None
    source: LogSource


@dataclass
class ParseCounters:
    """Line-level counters for one parsed log file."""

    lines_read: int = 0
    entries_parsed: int = 0
    lines_skipped_malformed: int = 0
    lines_skipped_no_usage: int = 0
    duplicate_rows_skipped: int = 0


@dataclass(frozen=True)
class ParsedLogFile:
    """Parser output for one log file."""

    entries: list[UsageEntry]
    counters: ParseCounters


@dataclass
class IngestionCounters:
    """Counters collected by one UsageService.fetch_usage() call."""

    files_scanned: int = 0
    files_failed: int = 0
    lines_read: int = 0
    entries_parsed: int = 0
    lines_skipped_malformed: int = 0
    lines_skipped_no_usage: int = 0
    duplicate_rows_skipped: int = 0
    failed_files: list[str] = field(default_factory=list)

    def add_file(self, counters: ParseCounters) -> None:
        """Fold one file's parse counters into the run totals."""
        self.lines_read += counters.lines_read
        self.entries_parsed += counters.entries_parsed
        self.lines_skipped_malformed += counters.lines_skipped_malformed
        self.lines_skipped_no_usage += counters.lines_skipped_no_usage
        self.duplicate_rows_skipped += counters.duplicate_rows_skipped
