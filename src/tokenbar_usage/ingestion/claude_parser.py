"""Parsing helpers for Claude Code project logs.

Each Claude line is an absolute per-request record: the usage it carries is
already a delta, so the only reconstruction needed is suppressing replayed
records that share a `message.id` / `requestId` pair.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from model_pricing import PricingProvider, TokenUsage

from .decoding import (
    RawLine,
    decode_json_object,
    iter_file_lines,
    iter_nonblank_lines,
    optional_int,
    optional_mapping,
    optional_number,
    optional_str,
    required_mapping,
    required_timestamp,
)
from .dedupe import RequestDeduplicator
from .errors import RecordDecodeError
from .schemas import LogSource, ParseCounters, ParsedLogFile, TokenCounts, UsageEntry

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClaudeUsage:
    """`message.usage` block, snake_case on the wire."""

    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_input_tokens: int = 0
    cache_read_input_tokens: int = 0

    def to_token_usage(self) -> TokenUsage:
        return TokenUsage(
            input_tokens=self.input_tokens,
            output_tokens=self.output_tokens,
            cache_creation_tokens=self.cache_creation_input_tokens,
            cache_read_tokens=self.cache_read_input_tokens,
        )

    def to_token_counts(self) -> TokenCounts:
        return TokenCounts(
            input_tokens=self.input_tokens,
            output_tokens=self.output_tokens,
            cache_creation_tokens=self.cache_creation_input_tokens,
            cache_read_tokens=self.cache_read_input_tokens,
        )


@dataclass(frozen=True)
class ClaudeMessage:
    id: str | None
    model: str | None
    usage: ClaudeUsage | None


@dataclass(frozen=True)
class ClaudeRecord:
    """One decoded Claude log line."""

    timestamp: datetime
    session_id: str | None
    request_id: str | None
    cost_usd: float | None
    message: ClaudeMessage
    cwd: str | None
    git_branch: str | None


def parse_claude_lines(
    lines: Iterable[RawLine],
    session_hint: str | None,
    pricing: PricingProvider,
) -> ParsedLogFile:
    """Parse Claude log lines into priced, deduplicated usage entries."""
    counters = ParseCounters()
    dedupe = RequestDeduplicator()
    entries: list[UsageEntry] = []

    for line_number, raw_line in iter_nonblank_lines(lines):
        counters.lines_read += 1
        try:
            record = decode_claude_record(decode_json_object(raw_line, line_number), line_number)
        except RecordDecodeError as exc:
            counters.lines_skipped_malformed += 1
            LOGGER.debug("Skipping Claude line: %s", exc)
            continue

        usage = record.message.usage
        if usage is None:
            counters.lines_skipped_no_usage += 1
            continue

        if not dedupe.admit(record.message.id, record.request_id):
            counters.duplicate_rows_skipped += 1
            continue

        cost = pricing.cost(usage.to_token_usage(), record.message.model, override_cost_usd=record.cost_usd)
        entries.append(
            UsageEntry(
                timestamp=record.timestamp,
                usage=usage.to_token_counts(),
                cost=cost,
                source=LogSource.CLAUDE,
                session_id=record.session_id or session_hint,
                request_id=record.request_id,
                message_id=record.message.id,
                model=record.message.model,
                cwd=record.cwd,
                git_branch=record.git_branch,
            )
        )

    counters.entries_parsed = len(entries)
    return ParsedLogFile(entries=entries, counters=counters)


def read_claude_file(log_file_path: Path, session_hint: str | None, pricing: PricingProvider) -> ParsedLogFile:
    """Parse one Claude `.jsonl` file.

    Raises:
        OSError: If the file cannot be opened or read.
    """
    parsed = parse_claude_lines(iter_file_lines(log_file_path), session_hint, pricing)
    LOGGER.debug(
        "Parsed Claude file %s: %d entries, %d malformed, %d without usage, %d duplicates",
        log_file_path,
        parsed.counters.entries_parsed,
        parsed.counters.lines_skipped_malformed,
        parsed.counters.lines_skipped_no_usage,
        parsed.counters.duplicate_rows_skipped,
    )
    return parsed


def decode_claude_record(payload: dict[str, Any], line_number: int) -> ClaudeRecord:
    """Decode one Claude line into a typed record."""
    timestamp = required_timestamp(payload, "timestamp", line_number)
    message = required_mapping(payload, "message", line_number)
    usage = optional_mapping(message, "usage", line_number)

    return ClaudeRecord(
        timestamp=timestamp,
        session_id=optional_str(payload, "sessionId", line_number),
        request_id=optional_str(payload, "requestId", line_number),
        cost_usd=optional_number(payload, "costUSD", line_number),
        message=ClaudeMessage(
            id=optional_str(message, "id", line_number),
            model=optional_str(message, "model", line_number),
            usage=_decode_usage(usage, line_number) if usage is not None else None,
        ),
        cwd=optional_str(payload, "cwd", line_number),
        git_branch=optional_str(payload, "gitBranch", line_number),
    )


def _decode_usage(usage: dict[str, Any], line_number: int) -> ClaudeUsage:
    return ClaudeUsage(
        input_tokens=_token_count(usage, "input_tokens", line_number),
        output_tokens=_token_count(usage, "output_tokens", line_number),
        cache_creation_input_tokens=_token_count(usage, "cache_creation_input_tokens", line_number),
        cache_read_input_tokens=_token_count(usage, "cache_read_input_tokens", line_number),
    )


def _token_count(usage: dict[str, Any], key: str, line_number: int) -> int:
    """Return a non-negative token count; absent counts are zero."""
    value = optional_int(usage, key, line_number)
    return max(value or 0, 0)
