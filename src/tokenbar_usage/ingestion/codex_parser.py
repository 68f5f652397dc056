"""Parsing helpers for Codex session logs.

Codex `event_msg` lines report token usage either as a direct per-event delta
(`last_token_usage`) or as a running total since session start
(`total_token_usage`). When only the running total is present, the delta is
reconstructed against the previous total seen in the same file, so lines must
be processed in file order.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any

from .decoding import (
    RawLine,
    decode_json_object,
    iter_file_lines,
    iter_nonblank_lines,
    lenient_int,
    optional_mapping,
    optional_str,
    required_mapping,
    required_timestamp,
)
from .errors import RecordDecodeError
from .schemas import LogSource, ParseCounters, ParsedLogFile, TokenCounts, UsageEntry

LOGGER = logging.getLogger(__name__)

EVENT_MSG_TYPE = "event_msg"
SESSION_META_TYPE = "session_meta"
TURN_CONTEXT_TYPE = "turn_context"


@dataclass(frozen=True)
class CodexRawUsage:
    """One `*_token_usage` snapshot."""

    input_tokens: int = 0
    cached_input_tokens: int = 0
    output_tokens: int = 0
    reasoning_output_tokens: int = 0
    total_tokens: int = 0

    @classmethod
    def from_mapping(cls, raw: dict[str, Any]) -> CodexRawUsage:
        input_tokens = lenient_int(raw, "input_tokens")
        output_tokens = lenient_int(raw, "output_tokens")
        cached_input_tokens = lenient_int(raw, "cached_input_tokens")
        if cached_input_tokens <= 0:
            cached_input_tokens = lenient_int(raw, "cache_read_input_tokens")
        total_tokens = lenient_int(raw, "total_tokens")
        return cls(
            input_tokens=input_tokens,
            cached_input_tokens=cached_input_tokens,
            output_tokens=output_tokens,
            reasoning_output_tokens=lenient_int(raw, "reasoning_output_tokens"),
            total_tokens=total_tokens if total_tokens > 0 else input_tokens + output_tokens,
        )

    def minus(self, previous: CodexRawUsage) -> CodexRawUsage:
        """Return the per-field delta from a previous running total, clamped at zero."""
        return CodexRawUsage(
            input_tokens=max(self.input_tokens - previous.input_tokens, 0),
            cached_input_tokens=max(self.cached_input_tokens - previous.cached_input_tokens, 0),
            output_tokens=max(self.output_tokens - previous.output_tokens, 0),
            reasoning_output_tokens=max(self.reasoning_output_tokens - previous.reasoning_output_tokens, 0),
            total_tokens=max(self.total_tokens - previous.total_tokens, 0),
        )

    @property
    def is_empty(self) -> bool:
        return (
            self.input_tokens == 0
            and self.cached_input_tokens == 0
            and self.output_tokens == 0
            and self.reasoning_output_tokens == 0
        )


ZERO_USAGE = CodexRawUsage()


@dataclass(frozen=True)
class CodexTokenInfo:
    """`payload.info` block of an `event_msg` line."""

    last_token_usage: CodexRawUsage | None
    total_token_usage: CodexRawUsage | None
    model: str | None


@dataclass(frozen=True)
class CodexEvent:
    """One decoded `event_msg` line carrying token info."""

    timestamp: datetime
    info: CodexTokenInfo
    message_id: str | None
    request_id: str | None


@dataclass
class _SessionContext:
    """Values carried forward from non-usage lines of the same file."""

    model: str | None = None
    cwd: str | None = None
    git_branch: str | None = None


def parse_codex_lines(lines: Iterable[RawLine], session_hint: str | None) -> ParsedLogFile:
    """Parse Codex log lines into usage entries, reconstructing per-event deltas."""
    counters = ParseCounters()
    context = _SessionContext()
    previous_totals = ZERO_USAGE
    entries: list[UsageEntry] = []

    for line_number, raw_line in iter_nonblank_lines(lines):
        counters.lines_read += 1
        try:
            payload = decode_json_object(raw_line, line_number)
            event_type = payload.get("type")
            if not isinstance(event_type, str):
                raise RecordDecodeError(f"Missing or invalid type at line {line_number}.")

            if event_type == SESSION_META_TYPE:
                _update_session_meta(context, payload, line_number)
                counters.lines_skipped_no_usage += 1
                continue
            if event_type == TURN_CONTEXT_TYPE:
                _update_turn_context(context, payload, line_number)
                counters.lines_skipped_no_usage += 1
                continue

            event = decode_codex_event(payload, event_type, line_number)
        except RecordDecodeError as exc:
            counters.lines_skipped_malformed += 1
            LOGGER.debug("Skipping Codex line: %s", exc)
            continue

        if event is None:
            counters.lines_skipped_no_usage += 1
            continue

        delta = event.info.last_token_usage
        if delta is None and event.info.total_token_usage is not None:
            delta = event.info.total_token_usage.minus(previous_totals)
        if event.info.total_token_usage is not None:
            previous_totals = event.info.total_token_usage

        if delta is None or delta.is_empty:
            counters.lines_skipped_no_usage += 1
            continue

        entries.append(
            UsageEntry(
                timestamp=event.timestamp,
                usage=TokenCounts(
                    input_tokens=max(delta.input_tokens, 0),
                    output_tokens=max(delta.output_tokens, 0),
                    cache_creation_tokens=0,
                    cache_read_tokens=max(delta.cached_input_tokens, 0),
                ),
                cost=Decimal(0),
                source=LogSource.CODEX,
                session_id=session_hint,
                request_id=event.request_id,
                message_id=event.message_id,
                model=event.info.model or context.model,
                cwd=context.cwd,
                git_branch=context.git_branch,
            )
        )

    counters.entries_parsed = len(entries)
    return ParsedLogFile(entries=entries, counters=counters)


def read_codex_file(log_file_path: Path, session_hint: str | None) -> ParsedLogFile:
    """Parse one Codex `.jsonl` file.

    Raises:
        OSError: If the file cannot be opened or read.
    """
    parsed = parse_codex_lines(iter_file_lines(log_file_path), session_hint)
    LOGGER.debug(
        "Parsed Codex file %s: %d entries, %d malformed, %d without usage",
        log_file_path,
        parsed.counters.entries_parsed,
        parsed.counters.lines_skipped_malformed,
        parsed.counters.lines_skipped_no_usage,
    )
    return parsed


def decode_codex_event(payload: dict[str, Any], event_type: str, line_number: int) -> CodexEvent | None:
    """Decode an event line; None for lines that are not `event_msg` token events.

    Raises:
        RecordDecodeError: If the timestamp, `payload` or `payload.info` is missing or invalid.
    """
    timestamp = required_timestamp(payload, "timestamp", line_number)
    if event_type != EVENT_MSG_TYPE:
        return None

    event_payload = required_mapping(payload, "payload", line_number)
    info = required_mapping(event_payload, "info", line_number)
    return CodexEvent(
        timestamp=timestamp,
        info=CodexTokenInfo(
            last_token_usage=_raw_usage(info.get("last_token_usage")),
            total_token_usage=_raw_usage(info.get("total_token_usage")),
            model=_lenient_str(info.get("model")),
        ),
        message_id=_lenient_str(event_payload.get("message_id")),
        request_id=_lenient_str(event_payload.get("request_id")),
    )


def _raw_usage(value: Any) -> CodexRawUsage | None:
    if not isinstance(value, dict):
        return None
    return CodexRawUsage.from_mapping(value)


def _lenient_str(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _update_session_meta(context: _SessionContext, payload: dict[str, Any], line_number: int) -> None:
    meta = optional_mapping(payload, "payload", line_number)
    if meta is None:
        return
    cwd = optional_str(meta, "cwd", line_number)
    if cwd:
        context.cwd = cwd
    git = meta.get("git")
    if isinstance(git, dict):
        branch = optional_str(git, "branch", line_number)
        if branch:
            context.git_branch = branch


def _update_turn_context(context: _SessionContext, payload: dict[str, Any], line_number: int) -> None:
    turn = optional_mapping(payload, "payload", line_number)
    if turn is None:
        return
    model = optional_str(turn, "model", line_number)
    if model:
        context.model = model
