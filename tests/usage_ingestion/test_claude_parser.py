"""Tests for the Claude Code log parser."""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any

import orjson

from model_pricing import TokenUsage
from tokenbar_usage.ingestion.claude_parser import parse_claude_lines, read_claude_file
from tokenbar_usage.ingestion.schemas import LogSource, TokenCounts


class _RecordingPricing:
    """Pricing provider that returns a fixed cost and records its calls."""

    def __init__(self, cost: Decimal = Decimal("0.0123")) -> None:
        self._cost = cost
        self.calls: list[tuple[TokenUsage, str | None, float | None]] = []

    def cost(
        self,
        usage: TokenUsage,
        model: str | None = None,
        override_cost_usd: float | None = None,
    ) -> Decimal:
        self.calls.append((usage, model, override_cost_usd))
        if override_cost_usd is not None:
            return Decimal(str(override_cost_usd))
        return self._cost


def test_parse_claude_lines_builds_priced_entry() -> None:
    """A complete record should yield one entry with usage, cost and context."""
    pricing = _RecordingPricing()
    lines = [
        orjson.dumps(
            _claude_record(
                "2024-01-02T10:00:00.123Z",
                message_id="msg_1",
                request_id="req_1",
                session_id="session-abc",
                cwd="/home/dev/MyProject",
                git_branch="main",
            )
        )
    ]

    parsed = parse_claude_lines(lines, "file-hint", pricing)

    assert len(parsed.entries) == 1
    entry = parsed.entries[0]
    assert entry.timestamp == datetime(2024, 1, 2, 10, 0, 0, 123000, tzinfo=UTC)
    assert entry.usage == TokenCounts(
        input_tokens=1000,
        output_tokens=500,
        cache_creation_tokens=100,
        cache_read_tokens=50,
    )
    assert entry.usage.total_tokens == 1650
    assert entry.cost == Decimal("0.0123")
    assert entry.source is LogSource.CLAUDE
    assert entry.session_id == "session-abc"
    assert entry.model == "claude-sonnet-4-20250514"
    assert entry.cwd == "/home/dev/MyProject"
    assert entry.git_branch == "main"
    assert pricing.calls == [
        (
            TokenUsage(input_tokens=1000, output_tokens=500, cache_creation_tokens=100, cache_read_tokens=50),
            "claude-sonnet-4-20250514",
            None,
        )
    ]


def test_parse_claude_lines_accepts_timestamps_without_fraction() -> None:
    parsed = parse_claude_lines(
        [orjson.dumps(_claude_record("2024-01-02T10:00:00Z"))],
        None,
        _RecordingPricing(),
    )

    assert parsed.entries[0].timestamp == datetime(2024, 1, 2, 10, 0, 0, tzinfo=UTC)


def test_parse_claude_lines_skips_replayed_request_pairs() -> None:
    """Records sharing both message id and request id count once per file."""
    record = _claude_record("2024-01-02T10:00:00Z", message_id="msg_1", request_id="req_1")
    lines = [orjson.dumps(record), orjson.dumps(record)]

    parsed = parse_claude_lines(lines, None, _RecordingPricing())

    assert len(parsed.entries) == 1
    assert parsed.counters.duplicate_rows_skipped == 1
    assert parsed.counters.entries_parsed == 1


def test_parse_claude_lines_keeps_records_missing_an_identifier() -> None:
    """Deduplication only applies when both identifiers are present."""
    record = _claude_record("2024-01-02T10:00:00Z", message_id="msg_1", request_id=None)
    lines = [orjson.dumps(record), orjson.dumps(record)]

    parsed = parse_claude_lines(lines, None, _RecordingPricing())

    assert len(parsed.entries) == 2
    assert parsed.counters.duplicate_rows_skipped == 0


def test_parse_claude_lines_deduplicates_per_call_only() -> None:
    """The same pair in another file is a separate entry."""
    lines = [orjson.dumps(_claude_record("2024-01-02T10:00:00Z", message_id="msg_1", request_id="req_1"))]

    first = parse_claude_lines(lines, None, _RecordingPricing())
    second = parse_claude_lines(lines, None, _RecordingPricing())

    assert len(first.entries) == 1
    assert len(second.entries) == 1


def test_parse_claude_lines_skips_malformed_and_usage_free_lines() -> None:
    """Bad lines are counted and skipped without stopping the file."""
    without_usage = _claude_record("2024-01-02T10:00:00Z")
    del without_usage["message"]["usage"]
    lines: list[bytes | str] = [
        b'{"timestamp": "2024-01-02T10:00:00Z"',
        "",
        orjson.dumps({"timestamp": "yesterday", "message": {"usage": {"input_tokens": 1}}}),
        orjson.dumps({"timestamp": "2024-01-02T10:00:00Z"}),
        orjson.dumps(without_usage),
        orjson.dumps(_claude_record("2024-01-02T11:00:00Z")),
    ]

    parsed = parse_claude_lines(lines, None, _RecordingPricing())

    assert len(parsed.entries) == 1
    assert parsed.entries[0].timestamp == datetime(2024, 1, 2, 11, 0, tzinfo=UTC)
    assert parsed.counters.lines_read == 5
    assert parsed.counters.lines_skipped_malformed == 3
    assert parsed.counters.lines_skipped_no_usage == 1


def test_parse_claude_lines_uses_hint_when_session_id_missing() -> None:
    parsed = parse_claude_lines(
        [orjson.dumps(_claude_record("2024-01-02T10:00:00Z", session_id=None))],
        "c7b4e2f0-file-stem",
        _RecordingPricing(),
    )

    assert parsed.entries[0].session_id == "c7b4e2f0-file-stem"


def test_parse_claude_lines_passes_provided_cost_to_pricing() -> None:
    """A `costUSD` field should reach the pricing provider as the override."""
    pricing = _RecordingPricing(cost=Decimal("99"))
    record = _claude_record("2024-01-02T10:00:00Z")
    record["costUSD"] = 0.0042

    parsed = parse_claude_lines([orjson.dumps(record)], None, pricing)

    assert parsed.entries[0].cost == Decimal("0.0042")
    assert pricing.calls[0][2] == 0.0042


def test_parse_claude_lines_treats_missing_token_counts_as_zero() -> None:
    record = _claude_record("2024-01-02T10:00:00Z")
    record["message"]["usage"] = {"input_tokens": 12}

    parsed = parse_claude_lines([orjson.dumps(record)], None, _RecordingPricing())

    assert parsed.entries[0].usage == TokenCounts(input_tokens=12)


def test_parse_claude_lines_rejects_fractional_token_counts() -> None:
    """A non-integral token count makes the line malformed instead of being truncated."""
    record = _claude_record("2024-01-02T10:00:00Z")
    record["message"]["usage"]["input_tokens"] = 1.5
    whole = _claude_record("2024-01-02T10:01:00Z", message_id="msg_2", request_id="req_2")
    whole["message"]["usage"]["input_tokens"] = 12.0

    parsed = parse_claude_lines([orjson.dumps(record), orjson.dumps(whole)], None, _RecordingPricing())

    assert [entry.usage.input_tokens for entry in parsed.entries] == [12]
    assert parsed.counters.lines_skipped_malformed == 1


def test_read_claude_file_reads_jsonl_from_disk(tmp_path: Path) -> None:
    log_file = tmp_path / "session.jsonl"
    _write_jsonl(
        log_file,
        [
            {"type": "summary", "summary": "Refactor parser"},
            _claude_record("2024-01-02T10:00:00Z", message_id="msg_1", request_id="req_1"),
            _claude_record("2024-01-02T10:05:00Z", message_id="msg_2", request_id="req_2"),
        ],
    )

    parsed = read_claude_file(log_file, "session", _RecordingPricing())

    assert [entry.message_id for entry in parsed.entries] == ["msg_1", "msg_2"]
    assert parsed.counters.lines_read == 3
    assert parsed.counters.lines_skipped_malformed == 1


def _claude_record(
    timestamp: str,
    *,
    message_id: str | None = "msg_1",
    request_id: str | None = "req_1",
    session_id: str | None = "session-abc",
    cwd: str | None = None,
    git_branch: str | None = None,
) -> dict[str, Any]:
    """Build one assistant record in the Claude Code log layout."""
    record: dict[str, Any] = {
        "timestamp": timestamp,
        "type": "assistant",
        "message": {
            "model": "claude-sonnet-4-20250514",
            "usage": {
                "input_tokens": 1000,
                "output_tokens": 500,
                "cache_creation_input_tokens": 100,
                "cache_read_input_tokens": 50,
            },
        },
    }
    if message_id is not None:
        record["message"]["id"] = message_id
    if request_id is not None:
        record["requestId"] = request_id
    if session_id is not None:
        record["sessionId"] = session_id
    if cwd is not None:
        record["cwd"] = cwd
    if git_branch is not None:
        record["gitBranch"] = git_branch
    return record


def _write_jsonl(path: Path, events: list[dict[str, Any]]) -> None:
    """Write JSONL events to disk."""
    with path.open("wb") as handle:
        for event in events:
            handle.write(orjson.dumps(event))
            handle.write(b"\n")
