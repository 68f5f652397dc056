"""Typed field extraction shared by the log format parsers.

Each helper validates one field of a decoded JSON object and raises
`RecordDecodeError` with line context when the value has the wrong shape.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from datetime import datetime
from pathlib import Path
from typing import Any

import orjson

from tokenbar_internal.timestamps import parse_iso_timestamp

from .errors import RecordDecodeError

RawLine = bytes | str


def iter_nonblank_lines(lines: Iterable[RawLine]) -> Iterator[tuple[int, RawLine]]:
    """Yield `(line_number, line)` for every non-blank line, numbering from 1."""
    for line_number, raw_line in enumerate(lines, start=1):
        if not raw_line.strip():
            continue
        yield line_number, raw_line


def iter_file_lines(log_file_path: Path) -> Iterator[bytes]:
    """Yield raw lines of a log file in order."""
    with log_file_path.open("rb") as handle:
        yield from handle


def decode_json_object(raw_line: RawLine, line_number: int) -> dict[str, Any]:
    try:
        payload = orjson.loads(raw_line)
    except orjson.JSONDecodeError as exc:
        raise RecordDecodeError(f"Malformed JSON at line {line_number}: {exc}.") from exc
    if not isinstance(payload, dict):
        raise RecordDecodeError(f"Expected JSON object at line {line_number}, got {type(payload).__name__}.")
    return payload


def required_timestamp(record: dict[str, Any], key: str, line_number: int) -> datetime:
    value = record.get(key)
    if not isinstance(value, str) or not value:
        raise RecordDecodeError(f"Missing or invalid {key} at line {line_number}.")
    try:
        return parse_iso_timestamp(value)
    except ValueError as exc:
        raise RecordDecodeError(f"Invalid timestamp {value!r} at line {line_number}.") from exc


def required_mapping(record: dict[str, Any], key: str, line_number: int) -> dict[str, Any]:
    value = record.get(key)
    if not isinstance(value, dict):
        raise RecordDecodeError(f"Missing or invalid {key} object at line {line_number}.")
    return value


def optional_mapping(record: dict[str, Any], key: str, line_number: int) -> dict[str, Any] | None:
    value = record.get(key)
    if value is None:
        return None
    if not isinstance(value, dict):
        raise RecordDecodeError(
            f"Invalid {key} at line {line_number}: expected object or null, got {type(value).__name__}."
        )
    return value


def optional_str(record: dict[str, Any], key: str, line_number: int) -> str | None:
    value = record.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise RecordDecodeError(
            f"Invalid {key} at line {line_number}: expected str or null, got {type(value).__name__}."
        )
    return value


def optional_int(record: dict[str, Any], key: str, line_number: int) -> int | None:
    value = record.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise RecordDecodeError(
            f"Invalid {key} at line {line_number}: expected int or null, got {type(value).__name__}."
        )
    if isinstance(value, float) and not value.is_integer():
        raise RecordDecodeError(f"Invalid {key} at line {line_number}: expected int, got {value!r}.")
    return int(value)


def optional_number(record: dict[str, Any], key: str, line_number: int) -> float | None:
    value = record.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise RecordDecodeError(
            f"Invalid {key} at line {line_number}: expected number or null, got {type(value).__name__}."
        )
    return float(value)


def lenient_int(record: dict[str, Any], key: str) -> int:
    """Return a numeric field as int, treating missing or non-numeric values as 0."""
    value = record.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return int(value)
