"""Shared timestamp utilities for tokenbar-usage."""

from __future__ import annotations

from datetime import UTC, datetime


def parse_iso_timestamp(value: str) -> datetime:
    """Parse an RFC3339-style timestamp, with or without fractional seconds, into an aware datetime.

    Raises:
        ValueError: If the value is not a valid ISO-8601 timestamp.
    """
    if not isinstance(value, str) or not value:
        raise ValueError(f"Expected non-empty timestamp string, got {value!r}.")
    normalized = value.strip()
    if normalized.endswith(("Z", "z")):
        normalized = f"{normalized[:-1]}+00:00"
    parsed = datetime.fromisoformat(normalized)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed
