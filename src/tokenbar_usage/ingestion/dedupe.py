"""Per-file suppression of replayed Claude request records."""

from __future__ import annotations


def request_identity(message_id: str | None, request_id: str | None) -> str | None:
    """Return the `message_id:request_id` identity key, or None when either part is missing."""
    if message_id is None or request_id is None:
        return None
    return f"{message_id}:{request_id}"


class RequestDeduplicator:
    """Track identity keys seen in one file.

    Records without a full identity are always admitted.
    """

    def __init__(self) -> None:
        self._seen: set[str] = set()

    def admit(self, message_id: str | None, request_id: str | None) -> bool:
        """Return True when the record should be kept, remembering its key."""
        key = request_identity(message_id, request_id)
        if key is None:
            return True
        if key in self._seen:
            return False
        self._seen.add(key)
        return True

    def __len__(self) -> int:
        return len(self._seen)
