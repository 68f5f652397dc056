"""Discovery of Claude and Codex session log files."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Sequence
from pathlib import Path

from .schemas import DiscoveredFile, LogSource

LOGGER = logging.getLogger(__name__)
LOG_FILE_SUFFIX = ".jsonl"


class LogDiscoverer:
    """Locate log roots and enumerate `.jsonl` files beneath them.

    Candidate roots are passed in explicitly; reading environment variables is
    left to the caller (see `tokenbar_usage.config`).
    """

    def __init__(self, claude_roots: Sequence[Path] = (), codex_roots: Sequence[Path] = ()) -> None:
        self._candidates: dict[LogSource, list[Path]] = {
            LogSource.CLAUDE: [Path(root) for root in claude_roots],
            LogSource.CODEX: [Path(root) for root in codex_roots],
        }

    def roots(self, source: LogSource) -> list[Path]:
        """Return the existing `projects`/`sessions` directories for a source."""
        candidates = self._candidates[source]
        valid_roots: list[Path] = []
        for root in candidates:
            subdirectory = root / source.required_subdirectory
            try:
                if subdirectory.is_dir():
                    valid_roots.append(subdirectory)
            except OSError as exc:
                LOGGER.debug("Cannot inspect %s: %s", subdirectory, exc)

        if not valid_roots:
            searched = ", ".join(str(root) for root in candidates)
            LOGGER.debug("No %s directories found. Searched: %s", source.value, searched)
        return valid_roots

    def discover(self, root: Path, source: LogSource) -> list[DiscoveredFile]:
        """Recursively collect non-hidden `.jsonl` files under a root, sorted by path."""
        return [
            DiscoveredFile(path=path, session_id_hint=path.stem, source=source)
            for path in sorted(_walk_log_files(root))
        ]

    def discover_all(self, sources: Iterable[LogSource]) -> list[DiscoveredFile]:
        """Discover files for every root of every requested source."""
        discovered: list[DiscoveredFile] = []
        for source in sources:
            for root in self.roots(source):
                discovered.extend(self.discover(root, source))
        return discovered


def _walk_log_files(root: Path) -> Iterable[Path]:
    # os.walk ignores unreadable directories unless onerror is given.
    for directory, dir_names, file_names in os.walk(root):
        dir_names[:] = [name for name in dir_names if not name.startswith(".")]
        for file_name in file_names:
            if file_name.startswith("."):
                continue
            path = Path(directory) / file_name
            if path.suffix.lower() == LOG_FILE_SUFFIX:
                yield path
