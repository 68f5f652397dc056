"""Shared path utilities for tokenbar-usage."""

from __future__ import annotations

from pathlib import Path

CLAUDE_CONFIG_DIR_ENV = "CLAUDE_CONFIG_DIR"
CODEX_HOME_ENV = "CODEX_HOME"


def get_default_claude_roots(home: Path | None = None) -> list[Path]:
    """Return default Claude config directories, XDG location first."""
    base = home if home is not None else Path.home()
    return [base / ".config" / "claude", base / ".claude"]


def get_default_codex_home(home: Path | None = None) -> Path:
    """Return the default Codex home directory."""
    base = home if home is not None else Path.home()
    return base / ".codex"


def split_path_list(value: str) -> list[Path]:
    """Split a comma-separated directory list, trimming whitespace and dropping empties."""
    return [Path(part.strip()).expanduser() for part in value.split(",") if part.strip()]
