"""Log discovery, parsing, and deduplication for Claude and Codex session logs."""
