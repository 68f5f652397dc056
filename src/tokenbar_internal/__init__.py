"""Internal helpers shared by tokenbar-usage packages."""
