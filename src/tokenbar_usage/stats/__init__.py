"""Windowed aggregation and rendering of usage entries."""
