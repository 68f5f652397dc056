"""Custom exceptions for log ingestion failures."""


class IngestionError(Exception):
    """Base exception for ingestion errors."""


class ParseError(IngestionError):
    """Raised when a log line cannot be parsed."""


class RecordDecodeError(ParseError):
    """Raised when a decoded JSON line does not match the expected record shape."""
