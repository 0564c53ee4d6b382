"""
Exception hierarchy for the anonymizing MySQL dumper.
"""


class DumperError(Exception):
    """Base exception for all dumper errors."""


class ConfigurationError(DumperError):
    """Raised when the configuration is missing required settings."""


class MetadataError(DumperError):
    """Raised when table listing or constraint/column discovery fails."""


class PerTableQueryError(DumperError):
    """Raised when fetching or rendering one table's data fails."""

    def __init__(self, table: str, query: str, cause: Exception):
        super().__init__(f"{query} => {cause}")
        self.table = table
        self.query = query
        self.cause = cause


class EncodingError(DumperError):
    """Raised when a cell value cannot be decoded or encoded."""


class OutputError(DumperError):
    """Raised when the dump cannot be written to its destination."""
