"""
Exceptions for N-gram Insights.
Raised only at the I/O edges (file parsing, request bodies, settings);
the analysis functions themselves never raise on degenerate data.
"""


class NGramInsightsError(Exception):
    """Base exception for all N-gram Insights errors."""


class FileParseError(NGramInsightsError):
    """Raised when an uploaded report cannot be read."""


class DataValidationError(NGramInsightsError):
    """Raised when input data is missing required columns or fields."""

    def __init__(self, message: str, missing: list = None):
        super().__init__(message)
        self.missing = missing or []


class ConfigurationError(NGramInsightsError):
    """Raised when analysis settings are invalid."""
