"""
Error types raised while analyzing Chapbook passages.

Parsers raise these internally and convert them to diagnostics at the
boundary of the construct being parsed, so a single malformed construct
never halts analysis of the rest of a passage.
"""

from __future__ import annotations

from dataclasses import dataclass


class ChapbookError(Exception):
    """Base exception for all analyzer errors."""

    def __init__(self, message: str, context: ErrorContext | None = None):
        self.message = message
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with context if available."""
        if self.context:
            return f"{self.context.format()}\n{self.message}"
        return self.message


class VersionFormatError(ChapbookError):
    """
    Raised when a version string isn't dot-separated non-negative integers.

    Examples:
    - "2.x"
    - "two"
    - "2..1"
    """

    pass


class RegexTranslationError(ChapbookError):
    """
    Raised when a JavaScript regular expression literal can't be used.

    Examples:
    - Unsupported flags (``/hi/q``)
    - Unbalanced groups or brackets
    - Constructs with no Python equivalent
    """

    def __init__(
        self,
        message: str,
        offset: int = 0,
        length: int = 0,
        context: ErrorContext | None = None,
    ):
        self.offset = offset
        self.length = length
        super().__init__(message, context)


class ExtensionSyntaxError(ChapbookError):
    """
    Raised when an ``engine.template.*.add()`` argument isn't a readable object literal.

    ``offset`` is relative to the start of the text handed to the reader.
    """

    def __init__(self, message: str, offset: int = 0, context: ErrorContext | None = None):
        self.offset = offset
        super().__init__(message, context)


class ConfigError(ChapbookError):
    """
    Raised when analyzer configuration can't be loaded.

    Examples:
    - Malformed TOML
    - Wrong value types for known keys
    """

    pass


@dataclass
class ErrorContext:
    """
    Context information for an error, including source location.

    Attributes:
        uri: Document or file where the error occurred
        line: Line number (1-indexed)
        column: Column number (1-indexed)
        snippet: Optional source line showing the error location
    """

    uri: str
    line: int
    column: int
    snippet: str | None = None

    def format(self) -> str:
        """
        Format error context as a human-readable string.

        Returns:
            Formatted string like: "story.twee:10:5"
        """
        location = f"{self.uri}:{self.line}:{self.column}"
        if self.snippet:
            marker = " " * (self.column - 1) + "^"
            return f"{location}\n    {self.snippet}\n    {marker}"
        return location


def make_config_error(message: str, path: str | None = None) -> ConfigError:
    """
    Helper to create a ConfigError with optional file context.

    Args:
        message: Error description
        path: Optional path to the offending configuration file

    Returns:
        ConfigError with context if a path is provided
    """
    if path:
        return ConfigError(message, ErrorContext(uri=path, line=1, column=1))
    return ConfigError(message)
