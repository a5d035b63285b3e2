"""
errors.py - Everything that can go wrong during a search.

Query- and path-level errors abort the search and reach the caller.
FileReadError and ParseError are per-file: the scanner and the extractor
catch them, log them, and carry on with the next file.
"""

from __future__ import annotations


class SearchError(Exception):
    """Base class for all search-core errors."""


class EmptyQuery(SearchError):
    """The query has no usable terms, not even after the stopword fallback."""

    def __init__(self, raw: str = ""):
        self.raw = raw
        super().__init__(f"Query has no searchable terms: {raw!r}")


class InvalidPath(SearchError):
    """Search root does not exist or cannot be read."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid search path {path!r}: {reason}")


class UnsupportedPattern(SearchError):
    """A term could not be turned into a working regex."""

    def __init__(self, expression: str, reason: str):
        self.expression = expression
        self.reason = reason
        super().__init__(f"Unsupported pattern {expression!r}: {reason}")


class FileReadError(SearchError):
    """A single file could not be read as text. Non-fatal."""

    kind = "read"

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot read {path}: {reason}")


class ParseError(SearchError):
    """A grammar failed on a single file. Non-fatal, triggers line fallback."""

    kind = "parse"

    def __init__(self, path: str, language: str, reason: str):
        self.path = path
        self.language = language
        self.reason = reason
        super().__init__(f"Cannot parse {path} as {language}: {reason}")
