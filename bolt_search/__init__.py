"""
Bolt Search - Code-Aware Ranked Search

Finds the functions, methods and classes a query is about, not just the
lines it appears on. Every module name hits like a bolt.

Usage:
    from bolt_search import search, SearchOptions

    result = search("user auth", "src/")                          # Any term
    result = search("user auth", "src/", SearchOptions(mode="all"))  # Every term
    print(result.to_markdown())

    bolt = Bolt("src/")
    result = bolt.hunt("getUserName", cancel=stop_event)

CLI:
    bolt 'user auth' src/       # Search
    bolt src/ 'user auth'       # Old arg order works
    bolt --languages            # Grammar support table
"""

from .blitz_hunt import Bolt, describe_languages, search
from .config import SearchOptions
from .errors import (
    EmptyQuery,
    FileReadError,
    InvalidPath,
    ParseError,
    SearchError,
    UnsupportedPattern,
)
from .models import (
    BoundaryMode,
    CodeBlock,
    FileIssue,
    FileMatch,
    LanguageInfo,
    MatchMode,
    Pattern,
    PatternHit,
    Provenance,
    Query,
    RankedResult,
    SearchDiagnostics,
    SearchResult,
    Term,
)
from .term_splinter import process_terms, split_identifier
from .pattern_forge import generate_patterns
from .file_sweep import scan_file
from .block_blast import extract_blocks
from .thunder_rank import rank

__all__ = [
    "Bolt",
    "search",
    "describe_languages",
    "SearchOptions",
    "SearchError",
    "EmptyQuery",
    "InvalidPath",
    "UnsupportedPattern",
    "FileReadError",
    "ParseError",
    "BoundaryMode",
    "CodeBlock",
    "FileIssue",
    "FileMatch",
    "LanguageInfo",
    "MatchMode",
    "Pattern",
    "PatternHit",
    "Provenance",
    "Query",
    "RankedResult",
    "SearchDiagnostics",
    "SearchResult",
    "Term",
    "process_terms",
    "split_identifier",
    "generate_patterns",
    "scan_file",
    "extract_blocks",
    "rank",
]
