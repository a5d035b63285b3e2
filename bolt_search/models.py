"""Bolt data models. Every struct that flows through the search pipeline."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class MatchMode(str, Enum):
    """How query terms combine when deciding whether a file matches."""

    ANY = "any"
    ALL = "all"


class BoundaryMode(str, Enum):
    """Where a term pattern is anchored inside a token."""

    START = "start"
    END = "end"
    NONE = "none"
    WHOLE = "whole"  # exact mode only


class PatternKind(str, Enum):
    TERM = "term"
    COMBINATION = "combination"


class Provenance(str, Enum):
    """How a CodeBlock's line range was decided."""

    AST = "ast-derived"
    LINE = "line-heuristic"
    WHOLE_FILE = "whole-file"


@dataclass(frozen=True)
class Term:
    """A normalized search token."""

    text: str  # as typed
    normalized: str  # lower-cased, or as typed in exact mode
    stem: str
    is_stopword: bool = False
    required: bool = True

    @property
    def key(self) -> str:
        return self.normalized

    @property
    def forms(self) -> tuple[str, ...]:
        """Distinct matchable forms, longest first so alternations prefer them."""
        if self.stem and self.stem != self.normalized:
            return tuple(sorted({self.normalized, self.stem}, key=lambda f: (-len(f), f)))
        return (self.normalized,)


@dataclass(frozen=True)
class Query:
    """Processed query: ordered terms plus match semantics."""

    raw: str
    terms: tuple[Term, ...]
    mode: MatchMode = MatchMode.ANY
    exact: bool = False

    @property
    def term_keys(self) -> tuple[str, ...]:
        return tuple(t.key for t in self.terms)

    @property
    def required_terms(self) -> tuple[Term, ...]:
        """Terms that count for ANY/ALL decisions. Every term if none is flagged."""
        flagged = tuple(t for t in self.terms if t.required)
        return flagged or self.terms

    @property
    def required_keys(self) -> frozenset[str]:
        return frozenset(t.key for t in self.required_terms)


@dataclass(frozen=True)
class Pattern:
    """A compiled, deduplicated match expression."""

    expression: str
    terms: tuple[str, ...]  # originating term keys
    boundary: BoundaryMode
    kind: PatternKind = PatternKind.TERM
    case_sensitive: bool = False
    regex: re.Pattern | None = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class PatternHit:
    """One match location inside file content."""

    start: int
    end: int
    line: int
    text: str
    terms: tuple[str, ...]
    kind: PatternKind = PatternKind.TERM


@dataclass(frozen=True)
class FileMatch:
    """Scan result for a single file. Not mutated after creation."""

    path: str
    relative_path: str
    language: str
    hits: tuple[PatternHit, ...]
    term_lines: dict[str, tuple[int, ...]]  # term key -> line of each distinct occurrence
    filename_hits: dict[str, int]
    total_lines: int
    token_count: int
    combination_hits: int = 0

    @property
    def term_counts(self) -> dict[str, int]:
        return {key: len(lines) for key, lines in self.term_lines.items()}

    @property
    def has_content_hits(self) -> bool:
        return bool(self.hits)

    @property
    def has_filename_hits(self) -> bool:
        return any(self.filename_hits.values())

    @property
    def match_lines(self) -> list[int]:
        return sorted({hit.line for hit in self.hits})


@dataclass(frozen=True)
class CodeBlock:
    """An extracted excerpt. Lines are 1-based and inclusive."""

    path: str
    relative_path: str
    start_line: int
    end_line: int
    text: str
    provenance: Provenance
    language: str = "text"
    unit_names: tuple[str, ...] = ()
    match_lines: tuple[int, ...] = ()

    @property
    def line_count(self) -> int:
        return self.end_line - self.start_line + 1


@dataclass(frozen=True)
class TermStat:
    """Per-term numbers behind a score."""

    tf: int
    idf_tfidf: float
    idf_bm25: float


@dataclass(frozen=True)
class RankedResult:
    """A CodeBlock with its composite relevance score."""

    block: CodeBlock
    score: float
    bm25: float = 0.0
    tfidf: float = 0.0
    filename_boost: float = 0.0
    term_stats: dict[str, TermStat] = field(default_factory=dict)

    def to_dict(self, include_stats: bool = False) -> dict[str, Any]:
        data: dict[str, Any] = {
            "file": self.block.relative_path,
            "start_line": self.block.start_line,
            "end_line": self.block.end_line,
            "text": self.block.text,
            "score": round(self.score, 6),
            "provenance": self.block.provenance.value,
        }
        if include_stats:
            data["language"] = self.block.language
            data["units"] = list(self.block.unit_names)
            data["bm25"] = round(self.bm25, 6)
            data["tfidf"] = round(self.tfidf, 6)
            data["filename_boost"] = round(self.filename_boost, 6)
            data["terms"] = {
                key: {"tf": s.tf, "idf_tfidf": round(s.idf_tfidf, 6), "idf_bm25": round(s.idf_bm25, 6)}
                for key, s in self.term_stats.items()
            }
        return data


@dataclass(frozen=True)
class FileIssue:
    """A per-file problem surfaced as a warning next to the results."""

    relative_path: str
    kind: str  # 'read', 'parse' or 'error'
    message: str


@dataclass
class SearchDiagnostics:
    """Intermediate numbers for callers that asked for debug output."""

    patterns: list[str] = field(default_factory=list)
    term_totals: dict[str, int] = field(default_factory=dict)
    document_frequencies: dict[str, int] = field(default_factory=dict)
    average_length: float = 0.0
    file_scores: dict[str, dict[str, float]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "patterns": list(self.patterns),
            "term_totals": dict(self.term_totals),
            "document_frequencies": dict(self.document_frequencies),
            "average_length": round(self.average_length, 6),
            "file_scores": {
                path: {name: round(value, 6) for name, value in scores.items()}
                for path, scores in self.file_scores.items()
            },
        }


@dataclass
class SearchResult:
    """Complete search result."""

    query: Query
    results: list[RankedResult]
    files_scanned: int
    files_matched: int
    search_time_ms: float
    warnings: list[FileIssue] = field(default_factory=list)
    truncated: bool = False
    debug: SearchDiagnostics | None = None

    def to_markdown(self) -> str:
        from .formatters import to_markdown
        return to_markdown(self)

    def to_dict(self) -> dict[str, Any]:
        from .formatters import to_json
        return to_json(self)


@dataclass(frozen=True)
class LanguageInfo:
    """One entry of describe_languages()."""

    name: str
    extensions: tuple[str, ...]
    grammar_available: bool
    parser: str  # 'ast', 'tree-sitter' or 'none'

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "extensions": list(self.extensions),
            "grammar_available": self.grammar_available,
            "parser": self.parser,
        }
