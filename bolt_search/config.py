"""Centralized search configuration.

Every tunable of the pipeline lives here. Module-level defaults are read once
from the environment; SearchOptions carries them into a single search call.

Environment overrides:
    BOLT_SEARCH_CONTEXT_LINES         Line radius for the heuristic fallback (default: 5)
    BOLT_SEARCH_WHOLE_FILE_THRESHOLD  Coverage above which a whole file is returned (default: 0.8)
    BOLT_SEARCH_BM25_K1               BM25 term-frequency saturation (default: 1.2)
    BOLT_SEARCH_BM25_B                BM25 length normalization (default: 0.75)
    BOLT_SEARCH_BM25_WEIGHT           Share of BM25 in the blended score (default: 0.7)
    BOLT_SEARCH_FILENAME_BOOST        Boost for query terms found in a file name (default: 0.3)
    BOLT_SEARCH_MAX_RESULTS           Results returned (default: 20)
    BOLT_SEARCH_WORKERS               Scan threads (default: 8)
    BOLT_SEARCH_MAX_FILE_SIZE         Bytes; larger files are skipped (default: 1 MB)
    BOLT_SEARCH_RESPECT_GITIGNORE     Read .gitignore/.ignore files (default: true)
"""

from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass, field

from .models import MatchMode


def _get_env_int(key: str, default: int) -> int:
    """Get integer environment variable with default."""
    return int(os.getenv(key, str(default)))


def _get_env_float(key: str, default: float) -> float:
    """Get float environment variable with default."""
    return float(os.getenv(key, str(default)))


def _get_env_bool(key: str, default: bool) -> bool:
    """Get boolean environment variable with default."""
    val = os.getenv(key, str(default)).lower()
    return val in ("true", "1", "yes", "on")


# ============================================================================
# DEFAULTS
# ============================================================================

DEFAULT_CONTEXT_LINES = _get_env_int("BOLT_SEARCH_CONTEXT_LINES", 5)
DEFAULT_WHOLE_FILE_THRESHOLD = _get_env_float("BOLT_SEARCH_WHOLE_FILE_THRESHOLD", 0.8)
DEFAULT_BM25_K1 = _get_env_float("BOLT_SEARCH_BM25_K1", 1.2)
DEFAULT_BM25_B = _get_env_float("BOLT_SEARCH_BM25_B", 0.75)
DEFAULT_BM25_WEIGHT = _get_env_float("BOLT_SEARCH_BM25_WEIGHT", 0.7)
DEFAULT_FILENAME_BOOST = _get_env_float("BOLT_SEARCH_FILENAME_BOOST", 0.3)
DEFAULT_MAX_RESULTS = _get_env_int("BOLT_SEARCH_MAX_RESULTS", 20)
DEFAULT_WORKERS = _get_env_int("BOLT_SEARCH_WORKERS", 8)
DEFAULT_MAX_FILE_SIZE = _get_env_int("BOLT_SEARCH_MAX_FILE_SIZE", 1 * 1024 * 1024)
DEFAULT_MAX_BLOCKS_PER_FILE = 5
DEFAULT_RESPECT_GITIGNORE = _get_env_bool("BOLT_SEARCH_RESPECT_GITIGNORE", True)


@dataclass(frozen=True)
class SearchOptions:
    """Knobs for one search() call. Immutable; shared by every worker."""

    mode: MatchMode = MatchMode.ANY
    exact: bool = False
    extensions: frozenset[str] | None = None
    ignore_patterns: tuple[str, ...] = ()
    max_results: int | None = DEFAULT_MAX_RESULTS
    max_files: int | None = None
    context_lines: int = DEFAULT_CONTEXT_LINES
    whole_file_threshold: float = DEFAULT_WHOLE_FILE_THRESHOLD
    k1: float = DEFAULT_BM25_K1
    b: float = DEFAULT_BM25_B
    bm25_weight: float = DEFAULT_BM25_WEIGHT
    filename_boost: float = DEFAULT_FILENAME_BOOST
    debug: bool = False
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    max_blocks_per_file: int | None = DEFAULT_MAX_BLOCKS_PER_FILE
    workers: int = DEFAULT_WORKERS
    timeout: float | None = None
    respect_gitignore: bool = DEFAULT_RESPECT_GITIGNORE
    stopwords: frozenset[str] | None = field(default=None, repr=False)

    def __post_init__(self):
        # Accept plain strings and lists from callers and CLIs.
        object.__setattr__(self, "mode", MatchMode(self.mode))
        if self.extensions is not None:
            object.__setattr__(self, "extensions", normalize_extensions(self.extensions))
        object.__setattr__(self, "ignore_patterns", tuple(self.ignore_patterns))
        if self.stopwords is not None:
            object.__setattr__(self, "stopwords", frozenset(w.lower() for w in self.stopwords))

        if self.context_lines < 0:
            raise ValueError(f"context_lines must be >= 0, got {self.context_lines}")
        if not 0.0 < self.whole_file_threshold <= 1.0:
            raise ValueError(
                f"whole_file_threshold must be in (0, 1], got {self.whole_file_threshold}"
            )
        if self.k1 < 0:
            raise ValueError(f"k1 must be >= 0, got {self.k1}")
        if not 0.0 <= self.b <= 1.0:
            raise ValueError(f"b must be in [0, 1], got {self.b}")
        if not 0.0 <= self.bm25_weight <= 1.0:
            raise ValueError(f"bm25_weight must be in [0, 1], got {self.bm25_weight}")
        if self.filename_boost < 0:
            raise ValueError(f"filename_boost must be >= 0, got {self.filename_boost}")
        if self.workers < 1:
            raise ValueError(f"workers must be >= 1, got {self.workers}")
        for name in ("max_results", "max_files", "max_blocks_per_file"):
            value = getattr(self, name)
            if value is not None and value < 1:
                raise ValueError(f"{name} must be >= 1 or None, got {value}")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError(f"timeout must be > 0 or None, got {self.timeout}")

    def replace(self, **changes) -> "SearchOptions":
        """Copy with some fields changed."""
        return dataclasses.replace(self, **changes)


def normalize_extensions(extensions) -> frozenset[str]:
    """'py', '.PY' and '*.py' all become '.py'."""
    normalized = set()
    for ext in extensions:
        ext = ext.strip().lower().lstrip("*")
        if not ext:
            continue
        normalized.add(ext if ext.startswith(".") else f".{ext}")
    return frozenset(normalized)
