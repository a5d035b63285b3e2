"""
blitz_hunt.py - The core. Fast in, fast out.

Bolt class with hunt(): terms -> patterns -> parallel per-file scan and
block extraction -> ranking. One task per file on a ThreadPoolExecutor;
every worker returns its own outcome and a single coordinator merges them,
so nothing is locked per match.
"""

from __future__ import annotations

import itertools
import logging
import os
import threading
import time
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from pathlib import Path

from .block_blast import extract_blocks
from .config import SearchOptions
from .errors import FileReadError, InvalidPath
from .file_sweep import iter_candidate_files, read_source, scan_file
from .grammars import GrammarRegistry, default_registry, language_for_path
from .ignore_rules import IgnoreRules
from .models import (
    CodeBlock,
    FileIssue,
    FileMatch,
    LanguageInfo,
    Pattern,
    Query,
    RankedResult,
    SearchDiagnostics,
    SearchResult,
)
from .pattern_forge import describe_patterns, generate_patterns
from .term_splinter import process_terms
from .thunder_rank import CorpusStats, corpus_stats, rank

logger = logging.getLogger(__name__)

# In-flight tasks per worker; bounds how much work a cancellation has to wait for
SUBMIT_AHEAD = 4


@dataclass
class _FileOutcome:
    """What one worker hands back for one file."""

    relative_path: str
    file_match: FileMatch | None = None
    blocks: list[CodeBlock] = field(default_factory=list)
    issues: list[FileIssue] = field(default_factory=list)


class Bolt:
    """
    Code-aware search over one root.

        Bolt("src/").hunt("user auth")
        Bolt(".", SearchOptions(mode="all")).hunt("parse config")
    """

    def __init__(
        self,
        root_path: str | Path,
        options: SearchOptions | None = None,
        registry: GrammarRegistry | None = None,
    ):
        self.root_path = Path(root_path)
        self.options = options or SearchOptions()
        self.registry = registry or default_registry()

    def _resolve_root(self) -> Path:
        root = self.root_path.expanduser()
        if not root.exists():
            raise InvalidPath(str(self.root_path), "does not exist")
        if not os.access(root, os.R_OK):
            raise InvalidPath(str(self.root_path), "is not readable")
        return root.resolve()

    def _prepare_query(self, query: str | Query) -> Query:
        if isinstance(query, Query):
            return query
        return process_terms(
            query,
            mode=self.options.mode,
            exact=self.options.exact,
            stopwords=self.options.stopwords,
        )

    def list_files(self) -> list[Path]:
        """Every file a search would consider, in scan order."""
        root = self._resolve_root()
        return list(self._candidates(root))

    def _candidates(self, root: Path):
        if root.is_file():
            return iter([root])
        ignore = IgnoreRules.from_root(
            root, self.options.ignore_patterns, self.options.respect_gitignore
        )
        return iter_candidate_files(
            root,
            extensions=self.options.extensions,
            ignore=ignore,
            max_file_size=self.options.max_file_size,
            respect_gitignore=self.options.respect_gitignore,
        )

    def _process_file(self, path: Path, base: Path, query: Query, patterns: tuple[Pattern, ...]) -> _FileOutcome:
        """Read, match and extract one file. Runs on a worker thread; never raises."""
        try:
            relative = path.relative_to(base).as_posix()
        except ValueError:
            relative = path.name

        try:
            return self._extract_file(path, base, relative, query, patterns)
        except Exception as e:
            logger.warning(f"Skipping {relative}: {type(e).__name__}: {e}")
            return _FileOutcome(relative, issues=[FileIssue(relative, "error", f"{type(e).__name__}: {e}")])

    def _extract_file(
        self,
        path: Path,
        base: Path,
        relative: str,
        query: Query,
        patterns: tuple[Pattern, ...],
    ) -> _FileOutcome:
        """Read, match and extract one file."""
        try:
            text = read_source(path)
        except FileReadError as e:
            logger.warning(f"Failed to read {relative}: {e.reason}")
            return _FileOutcome(relative, issues=[FileIssue(relative, e.kind, e.reason)])
        if text is None:
            return _FileOutcome(relative)

        language = language_for_path(path)
        file_match = scan_file(path, base, query, patterns, language.value, text=text)
        if file_match is None:
            return _FileOutcome(relative)

        blocks, parse_error = extract_blocks(
            file_match,
            text,
            self.registry.get(language),
            context_lines=self.options.context_lines,
            whole_file_threshold=self.options.whole_file_threshold,
            max_blocks=self.options.max_blocks_per_file,
        )
        issues = []
        if parse_error is not None:
            issues.append(FileIssue(relative, parse_error.kind, parse_error.reason))
        return _FileOutcome(relative, file_match, blocks, issues)

    def _stop_reason(self, matched: int, cancel: threading.Event | None, deadline: float | None) -> str | None:
        if cancel is not None and cancel.is_set():
            return "cancelled"
        if deadline is not None and time.perf_counter() >= deadline:
            return "timeout"
        if self.options.max_files and matched >= self.options.max_files:
            return f"max_files={self.options.max_files} reached"
        return None

    def _scatter(
        self,
        paths,
        base: Path,
        query: Query,
        patterns: tuple[Pattern, ...],
        cancel: threading.Event | None,
        deadline: float | None,
    ) -> tuple[list[_FileOutcome], bool]:
        """Run one task per file. Submission is bounded so a stop takes effect promptly."""
        outcomes: list[_FileOutcome] = []
        matched = 0
        truncated = False
        ahead = self.options.workers * SUBMIT_AHEAD

        with ThreadPoolExecutor(max_workers=self.options.workers) as executor:
            pending = set()
            while True:
                reason = self._stop_reason(matched, cancel, deadline)
                if reason:
                    logger.info(f"Stopping scan early: {reason}")
                    truncated = True
                    break
                for path in itertools.islice(paths, ahead - len(pending)):
                    pending.add(executor.submit(self._process_file, path, base, query, patterns))
                if not pending:
                    break
                done, pending = wait(pending, return_when=FIRST_COMPLETED)
                for future in done:
                    outcome = future.result()
                    outcomes.append(outcome)
                    if outcome.file_match is not None:
                        matched += 1

            for future in pending:
                future.cancel()
            # Tasks already running finish normally; their results are valid.
            for future in pending:
                if not future.cancelled():
                    outcomes.append(future.result())

        return outcomes, truncated

    def hunt(self, query: str | Query, *, cancel: threading.Event | None = None) -> SearchResult:
        """
        Run a search.

        Args:
            query: Raw query text, or an already processed Query
            cancel: Optional event; setting it stops the scan early

        Raises:
            EmptyQuery: the query has no usable terms
            InvalidPath: the root does not exist or cannot be read
            UnsupportedPattern: a term could not become a valid pattern
        """
        start = time.perf_counter()
        root = self._resolve_root()
        prepared = self._prepare_query(query)
        patterns = generate_patterns(prepared)
        base = root.parent if root.is_file() else root
        deadline = start + self.options.timeout if self.options.timeout else None

        outcomes, truncated = self._scatter(
            self._candidates(root), base, prepared, patterns, cancel, deadline
        )
        scan_ms = (time.perf_counter() - start) * 1000

        # Gather: arrival order -> path order, so ranking never depends on thread timing.
        outcomes.sort(key=lambda o: o.relative_path)
        matched = [o for o in outcomes if o.file_match is not None]
        if self.options.max_files and len(matched) > self.options.max_files:
            matched = matched[: self.options.max_files]
            truncated = True

        file_matches = {o.file_match.relative_path: o.file_match for o in matched}
        blocks = [b for o in matched for b in o.blocks]
        warnings = [issue for o in outcomes for issue in o.issues]
        logger.info(
            f"Scan: {len(outcomes)} files, {len(file_matches)} matched, "
            f"{len(blocks)} blocks in {scan_ms:.0f}ms"
        )

        stats = corpus_stats(blocks, file_matches, prepared)
        ranked = rank(
            blocks,
            file_matches,
            prepared,
            k1=self.options.k1,
            b=self.options.b,
            bm25_weight=self.options.bm25_weight,
            filename_boost=self.options.filename_boost,
            stats=stats,
        )
        debug = None
        if self.options.debug:
            debug = build_diagnostics(patterns, file_matches, stats, ranked)
        if self.options.max_results:
            ranked = ranked[: self.options.max_results]

        elapsed_ms = (time.perf_counter() - start) * 1000
        return SearchResult(
            query=prepared,
            results=ranked,
            files_scanned=len(outcomes),
            files_matched=len(file_matches),
            search_time_ms=elapsed_ms,
            warnings=warnings,
            truncated=truncated,
            debug=debug,
        )


def build_diagnostics(
    patterns: tuple[Pattern, ...],
    file_matches: dict[str, FileMatch],
    stats: CorpusStats,
    ranked: list[RankedResult],
) -> SearchDiagnostics:
    """Pattern list, per-term totals and per-file raw scores for debug callers."""
    term_totals: dict[str, int] = {}
    for fm in file_matches.values():
        for key, count in fm.term_counts.items():
            term_totals[key] = term_totals.get(key, 0) + count

    file_scores: dict[str, dict[str, float]] = {}
    for result in ranked:
        scores = file_scores.setdefault(
            result.block.relative_path, {"bm25": 0.0, "tfidf": 0.0, "best_score": 0.0}
        )
        scores["bm25"] += result.bm25
        scores["tfidf"] += result.tfidf
        scores["best_score"] = max(scores["best_score"], result.score)

    return SearchDiagnostics(
        patterns=describe_patterns(patterns),
        term_totals=term_totals,
        document_frequencies=dict(stats.document_frequencies),
        average_length=stats.average_length,
        file_scores=file_scores,
    )


def search(
    query: str | Query,
    root_path: str | Path,
    options: SearchOptions | None = None,
    *,
    cancel: threading.Event | None = None,
) -> SearchResult:
    """Run a search, get ranked results. See Bolt.hunt()."""
    return Bolt(root_path, options).hunt(query, cancel=cancel)


def describe_languages() -> list[LanguageInfo]:
    """Supported languages, their extensions, and whether a grammar backs them."""
    return default_registry().describe()
