"""
file_sweep.py - File discovery and pattern matching. Sweeps the tree, one file at a time.

Walks the search root (pruning vendored/build directories and anything the
ignore rules exclude), sniffs out binary files, and runs the pattern
collection against each file's content and, separately, its name.
"""

from __future__ import annotations

import bisect
import logging
import os
import re
from collections.abc import Iterator
from pathlib import Path

from .errors import FileReadError
from .ignore_rules import IGNORE_FILENAMES, IgnoreRules
from .models import FileMatch, MatchMode, Pattern, PatternHit, PatternKind, Query

logger = logging.getLogger(__name__)

# Directories to skip entirely during traversal
SKIP_DIRS: frozenset[str] = frozenset(
    {
        ".git", ".hg", ".svn",
        "__pycache__", ".pytest_cache", ".mypy_cache", ".ruff_cache", ".tox",
        "node_modules", ".venv", "venv", ".eggs",
        ".next", ".nuxt", ".svelte-kit", ".turbo",
        ".idea", ".vscode",
    }
)

# Suffix patterns for egg-info directories (checked via endswith)
SKIP_DIR_SUFFIXES: tuple[str, ...] = (".egg-info",)

# Bytes read when sniffing for binary content
BINARY_SNIFF_BYTES = 8192

WORD_RE = re.compile(r"\w+")


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------


def is_binary(data: bytes) -> bool:
    """Binary heuristic: a NUL byte in the first 8 KB."""
    return b"\x00" in data[:BINARY_SNIFF_BYTES]


def split_lines(text: str) -> list[str]:
    """Split on '\\n' only, so line numbers agree with offset_to_line. No trailing empty line."""
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line.rstrip("\r") for line in lines]


def line_starts(text: str) -> list[int]:
    """Character offset where each line begins."""
    starts = [0]
    for i, char in enumerate(text):
        if char == "\n":
            starts.append(i + 1)
    return starts


def offset_to_line(starts: list[int], offset: int) -> int:
    """1-based line number of a character offset."""
    return bisect.bisect_right(starts, offset)


def token_count(text: str) -> int:
    """Number of word tokens; the document length used for BM25."""
    return len(WORD_RE.findall(text))


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------


def _should_skip_dir(dirname: str) -> bool:
    """Return True if a directory should be excluded from traversal."""
    if dirname in SKIP_DIRS:
        return True
    for suffix in SKIP_DIR_SUFFIXES:
        if dirname.endswith(suffix):
            return True
    return False


def iter_candidate_files(
    root: Path,
    *,
    extensions: frozenset[str] | None = None,
    ignore: IgnoreRules | None = None,
    max_file_size: int | None = None,
    respect_gitignore: bool = True,
) -> Iterator[Path]:
    """
    Yield searchable files under root in a stable (sorted) order.

    Nested .gitignore files apply to their own subtree. Binary sniffing
    happens later, when the file is read.
    """
    root = root.resolve()
    rules_for: dict[str, IgnoreRules] = {"": ignore or IgnoreRules()}

    for dirpath, dirnames, filenames in os.walk(root):
        rel_dir = Path(dirpath).relative_to(root).as_posix()
        rel_dir = "" if rel_dir == "." else rel_dir
        rules = rules_for.pop(rel_dir, IgnoreRules())

        if respect_gitignore and rel_dir:
            for name in IGNORE_FILENAMES:
                if name in filenames:
                    rules = rules.extended(IgnoreRules.from_file(Path(dirpath) / name, base=rel_dir))

        # Prune unwanted directories in-place so os.walk won't descend.
        kept = []
        for d in sorted(dirnames):
            child = f"{rel_dir}/{d}" if rel_dir else d
            if _should_skip_dir(d) or rules.is_ignored(child, is_dir=True):
                logger.debug(f"Skipping directory {child}")
                continue
            kept.append(d)
            rules_for[child] = rules
        dirnames[:] = kept

        for filename in sorted(filenames):
            rel_path = f"{rel_dir}/{filename}" if rel_dir else filename
            file_path = Path(dirpath) / filename
            if extensions is not None and file_path.suffix.lower() not in extensions:
                continue
            if rules.is_ignored(rel_path):
                continue
            try:
                if not file_path.is_file():
                    continue
                if max_file_size is not None and file_path.stat().st_size > max_file_size:
                    logger.debug(f"Skipping {rel_path}: larger than {max_file_size} bytes")
                    continue
            except OSError:
                continue
            yield file_path


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------


def read_source(path: Path) -> str | None:
    """
    Read a file as UTF-8 text.

    Returns None for binary content.

    Raises:
        FileReadError: on OS errors or undecodable bytes
    """
    try:
        data = path.read_bytes()
    except OSError as e:
        raise FileReadError(str(path), e.strerror or str(e)) from e
    if is_binary(data):
        return None
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise FileReadError(str(path), f"not valid UTF-8 ({e.reason} at byte {e.start})") from e


def match_content(
    text: str,
    patterns: tuple[Pattern, ...],
    starts: list[int] | None = None,
) -> tuple[list[PatternHit], dict[str, tuple[int, ...]], int]:
    """
    Run every pattern over text.

    Returns (hits, term_lines, combination_hits). An occurrence found by
    several boundary variants of the same term counts once: occurrences
    are keyed on their start offset. Combination hits are reported apart
    and never add to per-term counts.
    """
    starts = starts if starts is not None else line_starts(text)
    term_offsets: dict[str, set[int]] = {}
    spans: dict[tuple[int, int, PatternKind], set[str]] = {}

    for pattern in patterns:
        for match in pattern.regex.finditer(text):
            if match.end() == match.start():
                continue
            span = (match.start(), match.end(), pattern.kind)
            spans.setdefault(span, set()).update(pattern.terms)
            if pattern.kind is PatternKind.TERM:
                for key in pattern.terms:
                    term_offsets.setdefault(key, set()).add(match.start())

    hits = [
        PatternHit(
            start=start,
            end=end,
            line=offset_to_line(starts, start),
            text=text[start:end],
            terms=tuple(sorted(keys)),
            kind=kind,
        )
        for (start, end, kind), keys in sorted(spans.items(), key=lambda item: item[0][:2])
    ]
    term_lines = {
        key: tuple(offset_to_line(starts, offset) for offset in sorted(offsets))
        for key, offsets in term_offsets.items()
    }
    combination_hits = len({(h.start, h.end) for h in hits if h.kind is PatternKind.COMBINATION})
    return hits, term_lines, combination_hits


def match_filename(name: str, patterns: tuple[Pattern, ...]) -> dict[str, int]:
    """Term key -> distinct occurrences in a file name."""
    offsets: dict[str, set[int]] = {}
    for pattern in patterns:
        if pattern.kind is not PatternKind.TERM:
            continue
        for match in pattern.regex.finditer(name):
            for key in pattern.terms:
                offsets.setdefault(key, set()).add(match.start())
    return {key: len(found) for key, found in offsets.items()}


def satisfies_mode(query: Query, term_lines: dict, filename_hits: dict[str, int]) -> bool:
    """ANY: one required term hit. ALL: every required term hit. Content or file name."""
    seen = {key for key, lines in term_lines.items() if lines}
    seen |= {key for key, count in filename_hits.items() if count}
    required = query.required_keys
    if query.mode is MatchMode.ALL:
        return required <= seen
    return bool(required & seen)


def scan_file(
    path: Path,
    root: Path,
    query: Query,
    patterns: tuple[Pattern, ...],
    language: str = "text",
    text: str | None = None,
) -> FileMatch | None:
    """
    Match one file. Returns None when the file is binary or fails the match mode.

    Raises:
        FileReadError: if the file cannot be read as text
    """
    if text is None:
        text = read_source(path)
        if text is None:
            logger.debug(f"Skipping binary file {path}")
            return None

    starts = line_starts(text)
    hits, term_lines, combination_hits = match_content(text, patterns, starts)
    filename_hits = match_filename(path.name, patterns)

    if not satisfies_mode(query, term_lines, filename_hits):
        return None

    try:
        relative = path.relative_to(root).as_posix()
    except ValueError:
        relative = path.name

    return FileMatch(
        path=str(path),
        relative_path=relative,
        language=language,
        hits=tuple(hits),
        term_lines=term_lines,
        filename_hits=filename_hits,
        total_lines=len(split_lines(text)),
        token_count=token_count(text),
        combination_hits=combination_hits,
    )
