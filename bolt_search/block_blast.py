"""
block_blast.py - Grammar-aware block extraction. Blasts matches out to their enclosing unit.

For each match the nearest enclosing function/method/class is found with
the file's grammar. Matches outside any unit, and files without a grammar
(or whose parse fails), get a line window instead. Overlapping results are
merged, and files that end up mostly covered come back whole.
"""

from __future__ import annotations

import logging

from .context_strike import (
    Span,
    exceeds_threshold,
    line_window,
    merge_spans,
    spans_to_blocks,
    whole_file_block,
)
from .errors import ParseError
from .file_sweep import line_starts, split_lines
from .grammars import Grammar
from .models import CodeBlock, FileMatch, Provenance

logger = logging.getLogger(__name__)


def unit_spans(
    file_match: FileMatch,
    source: str,
    lines: list[str],
    grammar: Grammar,
    tree,
    context_lines: int,
) -> list[Span]:
    """One span per match: its enclosing unit, or a line window when there is none."""
    starts = line_starts(source)
    total_lines = len(lines)
    spans = []
    for hit in file_match.hits:
        line = min(hit.line, total_lines)
        column = hit.start - starts[hit.line - 1]
        unit = grammar.enclosing_unit(tree, line, column, lines[line - 1])
        if unit is None:
            spans.append(line_window(line, context_lines, total_lines))
            continue
        spans.append(
            Span(
                start_line=max(1, unit.start_line),
                end_line=min(total_lines, unit.end_line),
                provenance=Provenance.AST,
                unit_names=[unit.label],
                match_lines=[line],
            )
        )
    return spans


def line_spans(file_match: FileMatch, total_lines: int, context_lines: int) -> list[Span]:
    """Line windows around every match line."""
    return [line_window(line, context_lines, total_lines) for line in file_match.match_lines]


def cap_spans(spans: list[Span], max_blocks: int) -> list[Span]:
    """Keep the spans with the most matches, back in line order."""
    if len(spans) <= max_blocks:
        return spans
    best = sorted(spans, key=lambda s: (-len(s.match_lines), s.start_line))[:max_blocks]
    return sorted(best, key=lambda s: s.start_line)


def extract_blocks(
    file_match: FileMatch,
    source: str,
    grammar: Grammar,
    *,
    context_lines: int = 5,
    whole_file_threshold: float = 0.8,
    max_blocks: int | None = None,
) -> tuple[list[CodeBlock], ParseError | None]:
    """
    Turn one FileMatch into CodeBlocks.

    Args:
        file_match: Scan result for the file
        source: The file's text (as scanned)
        grammar: Grammar for the file's language (may be NoGrammar)
        context_lines: Line radius for the heuristic fallback
        whole_file_threshold: Coverage ratio above which the whole file is returned
        max_blocks: Optional cap on blocks per file

    Returns:
        (blocks, parse_error). parse_error is set when the grammar failed
        and the file was downgraded to line windows.
    """
    lines = split_lines(source)
    if not lines:
        return [], None

    # File name matched, content did not: the file is the result.
    if not file_match.hits:
        return [whole_file_block(file_match, lines)], None

    parse_error = None
    spans = None
    if grammar.available:
        try:
            tree = grammar.parse(source, file_match.relative_path)
            spans = unit_spans(file_match, source, lines, grammar, tree, context_lines)
        except ParseError as e:
            logger.warning(f"{e}; falling back to line windows")
            parse_error = e

    if spans is None:
        spans = line_spans(file_match, len(lines), context_lines)

    merged = merge_spans(spans)
    if exceeds_threshold(merged, len(lines), whole_file_threshold):
        names = [name for span in merged for name in span.unit_names]
        logger.debug(f"{file_match.relative_path}: spans cover most of the file, returning it whole")
        return [whole_file_block(file_match, lines, names)], parse_error

    if max_blocks is not None:
        merged = cap_spans(merged, max_blocks)
    return spans_to_blocks(file_match, lines, merged), parse_error
