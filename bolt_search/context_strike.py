"""
context_strike.py - Context windows and span merging.

Strikes a window of context lines around each match when no grammar can
say where the enclosing function ends, merges overlapping spans into one,
and applies the whole-file rule: when the spans would cover most of the
file anyway, the file itself is the result.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .models import CodeBlock, FileMatch, Provenance


@dataclass
class Span:
    """A candidate line range, 1-based and inclusive. Mutable while merging."""

    start_line: int
    end_line: int
    provenance: Provenance
    unit_names: list[str] = field(default_factory=list)
    match_lines: list[int] = field(default_factory=list)

    @property
    def line_count(self) -> int:
        return self.end_line - self.start_line + 1


def line_window(line: int, radius: int, total_lines: int) -> Span:
    """`radius` lines above and below a match line, clipped to the file."""
    return Span(
        start_line=max(1, line - radius),
        end_line=min(total_lines, line + radius),
        provenance=Provenance.LINE,
        match_lines=[line],
    )


def _mergeable(current: Span, span: Span) -> bool:
    if span.start_line <= current.end_line:
        return True
    # Touching windows read as one excerpt; touching functions stay apart.
    both_windows = current.provenance is Provenance.LINE and span.provenance is Provenance.LINE
    return both_windows and span.start_line == current.end_line + 1


def merge_spans(spans: list[Span]) -> list[Span]:
    """
    Merge overlapping or nested spans (and touching line windows).

    A merged span that contains an AST unit stays ast-derived.
    """
    if not spans:
        return []

    ordered = sorted(spans, key=lambda s: (s.start_line, -s.end_line))
    merged = [_copy(ordered[0])]
    for span in ordered[1:]:
        current = merged[-1]
        if _mergeable(current, span):
            current.end_line = max(current.end_line, span.end_line)
            if span.provenance is Provenance.AST:
                current.provenance = Provenance.AST
            current.unit_names.extend(n for n in span.unit_names if n not in current.unit_names)
            current.match_lines = sorted(set(current.match_lines) | set(span.match_lines))
        else:
            merged.append(_copy(span))
    return merged


def _copy(span: Span) -> Span:
    return Span(
        span.start_line,
        span.end_line,
        span.provenance,
        list(span.unit_names),
        sorted(set(span.match_lines)),
    )


def covered_lines(spans: list[Span]) -> int:
    """Lines covered by the union of spans."""
    return sum(s.line_count for s in merge_spans(spans))


def exceeds_threshold(spans: list[Span], total_lines: int, threshold: float) -> bool:
    """The whole-file rule: strictly more than `threshold` of the lines covered."""
    if total_lines <= 0:
        return False
    return covered_lines(spans) / total_lines > threshold


def whole_file_block(file_match: FileMatch, lines: list[str], unit_names: list[str] | None = None) -> CodeBlock:
    return CodeBlock(
        path=file_match.path,
        relative_path=file_match.relative_path,
        start_line=1,
        end_line=len(lines),
        text="\n".join(lines),
        provenance=Provenance.WHOLE_FILE,
        language=file_match.language,
        unit_names=tuple(unit_names or ()),
        match_lines=tuple(file_match.match_lines),
    )


def spans_to_blocks(file_match: FileMatch, lines: list[str], spans: list[Span]) -> list[CodeBlock]:
    """Cut the source text for each span. Spans are clipped to the file."""
    blocks = []
    for span in spans:
        start = max(1, span.start_line)
        end = min(len(lines), span.end_line)
        if end < start:
            continue
        blocks.append(
            CodeBlock(
                path=file_match.path,
                relative_path=file_match.relative_path,
                start_line=start,
                end_line=end,
                text="\n".join(lines[start - 1:end]),
                provenance=span.provenance,
                language=file_match.language,
                unit_names=tuple(span.unit_names),
                match_lines=tuple(span.match_lines),
            )
        )
    return blocks
