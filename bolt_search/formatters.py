"""
formatters.py - Markdown + JSON output for Bolt results.
"""

from __future__ import annotations

from typing import Any

# Markdown fence info strings that differ from the language name
_FENCE = {"text": "", "bash": "sh", "csharp": "cs"}


def to_markdown(result) -> str:
    """Ranked excerpts as compact markdown with unit names and scores."""
    query = result.query
    lines = [
        "# BOLT SEARCH",
        f"**Query:** `{query.raw}` ({query.mode.value}{', exact' if query.exact else ''}) "
        f"| **{result.files_matched}/{result.files_scanned} files** "
        f"| **{len(result.results)} results** | {result.search_time_ms:.0f}ms",
        "",
    ]
    if result.truncated:
        lines.extend(["*Scan stopped early; results are partial.*", ""])

    if not result.results:
        lines.append("No matches.")

    for rank_no, hit in enumerate(result.results, start=1):
        block = hit.block
        lines.append(f"## {rank_no}. {block.relative_path}:{block.start_line}-{block.end_line}")
        meta = f"*{block.provenance.value}* | {block.line_count} lines | score {hit.score:.3f}"
        if block.unit_names:
            meta += " | " + ", ".join(f"**{name}**" for name in block.unit_names)
        lines.append(meta)
        lines.append("")
        lines.append(f"```{_FENCE.get(block.language, block.language)}")
        lines.append(block.text)
        lines.append("```")
        lines.append("")

    if result.warnings:
        lines.append("---")
        lines.append("**Warnings**")
        for issue in result.warnings:
            lines.append(f"- {issue.relative_path} ({issue.kind}): {issue.message}")
        lines.append("")

    return "\n".join(lines)


def to_json(result) -> dict[str, Any]:
    """JSON-serializable dict."""
    debug = result.debug is not None
    data: dict[str, Any] = {
        "query": result.query.raw,
        "mode": result.query.mode.value,
        "exact": result.query.exact,
        "terms": list(result.query.term_keys),
        "files_scanned": result.files_scanned,
        "files_matched": result.files_matched,
        "truncated": result.truncated,
        "search_time_ms": round(result.search_time_ms, 2),
        "results": [hit.to_dict(include_stats=debug) for hit in result.results],
        "warnings": [
            {"file": issue.relative_path, "kind": issue.kind, "message": issue.message}
            for issue in result.warnings
        ],
    }
    if debug:
        data["debug"] = result.debug.to_dict()
    return data
