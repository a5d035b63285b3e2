"""
thunder_rank.py - TF-IDF + BM25 ranking of extracted blocks.

Documents are the extracted blocks; the population for IDF is the set of
matched files. Both raw scores are normalized against the best candidate,
blended with a fixed weight, and topped up with a file-name boost:

    score = w * bm25/max(bm25) + (1 - w) * tfidf/max(tfidf)
            + filename_boost * (query terms in file name / query terms)
"""

from __future__ import annotations

import bisect
import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from .file_sweep import token_count
from .models import CodeBlock, FileMatch, Query, RankedResult, TermStat

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CorpusStats:
    """Population-level numbers shared by every document."""

    documents: int
    document_frequencies: dict[str, int]
    average_length: float


def idf_bm25(df: int, n: int) -> float:
    """ln(1 + (N - df + 0.5) / (df + 0.5)). Zero for absent terms, otherwise positive."""
    if df <= 0 or n <= 0:
        return 0.0
    return math.log(1.0 + (n - df + 0.5) / (df + 0.5))


def idf_tfidf(df: int, n: int) -> float:
    """Smoothed ln((1 + N) / (1 + df)) + 1. Zero for absent terms, otherwise >= 1."""
    if df <= 0 or n <= 0:
        return 0.0
    return math.log((1.0 + n) / (1.0 + df)) + 1.0


def document_frequencies(file_matches: Iterable[FileMatch], keys: Iterable[str]) -> dict[str, int]:
    """Term key -> number of files whose content hits it."""
    keys = list(keys)
    df = {key: 0 for key in keys}
    for fm in file_matches:
        for key in keys:
            if fm.term_lines.get(key):
                df[key] += 1
    return df


def average_length(lengths: Iterable[int]) -> float:
    """Mean over non-zero lengths; 0.0 when every document is empty."""
    non_empty = [n for n in lengths if n > 0]
    if not non_empty:
        return 0.0
    return sum(non_empty) / len(non_empty)


def block_term_frequencies(block: CodeBlock, file_match: FileMatch, keys: Iterable[str]) -> dict[str, int]:
    """Occurrences of each term whose line falls inside the block."""
    tf = {}
    for key in keys:
        lines = file_match.term_lines.get(key, ())
        lo = bisect.bisect_left(lines, block.start_line)
        hi = bisect.bisect_right(lines, block.end_line)
        tf[key] = hi - lo
    return tf


def bm25_term(tf: int, idf: float, length: int, avg_length: float, k1: float, b: float) -> float:
    if tf <= 0 or idf <= 0:
        return 0.0
    if length > 0 and avg_length > 0:
        norm = 1.0 - b + b * (length / avg_length)
    else:
        norm = 1.0  # empty documents skip length normalization
    return idf * (tf * (k1 + 1.0)) / (tf + k1 * norm)


def tfidf_term(tf: int, idf: float) -> float:
    if tf <= 0 or idf <= 0:
        return 0.0
    return (1.0 + math.log(tf)) * idf


def filename_fraction(file_match: FileMatch, query: Query) -> float:
    """Share of query terms that appear in the file name."""
    if not query.terms:
        return 0.0
    found = sum(1 for key in query.term_keys if file_match.filename_hits.get(key))
    return found / len(query.terms)


def corpus_stats(blocks: list[CodeBlock], file_matches: Mapping[str, FileMatch], query: Query) -> CorpusStats:
    return CorpusStats(
        documents=len(file_matches),
        document_frequencies=document_frequencies(file_matches.values(), query.term_keys),
        average_length=average_length(token_count(b.text) for b in blocks),
    )


def sort_key(result: RankedResult) -> tuple:
    """Score descending, then path, then start line."""
    return (-result.score, result.block.relative_path, result.block.start_line)


def rank(
    blocks: list[CodeBlock],
    file_matches: Mapping[str, FileMatch],
    query: Query,
    *,
    k1: float = 1.2,
    b: float = 0.75,
    bm25_weight: float = 0.7,
    filename_boost: float = 0.3,
    stats: CorpusStats | None = None,
) -> list[RankedResult]:
    """
    Score and order blocks.

    Args:
        blocks: Every extracted block
        file_matches: relative path -> FileMatch the block came from
        query: The processed query
        k1, b: BM25 parameters
        bm25_weight: Share of BM25 in the blend; TF-IDF gets the rest
        filename_boost: Added on top, scaled by the share of terms in the file name
        stats: Precomputed corpus statistics (computed when omitted)

    Returns:
        RankedResults in final order.
    """
    if not blocks:
        return []

    stats = stats or corpus_stats(blocks, file_matches, query)
    keys = query.term_keys
    bm25_idf = {k: idf_bm25(stats.document_frequencies.get(k, 0), stats.documents) for k in keys}
    tfidf_idf = {k: idf_tfidf(stats.document_frequencies.get(k, 0), stats.documents) for k in keys}

    raw = []
    for block in blocks:
        fm = file_matches[block.relative_path]
        tf = block_term_frequencies(block, fm, keys)
        length = token_count(block.text)
        bm25 = sum(bm25_term(tf[k], bm25_idf[k], length, stats.average_length, k1, b) for k in keys)
        tfidf = sum(tfidf_term(tf[k], tfidf_idf[k]) for k in keys)
        term_stats = {k: TermStat(tf[k], tfidf_idf[k], bm25_idf[k]) for k in keys}
        raw.append((block, fm, bm25, tfidf, term_stats))

    max_bm25 = max(r[2] for r in raw)
    max_tfidf = max(r[3] for r in raw)

    results = []
    for block, fm, bm25, tfidf, term_stats in raw:
        norm_bm25 = bm25 / max_bm25 if max_bm25 > 0 else 0.0
        norm_tfidf = tfidf / max_tfidf if max_tfidf > 0 else 0.0
        boost = filename_boost * filename_fraction(fm, query)
        score = bm25_weight * norm_bm25 + (1.0 - bm25_weight) * norm_tfidf + boost
        results.append(
            RankedResult(
                block=block,
                score=score,
                bm25=bm25,
                tfidf=tfidf,
                filename_boost=boost,
                term_stats=term_stats,
            )
        )

    results.sort(key=sort_key)
    logger.debug(f"Ranked {len(results)} blocks from {stats.documents} files")
    return results
