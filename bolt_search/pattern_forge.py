"""
pattern_forge.py - Hammers terms into regexes.

Every term gets three boundary variants (word start, word end, anywhere) so
"auth" still lands inside userAuthenticate and auth_token. ALL-mode queries
with several terms also get combination patterns, so "user auth" finds
userAuth, user_auth and user-auth. Exact mode is one literal per term.

Patterns are deduplicated on expression text. Each one is checked against
the literal it came from before it leaves this module.
"""

from __future__ import annotations

import dataclasses
import logging
import re
from itertools import permutations

from .errors import UnsupportedPattern
from .models import BoundaryMode, MatchMode, Pattern, PatternKind, Query, Term

logger = logging.getLogger(__name__)

# Up to three separator characters between combined terms (userAuth, user_auth, user::auth)
COMBINATION_SEPARATOR = r"(?:[^\w\n]|_){0,3}"

# Only the first terms take part in combinations; n! grows fast
MAX_COMBINATION_TERMS = 4

# Start of a word: not preceded by a letter/digit, or a lower->Upper transition.
# `_` counts as a separator, so snake_case parts are word starts too.
WORD_START = r"(?:(?<![^\W_])|(?-i:(?<=[a-z])(?=[A-Z])))"
WORD_END = r"(?:(?![^\W_])|(?-i:(?<=[a-z])(?=[A-Z])))"


def _alternation(term: Term) -> str:
    """Escaped forms of a term, longest first."""
    escaped = [re.escape(form) for form in term.forms]
    if len(escaped) == 1:
        return escaped[0]
    return "(?:" + "|".join(escaped) + ")"


def _exact_expression(term: Term) -> str:
    """Literal, whole-term match. Guards only on edges that are word characters."""
    text = term.normalized
    expression = re.escape(text)
    if re.match(r"\w", text):
        expression = r"(?<!\w)" + expression
    if re.search(r"\w$", text):
        expression = expression + r"(?!\w)"
    return expression


def term_patterns(term: Term) -> list[Pattern]:
    """START / END / NONE variants for one term."""
    body = _alternation(term)
    return [
        Pattern(WORD_START + body, (term.key,), BoundaryMode.START),
        Pattern(body + WORD_END, (term.key,), BoundaryMode.END),
        Pattern(body, (term.key,), BoundaryMode.NONE),
    ]


def combination_patterns(terms: tuple[Term, ...]) -> list[Pattern]:
    """
    Identifier-combination patterns for multi-term queries.

    Every ordered pair of the first MAX_COMBINATION_TERMS terms, plus the
    whole sequence in query order when there are more than two.
    """
    pool = terms[:MAX_COMBINATION_TERMS]
    if len(pool) < 2:
        return []

    patterns = []
    for first, second in permutations(pool, 2):
        expression = _alternation(first) + COMBINATION_SEPARATOR + _alternation(second)
        patterns.append(
            Pattern(expression, (first.key, second.key), BoundaryMode.NONE, PatternKind.COMBINATION)
        )
    if len(pool) > 2:
        expression = COMBINATION_SEPARATOR.join(_alternation(t) for t in pool)
        patterns.append(
            Pattern(expression, tuple(t.key for t in pool), BoundaryMode.NONE, PatternKind.COMBINATION)
        )
    return patterns


def origin_literal(pattern: Pattern, terms_by_key: dict[str, Term]) -> str:
    """The text a pattern must be able to match: its term, or its terms joined."""
    return "".join(terms_by_key[key].normalized for key in pattern.terms)


def _compile(pattern: Pattern, literal: str) -> Pattern:
    flags = 0 if pattern.case_sensitive else re.IGNORECASE
    try:
        regex = re.compile(pattern.expression, flags)
    except re.error as e:
        raise UnsupportedPattern(pattern.expression, str(e)) from e
    if not regex.search(literal):
        raise UnsupportedPattern(pattern.expression, f"does not match its own term {literal!r}")
    return dataclasses.replace(pattern, regex=regex)


def dedupe(patterns: list[Pattern]) -> list[Pattern]:
    """Drop textually identical expressions, merging their origin terms. Order kept."""
    by_expression: dict[str, Pattern] = {}
    for pattern in patterns:
        existing = by_expression.get(pattern.expression)
        if existing is None:
            by_expression[pattern.expression] = pattern
            continue
        merged = existing.terms + tuple(k for k in pattern.terms if k not in existing.terms)
        by_expression[pattern.expression] = dataclasses.replace(existing, terms=merged)
    return list(by_expression.values())


def generate_patterns(query: Query) -> tuple[Pattern, ...]:
    """
    Build the compiled, deduplicated pattern collection for a query.

    Raises:
        UnsupportedPattern: if an expression fails to compile or cannot
            match the literal it was built from
    """
    candidates: list[Pattern] = []
    if query.exact:
        for term in query.terms:
            candidates.append(
                Pattern(_exact_expression(term), (term.key,), BoundaryMode.WHOLE, case_sensitive=True)
            )
    else:
        for term in query.terms:
            candidates.extend(term_patterns(term))
        if query.mode is MatchMode.ALL:
            candidates.extend(combination_patterns(query.terms))

    terms_by_key = {t.key: t for t in query.terms}
    patterns = tuple(
        _compile(p, origin_literal(p, terms_by_key)) for p in dedupe(candidates)
    )
    logger.debug(f"{len(patterns)} patterns from {len(query.terms)} terms")
    return patterns


def patterns_by_term(patterns: tuple[Pattern, ...]) -> dict[str, list[Pattern]]:
    """Term key -> TERM-kind patterns that originate from it."""
    grouped: dict[str, list[Pattern]] = {}
    for pattern in patterns:
        if pattern.kind is not PatternKind.TERM:
            continue
        for key in pattern.terms:
            grouped.setdefault(key, []).append(pattern)
    return grouped


def describe_patterns(patterns: tuple[Pattern, ...]) -> list[str]:
    """Human-readable expressions, for debug output."""
    return [
        f"{p.kind.value}:{p.boundary.value}:{p.expression}" for p in patterns
    ]
