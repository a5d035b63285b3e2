"""
term_splinter.py - Splits queries like lightning splits a tree.

Turns raw query text into an ordered set of Terms: identifiers are split on
case transitions and separators, stopwords are dropped, and every word is
stemmed with the Porter algorithm so "authenticating" and "authenticate"
meet at "authent".
"""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from functools import lru_cache

from nltk.stem.porter import PorterStemmer

from .errors import EmptyQuery
from .models import MatchMode, Query, Term

logger = logging.getLogger(__name__)

# English filler plus words that show up in questions about code
DEFAULT_STOPWORDS: frozenset[str] = frozenset(
    {
        "a", "an", "and", "are", "as", "at", "be", "been", "being", "but", "by",
        "can", "could", "did", "do", "does", "doing", "for", "from", "had", "has",
        "have", "having", "he", "her", "him", "his", "how", "i", "if", "in", "into",
        "is", "it", "its", "itself", "me", "my", "of", "on", "or", "our", "she",
        "should", "so", "than", "that", "the", "their", "them", "then", "there",
        "these", "they", "this", "those", "to", "up", "was", "we", "were", "what",
        "when", "where", "which", "who", "whom", "why", "will", "with", "would",
        "you", "your",
        # question filler
        "please", "implemented", "located",
    }
)

# "+word" marks a term the match mode cannot ignore
REQUIRED_PREFIX = "+"

# Unicode-aware: letters like "ï" or "é" stay inside their word
_SEPARATORS = re.compile(r"[\W_]+")


@lru_cache(maxsize=1)
def get_stemmer() -> PorterStemmer:
    """One stemmer per process, shared read-only by every caller."""
    return PorterStemmer()


def stem(word: str, stemmer=None) -> str:
    """Stem of a lower-cased word (Porter unless a stemmer is given). Digits pass through."""
    if not word or word.isdigit():
        return word
    return (stemmer or get_stemmer()).stem(word)


def _is_boundary(prev: str, cur: str, nxt: str) -> bool:
    if prev.isdigit() != cur.isdigit():
        return True
    if prev.islower() and cur.isupper():
        return True
    # last capital of an acronym starts the next word: HTTPServer -> HTTP|Server
    return prev.isupper() and cur.isupper() and nxt.islower()


def _camel_parts(part: str) -> list[str]:
    pieces = []
    start = 0
    for i in range(1, len(part)):
        nxt = part[i + 1] if i + 1 < len(part) else ""
        if _is_boundary(part[i - 1], part[i], nxt):
            pieces.append(part[start:i])
            start = i
    pieces.append(part[start:])
    return pieces


def split_identifier(name: str) -> list[str]:
    """
    Split an identifier into component words.

    Handles:
    - camelCase: getUserName -> [get, User, Name]
    - PascalCase: GetUserName -> [Get, User, Name]
    - snake_case: get_user_name -> [get, user, name]
    - kebab-case: get-user-name -> [get, user, name]
    - dot.notation: user.name.get -> [user, name, get]
    - SCREAMING_SNAKE: GET_USER_NAME -> [GET, USER, NAME]
    - acronyms: HTTPServer -> [HTTP, Server]
    - digit runs: parse2Json -> [parse, 2, Json]
    - non-ASCII letters: naïveParser -> [naïve, Parser]
    """
    result = []
    for part in _SEPARATORS.split(name):
        if part:
            result.extend(_camel_parts(part))
    return result


def _marked_tokens(raw: str, exact: bool) -> list[tuple[str, bool]]:
    """(token, forced) pairs; forced tokens came from a "+word" chunk."""
    marked = []
    for chunk in raw.split():
        forced = len(chunk) > len(REQUIRED_PREFIX) and chunk.startswith(REQUIRED_PREFIX)
        if forced:
            chunk = chunk[len(REQUIRED_PREFIX):]
        tokens = [chunk] if exact else split_identifier(chunk)
        marked.extend((token, forced) for token in tokens)
    return marked


def tokenize_query(raw: str, exact: bool = False) -> list[str]:
    """
    Raw query -> list of tokens, original case kept.

    Exact mode splits on whitespace only, so identifiers and punctuation
    survive untouched. A leading "+" is stripped in both modes.
    """
    return [token for token, _ in _marked_tokens(raw, exact)]


def _build_terms(
    marked: list[tuple[str, bool]],
    exact: bool,
    stopwords: frozenset[str],
    stemmer=None,
) -> tuple[list[Term], set[str]]:
    """Tokens -> Terms, first occurrence wins. Also returns the forced keys."""
    terms: list[Term] = []
    forced: set[str] = set()
    seen: set[str] = set()
    for token, required in marked:
        normalized = token if exact else token.lower()
        if required:
            forced.add(normalized)
        if normalized in seen:
            continue
        seen.add(normalized)
        terms.append(
            Term(
                text=token,
                normalized=normalized,
                stem=normalized if exact else stem(normalized, stemmer),
                is_stopword=not exact and normalized in stopwords,
            )
        )
    # "+the" keeps "the" even though it is a stopword
    terms = [replace(t, is_stopword=False) if t.key in forced else t for t in terms]
    return terms, forced


def drop_stopwords(terms: list[Term], raw: str = "") -> list[Term]:
    """Remove stopwords. Raises EmptyQuery when nothing is left."""
    kept = [t for t in terms if not t.is_stopword]
    if not kept:
        raise EmptyQuery(raw)
    return kept


def _classify(terms: list[Term], mode: MatchMode, forced: set[str]) -> tuple[Term, ...]:
    """
    Decide which terms the match mode counts.

    ANY with "+" terms: only those are required, the rest just add score.
    Otherwise every non-stopword term plus every "+" term is required, and a
    query of nothing but stopwords requires all of them.
    """
    if forced and mode is MatchMode.ANY:
        flags = [t.key in forced for t in terms]
    elif all(t.is_stopword for t in terms):
        flags = [True] * len(terms)
    else:
        flags = [t.key in forced or not t.is_stopword for t in terms]
    return tuple(replace(t, required=flag) for t, flag in zip(terms, flags))


def process_terms(
    raw: str,
    *,
    mode: MatchMode | str = MatchMode.ANY,
    exact: bool = False,
    stopwords: frozenset[str] | None = None,
    stemmer=None,
) -> Query:
    """
    Normalize raw query text into a Query.

    Args:
        raw: Query text as typed; "+word" makes word required
        mode: ANY (one required term is enough) or ALL (every required term must hit)
        exact: Keep tokens literal - no splitting, no stopwords, no stemming
        stopwords: Replacement stopword list (defaults to DEFAULT_STOPWORDS)
        stemmer: Anything with a stem(word) method (defaults to nltk's PorterStemmer)

    Raises:
        EmptyQuery: if the text has no alphanumeric token at all
    """
    mode = MatchMode(mode)
    stopwords = DEFAULT_STOPWORDS if stopwords is None else stopwords
    terms, forced = _build_terms(_marked_tokens(raw, exact), exact, stopwords, stemmer)
    if not terms:
        raise EmptyQuery(raw)

    if not exact:
        try:
            terms = drop_stopwords(terms, raw)
        except EmptyQuery:
            logger.debug(f"Only stopwords in {raw!r}, keeping unfiltered terms")

    query = Query(raw=raw, terms=_classify(terms, mode, forced), mode=mode, exact=exact)
    logger.debug(f"Terms: {[t.key for t in query.terms]} (mode={query.mode.value}, exact={exact})")
    return query
