"""Tokenization and near matching shared by search and autocomplete."""

import re
from typing import Iterable, List

from rapidfuzz.distance import Levenshtein

# Everything except word characters and the joiners kept inside tags
# like "r&b", "hip-hop" or "rock'n'roll"
_SEPARATORS = re.compile(r"[^\w&'\-+]+")

MIN_TOKEN_LENGTH = 2
MAX_QUERY_TOKENS = 10


def tokenize(text: str) -> List[str]:
    """Lowercase `text` and split it into tokens of at least two characters."""
    if not text:
        return []
    return [
        token for token in _SEPARATORS.split(text.lower())
        if len(token) >= MIN_TOKEN_LENGTH
    ]


def query_tokens(query: str) -> List[str]:
    """Distinct tokens of a search query, first occurrence first, capped at ten."""
    tokens: List[str] = []
    for token in tokenize(query):
        if token not in tokens:
            tokens.append(token)
        if len(tokens) == MAX_QUERY_TOKENS:
            break
    return tokens


def field_tokens(values: Iterable[str]) -> set:
    """Token set over one or more field values."""
    tokens = set()
    for value in values:
        tokens.update(tokenize(value))
    return tokens


# Relevance credited to a query token that only nearly matches a field
FUZZY_MATCH_WEIGHT = 0.7
PARTIAL_MATCH_WEIGHT = 0.4

MIN_PARTIAL_LENGTH = 3
MAX_FUZZY_LENGTH_GAP = 2


def is_fuzzy_match(term: str, token: str, threshold: float) -> bool:
    """Edit-distance similarity of two tokens of comparable length."""
    if abs(len(term) - len(token)) > MAX_FUZZY_LENGTH_GAP:
        return False
    return Levenshtein.normalized_similarity(term, token) >= threshold


def is_partial_match(term: str, token: str) -> bool:
    """A field token that starts with the (at least three character) query term."""
    return len(term) >= MIN_PARTIAL_LENGTH and token.startswith(term)


def near_match_weight(term: str, tokens: Iterable[str], threshold: float) -> float:
    """
    Best near-match weight of `term` against a token set.

    Fuzzy matches outrank partial ones; exact matches are scored elsewhere
    and never reach this function.
    """
    best = 0.0
    for token in tokens:
        if is_fuzzy_match(term, token, threshold):
            return FUZZY_MATCH_WEIGHT
        if is_partial_match(term, token):
            best = PARTIAL_MATCH_WEIGHT
    return best
