"""
Lexical similarity for fuzzy product matching.

similarity(text, query):
    1.0                                   if the case-folded query is a substring of the text
    max(0, 1 - distance / longest_length) otherwise, with Levenshtein distance
                                          (insert, delete and substitute each cost 1)

Only case-folding is applied; accents and diacritics are compared as-is.
"""
from rapidfuzz.distance import Levenshtein


def levenshtein_distance(first: str, second: str) -> int:
    """Classic unit-cost edit distance."""
    return Levenshtein.distance(first, second)


def similarity(text: str, query: str) -> float:
    """Normalized similarity of ``query`` against ``text`` in [0, 1]."""
    text_folded = (text or "").casefold()
    query_folded = (query or "").casefold()

    if not text_folded and not query_folded:
        return 1.0

    # An empty query is not treated as a substring match
    if query_folded and query_folded in text_folded:
        return 1.0

    distance = levenshtein_distance(text_folded, query_folded)
    max_length = max(len(text_folded), len(query_folded))

    return max(0.0, 1.0 - distance / max_length)
