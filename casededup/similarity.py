"""
Name Similarity.

Responsibilities:
- Normalize names for comparison.
- Compute a Levenshtein-based similarity in [0, 1].

Non-Responsibilities:
- No weighting logic.
- No threshold decisions beyond exposing the name threshold.
- No persistence.

Invariant:
similarity(a, b) == similarity(b, a), and identical inputs always give
identical outputs. No shared mutable state.
"""

from .normalize import normalize_name

# Candidate names must score strictly above this to count as fuzzy matches.
NAME_SIMILARITY_THRESHOLD = 0.6


def levenshtein_distance(a: str, b: str) -> int:
    """Edit distance with unit cost for insertion, deletion and substitution."""
    if a == b:
        return 0
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + cost,
            ))
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """
    Return the normalized edit-distance similarity of two names.

    Both names are lower-cased, trimmed and whitespace-collapsed first.
    Identical (including both empty) normalized names score exactly 1.0.
    """
    n1 = normalize_name(a or "")
    n2 = normalize_name(b or "")

    if n1 == n2:
        return 1.0

    max_length = max(len(n1), len(n2))
    return 1 - levenshtein_distance(n1, n2) / max_length


def is_similar_name(a: str, b: str) -> bool:
    return similarity(a, b) > NAME_SIMILARITY_THRESHOLD


def name_contains(candidate: str, query: str) -> bool:
    """
    Case-insensitive containment in either direction.

    True when the normalized candidate contains the query, or a non-empty
    candidate is contained in the query. Unicode case folding applies.
    """
    c = normalize_name(candidate or "").casefold()
    q = normalize_name(query or "").casefold()
    if not q:
        return False
    return q in c or (bool(c) and c in q)
