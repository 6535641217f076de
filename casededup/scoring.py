"""
Match Scoring and Ranking.

Responsibilities:
- Decide, per candidate, which supplied criteria fields matched.
- Sum the static field weights into a confidence score.
- Rank candidates by score, then recency.

Non-Responsibilities:
- No database access.
- No candidate selection.
- No same-person decisions.

Invariant:
Given identical inputs, this module must always return the same
matched fields, scores and order. Candidates are never dropped.
"""

import math
from typing import Callable, List, NamedTuple, Optional

from .models import CandidateCase, DeduplicationCriteria, ScoredMatch
from .normalize import normalize_email, normalize_national_id
from .similarity import NAME_SIMILARITY_THRESHOLD, similarity

NAME_WEIGHT = 60


class MatchRule(NamedTuple):
    label: str  # entry appended to matched_fields
    attribute: str  # same attribute name on criteria and candidate
    weight: int
    matches: Callable[[str, str], bool]


def _exact(expected: str, actual: str) -> bool:
    return expected == actual


def _national_id(expected: str, actual: str) -> bool:
    return normalize_national_id(expected) == normalize_national_id(actual)


def _email(expected: str, actual: str) -> bool:
    return normalize_email(expected) == normalize_email(actual)


# Evaluation order is the order labels appear in matched_fields.
MATCH_RULES = (
    MatchRule("nationalId", "national_id", 100, _national_id),
    MatchRule("secondaryNationalId", "secondary_national_id", 100, _exact),
    MatchRule("phone", "phone", 80, _exact),
    MatchRule("email", "email", 70, _email),
    MatchRule("bankAccountNumber", "bank_account_number", 90, _exact),
)

FIELD_WEIGHTS = {rule.label: rule.weight for rule in MATCH_RULES}
FIELD_WEIGHTS["name"] = NAME_WEIGHT


def name_weight(query: Optional[str], candidate: Optional[str]) -> int:
    """Weight contributed by a fuzzy name match, 0 when at or below threshold."""
    if not query or candidate is None:
        return 0
    value = similarity(query, candidate)
    if value <= NAME_SIMILARITY_THRESHOLD:
        return 0
    return math.floor(value * NAME_WEIGHT)


def score_candidate(criteria: DeduplicationCriteria, candidate: CandidateCase) -> ScoredMatch:
    matched_fields: List[str] = []
    total = 0

    for rule in MATCH_RULES:
        expected = getattr(criteria, rule.attribute)
        actual = getattr(candidate, rule.attribute)
        if expected is None or actual is None:
            continue
        if rule.matches(expected, actual):
            matched_fields.append(rule.label)
            total += rule.weight

    weight = name_weight(criteria.name, candidate.name)
    if weight:
        matched_fields.append("name")
        total += weight

    return ScoredMatch(
        **candidate.model_dump(exclude={"matched_fields", "score"}),
        matched_fields=matched_fields,
        score=total,
    )


def rank(matches: List[ScoredMatch]) -> List[ScoredMatch]:
    """Sort by score desc, then created_at desc; equal pairs keep input order."""
    return sorted(matches, key=lambda m: (m.score, m.created_at), reverse=True)


def score(criteria: DeduplicationCriteria, candidates: List[CandidateCase]) -> List[ScoredMatch]:
    """
    Score every candidate against the criteria and return them ranked.

    Args:
        criteria: The search criteria that produced the candidates
        candidates: Candidate cases in search order

    Returns:
        One ScoredMatch per candidate, highest score first
    """
    return rank([score_candidate(criteria, c) for c in candidates])
