"""Duplicate-case detection and decision audit for case management."""

__version__ = "0.1.0"

from .errors import (  # noqa: E402
    DeduplicationError,
    HistoryReadError,
    InvalidCriteriaError,
    InvalidDecisionError,
    InvalidSelectionError,
    MissingRationaleError,
    PartialFailureError,
    RecordFailedError,
    SearchFailedError,
)
from .models import (  # noqa: E402
    AuditEntry,
    CandidateCase,
    DecisionType,
    DeduplicationCriteria,
    DeduplicationDecision,
    DeduplicationResult,
    ScoredMatch,
)
from .service import DeduplicationService  # noqa: E402
from .similarity import similarity  # noqa: E402

__all__ = [
    "__version__",
    "AuditEntry",
    "CandidateCase",
    "DecisionType",
    "DeduplicationCriteria",
    "DeduplicationDecision",
    "DeduplicationError",
    "DeduplicationResult",
    "DeduplicationService",
    "HistoryReadError",
    "InvalidCriteriaError",
    "InvalidDecisionError",
    "InvalidSelectionError",
    "MissingRationaleError",
    "PartialFailureError",
    "RecordFailedError",
    "ScoredMatch",
    "SearchFailedError",
    "similarity",
]
