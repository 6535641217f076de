"""
Deduplication service - entry point used by the case controllers.

Coordinates candidate search, scoring, decision recording and history
reads. Each call opens its own session; there is no state shared between
calls.

Deduplication is advisory: two case-creation flows that search at the same
time can both see no duplicate and both choose CREATE_NEW. Closing that gap
needs a uniqueness constraint or lock on normalized identity fields, which
this service deliberately does not impose.
"""

from typing import Any, Dict, Iterable, List, Optional, Union

from sqlalchemy.orm import sessionmaker

from .candidates import search
from .clusters import find_duplicate_clusters
from .config import Settings, get_settings
from .database import get_session_factory
from .errors import DeduplicationError, InvalidDecisionError
from .history import history
from .logger import get_logger
from .models import (
    AuditEntry,
    DeduplicationCriteria,
    DeduplicationDecision,
    DeduplicationResult,
    ScoredMatch,
)
from .recorder import record
from .schema import describe_criteria, parse_criteria, parse_decision
from .scoring import score

logger = get_logger()


class DeduplicationService:
    """Service layer for duplicate-case detection and decision audit"""

    def __init__(self, session_factory: sessionmaker, settings: Optional[Settings] = None):
        self.session_factory = session_factory
        self.settings = settings or get_settings()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "DeduplicationService":
        settings = settings or get_settings()
        return cls(get_session_factory(settings.database_url), settings)

    def search_duplicates(
        self,
        criteria: Union[DeduplicationCriteria, Dict[str, Any]],
    ) -> DeduplicationResult:
        """
        Search for potential duplicate cases and rank them.

        Raises:
            InvalidCriteriaError: No usable field (no query is executed)
            SearchFailedError: Store failure
        """
        try:
            criteria = parse_criteria(criteria)
            logger.info("Starting deduplication search", **describe_criteria(criteria))

            with self.session_factory() as session:
                candidates = search(session, criteria, limit=self.settings.candidate_limit)
            matches = score(criteria, candidates)
        except DeduplicationError as e:
            logger.record_error(e.code)
            raise

        logger.record_search(len(matches))
        logger.info(
            "Deduplication search completed",
            total_matches=len(matches),
            top_score=matches[0].score if matches else None,
        )
        return DeduplicationResult(matches=matches, criteria=criteria, total_matches=len(matches))

    def record_decision(
        self,
        decision: Union[DeduplicationDecision, Dict[str, Any]],
        matches: Iterable[Union[ScoredMatch, Dict[str, Any]]],
        criteria: Union[DeduplicationCriteria, Dict[str, Any]],
        performed_by: str,
    ) -> AuditEntry:
        """
        Record a decision against the candidates that were shown for it.

        Raises:
            InvalidDecisionError, MissingRationaleError, InvalidSelectionError:
                Rejected before any write
            RecordFailedError: Nothing written
            PartialFailureError: Audit written but case not stamped; reconcile manually
        """
        try:
            decision = parse_decision(decision)
            shown = self._parse_matches(matches)
            criteria = parse_criteria(criteria)

            with self.session_factory() as session:
                entry = record(
                    session,
                    decision,
                    shown,
                    criteria,
                    performed_by,
                    atomic=self.settings.atomic_decisions,
                )
        except DeduplicationError as e:
            logger.record_error(e.code)
            raise

        logger.record_decision(decision.decision.value)
        return entry

    def get_history(self, case_id: str) -> List[AuditEntry]:
        try:
            with self.session_factory() as session:
                return history(session, case_id)
        except DeduplicationError as e:
            logger.record_error(e.code)
            raise

    def get_duplicate_clusters(self, page: int = 1, limit: int = 20) -> Dict[str, Any]:
        try:
            with self.session_factory() as session:
                return find_duplicate_clusters(session, page=page, limit=limit)
        except DeduplicationError as e:
            logger.record_error(e.code)
            raise

    @staticmethod
    def _parse_matches(matches) -> List[ScoredMatch]:
        parsed = []
        for match in matches or []:
            if isinstance(match, ScoredMatch):
                parsed.append(match)
                continue
            try:
                parsed.append(ScoredMatch.model_validate(match))
            except ValueError as e:
                raise InvalidDecisionError("Candidate list contains a malformed match") from e
        return parsed
