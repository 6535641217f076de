"""
Candidate Search.

Responsibilities:
- Validate that the criteria carry at least one usable field.
- Build a disjunctive, parameterized predicate list from the present fields.
- Return a bounded, most-recent-first set of candidate cases.

Non-Responsibilities:
- No scoring.
- No ranking beyond recency.
- No writes.

Invariant:
A store failure is always raised, never reported as an empty result.
User-supplied values only ever reach the store as bound parameters.
"""

from typing import List

from pydantic import ValidationError
from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .config import DEFAULT_CANDIDATE_LIMIT
from .database import Case, Client
from .errors import InvalidCriteriaError, SearchFailedError
from .logger import get_logger
from .models import CandidateCase, DeduplicationCriteria
from .normalize import normalize_email
from .similarity import NAME_SIMILARITY_THRESHOLD

logger = get_logger()


def _normalized_national_id_column(column):
    return func.upper(func.replace(column, " ", ""))


def _name_predicate(name: str):
    # Both functions are registered on the connection by create_store_engine
    return or_(
        func.name_similarity(Case.applicant_name, name) > NAME_SIMILARITY_THRESHOLD,
        func.name_contains(Case.applicant_name, name) == 1,
    )


def build_predicates(criteria: DeduplicationCriteria) -> list:
    """
    Assemble one predicate per present criteria field.

    Returns:
        List of SQLAlchemy boolean expressions, to be OR-ed together
    """
    predicates = []

    if criteria.national_id:
        predicates.append(_normalized_national_id_column(Case.national_id) == criteria.national_id)

    if criteria.secondary_national_id:
        predicates.append(Case.secondary_national_id == criteria.secondary_national_id)

    if criteria.phone:
        predicates.append(Case.phone == criteria.phone)

    if criteria.email:
        predicates.append(func.email_key(Case.email) == normalize_email(criteria.email))

    if criteria.bank_account_number:
        predicates.append(Case.bank_account_number == criteria.bank_account_number)

    if criteria.name:
        predicates.append(_name_predicate(criteria.name))

    return predicates


def _to_candidate(case: Case, owner_name) -> CandidateCase:
    return CandidateCase(
        id=case.id,
        case_reference=case.case_number,
        name=case.applicant_name,
        national_id=case.national_id,
        secondary_national_id=case.secondary_national_id,
        phone=case.phone,
        email=case.email,
        bank_account_number=case.bank_account_number,
        status=case.status,
        created_at=case.created_at,
        owner_name=owner_name,
    )


def search(
    session: Session,
    criteria: DeduplicationCriteria,
    limit: int = DEFAULT_CANDIDATE_LIMIT,
) -> List[CandidateCase]:
    """
    Find stored cases matching any present criteria field.

    Args:
        session: Open SQLAlchemy session (only read from)
        criteria: Identity fields to search for
        limit: Maximum candidates returned, most recently created first

    Returns:
        Candidate cases in store order (created_at desc, id asc)

    Raises:
        InvalidCriteriaError: If no criteria field is present
        SearchFailedError: If the store query fails
    """
    if criteria is None or criteria.is_empty():
        raise InvalidCriteriaError("At least one search criterion must be provided")
    if limit <= 0:
        raise ValueError("limit must be positive")

    predicates = build_predicates(criteria)
    logger.debug(
        "Running candidate search",
        fields=criteria.present_fields(),
        limit=limit,
    )

    try:
        rows = (
            session.query(Case, Client.name)
            .outerjoin(Client, Case.client_id == Client.id)
            .filter(or_(*predicates))
            .order_by(Case.created_at.desc(), Case.id)
            .limit(limit)
            .all()
        )
        return [_to_candidate(case, owner_name) for case, owner_name in rows]
    except SQLAlchemyError as e:
        logger.error("Candidate search failed", error=str(e), fields=criteria.present_fields())
        raise SearchFailedError("Failed to perform deduplication search") from e
    except ValidationError as e:
        logger.error("Candidate row failed validation", error=str(e))
        raise SearchFailedError("Store returned a malformed case row") from e
