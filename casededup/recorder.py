"""
Decision Recorder.

Responsibilities:
- Validate a decision against the candidates that were shown for it.
- Append one audit entry holding snapshots of the criteria and candidates.
- Stamp the subject case with the decision.

Non-Responsibilities:
- No notifications or cache invalidation.
- No retries.
- No merging of case data.

Invariant:
Exactly one audit entry per successful call. Snapshots are written as
given and never re-derived from current case data.
"""

import json
from datetime import datetime
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .database import Case, DeduplicationAudit
from .errors import (
    InvalidDecisionError,
    InvalidSelectionError,
    MissingRationaleError,
    PartialFailureError,
    RecordFailedError,
)
from .history import to_audit_entry
from .logger import get_logger
from .models import AuditEntry, DeduplicationCriteria, DeduplicationDecision, ScoredMatch

logger = get_logger()


def validate_decision(decision: DeduplicationDecision, matches: List[ScoredMatch]) -> None:
    """
    Raises:
        MissingRationaleError: If the rationale is blank
        InvalidSelectionError: If a selection is required but missing or not shown
    """
    if not decision.rationale or not decision.rationale.strip():
        raise MissingRationaleError("A rationale is required for every deduplication decision")

    if decision.decision.requires_selection:
        selected = decision.selected_existing_case_id
        if not selected:
            raise InvalidSelectionError(
                f"{decision.decision.value} requires selectedExistingCaseId"
            )
        if selected not in {m.id for m in matches}:
            raise InvalidSelectionError(
                f"Selected case {selected} was not among the candidates shown"
            )


def _build_audit(
    decision: DeduplicationDecision,
    matches: List[ScoredMatch],
    criteria: DeduplicationCriteria,
    performed_by: str,
) -> DeduplicationAudit:
    return DeduplicationAudit(
        case_id=decision.case_id,
        search_criteria_snapshot=json.dumps(criteria.to_snapshot()),
        candidates_snapshot=json.dumps([m.to_dict() for m in matches]),
        decision=decision.decision.value,
        rationale=decision.rationale.strip(),
        performed_by=performed_by,
        performed_at=datetime.now(),
    )


def _stamp_case(session: Session, decision: DeduplicationDecision) -> int:
    """Returns the number of case rows updated (0 when the case is missing)."""
    return (
        session.query(Case)
        .filter(Case.id == decision.case_id)
        .update(
            {
                Case.deduplication_checked: True,
                Case.deduplication_decision: decision.decision.value,
                Case.deduplication_rationale: decision.rationale.strip(),
                Case.updated_at: datetime.now(),
            },
            synchronize_session=False,
        )
    )


def _record_atomic(session: Session, audit: DeduplicationAudit, decision: DeduplicationDecision) -> AuditEntry:
    try:
        session.add(audit)
        session.flush()
        entry = to_audit_entry(audit)
        if _stamp_case(session, decision) == 0:
            session.rollback()
            raise RecordFailedError(f"Case {decision.case_id} not found; nothing recorded")
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        raise RecordFailedError("Failed to record deduplication decision") from e
    return entry


def _record_two_step(session: Session, audit: DeduplicationAudit, decision: DeduplicationDecision) -> AuditEntry:
    # Entry is built before commit; committed attributes are expired and not re-read
    try:
        session.add(audit)
        session.flush()
        entry = to_audit_entry(audit)
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        raise RecordFailedError("Failed to write deduplication audit entry") from e

    audit_id = entry.id
    try:
        updated = _stamp_case(session, decision)
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        raise PartialFailureError(
            f"Audit entry {audit_id} written but case {decision.case_id} was not stamped",
            audit_id=audit_id,
        ) from e

    if updated == 0:
        raise PartialFailureError(
            f"Audit entry {audit_id} written but case {decision.case_id} was not found",
            audit_id=audit_id,
        )
    return entry


def record(
    session: Session,
    decision: DeduplicationDecision,
    matches: List[ScoredMatch],
    criteria: DeduplicationCriteria,
    performed_by: str,
    atomic: bool = True,
) -> AuditEntry:
    """
    Persist a decision with its evidence and stamp the subject case.

    Args:
        session: Open SQLAlchemy session
        decision: The operator's decision
        matches: Candidates exactly as shown to the decision-maker
        criteria: Criteria that produced ``matches``
        performed_by: Actor identifier
        atomic: Write audit entry and case stamp in one transaction. When
            False the audit entry is committed first and a failed stamp
            raises PartialFailureError.

    Returns:
        The stored audit entry

    Raises:
        MissingRationaleError, InvalidSelectionError: Before anything is written
        RecordFailedError: Nothing was written
        PartialFailureError: Audit written, case not stamped; do not retry
    """
    if not performed_by or not str(performed_by).strip():
        raise InvalidDecisionError("performedBy is required")
    validate_decision(decision, matches)

    audit = _build_audit(decision, matches, criteria, str(performed_by).strip())

    try:
        if atomic:
            entry = _record_atomic(session, audit, decision)
        else:
            entry = _record_two_step(session, audit, decision)
    except (RecordFailedError, PartialFailureError) as e:
        logger.error(
            "Failed to record deduplication decision",
            code=e.code,
            decision=decision.decision.value,
            atomic=atomic,
        )
        raise

    logger.info(
        "Deduplication decision recorded",
        audit_id=entry.id,
        decision=decision.decision.value,
        candidates_shown=len(matches),
    )
    return entry
