"""
Deduplication audit history.

Read-only access to the append-only audit table, newest decision first.
"""

import json
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .database import DeduplicationAudit
from .errors import HistoryReadError
from .logger import get_logger
from .models import AuditEntry

logger = get_logger()


def to_audit_entry(row: DeduplicationAudit) -> AuditEntry:
    """Convert a stored audit row, decoding both JSON snapshots."""
    return AuditEntry(
        id=row.id,
        case_id=row.case_id,
        search_criteria_snapshot=json.loads(row.search_criteria_snapshot),
        candidates_snapshot=json.loads(row.candidates_snapshot),
        decision=row.decision,
        rationale=row.rationale,
        performed_by=row.performed_by,
        performed_at=row.performed_at,
    )


def history(session: Session, case_id: str) -> List[AuditEntry]:
    """
    Return every recorded decision for a case, most recent first.

    A case that was never checked yields an empty list.

    Raises:
        HistoryReadError: If the store query fails or a row cannot be decoded
    """
    try:
        rows = (
            session.query(DeduplicationAudit)
            .filter(DeduplicationAudit.case_id == str(case_id))
            .order_by(DeduplicationAudit.performed_at.desc(), DeduplicationAudit.id.desc())
            .all()
        )
        return [to_audit_entry(row) for row in rows]
    except SQLAlchemyError as e:
        logger.error("Failed to fetch deduplication history", error=str(e))
        raise HistoryReadError("Failed to fetch deduplication history") from e
    except ValueError as e:
        # JSONDecodeError and pydantic ValidationError
        logger.error("Stored audit entry could not be decoded", error=str(e))
        raise HistoryReadError("Stored audit entry could not be decoded") from e
