"""
Duplicate cluster report.

Groups stored cases that share an exact identity key so an administrator
can review likely duplicates. Read-only; it never decides or merges.
"""

import math
from typing import Any, Dict, List

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .database import Case
from .errors import SearchFailedError
from .logger import get_logger

logger = get_logger()


def _group_key():
    # First non-null identity column wins, strongest identifier first
    return func.coalesce(
        Case.national_id,
        Case.secondary_national_id,
        Case.phone,
        Case.bank_account_number,
    )


def _member(case: Case) -> Dict[str, Any]:
    return {
        "id": case.id,
        "caseReference": case.case_number,
        "name": case.applicant_name,
        "status": case.status,
        "createdAt": case.created_at.isoformat() if case.created_at else None,
        "nationalId": case.national_id,
        "secondaryNationalId": case.secondary_national_id,
        "phone": case.phone,
        "bankAccountNumber": case.bank_account_number,
    }


def find_duplicate_clusters(session: Session, page: int = 1, limit: int = 20) -> Dict[str, Any]:
    """
    Return groups of cases sharing an identity key, largest group first.

    Args:
        session: Open SQLAlchemy session
        page: 1-based page number
        limit: Groups per page

    Returns:
        Dict with ``clusters`` and ``pagination`` keys
    """
    if page < 1 or limit < 1:
        raise ValueError("page and limit must be positive")

    group_key = _group_key().label("group_key")
    case_count = func.count(Case.id).label("case_count")

    try:
        groups_query = (
            session.query(group_key, case_count)
            .filter(_group_key().isnot(None))
            .group_by(_group_key())
            .having(func.count(Case.id) > 1)
        )
        total = groups_query.count()
        groups = (
            groups_query
            .order_by(case_count.desc(), group_key)
            .limit(limit)
            .offset((page - 1) * limit)
            .all()
        )

        clusters: List[Dict[str, Any]] = []
        for key, count in groups:
            members = (
                session.query(Case)
                .filter(_group_key() == key)
                .order_by(Case.created_at.desc(), Case.id)
                .all()
            )
            clusters.append({
                "groupKey": key,
                "caseCount": count,
                "cases": [_member(c) for c in members],
            })
    except SQLAlchemyError as e:
        logger.error("Failed to fetch duplicate clusters", error=str(e))
        raise SearchFailedError("Failed to fetch duplicate clusters") from e

    return {
        "clusters": clusters,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": math.ceil(total / limit),
        },
    }
