"""
Tests for reading deduplication history.
"""

import json
from datetime import datetime

import pytest

from casededup.database import DeduplicationAudit
from casededup.errors import HistoryReadError
from casededup.history import history
from casededup.models import DecisionType


@pytest.fixture
def add_audit(db_session):
    """Insert an audit row directly, bypassing the recorder."""
    def _add(case_id="case-1", performed_at=datetime(2024, 5, 1, 12, 0, 0), **fields):
        values = {
            "case_id": case_id,
            "search_criteria_snapshot": json.dumps({"phone": "9876543210"}),
            "candidates_snapshot": json.dumps([]),
            "decision": "CREATE_NEW",
            "rationale": "No duplicate",
            "performed_by": "user-1",
            "performed_at": performed_at,
        }
        values.update(fields)
        row = DeduplicationAudit(**values)
        db_session.add(row)
        db_session.commit()
        return row
    return _add


class TestHistory:
    """Test history ordering and decoding."""

    def test_unknown_case_returns_empty_list(self, db_session):
        assert history(db_session, "never-checked") == []

    def test_newest_first(self, db_session, add_audit):
        add_audit(rationale="first", performed_at=datetime(2024, 5, 1))
        add_audit(rationale="third", performed_at=datetime(2024, 5, 3))
        add_audit(rationale="second", performed_at=datetime(2024, 5, 2))

        assert [e.rationale for e in history(db_session, "case-1")] == ["third", "second", "first"]

    def test_same_timestamp_newest_insert_first(self, db_session, add_audit):
        when = datetime(2024, 5, 1, 12, 0, 0)
        add_audit(rationale="earlier", performed_at=when)
        add_audit(rationale="later", performed_at=when)

        assert [e.rationale for e in history(db_session, "case-1")] == ["later", "earlier"]

    def test_only_requested_case(self, db_session, add_audit):
        add_audit(case_id="case-1")
        add_audit(case_id="case-2")

        entries = history(db_session, "case-2")
        assert [e.case_id for e in entries] == ["case-2"]

    def test_snapshots_decoded(self, db_session, add_audit):
        candidates = [{"id": "case-9", "score": 80, "matchedFields": ["phone"]}]
        add_audit(candidates_snapshot=json.dumps(candidates), decision="USE_EXISTING")

        (entry,) = history(db_session, "case-1")

        assert entry.search_criteria_snapshot == {"phone": "9876543210"}
        assert entry.candidates_snapshot == candidates
        assert entry.decision == DecisionType.USE_EXISTING

    def test_wire_form(self, db_session, add_audit):
        add_audit(performed_at=datetime(2024, 5, 1, 12, 30, 0))

        (entry,) = history(db_session, "case-1")
        data = entry.to_dict()

        assert data["caseId"] == "case-1"
        assert data["searchCriteriaSnapshot"] == {"phone": "9876543210"}
        assert data["performedBy"] == "user-1"
        assert data["performedAt"] == "2024-05-01T12:30:00"
        assert data["decision"] == "CREATE_NEW"


class TestHistoryFailures:
    """Read failures are raised, never returned as an empty list."""

    def test_store_failure(self, db_session, db_engine):
        DeduplicationAudit.__table__.drop(db_engine)

        with pytest.raises(HistoryReadError) as exc:
            history(db_session, "case-1")
        assert exc.value.code == "HISTORY_FAILED"

    def test_corrupt_snapshot(self, db_session, add_audit):
        add_audit(candidates_snapshot="{not json")

        with pytest.raises(HistoryReadError):
            history(db_session, "case-1")

    def test_unknown_decision_value(self, db_session, add_audit):
        add_audit(decision="DELETE_ALL")

        with pytest.raises(HistoryReadError):
            history(db_session, "case-1")
