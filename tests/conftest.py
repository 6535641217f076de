"""
Pytest configuration and shared fixtures.
"""

import os
import tempfile

# Keep log files out of the working tree; must run before casededup is imported.
os.environ.setdefault("DEDUP_LOG_DIR", tempfile.mkdtemp(prefix="casededup-logs-"))

from datetime import datetime
from typing import Any, Dict

import pytest

from casededup.config import Settings
from casededup.database import Case, Client, get_session_factory, init_database
from casededup.models import CandidateCase, DeduplicationCriteria
from casededup.service import DeduplicationService


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "cases.db"


@pytest.fixture
def db_engine(db_path):
    """Fresh SQLite database with all tables created."""
    engine = init_database(db_path)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return get_session_factory(db_engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_client(db_session):
    """Create and commit a client, returning its id."""
    def _make(name: str) -> int:
        client = Client(name=name)
        db_session.add(client)
        db_session.commit()
        return client.id
    return _make


@pytest.fixture
def make_case(db_session):
    """Create and commit a case; keyword arguments override the defaults."""
    counter = {"n": 0}

    def _make(**fields: Any) -> Case:
        counter["n"] += 1
        values: Dict[str, Any] = {
            "case_number": f"CASE-{counter['n']:04d}",
            "status": "PENDING",
            "created_at": datetime(2024, 1, counter["n"], 9, 0, 0),
        }
        values.update(fields)
        values.setdefault("updated_at", values["created_at"])
        case = Case(**values)
        db_session.add(case)
        db_session.commit()
        return case
    return _make


@pytest.fixture
def john_smith(make_case, make_client):
    """Stored case for John Smith owned by Acme Bank."""
    client_id = make_client("Acme Bank")
    return make_case(
        id="case-john",
        case_number="CASE-JOHN",
        applicant_name="John Smith",
        national_id="ABCDE1234F",
        secondary_national_id="123412341234",
        phone="9876543210",
        email="john.smith@example.com",
        bank_account_number="001122334455",
        client_id=client_id,
        created_at=datetime(2024, 3, 1, 10, 0, 0),
    )


@pytest.fixture
def priya_patel(make_case):
    """Stored case for an unrelated applicant."""
    return make_case(
        id="case-priya",
        case_number="CASE-PRIYA",
        applicant_name="Priya Patel",
        national_id="PQRSX5678K",
        phone="9123456780",
        email="priya@example.org",
        created_at=datetime(2024, 2, 1, 10, 0, 0),
    )


@pytest.fixture
def settings(db_path):
    return Settings(
        database_url=f"sqlite:///{db_path}",
        candidate_limit=50,
        atomic_decisions=True,
    )


@pytest.fixture
def service(session_factory, settings):
    return DeduplicationService(session_factory, settings)


@pytest.fixture
def candidate_factory():
    """Build CandidateCase objects without touching the store."""
    def _make(case_id: str, created_at: datetime = datetime(2024, 1, 1), **fields: Any) -> CandidateCase:
        return CandidateCase(id=case_id, created_at=created_at, **fields)
    return _make


@pytest.fixture
def national_id_criteria() -> DeduplicationCriteria:
    return DeduplicationCriteria(national_id="ABCDE1234F")
