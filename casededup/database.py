"""
Database schema and connection management.

Uses SQLAlchemy over a relational store (SQLite by default) for cases,
their owning clients, and the append-only deduplication audit table.
"""

import uuid
from datetime import datetime
from pathlib import Path
from typing import Union

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    create_engine,
    event,
)
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import declarative_base, sessionmaker

from .normalize import normalize_email
from .similarity import name_contains, similarity

Base = declarative_base()


def _new_case_id() -> str:
    return str(uuid.uuid4())


class Client(Base):
    """Organization that owns cases."""

    __tablename__ = "clients"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)


class Case(Base):
    """Case record, reduced to the columns deduplication reads and stamps."""

    __tablename__ = "cases"

    id = Column(String, primary_key=True, default=_new_case_id)
    case_number = Column(String, nullable=False, unique=True)
    applicant_name = Column(String, nullable=True, index=True)
    national_id = Column(String, nullable=True, index=True)
    secondary_national_id = Column(String, nullable=True, index=True)
    phone = Column(String, nullable=True, index=True)
    email = Column(String, nullable=True, index=True)
    bank_account_number = Column(String, nullable=True, index=True)
    status = Column(String, nullable=False, default="PENDING")
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now, index=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    # Stamped by the decision recorder
    deduplication_checked = Column(Boolean, nullable=False, default=False)
    deduplication_decision = Column(String, nullable=True)
    deduplication_rationale = Column(Text, nullable=True)


class DeduplicationAudit(Base):
    """
    Append-only decision log.

    No foreign key to cases: entries must stay readable after the
    referenced case changes or is deleted.
    """

    __tablename__ = "case_deduplication_audit"

    id = Column(Integer, primary_key=True, autoincrement=True)
    case_id = Column(String, nullable=False, index=True)
    search_criteria_snapshot = Column(Text, nullable=False)  # JSON
    candidates_snapshot = Column(Text, nullable=False)  # JSON
    decision = Column(String(20), nullable=False)
    rationale = Column(Text, nullable=False)
    performed_by = Column(String, nullable=False)
    performed_at = Column(DateTime, nullable=False, default=datetime.now, index=True)


def _name_similarity(candidate, query):
    if candidate is None or query is None:
        return None
    return similarity(candidate, query)


def _name_contains(candidate, query):
    if candidate is None or query is None:
        return None
    return int(name_contains(candidate, query))


def _email_key(value):
    return normalize_email(value) if value is not None else None


def _register_sqlite_functions(dbapi_connection, connection_record):
    dbapi_connection.create_function("name_similarity", 2, _name_similarity, deterministic=True)
    dbapi_connection.create_function("name_contains", 2, _name_contains, deterministic=True)
    dbapi_connection.create_function("email_key", 1, _email_key, deterministic=True)


def create_store_engine(target: Union[str, Path]) -> Engine:
    """
    Create an engine for a SQLAlchemy URL or a SQLite file path.

    Connections get ``name_similarity``, ``name_contains`` and ``email_key``
    registered so name and email matching in the store uses the same Python
    definitions as scoring. Only SQLite can host them, so other backends are
    rejected.

    Args:
        target: SQLite URL (``sqlite:///...``) or database file path

    Returns:
        SQLAlchemy engine

    Raises:
        ValueError: If the URL names a non-SQLite backend
    """
    if isinstance(target, Path) or "://" not in str(target):
        url = make_url(f"sqlite:///{target}")
    else:
        url = make_url(str(target))

    if url.get_backend_name() != "sqlite":
        raise ValueError(
            f"Unsupported database backend {url.get_backend_name()!r}: "
            "name matching needs SQL functions only registered on SQLite"
        )

    if url.database not in (None, "", ":memory:"):
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(url)
    event.listen(engine, "connect", _register_sqlite_functions)
    return engine


def init_database(target: Union[str, Path]) -> Engine:
    """
    Initialize database and create tables.

    Args:
        target: Database URL or path to SQLite database file

    Returns:
        The engine used to create the tables
    """
    engine = create_store_engine(target)
    Base.metadata.create_all(engine)
    return engine


def get_session_factory(target: Union[str, Path, Engine]) -> sessionmaker:
    engine = target if isinstance(target, Engine) else create_store_engine(target)
    return sessionmaker(bind=engine)


def get_session(target: Union[str, Path, Engine]):
    """
    Get database session.

    Args:
        target: Database URL, SQLite path, or an existing engine

    Returns:
        SQLAlchemy session
    """
    Session = get_session_factory(target)
    return Session()
