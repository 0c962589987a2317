"""
Pytest fixtures for testing
"""
import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from finledger.infrastructure.db.session import Base
from finledger.infrastructure.db import models  # noqa: F401  registers tables
from finledger.application.accounts import CreateAccountUseCase


@pytest.fixture
def db_engine():
    """In-memory SQLite shared by every thread (TestClient runs sync routes in a pool)"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine)


@pytest.fixture
def db_session(session_factory) -> Session:
    """Create database session for tests"""
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def account(db_session):
    """A registered bank account"""
    return CreateAccountUseCase(db_session).execute(
        bank="Banco do Brasil",
        agency_number="1234",
        account_number="56789-0",
        account_kind="CHECKING",
        holder="Maria Silva",
    )


@pytest.fixture
def other_account(db_session):
    return CreateAccountUseCase(db_session).execute(
        bank="Itau",
        agency_number="0001",
        account_number="11111-1",
        account_kind="SAVINGS",
        holder="Joao Souza",
    )
