"""
Shared fixtures: an isolated in-memory SQLite database per test, a session
bound to it, and a TestClient whose get_db dependency uses the same engine.
"""

import os

# Must be set before roster.database builds its module-level engine
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from roster.database import get_db, install_sqlite_pragmas, create_tables
from roster.main import app
from roster.services import mutation


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    install_sqlite_pragmas(engine)
    create_tables(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_student(db):
    """Create a student through the mutation workflow with sensible defaults."""
    def _make(**fields):
        fields.setdefault("name", "Test Student")
        return mutation.create_student(db, fields)
    return _make
