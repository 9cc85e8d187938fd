"""
Database connection and session management module.

Uses SQLAlchemy for ORM operations. Supports PostgreSQL (production)
and SQLite (local development and tests).
Provides the engine, session factory and the FastAPI session dependency.
"""

import os
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, DeclarativeBase

# A deployed roster points DATABASE_URL at PostgreSQL; without it the
# service keeps its records in roster.db next to the working directory
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    "sqlite:///./roster.db"
)

engine_kwargs = {"echo": False}

if DATABASE_URL.startswith("postgresql"):
    # Roster traffic is short reads and single-row writes: a small warm pool
    # with burst headroom, and pre-ping to drop connections the server closed
    engine_kwargs.update({
        "pool_size": 10,
        "max_overflow": 20,
        "pool_pre_ping": True,
    })
elif DATABASE_URL.startswith("sqlite"):
    # Sessions are opened on FastAPI's worker threads, not the creating thread
    engine_kwargs["connect_args"] = {"check_same_thread": False}

engine = create_engine(DATABASE_URL, **engine_kwargs)


def _unicode_lower(value):
    return value.lower() if isinstance(value, str) else value


def install_sqlite_pragmas(target_engine):
    """
    Register the connection pragmas every SQLite connection needs.

    - WAL journal for concurrent readers while a write is in progress
    - foreign key enforcement
    - case-sensitive LIKE, so name/phone lookups match the same way
      they do on PostgreSQL (SQLite folds ASCII case by default)
    - a Unicode-aware lower(), so case-insensitive search folds
      accented and non-Latin letters too (the built-in only folds ASCII)
    """
    @event.listens_for(target_engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        dbapi_connection.create_function("lower", 1, _unicode_lower, deterministic=True)
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA case_sensitive_like=ON")
        cursor.close()


if DATABASE_URL.startswith("sqlite"):
    install_sqlite_pragmas(engine)

# Session factory - creates new database sessions
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""
    pass


def get_db():
    """
    FastAPI dependency that provides a database session.

    Yields a session and ensures proper cleanup after request completion.
    Connections are returned to the pool even if an exception occurs
    during request processing.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables(bind=None):
    """
    Create all database tables directly.

    Used at startup for SQLite and by the test suite; the schema has a
    single table so there is no migration chain.
    """
    Base.metadata.create_all(bind=bind or engine)
