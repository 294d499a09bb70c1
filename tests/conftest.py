"""Pytest configuration and fixtures."""

import os
from dotenv import load_dotenv

# Load test environment variables
load_dotenv()

# Set test environment before any bakeryhub module reads its config
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("DATABASE_URL", "sqlite://")
# Tests never call a real model; an empty key selects the keyword fallback
os.environ["OPENAI_API_KEY"] = ""
os.environ.pop("SERVICE_API_KEY", None)

import pytest  # noqa: E402
from sqlalchemy import create_engine, text  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from bakeryhub.infra import database  # noqa: E402
from bakeryhub.infra.schema import metadata  # noqa: E402
from bakeryhub.infra.seed import DEMO_TENANT_ID, DEMO_USERS, seed_demo_data  # noqa: E402
from bakeryhub.logging.audit_recorder import AuditRecorder  # noqa: E402
from bakeryhub.models.context import ExecutionContext, Role  # noqa: E402


@pytest.fixture
def db_engine(tmp_path, monkeypatch):
    """File-backed SQLite database with the schema and demo data."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'bakeryhub_test.db'}",
        connect_args={"check_same_thread": False},
    )
    metadata.create_all(engine)
    with engine.begin() as conn:
        seed_demo_data(conn)

    test_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    monkeypatch.setattr(database, "SessionLocal", test_session_local)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    session = database.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_context(db_session):
    """Build an execution context for a demo user, by role name."""
    def _make(user: str = "client", tenant_id: int = DEMO_TENANT_ID, user_id: int = None, role: str = None):
        return ExecutionContext(
            tenant_id=tenant_id,
            user_id=user_id or DEMO_USERS[user],
            role=Role(role or user),
            db=db_session,
        )
    return _make


@pytest.fixture
def audit_recorder():
    return AuditRecorder()


@pytest.fixture
def fetch_scalar(db_engine):
    """Run a scalar query on a fresh connection, outside the test session."""
    def _fetch(sql: str, **params):
        with db_engine.connect() as conn:
            return conn.execute(text(sql), params).scalar()
    return _fetch
