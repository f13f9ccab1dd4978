"""
Pytest fixtures for the docflow test suite.

Provides:
- Structured logging configured once per session, plus a log capture fixture
- A deterministic clock
- In-memory and SQLite-backed document repositories
- Store, state machine and fund plan service instances wired to them
- Actors for every workflow role

Environment Variables:
- DATABASE_URL: optional database URL for the SQL fixtures. Defaults to an
  in-memory SQLite database, so the suite runs without a server.
"""

import json
import logging
import os
from io import StringIO
from typing import Generator

import pytest
from sqlalchemy.orm import Session

from docflow_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from docflow_kernel.domain.approval import Actor
from docflow_kernel.domain.clock import DeterministicClock
from docflow_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from docflow_kernel.services.document_store import VersionedDocumentStore
from docflow_kernel.services.notifications import RecordingEmitter
from docflow_kernel.services.repositories import (
    InMemoryDocumentRepository,
    SqlDocumentRepository,
)
from docflow_services.approval_service import ApprovalStateMachine
from docflow_services.fund_plan_service import FundPlanService

DEFAULT_DATABASE_URL = "sqlite://"


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture docflow logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, store):
            store.create({"title": "x"}, "u1")
            logs = captured_logs()
            assert any(r["message"] == "document_created" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("docflow")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Time and actors
# =============================================================================


@pytest.fixture
def deterministic_clock():
    """Provide a deterministic clock for testing."""
    return DeterministicClock()


@pytest.fixture
def sales_actor() -> Actor:
    return Actor(actor_id="u-sales", name="Sato", role="sales")


@pytest.fixture
def reviewer_actor() -> Actor:
    return Actor(actor_id="u-review", name="Ito", role="reviewer")


@pytest.fixture
def manager_actor() -> Actor:
    return Actor(actor_id="u-manager", name="Kato", role="manager")


@pytest.fixture
def admin_actor() -> Actor:
    return Actor(actor_id="u-admin", name="Admin", role="admin")


# =============================================================================
# Repositories
# =============================================================================


@pytest.fixture
def memory_repository() -> InMemoryDocumentRepository:
    return InMemoryDocumentRepository()


@pytest.fixture
def session() -> Generator[Session, None, None]:
    """Provide a database session on freshly created tables.

    The engine is built per test; for the default in-memory SQLite URL this
    means every test starts from an empty database.
    """
    init_engine_from_url(os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL))
    create_tables()
    sess = get_session()
    yield sess
    try:
        sess.rollback()
        sess.close()
    finally:
        drop_tables()
        reset_engine()


@pytest.fixture
def sql_repository(session: Session) -> SqlDocumentRepository:
    return SqlDocumentRepository(session)


@pytest.fixture(params=["memory", "sql"])
def repository(request):
    """Run a test once against each repository implementation."""
    if request.param == "memory":
        return InMemoryDocumentRepository()
    return SqlDocumentRepository(request.getfixturevalue("session"))


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def recording_emitter() -> RecordingEmitter:
    return RecordingEmitter()


@pytest.fixture
def store(repository, deterministic_clock) -> VersionedDocumentStore:
    return VersionedDocumentStore(repository, deterministic_clock)


@pytest.fixture
def state_machine(repository, deterministic_clock, recording_emitter) -> ApprovalStateMachine:
    return ApprovalStateMachine(repository, deterministic_clock, recording_emitter)


@pytest.fixture
def fund_plan_service(store) -> FundPlanService:
    return FundPlanService(store)
