"""
Pytest fixtures for the handoff kernel test suite.

Provides:
- Structured-log capture
- Deterministic clock and section ids
- The default template catalog and ready-made actors
- SQLite-backed database sessions (file per test, so two sessions can
  race each other)

Environment Variables:
- DATABASE_URL: Optional SQLAlchemy URL (e.g. postgresql://...). When set,
  the persistence tests run against it instead of a temporary SQLite file.
"""

import json
import logging
import os
from io import StringIO
from typing import Generator
from uuid import UUID

import pytest
from sqlalchemy.orm import Session

from handoff_config import get_active_config
from handoff_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from handoff_kernel.domain.clock import DeterministicClock
from handoff_kernel.domain.departments import Department
from handoff_kernel.domain.schema import (
    BooleanField,
    DocumentationTemplate,
    TextAreaField,
    TextField,
)
from handoff_kernel.domain.workflow import Actor, new_workflow
from handoff_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from handoff_kernel.services.workflow_service import DepartmentWorkflowService
from handoff_kernel.services.workflow_store import WorkflowStore

CASE_ID = "WO-1001"


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
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
    Capture handoff_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, workflow_service):
            workflow_service.start_case(...)
            logs = captured_logs()
            assert any(r["message"] == "workflow_created" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("handoff_kernel")
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
# Domain fixtures
# =============================================================================


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    """Clock fixed at 2024-01-01T12:00:00Z."""
    return DeterministicClock()


@pytest.fixture
def id_factory():
    """Sequential section ids: 00000000-0000-0000-0000-000000000001, ..."""
    counter = {"n": 0}

    def _next() -> UUID:
        counter["n"] += 1
        return UUID(int=counter["n"])

    return _next


@pytest.fixture(scope="session")
def active_config():
    return get_active_config()


@pytest.fixture(scope="session")
def catalog(active_config):
    return active_config.catalog


@pytest.fixture
def pre_op_template() -> DocumentationTemplate:
    """Operator name plus guards check; the shipped checklist lives in the catalog."""
    return DocumentationTemplate(
        id="pre_op_inspection",
        department=Department.MAINTENANCE,
        name="Pre-Operation Inspection",
        fields=(
            TextField(id="operator_name", label="Operator Name", required=True),
            BooleanField(id="guards_in_place", label="All Guards in Place", required=True),
            TextAreaField(id="notes", label="Notes"),
        ),
        requires_signature=True,
        next_department=Department.SAFETY,
    )


@pytest.fixture
def two_field_template() -> DocumentationTemplate:
    """Maintenance template with required text A and required boolean B."""
    return DocumentationTemplate(
        id="two_field",
        department=Department.MAINTENANCE,
        name="Two Field Check",
        fields=(
            TextField(id="a", label="Field A", required=True),
            BooleanField(id="b", label="Field B", required=True),
            TextField(id="c", label="Field C"),
        ),
    )


@pytest.fixture
def make_actor():
    def _make(department, user_id: str | None = None, user_name: str | None = None) -> Actor:
        dept = Department.parse(department)
        return Actor(
            user_id=user_id or f"user-{dept.value}",
            user_name=user_name or f"{dept.value.title()} Tech",
            department=dept,
        )

    return _make


@pytest.fixture
def maintenance_actor(make_actor) -> Actor:
    return make_actor(Department.MAINTENANCE, user_id="u-100", user_name="J. Doe")


@pytest.fixture
def safety_actor(make_actor) -> Actor:
    return make_actor(Department.SAFETY, user_id="u-200", user_name="S. Park")


@pytest.fixture
def quality_actor(make_actor) -> Actor:
    return make_actor(Department.QUALITY, user_id="u-300", user_name="Q. Lee")


@pytest.fixture
def fresh_workflow():
    """A case that just entered the workflow at maintenance."""
    return new_workflow(CASE_ID, Department.MAINTENANCE)


@pytest.fixture
def pre_op_values() -> dict:
    return {"operator_name": "J. Doe", "guards_in_place": True}


@pytest.fixture
def catalog_pre_op_values() -> dict:
    """Complete answers for the catalog pre_op_inspection checklist."""
    return {
        "equipment_clean": True,
        "guards_in_place": True,
        "lubrication_checked": True,
        "no_leaks": True,
        "safety_devices_working": True,
    }


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def database_url(tmp_path) -> str:
    return os.environ.get("DATABASE_URL") or f"sqlite:///{tmp_path / 'handoff.db'}"


@pytest.fixture
def db_engine(database_url):
    """Engine with freshly created tables, disposed after the test."""
    eng = init_engine_from_url(database_url, echo=False)
    drop_tables()
    create_tables()
    yield eng
    drop_tables()
    reset_engine()


@pytest.fixture
def session(db_engine) -> Generator[Session, None, None]:
    sess = get_session()
    yield sess
    sess.rollback()
    sess.close()


@pytest.fixture
def session_factory(db_engine):
    """For tests that need several independent sessions."""
    return get_session_factory()


@pytest.fixture
def store(session, deterministic_clock) -> WorkflowStore:
    return WorkflowStore(session, deterministic_clock)


@pytest.fixture
def workflow_service(session, catalog, deterministic_clock, id_factory):
    return DepartmentWorkflowService(
        session,
        catalog,
        clock=deterministic_clock,
        id_factory=id_factory,
    )
