"""
Tests for WorkflowSelector read-only queries.
"""

from datetime import datetime, timezone

import pytest

from handoff_kernel.domain.departments import Department
from handoff_kernel.selectors.workflow_selector import CaseSummaryDTO, WorkflowSelector


@pytest.fixture
def populated(workflow_service, make_actor, deterministic_clock):
    """
    WO-A: maintenance -> safety            (held by safety)
    WO-B: maintenance                      (held by maintenance)
    WO-C: maintenance -> safety -> quality (held by quality)
    """
    maintenance = make_actor(Department.MAINTENANCE)
    safety = make_actor(Department.SAFETY)

    for case_id in ("WO-C", "WO-A", "WO-B"):
        workflow_service.start_case(case_id, Department.MAINTENANCE)

    deterministic_clock.tick()
    workflow_service.send_to_department("WO-A", "safety", maintenance)
    workflow_service.send_to_department("WO-C", "safety", maintenance)
    deterministic_clock.tick()
    workflow_service.send_to_department("WO-C", "quality", safety)


@pytest.fixture
def selector(session):
    return WorkflowSelector(session)


class TestCasesAtDepartment:

    def test_filters_by_current_department(self, populated, selector):
        assert [c.case_id for c in selector.cases_at_department("maintenance")] == ["WO-B"]
        assert [c.case_id for c in selector.cases_at_department(Department.SAFETY)] == ["WO-A"]
        assert [c.case_id for c in selector.cases_at_department("quality")] == ["WO-C"]
        assert selector.cases_at_department("calibration") == []

    def test_sorted_by_case_id(self, populated, selector, workflow_service, make_actor):
        workflow_service.send_to_department(
            "WO-B", "safety", make_actor(Department.MAINTENANCE),
        )
        assert [c.case_id for c in selector.cases_at_department("safety")] == ["WO-A", "WO-B"]


class TestCasesCompletedBy:

    def test_completed_by(self, populated, selector):
        assert [c.case_id for c in selector.cases_completed_by("maintenance")] == ["WO-A", "WO-C"]
        assert [c.case_id for c in selector.cases_completed_by("safety")] == ["WO-C"]
        assert selector.cases_completed_by("quality") == []


class TestSummary:

    def test_summary_fields(self, populated, selector):
        summary = selector.get_summary("WO-C")

        assert isinstance(summary, CaseSummaryDTO)
        assert summary.current_department is Department.QUALITY
        assert summary.completed_departments == (Department.MAINTENANCE, Department.SAFETY)
        assert summary.version == 3
        assert summary.updated_at == datetime(2024, 1, 1, 12, 0, 2, tzinfo=timezone.utc)

    def test_missing_summary(self, db_engine, selector):
        assert selector.get_summary("WO-NOPE") is None
