"""
Module: handoff_kernel.selectors.workflow_selector
Responsibility: Read-only queries over stored case workflows: which cases a
    department currently holds, and which it has completed.
Architecture position: Kernel > Selectors.  May import from models/ and
    selectors/base.py.

Invariants enforced:
    - Read-only: No mutations performed on any queried data.
    - Results are ordered by case_id for deterministic output.

Failure modes:
    - UnknownDepartmentError for a department outside the configured set.
    - Returns an empty list when nothing matches (never raises on absence).
"""

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import lazyload

from handoff_kernel.domain.departments import Department
from handoff_kernel.models.workflow import CaseWorkflowModel
from handoff_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class CaseSummaryDTO:
    """Header-level view of one case workflow."""

    case_id: str
    current_department: Department | None
    completed_departments: tuple[Department, ...]
    version: int
    updated_at: datetime


class WorkflowSelector(BaseSelector[CaseWorkflowModel]):
    """Queries over the case_workflows table."""

    def cases_at_department(self, department: Department | str) -> list[CaseSummaryDTO]:
        """Cases whose current department is ``department``."""
        dept = Department.parse(department)
        stmt = (
            select(CaseWorkflowModel)
            .where(CaseWorkflowModel.current_department == dept.value)
            .order_by(CaseWorkflowModel.case_id)
            .options(lazyload("*"))
        )
        return [self._to_summary(row) for row in self.session.scalars(stmt)]

    def cases_completed_by(self, department: Department | str) -> list[CaseSummaryDTO]:
        """Cases ``department`` has completed at least once."""
        dept = Department.parse(department)
        # completed_departments is a JSON list; containment is filtered here
        # so the query stays portable across backends.
        stmt = (
            select(CaseWorkflowModel)
            .order_by(CaseWorkflowModel.case_id)
            .options(lazyload("*"))
        )
        return [
            self._to_summary(row)
            for row in self.session.scalars(stmt)
            if dept.value in (row.completed_departments or ())
        ]

    def get_summary(self, case_id: str) -> CaseSummaryDTO | None:
        row = self.session.scalars(
            select(CaseWorkflowModel)
            .where(CaseWorkflowModel.case_id == case_id)
            .options(lazyload("*"))
        ).one_or_none()
        return self._to_summary(row) if row is not None else None

    @staticmethod
    def _to_summary(row: CaseWorkflowModel) -> CaseSummaryDTO:
        return CaseSummaryDTO(
            case_id=row.case_id,
            current_department=(
                Department.parse(row.current_department) if row.current_department else None
            ),
            completed_departments=tuple(
                Department.parse(d) for d in row.completed_departments or ()
            ),
            version=row.version,
            updated_at=row.updated_at,
        )
