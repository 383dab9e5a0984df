"""
WorkflowStore -- persistent store for workflow aggregates.

Responsibility:
    Creates, loads and saves ``WorkflowAggregate`` values, guarding every
    save with an optimistic version check and an append-only successor
    check.

Architecture position:
    Kernel > Services -- imperative shell.  Consumed by
    ``DepartmentWorkflowService``; usable directly by applications that
    drive the pure domain operations themselves.

Invariants enforced:
    OPTIMISTIC_WRITES    -- ``save_workflow`` writes only if the stored
                            version equals ``expected_version``; the
                            UPDATE itself is conditioned on the version.
    APPEND_ONLY_SECTIONS -- ``verify_successor`` runs before every save;
                            only the new tail of each collection is inserted.
    Tamper evidence      -- every loaded section is re-hashed.

Failure modes:
    - WorkflowNotFoundError: no row for the case.
    - WorkflowAlreadyExistsError: ``create_workflow`` on an existing case.
    - ConflictError: stored version moved since the caller's read.
    - ImmutabilityViolationError: successor rewrites history.
    - TamperDetectedError: a stored section fails its fingerprint.

Usage:
    store = WorkflowStore(session, clock)
    snapshot = store.load_workflow("CASE-1")
    updated, _ = append(snapshot.workflow, template, values, actor)
    store.save_workflow("CASE-1", updated, expected_version=snapshot.version)
    session.commit()
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from handoff_kernel.domain.clock import Clock, SystemClock
from handoff_kernel.domain.departments import Department
from handoff_kernel.domain.ledger import verify_section_integrity
from handoff_kernel.domain.workflow import (
    WorkflowAggregate,
    new_workflow,
    verify_successor,
)
from handoff_kernel.exceptions import (
    ConflictError,
    WorkflowAlreadyExistsError,
    WorkflowNotFoundError,
)
from handoff_kernel.logging_config import get_logger
from handoff_kernel.models.workflow import (
    CaseWorkflowModel,
    DocumentationSectionModel,
    RoutingEntryModel,
)
from handoff_kernel.services.base import BaseService

logger = get_logger("services.workflow_store")

INITIAL_VERSION = 1


@dataclass(frozen=True)
class WorkflowSnapshot:
    """A workflow value together with the version it was read at."""

    workflow: WorkflowAggregate
    version: int


class WorkflowStore(BaseService[CaseWorkflowModel]):
    """Flush-only persistence of workflow aggregates.

    Contract:
        Never commits.  A ConflictError or flush failure leaves the
        session needing a rollback, which is the caller's job.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def exists(self, case_id: str) -> bool:
        return self._get_row(case_id) is not None

    def create_workflow(
        self, case_id: str, originating_department: Department | str
    ) -> WorkflowSnapshot:
        """Enter a case into the workflow at its originating department.

        Raises:
            WorkflowAlreadyExistsError: The case already has a workflow.
            UnknownDepartmentError: ``originating_department`` is not configured.
        """
        workflow = new_workflow(case_id, originating_department)
        if self._get_row(case_id) is not None:
            raise WorkflowAlreadyExistsError(case_id)

        row = CaseWorkflowModel.from_dto(
            workflow, version=INITIAL_VERSION, now=self._clock.now(),
        )
        self.session.add(row)
        try:
            self.session.flush()
        except IntegrityError as exc:
            raise WorkflowAlreadyExistsError(case_id) from exc

        logger.info(
            "workflow_created",
            extra={
                "case_id": case_id,
                "originating_department": workflow.current_department.value,
            },
        )
        return WorkflowSnapshot(workflow=workflow, version=INITIAL_VERSION)

    def load_workflow(self, case_id: str) -> WorkflowSnapshot:
        """Read the stored workflow and its current version.

        Raises:
            WorkflowNotFoundError: No workflow stored for ``case_id``.
            TamperDetectedError: A stored section fails its fingerprint.
        """
        row = self._get_row(case_id)
        if row is None:
            raise WorkflowNotFoundError(case_id)

        workflow = row.to_dto()
        for section in workflow.documentation_sections:
            verify_section_integrity(section)
        return WorkflowSnapshot(workflow=workflow, version=row.version)

    def save_workflow(
        self, case_id: str, workflow: WorkflowAggregate, expected_version: int
    ) -> int:
        """Persist ``workflow`` if nothing changed since ``expected_version``.

        Returns:
            The new version.

        Raises:
            WorkflowNotFoundError: No workflow stored for ``case_id``.
            ConflictError: The stored version is not ``expected_version``.
            ImmutabilityViolationError: ``workflow`` does not extend the
                stored value.
        """
        row = self._get_row(case_id, for_update=True)
        if row is None:
            raise WorkflowNotFoundError(case_id)

        if row.version != expected_version:
            logger.warning(
                "workflow_version_conflict",
                extra={
                    "case_id": case_id,
                    "expected_version": expected_version,
                    "actual_version": row.version,
                },
            )
            raise ConflictError(case_id, expected_version, row.version)

        previous = row.to_dto()
        verify_successor(previous, workflow)

        new_sections = workflow.documentation_sections[len(previous.documentation_sections):]
        new_entries = workflow.routing_history[len(previous.routing_history):]

        row.current_department = (
            workflow.current_department.value if workflow.current_department else None
        )
        row.completed_departments = [d.value for d in workflow.completed_departments]
        row.updated_at = self._clock.now()
        row.version = expected_version + 1

        base = len(previous.documentation_sections)
        for offset, section in enumerate(new_sections):
            row.sections.append(
                DocumentationSectionModel.from_dto(section, position=base + offset)
            )
        base = len(previous.routing_history)
        for offset, entry in enumerate(new_entries):
            row.routing_entries.append(
                RoutingEntryModel.from_dto(entry, position=base + offset)
            )

        try:
            self.session.flush()
        except (StaleDataError, IntegrityError) as exc:
            # Another writer committed between our read and our UPDATE.
            logger.warning(
                "workflow_version_conflict",
                extra={"case_id": case_id, "expected_version": expected_version},
            )
            raise ConflictError(case_id, expected_version, None) from exc

        logger.info(
            "workflow_saved",
            extra={
                "case_id": case_id,
                "version": row.version,
                "sections_added": len(new_sections),
                "routing_entries_added": len(new_entries),
            },
        )
        return row.version

    def _get_row(self, case_id: str, for_update: bool = False) -> CaseWorkflowModel | None:
        stmt = select(CaseWorkflowModel).where(CaseWorkflowModel.case_id == case_id)
        if for_update:
            stmt = stmt.with_for_update()
        return self.session.execute(
            stmt.execution_options(populate_existing=True)
        ).scalar_one_or_none()
