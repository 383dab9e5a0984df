"""
DepartmentWorkflowService -- the caller side of the handoff engine.

Responsibility:
    Runs each user operation as load -> compute -> save against the
    WorkflowStore: resolves templates from the catalog, applies the
    add-documentation policy, calls the pure ledger and routing
    operations, retries lost optimistic writes, and fires notifications
    once the change is committed.

Architecture position:
    Kernel > Services -- imperative shell.  Depends on the domain core,
    the store, and the collaborator protocols in ``domain.providers``.
    Never imports ``handoff_config``; the catalog is injected.

Invariants enforced:
    AUTHORIZED_HANDOFF -- the acting department must hold the case to
        add documentation or hand it off.  Authorization failures are
        never retried with a substituted actor.
    OPTIMISTIC_WRITES  -- ConflictError triggers rollback, re-read and
        recompute, at most ``max_conflict_retries`` times.

Failure modes:
    - ValidationError, FieldTypeError, AuthorizationError: returned to
      the caller unchanged, nothing persisted.
    - TemplateNotFoundError, WorkflowNotFoundError: caller/config bugs.
    - ConflictError: retries exhausted.
    - Exceptions raised by the notifier propagate after the commit.

Transaction boundary:
    With ``auto_commit=True`` (default) each mutating call commits on
    success and rolls back on failure.  With ``auto_commit=False`` the
    caller owns the transaction; conflicts are then not retried because
    the service cannot roll back the caller's work.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Mapping
from typing import Any, TypeVar
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from handoff_kernel.domain import ledger, routing
from handoff_kernel.domain.clock import Clock, SystemClock
from handoff_kernel.domain.departments import ALL_DEPARTMENTS, Department
from handoff_kernel.domain.providers import NotificationSink, TemplateCatalogProvider
from handoff_kernel.domain.schema import DocumentationTemplate
from handoff_kernel.domain.workflow import (
    Actor,
    CompletedSection,
    WorkflowAggregate,
    is_fully_routed,
)
from handoff_kernel.exceptions import AuthorizationError, ConflictError
from handoff_kernel.logging_config import LogContext, get_logger
from handoff_kernel.services.workflow_store import WorkflowSnapshot, WorkflowStore

logger = get_logger("services.workflow_service")

T = TypeVar("T")

DEFAULT_MAX_CONFLICT_RETRIES = 3


class DepartmentWorkflowService:
    """Orchestrates documentation and hand-offs for stored cases.

    Contract:
        Every mutating method returns the committed workflow value (plus
        the new section for ``add_documentation``).  The stored workflow
        is untouched when a method raises.
    """

    def __init__(
        self,
        session: Session,
        catalog: TemplateCatalogProvider,
        store: WorkflowStore | None = None,
        clock: Clock | None = None,
        notifier: NotificationSink | None = None,
        auto_commit: bool = True,
        max_conflict_retries: int = DEFAULT_MAX_CONFLICT_RETRIES,
        required_departments: Iterable[Department | str] = ALL_DEPARTMENTS,
        id_factory: Callable[[], UUID] = uuid4,
    ):
        """
        Args:
            session: SQLAlchemy session.
            catalog: Template Catalog collaborator.
            store: Workflow store. Defaults to a WorkflowStore on ``session``.
            clock: Clock for timestamps. Defaults to SystemClock.
            notifier: Optional sink called after each committed change.
            auto_commit: If True (default), commit on success and roll back
                on failure. If False, the caller manages the transaction.
            max_conflict_retries: Re-read/recompute attempts after a
                ConflictError before it is re-raised.
            required_departments: Default set for ``is_fully_routed``.
            id_factory: Section id generator.
        """
        if max_conflict_retries < 0:
            raise ValueError("max_conflict_retries must be >= 0")
        self._session = session
        self._catalog = catalog
        self._clock = clock or SystemClock()
        self._store = store or WorkflowStore(session, self._clock)
        self._notifier = notifier
        self._auto_commit = auto_commit
        self._max_conflict_retries = max_conflict_retries
        self._required_departments = tuple(
            Department.parse(d) for d in required_departments
        )
        self._id_factory = id_factory

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def start_case(
        self, case_id: str, originating_department: Department | str
    ) -> WorkflowAggregate:
        """Enter ``case_id`` into the workflow at its originating department.

        Raises:
            WorkflowAlreadyExistsError: The case already has a workflow.
        """
        with LogContext.bind(correlation_id=str(uuid4()), case_id=case_id):
            snapshot = self._run(
                "start_case",
                lambda: self._store.create_workflow(case_id, originating_department),
                retry=False,
            )
            return snapshot.workflow

    def add_documentation(
        self,
        case_id: str,
        template_id: str,
        values: Mapping[str, Any],
        actor: Actor,
        signature: str | None = None,
        notes: str | None = None,
    ) -> tuple[WorkflowAggregate, CompletedSection]:
        """Validate and lock a section for ``case_id``.

        Raises:
            TemplateNotFoundError: ``template_id`` is not in the catalog.
            AuthorizationError: ``actor`` may not document this case now.
            ValidationError / FieldTypeError: The submission is rejected.
            ConflictError: Concurrent writers won every retry.
        """
        template = self._catalog.get_template_by_id(template_id)

        def attempt() -> tuple[WorkflowAggregate, CompletedSection]:
            snapshot = self._store.load_workflow(case_id)
            self._check_documentation_allowed(snapshot.workflow, template, actor)
            updated, section = ledger.append(
                snapshot.workflow,
                template,
                values,
                actor,
                signature=signature,
                notes=notes,
                clock=self._clock,
                id_factory=self._id_factory,
            )
            self._store.save_workflow(case_id, updated, snapshot.version)
            return updated, section

        with LogContext.bind(
            correlation_id=str(uuid4()),
            case_id=case_id,
            actor_id=actor.user_id,
            department=actor.department.value,
        ):
            updated, section = self._run(
                "add_documentation", attempt, template_id=template_id,
            )
            if self._notifier is not None:
                self._notifier.section_locked(updated, section)
            return updated, section

    def send_to_department(
        self,
        case_id: str,
        to_department: Department | str,
        actor: Actor,
        notes: str | None = None,
    ) -> WorkflowAggregate:
        """Hand ``case_id`` from the actor's department to ``to_department``.

        Raises:
            AuthorizationError: The actor's department does not hold the case.
            UnknownDepartmentError: ``to_department`` is not configured.
            ConflictError: Concurrent writers won every retry.
        """
        destination = Department.parse(to_department)

        def attempt() -> WorkflowAggregate:
            snapshot = self._store.load_workflow(case_id)
            updated = routing.send_to(
                snapshot.workflow,
                destination,
                actor.user_name,
                actor.department,
                notes,
                clock=self._clock,
            )
            self._store.save_workflow(case_id, updated, snapshot.version)
            return updated

        with LogContext.bind(
            correlation_id=str(uuid4()),
            case_id=case_id,
            actor_id=actor.user_id,
            department=actor.department.value,
        ):
            updated = self._run(
                "send_to_department", attempt, to_department=destination.value,
            )
            if self._notifier is not None:
                self._notifier.case_routed(updated, updated.routing_history[-1])
            return updated

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_workflow(self, case_id: str) -> WorkflowAggregate:
        """
        Raises:
            WorkflowNotFoundError: No workflow stored for ``case_id``.
        """
        return self._store.load_workflow(case_id).workflow

    def get_snapshot(self, case_id: str) -> WorkflowSnapshot:
        return self._store.load_workflow(case_id)

    def is_fully_routed(
        self,
        case_id: str,
        required: Iterable[Department | str] | None = None,
    ) -> bool:
        """Whether every required department has completed ``case_id``."""
        workflow = self.get_workflow(case_id)
        return is_fully_routed(
            workflow, self._required_departments if required is None else required
        )

    def templates_for(self, department: Department | str) -> tuple[DocumentationTemplate, ...]:
        return self._catalog.get_templates_for_department(Department.parse(department))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _check_documentation_allowed(
        self,
        workflow: WorkflowAggregate,
        template: DocumentationTemplate,
        actor: Actor,
    ) -> None:
        current = workflow.current_department
        if actor.department != template.department:
            raise AuthorizationError(
                case_id=workflow.case_id,
                acting_department=actor.department.value,
                current_department=current.value if current else None,
                reason=f"template {template.id} belongs to {template.department.value}",
            )
        if current is not None and actor.department != current:
            raise AuthorizationError(
                case_id=workflow.case_id,
                acting_department=actor.department.value,
                current_department=current.value,
            )

    def _run(
        self,
        operation: str,
        attempt: Callable[[], T],
        retry: bool = True,
        **log_fields: Any,
    ) -> T:
        """Run ``attempt`` inside the service's transaction boundary."""
        logger.info(f"{operation}_started", extra=log_fields)
        t0 = time.monotonic()
        max_attempts = 1 + (
            self._max_conflict_retries if (retry and self._auto_commit) else 0
        )
        attempt_no = 0
        while True:
            attempt_no += 1
            try:
                result = attempt()
                if self._auto_commit:
                    self._session.commit()
            except ConflictError as exc:
                if self._auto_commit:
                    self._session.rollback()
                if attempt_no >= max_attempts:
                    duration_ms = round((time.monotonic() - t0) * 1000, 2)
                    logger.error(
                        f"{operation}_failed",
                        extra={
                            "duration_ms": duration_ms,
                            "attempts": attempt_no,
                            "error_code": exc.code,
                        },
                    )
                    raise
                logger.warning(
                    "workflow_conflict_retry",
                    extra={
                        "operation": operation,
                        "attempt": attempt_no,
                        "expected_version": exc.expected_version,
                        "actual_version": exc.actual_version,
                    },
                )
                continue
            except Exception as exc:
                duration_ms = round((time.monotonic() - t0) * 1000, 2)
                if self._auto_commit:
                    self._session.rollback()
                logger.warning(
                    f"{operation}_rejected",
                    extra={
                        "duration_ms": duration_ms,
                        "error_code": getattr(exc, "code", type(exc).__name__),
                    },
                )
                raise

            duration_ms = round((time.monotonic() - t0) * 1000, 2)
            logger.info(
                f"{operation}_completed",
                extra={"duration_ms": duration_ms, "attempts": attempt_no},
            )
            return result
