"""
Workflow aggregate types (``handoff_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for one case's department workflow: the locked
documentation sections, the routing history, the current/completed
departments, and the read-only queries renderers use.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``models/``, ``services/``, or outer layers.

Invariants enforced
-------------------
* Sections and routing entries live in tuples: a workflow value can
  never be mutated, only replaced by a successor.
* Every ``CompletedSection`` is ``locked`` from construction, and its
  values are read-only at every nesting level.
* ``completed_departments`` holds each department at most once.
* ``verify_successor`` rejects any successor that edits, drops or
  reorders an existing section/entry or un-completes a department.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any
from uuid import UUID

from handoff_kernel.domain.departments import Department
from handoff_kernel.exceptions import ImmutabilityViolationError


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    return value


@dataclass(frozen=True)
class Actor:
    """Identity context for a call, supplied by the identity collaborator.

    The kernel trusts these values; it performs no authentication.
    """

    user_id: str
    user_name: str
    department: Department

    def __post_init__(self) -> None:
        object.__setattr__(self, "department", Department.parse(self.department))


@dataclass(frozen=True)
class CompletedSection:
    """One locked, timestamped submission against a template. Immutable.

    ``department`` is the template's owning department, not necessarily
    the department of the submitting actor.
    """

    id: UUID
    template_id: str
    department: Department
    completed_by_user_id: str
    completed_by_name: str
    completed_at: datetime
    values: Mapping[str, Any] = field(default_factory=dict)
    locked: bool = True
    signature: str | None = None
    notes: str | None = None
    content_hash: str | None = None

    def __post_init__(self) -> None:
        if self.locked is not True:
            raise ImmutabilityViolationError(
                entity_type="CompletedSection",
                entity_id=str(self.id),
                reason="completed sections are locked from creation",
            )
        object.__setattr__(self, "department", Department.parse(self.department))
        object.__setattr__(self, "values", _freeze(self.values))


@dataclass(frozen=True)
class RoutingHistoryEntry:
    """One hand-off. ``department`` is the destination."""

    department: Department
    sent_by_name: str
    sent_at: datetime
    notes: str | None = None
    from_department: Department | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "department", Department.parse(self.department))
        if self.from_department is not None:
            object.__setattr__(
                self, "from_department", Department.parse(self.from_department)
            )


@dataclass(frozen=True)
class WorkflowAggregate:
    """The one persisted entity exchanged with external storage.

    Contract: frozen; mutated only by producing a successor through
    ``ledger.append`` or ``routing.send_to``.
    """

    case_id: str
    current_department: Department | None
    completed_departments: tuple[Department, ...] = ()
    documentation_sections: tuple[CompletedSection, ...] = ()
    routing_history: tuple[RoutingHistoryEntry, ...] = ()

    def __post_init__(self) -> None:
        if not self.case_id:
            raise ValueError("case_id is required")
        if self.current_department is not None:
            object.__setattr__(
                self, "current_department", Department.parse(self.current_department)
            )
        completed = tuple(Department.parse(d) for d in self.completed_departments)
        if len(set(completed)) != len(completed):
            raise ValueError(
                f"completed_departments for case {self.case_id} contains duplicates"
            )
        object.__setattr__(self, "completed_departments", completed)
        object.__setattr__(
            self, "documentation_sections", tuple(self.documentation_sections)
        )
        object.__setattr__(self, "routing_history", tuple(self.routing_history))


def new_workflow(case_id: str, originating_department: Department | str) -> WorkflowAggregate:
    """A case entering the workflow at its originating department."""
    return WorkflowAggregate(
        case_id=case_id,
        current_department=Department.parse(originating_department),
    )


# =========================================================================
# Read-only accessors
# =========================================================================


def sections_for_department(
    workflow: WorkflowAggregate, department: Department | str
) -> tuple[CompletedSection, ...]:
    """All completed sections owned by ``department``, in append order."""
    dept = Department.parse(department)
    return tuple(s for s in workflow.documentation_sections if s.department == dept)


def is_department_complete(workflow: WorkflowAggregate, department: Department | str) -> bool:
    return Department.parse(department) in workflow.completed_departments


def is_fully_routed(
    workflow: WorkflowAggregate, required_departments: Iterable[Department | str]
) -> bool:
    """Pure set containment; ``current_department`` is not consulted."""
    required = {Department.parse(d) for d in required_departments}
    return required.issubset(workflow.completed_departments)


def pending_departments(
    workflow: WorkflowAggregate, required_departments: Iterable[Department | str]
) -> tuple[Department, ...]:
    """Required departments that have not completed, in the order given."""
    pending: list[Department] = []
    for d in required_departments:
        dept = Department.parse(d)
        if dept not in workflow.completed_departments and dept not in pending:
            pending.append(dept)
    return tuple(pending)


def latest_routing_entry(workflow: WorkflowAggregate) -> RoutingHistoryEntry | None:
    return workflow.routing_history[-1] if workflow.routing_history else None


# =========================================================================
# Successor check
# =========================================================================


def verify_successor(previous: WorkflowAggregate, successor: WorkflowAggregate) -> None:
    """Check that ``successor`` only appends to ``previous``.

    Raises:
        ImmutabilityViolationError: If the case id changed, a completed
            department was dropped, or any existing section or routing
            entry was altered, removed or reordered.
    """
    if successor.case_id != previous.case_id:
        raise ImmutabilityViolationError(
            entity_type="WorkflowAggregate",
            entity_id=previous.case_id,
            reason=f"case id cannot change to {successor.case_id}",
        )

    dropped = [d for d in previous.completed_departments if d not in successor.completed_departments]
    if dropped:
        raise ImmutabilityViolationError(
            entity_type="WorkflowAggregate",
            entity_id=previous.case_id,
            reason=f"completed departments cannot be removed: {[d.value for d in dropped]}",
        )

    prior_sections = previous.documentation_sections
    if successor.documentation_sections[: len(prior_sections)] != prior_sections:
        raise ImmutabilityViolationError(
            entity_type="CompletedSection",
            entity_id=previous.case_id,
            reason="existing documentation sections were modified or removed",
        )

    prior_history = previous.routing_history
    if successor.routing_history[: len(prior_history)] != prior_history:
        raise ImmutabilityViolationError(
            entity_type="RoutingHistoryEntry",
            entity_id=previous.case_id,
            reason="existing routing history entries were modified or removed",
        )
