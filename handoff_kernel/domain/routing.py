"""
RoutingStateMachine -- authorized hand-off of a case between departments.

Responsibility:
    Owns ``current_department`` / ``completed_departments`` and the only
    transition that changes them, recording each hand-off in the routing
    history.

Architecture position:
    Kernel > Domain -- pure functional core.

States:
    ``current_department = D`` for any Department ``D``, or ``None``.
    There is no terminal state: completion of the whole case is inferred
    by comparing ``completed_departments`` against an externally supplied
    set of required departments (``workflow.is_fully_routed``).

Transition ``send_to``:
    1. ``acting_department`` must equal ``current_department``
       (AuthorizationError otherwise; a workflow with no current
       department cannot be handed off).
    2. Mark ``acting_department`` complete if it is not already.
    3. Append a routing history entry.
    4. ``current_department = to_department``.

Routing back to a department that already completed is legal; its
earlier locked sections are untouched and it stays in
``completed_departments``.
"""

from __future__ import annotations

from dataclasses import replace

from handoff_kernel.domain.clock import Clock, SystemClock
from handoff_kernel.domain.departments import Department
from handoff_kernel.domain.workflow import RoutingHistoryEntry, WorkflowAggregate
from handoff_kernel.exceptions import AuthorizationError
from handoff_kernel.logging_config import get_logger

logger = get_logger("domain.routing")


def can_send(workflow: WorkflowAggregate, acting_department: Department | str) -> bool:
    """Whether ``acting_department`` currently holds the case."""
    return (
        workflow.current_department is not None
        and workflow.current_department == Department.parse(acting_department)
    )


def send_to(
    workflow: WorkflowAggregate,
    to_department: Department | str,
    sent_by_name: str,
    acting_department: Department | str,
    notes: str | None = None,
    *,
    clock: Clock | None = None,
) -> WorkflowAggregate:
    """Hand the case from ``acting_department`` to ``to_department``.

    Returns:
        The successor workflow.  The input is never modified.

    Raises:
        AuthorizationError: ``acting_department`` does not hold the case.
        UnknownDepartmentError: Either department is not configured.
    """
    destination = Department.parse(to_department)
    actor_dept = Department.parse(acting_department)

    if not can_send(workflow, actor_dept):
        logger.warning(
            "routing_rejected",
            extra={
                "case_id": workflow.case_id,
                "acting_department": actor_dept.value,
                "current_department": (
                    workflow.current_department.value
                    if workflow.current_department
                    else None
                ),
                "to_department": destination.value,
            },
        )
        raise AuthorizationError(
            case_id=workflow.case_id,
            acting_department=actor_dept.value,
            current_department=(
                workflow.current_department.value if workflow.current_department else None
            ),
        )

    completed = workflow.completed_departments
    if actor_dept not in completed:
        completed = completed + (actor_dept,)

    entry = RoutingHistoryEntry(
        department=destination,
        sent_by_name=sent_by_name,
        sent_at=(clock or SystemClock()).now(),
        notes=notes or None,
        from_department=actor_dept,
    )

    successor = replace(
        workflow,
        current_department=destination,
        completed_departments=completed,
        routing_history=workflow.routing_history + (entry,),
    )

    logger.info(
        "case_routed",
        extra={
            "case_id": workflow.case_id,
            "from_department": actor_dept.value,
            "to_department": destination.value,
            "reopened": destination in completed,
            "history_length": len(successor.routing_history),
        },
    )
    return successor
