"""
Kernel Invariants Contract.

These invariants are structural law. No template catalog, setting, or
caller policy may override them.

This module exists solely to declare these invariants explicitly. The
enforcement is distributed across the domain value types (frozen tuples),
``domain.workflow.verify_successor``, the ORM append-only listeners in
``models.workflow``, and ``WorkflowStore.save_workflow``.
"""

from enum import Enum, unique


@unique
class KernelInvariant(str, Enum):
    """Non-configurable invariants enforced by the kernel.

    Each value names one structural guarantee that the kernel provides
    unconditionally.
    """

    APPEND_ONLY_SECTIONS = "append_only_sections"
    """Completed sections are locked from creation and never edited,
    reordered or removed. Enforced by frozen tuples, verify_successor
    and ORM listeners."""

    MONOTONIC_COMPLETION = "monotonic_completion"
    """completed_departments only grows and holds each department at
    most once. Enforced by routing.send_to and verify_successor."""

    MONOTONIC_HISTORY = "monotonic_history"
    """Exactly one routing history entry per successful hand-off, in call
    order. Enforced by routing.send_to, verify_successor and ORM
    listeners."""

    AUTHORIZED_HANDOFF = "authorized_handoff"
    """Only the department currently holding the case may hand it off.
    Enforced by routing.send_to."""

    KNOWN_DEPARTMENT = "known_department"
    """current_department is always a configured Department. Enforced by
    the Department enum at every boundary."""

    OPTIMISTIC_WRITES = "optimistic_writes"
    """A workflow is only written over the version it was computed from.
    Enforced by WorkflowStore.save_workflow."""


# All invariants as a frozenset for programmatic checks.
ALL_KERNEL_INVARIANTS: frozenset[KernelInvariant] = frozenset(KernelInvariant)

# The kernel package may not import from these packages.
# This is enforced by tests/architecture/test_kernel_boundary.py.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "handoff_config",
)
