"""
DocumentationLedger -- append-only bookkeeping of locked sections.

Responsibility:
    Turns a validated submission into a locked ``CompletedSection`` and
    appends it to a workflow, producing a new aggregate value.

Architecture position:
    Kernel > Domain -- pure functional core.  Time and ids come from an
    injected Clock and id factory.

Invariants enforced:
    APPEND_ONLY_SECTIONS -- the successor's sections are the input's
    sections plus exactly one new, locked section at the end.

Failure modes:
    - ValidationError / FieldTypeError from the Section Validator.

Non-goals:
    Deciding *who* may add documentation.  That policy belongs to the
    caller (see ``DepartmentWorkflowService.add_documentation``).
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import replace
from typing import Any
from uuid import UUID, uuid4

from handoff_kernel.domain.clock import Clock, SystemClock
from handoff_kernel.domain.schema import DocumentationTemplate
from handoff_kernel.domain.validation import validate_section
from handoff_kernel.domain.workflow import Actor, CompletedSection, WorkflowAggregate
from handoff_kernel.exceptions import TamperDetectedError
from handoff_kernel.logging_config import get_logger
from handoff_kernel.utils.hashing import hash_payload, to_json_compatible

logger = get_logger("domain.ledger")


def compute_section_hash(section: CompletedSection) -> str:
    """Fingerprint of everything a locked section asserts."""
    return hash_payload({
        "id": section.id,
        "template_id": section.template_id,
        "department": section.department,
        "completed_by_user_id": section.completed_by_user_id,
        "completed_by_name": section.completed_by_name,
        "completed_at": section.completed_at,
        "values": section.values,
        "signature": section.signature,
        "notes": section.notes,
    })


def verify_section_integrity(section: CompletedSection) -> None:
    """
    Raises:
        TamperDetectedError: If the stored fingerprint does not match.
    """
    actual = compute_section_hash(section)
    if section.content_hash != actual:
        logger.error(
            "section_tamper_detected",
            extra={"section_id": str(section.id), "template_id": section.template_id},
        )
        raise TamperDetectedError(str(section.id), section.content_hash or "", actual)


def append(
    workflow: WorkflowAggregate,
    template: DocumentationTemplate,
    values: Mapping[str, Any],
    actor: Actor,
    *,
    signature: str | None = None,
    notes: str | None = None,
    clock: Clock | None = None,
    id_factory: Callable[[], UUID] = uuid4,
) -> tuple[WorkflowAggregate, CompletedSection]:
    """Validate ``values`` and lock them into a new section.

    The input workflow is never modified. Values are locked in the JSON
    form storage returns them in, so a reloaded section compares equal.

    Returns:
        ``(new_workflow, new_section)``.

    Raises:
        ValidationError: Required fields are missing.
        FieldTypeError: A number field holds a non-numeric value.
    """
    validate_section(template, values)

    section = CompletedSection(
        id=id_factory(),
        template_id=template.id,
        department=template.department,
        completed_by_user_id=actor.user_id,
        completed_by_name=actor.user_name,
        completed_at=(clock or SystemClock()).now(),
        values=to_json_compatible(dict(values)),
        signature=signature,
        notes=notes,
    )
    section = replace(section, content_hash=compute_section_hash(section))

    successor = replace(
        workflow,
        documentation_sections=workflow.documentation_sections + (section,),
    )

    logger.info(
        "section_locked",
        extra={
            "case_id": workflow.case_id,
            "section_id": str(section.id),
            "template_id": template.id,
            "section_department": section.department.value,
            "acting_department": actor.department.value,
            "section_count": len(successor.documentation_sections),
        },
    )
    return successor, section
