"""
Pure domain layer.

This module contains the workflow value objects and the engine's pure
operations, with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- Wall-clock time (an injected Clock is used instead)

Every operation maps ``(old workflow, inputs)`` to ``(new workflow, result)``.
"""

from handoff_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from handoff_kernel.domain.departments import ALL_DEPARTMENTS, Department
from handoff_kernel.domain.ledger import (
    append,
    compute_section_hash,
    verify_section_integrity,
)
from handoff_kernel.domain.providers import NotificationSink, TemplateCatalogProvider
from handoff_kernel.domain.routing import can_send, send_to
from handoff_kernel.domain.schema import (
    BooleanField,
    DateField,
    DocumentationTemplate,
    FieldSchema,
    FieldType,
    NumberField,
    SelectField,
    TextAreaField,
    TextField,
    build_field,
)
from handoff_kernel.domain.validation import validate_section
from handoff_kernel.domain.workflow import (
    Actor,
    CompletedSection,
    RoutingHistoryEntry,
    WorkflowAggregate,
    is_department_complete,
    is_fully_routed,
    latest_routing_entry,
    new_workflow,
    pending_departments,
    sections_for_department,
    verify_successor,
)

__all__ = [
    "ALL_DEPARTMENTS",
    "Actor",
    "BooleanField",
    "Clock",
    "CompletedSection",
    "DateField",
    "Department",
    "DeterministicClock",
    "DocumentationTemplate",
    "FieldSchema",
    "FieldType",
    "NotificationSink",
    "NumberField",
    "RoutingHistoryEntry",
    "SelectField",
    "SystemClock",
    "TemplateCatalogProvider",
    "TextAreaField",
    "TextField",
    "WorkflowAggregate",
    "append",
    "build_field",
    "can_send",
    "compute_section_hash",
    "is_department_complete",
    "is_fully_routed",
    "latest_routing_entry",
    "new_workflow",
    "pending_departments",
    "sections_for_department",
    "send_to",
    "validate_section",
    "verify_section_integrity",
    "verify_successor",
]
