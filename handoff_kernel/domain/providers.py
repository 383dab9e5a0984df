"""
Collaborator protocols.

The kernel consumes these contracts; concrete implementations live
outside the domain layer (``handoff_config.TemplateCatalog`` for the
catalog, the application for notifications).
"""

from __future__ import annotations

from typing import Protocol

from handoff_kernel.domain.departments import Department
from handoff_kernel.domain.schema import DocumentationTemplate
from handoff_kernel.domain.workflow import (
    CompletedSection,
    RoutingHistoryEntry,
    WorkflowAggregate,
)


class TemplateCatalogProvider(Protocol):
    """Static, externally supplied department -> templates mapping."""

    def get_templates_for_department(
        self, department: Department | str
    ) -> tuple[DocumentationTemplate, ...]:
        """Templates owned by ``department``, in catalog order."""
        ...

    def get_template_by_id(self, template_id: str) -> DocumentationTemplate:
        """Raises TemplateNotFoundError for an unknown id."""
        ...


class NotificationSink(Protocol):
    """Fired by the caller after a successful, committed operation."""

    def section_locked(self, workflow: WorkflowAggregate, section: CompletedSection) -> None:
        ...

    def case_routed(self, workflow: WorkflowAggregate, entry: RoutingHistoryEntry) -> None:
        ...
