"""ORM models for the handoff kernel."""

from handoff_kernel.models.workflow import (
    CaseWorkflowModel,
    DocumentationSectionModel,
    RoutingEntryModel,
)

__all__ = [
    "CaseWorkflowModel",
    "DocumentationSectionModel",
    "RoutingEntryModel",
]
