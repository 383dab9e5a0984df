"""Services for the handoff kernel (write side)."""

from handoff_kernel.services.workflow_service import DepartmentWorkflowService
from handoff_kernel.services.workflow_store import WorkflowSnapshot, WorkflowStore

__all__ = [
    "DepartmentWorkflowService",
    "WorkflowSnapshot",
    "WorkflowStore",
]
