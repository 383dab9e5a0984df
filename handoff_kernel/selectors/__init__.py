"""Selectors for the handoff kernel (read side)."""

from handoff_kernel.selectors.workflow_selector import CaseSummaryDTO, WorkflowSelector

__all__ = [
    "CaseSummaryDTO",
    "WorkflowSelector",
]
