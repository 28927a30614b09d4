"""Selectors for the approval kernel (read side)."""

from approval_kernel.selectors.workflow_selector import (
    ApprovalStatistics,
    PendingApproval,
    StatisticsRow,
    WorkflowHistoryEntry,
    WorkflowSelector,
)

__all__ = [
    "WorkflowSelector",
    "PendingApproval",
    "WorkflowHistoryEntry",
    "StatisticsRow",
    "ApprovalStatistics",
]
