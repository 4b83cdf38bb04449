"""Core domain module for litestar-approvals.

This module exports the enums, collaborator protocols and value objects shared by
the persistence layer, the approval engine and the web API.
"""

from __future__ import annotations

from litestar_approvals.core.models import (
    BulkActionResult,
    InstanceFilters,
    Page,
    PageRequest,
    StepSpec,
    TaskActionResult,
    WorkflowStatistics,
)
from litestar_approvals.core.protocols import DocumentLookup, DocumentRef, Notifier, UserDirectory, UserRef
from litestar_approvals.core.types import (
    ACTIONABLE_STATUSES,
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    BulkAction,
    HistoryAction,
    StepType,
    TaskAction,
    TaskStatus,
    WorkflowPriority,
    WorkflowStatus,
)

__all__ = [
    "ACTIONABLE_STATUSES",
    "ACTIVE_STATUSES",
    "TERMINAL_STATUSES",
    "BulkAction",
    "BulkActionResult",
    "DocumentLookup",
    "DocumentRef",
    "HistoryAction",
    "InstanceFilters",
    "Notifier",
    "Page",
    "PageRequest",
    "StepSpec",
    "StepType",
    "TaskAction",
    "TaskActionResult",
    "TaskStatus",
    "UserDirectory",
    "UserRef",
    "WorkflowPriority",
    "WorkflowStatistics",
    "WorkflowStatus",
]
