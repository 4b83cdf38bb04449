"""Core type definitions for litestar-approvals.

This module defines the enums shared by the persistence layer, the approval engine
and the web API.
"""

from __future__ import annotations

from enum import StrEnum, auto

__all__ = [
    "ACTIVE_STATUSES",
    "ACTIONABLE_STATUSES",
    "TERMINAL_STATUSES",
    "BulkAction",
    "HistoryAction",
    "StepType",
    "TaskAction",
    "TaskStatus",
    "WorkflowPriority",
    "WorkflowStatus",
]


class StepType(StrEnum):
    """Classification of template steps.

    Attributes:
        APPROVAL: The assignee must approve or reject.
        INFORMATIONAL: The assignee only acknowledges (approve) the step.
    """

    APPROVAL = auto()
    INFORMATIONAL = auto()


class WorkflowStatus(StrEnum):
    """Overall status of a workflow instance.

    Attributes:
        PENDING: Created, current step not yet acted on (informational first step).
        IN_PROGRESS: A decision task is dispatched and awaited.
        ON_HOLD: Temporarily paused; task actions are refused.
        APPROVED: Every step was approved.
        REJECTED: A step was rejected.
        CANCELLED: Cancelled before completion.
        EXPIRED: Timed out by an external SLA sweep.
        COMPLETED: Finished without an approval outcome.
    """

    PENDING = auto()
    IN_PROGRESS = auto()
    ON_HOLD = auto()
    APPROVED = auto()
    REJECTED = auto()
    CANCELLED = auto()
    EXPIRED = auto()
    COMPLETED = auto()


class TaskStatus(StrEnum):
    """Status of a single step task.

    Attributes:
        PENDING: Awaiting a decision from the assignee.
        APPROVED: The assignee approved the step.
        REJECTED: The assignee rejected the step.
        COMPLETED: Closed without a decision (e.g. the workflow was cancelled).
    """

    PENDING = auto()
    APPROVED = auto()
    REJECTED = auto()
    COMPLETED = auto()


class TaskAction(StrEnum):
    """Decision a user can submit for a task."""

    APPROVE = auto()
    REJECT = auto()


class BulkAction(StrEnum):
    """Actions accepted by bulk instance processing."""

    CANCEL = auto()
    HOLD = auto()
    RESUME = auto()


class HistoryAction(StrEnum):
    """Labels of workflow history entries."""

    WORKFLOW_CREATED = "Workflow Created"
    STEP_APPROVED = "Step Approved"
    STEP_REJECTED = "Step Rejected"
    WORKFLOW_CANCELLED = "Workflow Cancelled"
    WORKFLOW_ON_HOLD = "Workflow On Hold"
    WORKFLOW_RESUMED = "Workflow Resumed"
    TASK_REASSIGNED = "Task Reassigned"


class WorkflowPriority(StrEnum):
    """Priority of a workflow instance."""

    LOW = auto()
    NORMAL = auto()
    HIGH = auto()
    URGENT = auto()


TERMINAL_STATUSES: frozenset[WorkflowStatus] = frozenset(
    {
        WorkflowStatus.APPROVED,
        WorkflowStatus.REJECTED,
        WorkflowStatus.CANCELLED,
        WorkflowStatus.EXPIRED,
        WorkflowStatus.COMPLETED,
    }
)
"""Statuses after which an instance has no current step."""

ACTIVE_STATUSES: frozenset[WorkflowStatus] = frozenset(
    {WorkflowStatus.PENDING, WorkflowStatus.IN_PROGRESS, WorkflowStatus.ON_HOLD}
)
"""Statuses in which an instance can still be cancelled."""

ACTIONABLE_STATUSES: frozenset[WorkflowStatus] = frozenset({WorkflowStatus.PENDING, WorkflowStatus.IN_PROGRESS})
"""Statuses in which task decisions are accepted."""
