"""Value objects exchanged with the approval engine.

These are plain dataclasses: inputs for template administration and listing, and
the results returned by task actions, bulk actions and paginated queries.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Generic, TypeVar
from uuid import UUID

from litestar_approvals.core.types import StepType, TaskAction, WorkflowPriority, WorkflowStatus

__all__ = [
    "BulkActionResult",
    "InstanceFilters",
    "Page",
    "PageRequest",
    "StepSpec",
    "TaskActionResult",
    "WorkflowStatistics",
]

T = TypeVar("T")


@dataclass(frozen=True)
class StepSpec:
    """Definition of one template step, as supplied by an administrator.

    Attributes:
        order: 1-based position of the step in the chain.
        name: Display name of the step.
        required_role: Role the assignee must hold.
        is_required: Non-required steps are skipped when nobody holds the role.
        sla_hours: Hours allowed for the step's task, if any.
        step_type: Approval or informational step.
    """

    order: int
    name: str
    required_role: str
    is_required: bool = True
    sla_hours: int | None = None
    step_type: StepType = StepType.APPROVAL


@dataclass(frozen=True)
class TaskActionResult:
    """Outcome of a processed task decision.

    Attributes:
        task_id: The decided task.
        instance_id: The instance the task belongs to.
        action: The applied decision.
        instance_status: Instance status after the decision.
        next_step_order: Order of the newly dispatched step, None when the instance ended.
    """

    task_id: UUID
    instance_id: UUID
    action: TaskAction
    instance_status: WorkflowStatus
    next_step_order: int | None = None

    @property
    def is_terminal(self) -> bool:
        """Whether the decision ended the workflow."""
        return self.next_step_order is None


@dataclass(frozen=True)
class BulkActionResult:
    """Per-instance outcome of a bulk action.

    Attributes:
        instance_id: The processed instance.
        success: Whether the action was applied.
        error: Error message when the action failed.
        error_kind: Stable error family of the failure (``not_found``, ``invalid_state``...).
    """

    instance_id: UUID
    success: bool
    error: str | None = None
    error_kind: str | None = None


@dataclass
class InstanceFilters:
    """Optional filters for instance listings."""

    status: WorkflowStatus | None = None
    priority: WorkflowPriority | None = None
    template_id: UUID | None = None
    document_id: str | None = None


@dataclass(frozen=True)
class PageRequest:
    """1-based page number and page size."""

    page: int = 1
    size: int = 20

    def __post_init__(self) -> None:
        if self.page < 1:
            msg = "page must be >= 1"
            raise ValueError(msg)
        if not 1 <= self.size <= 100:
            msg = "size must be between 1 and 100"
            raise ValueError(msg)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.size


@dataclass
class Page(Generic[T]):
    """One page of a listing plus pagination metadata.

    Attributes:
        items: Items on this page.
        total: Total number of matching items.
        page: 1-based page number.
        size: Requested page size.
    """

    items: list[T]
    total: int
    page: int
    size: int

    @property
    def total_pages(self) -> int:
        return max(1, math.ceil(self.total / self.size))

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1


@dataclass
class WorkflowStatistics:
    """Aggregate counts for a dashboard.

    Attributes:
        total: Number of instances considered.
        by_status: Instance count per status; every status is present.
        pending_tasks: Number of pending tasks.
        overdue_tasks: Number of pending tasks past their due date.
    """

    total: int = 0
    by_status: dict[str, int] = field(default_factory=lambda: {status.value: 0 for status in WorkflowStatus})
    pending_tasks: int = 0
    overdue_tasks: int = 0
