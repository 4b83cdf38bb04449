"""Data Transfer Objects for the approvals web API.

This module defines DTOs for serializing and deserializing approval data in REST
API requests and responses, plus the functions that build response DTOs from the
ORM models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

from litestar_approvals.core.models import StepSpec
from litestar_approvals.core.types import StepType

if TYPE_CHECKING:
    from litestar_approvals.core.models import BulkActionResult, Page, TaskActionResult, WorkflowStatistics
    from litestar_approvals.db.models import (
        StepDefinitionModel,
        WorkflowHistoryModel,
        WorkflowInstanceModel,
        WorkflowTaskModel,
        WorkflowTemplateModel,
    )

__all__ = [
    "BulkActionDTO",
    "BulkActionResultDTO",
    "CreateTemplateDTO",
    "HistoryEntryDTO",
    "InstanceActionDTO",
    "InstancePageDTO",
    "ReassignTaskDTO",
    "StartWorkflowDTO",
    "StatisticsDTO",
    "StepDTO",
    "StepDefinitionDTO",
    "TaskActionDTO",
    "TaskActionResultDTO",
    "TaskDTO",
    "TemplateDTO",
    "WorkflowInstanceDTO",
    "WorkflowInstanceDetailDTO",
    "action_result_to_dto",
    "bulk_result_to_dto",
    "history_to_dto",
    "instance_to_detail_dto",
    "instance_to_dto",
    "page_to_dto",
    "statistics_to_dto",
    "step_definition_to_dto",
    "task_to_dto",
    "template_to_dto",
]


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


@dataclass
class StartWorkflowDTO:
    """DTO for starting a workflow on a document.

    Attributes:
        document_id: The document to approve.
        template_id: The template to instantiate.
        initiator_id: The user starting the workflow.
        title: Optional title; defaults to one derived from the document.
        description: Optional description.
        priority: Optional priority (low, normal, high, urgent).
    """

    document_id: str
    template_id: UUID
    initiator_id: str
    title: str | None = None
    description: str | None = None
    priority: str | None = None


@dataclass
class TaskActionDTO:
    """DTO for deciding a task.

    Attributes:
        action: ``approve`` or ``reject``, case-insensitive.
        user_id: The deciding user.
        comments: Optional decision comment.
    """

    action: str
    user_id: str
    comments: str | None = None


@dataclass
class ReassignTaskDTO:
    """DTO for reassigning a task.

    Attributes:
        new_assignee_id: The user who takes over the task.
        user_id: The user performing the reassignment.
        reason: Optional reason for the reassignment.
    """

    new_assignee_id: str
    user_id: str
    reason: str | None = None


@dataclass
class InstanceActionDTO:
    """DTO for cancel, hold and resume requests.

    Attributes:
        user_id: The user performing the action.
        reason: Optional reason (ignored by resume).
    """

    user_id: str
    reason: str | None = None


@dataclass
class BulkActionDTO:
    """DTO for bulk instance actions.

    Attributes:
        action: ``cancel``, ``hold`` or ``resume``, case-insensitive.
        instance_ids: Workflows to process.
        user_id: The user performing the action.
        reason: Optional reason for cancel and hold.
    """

    action: str
    instance_ids: list[UUID]
    user_id: str
    reason: str | None = None


@dataclass
class StepDTO:
    """DTO for one step of a new template."""

    order: int
    name: str
    required_role: str
    is_required: bool = True
    sla_hours: int | None = None
    step_type: StepType = StepType.APPROVAL

    def to_spec(self) -> StepSpec:
        return StepSpec(
            order=self.order,
            name=self.name,
            required_role=self.required_role,
            is_required=self.is_required,
            sla_hours=self.sla_hours,
            step_type=self.step_type,
        )


@dataclass
class CreateTemplateDTO:
    """DTO for creating a template.

    Attributes:
        name: Unique template name.
        steps: Ordered step definitions.
        created_by: The creating user.
        description: Optional description.
        default_sla_hours: Hours until an instance is due.
    """

    name: str
    steps: list[StepDTO]
    created_by: str | None = None
    description: str | None = None
    default_sla_hours: int | None = None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


@dataclass
class StepDefinitionDTO:
    """DTO for a stored template step."""

    id: UUID
    order: int
    name: str
    required_role: str
    is_required: bool
    sla_hours: int | None
    step_type: str


@dataclass
class TemplateDTO:
    """DTO for a template and its steps."""

    id: UUID
    name: str
    description: str | None
    is_active: bool
    default_sla_hours: int | None
    created_by: str | None
    steps: list[StepDefinitionDTO] = field(default_factory=list)


@dataclass
class TaskDTO:
    """DTO for an approval task.

    Attributes:
        id: Task ID.
        instance_id: The workflow instance the task belongs to.
        step_order: Order of the task's step.
        step_name: Name of the task's step.
        step_type: ``approval`` or ``informational``.
        title: Display title.
        assignee_id: The user who must decide the task.
        status: Task status.
        due_at: Deadline for the decision.
        completed_at: When the task was decided or closed.
        completed_by: Who decided the task.
        comments: Decision comment.
    """

    id: UUID
    instance_id: UUID
    step_order: int
    step_name: str
    step_type: str
    title: str
    assignee_id: str
    status: str
    due_at: datetime | None = None
    completed_at: datetime | None = None
    completed_by: str | None = None
    comments: str | None = None


@dataclass
class WorkflowInstanceDTO:
    """DTO for workflow instance summary.

    Attributes:
        id: Instance ID.
        template_id: Template the instance was created from.
        template_name: Name of that template.
        document_id: The document under approval.
        title: Display title.
        status: Current workflow status.
        current_step_order: Step awaiting action, None once the workflow ended.
        priority: Workflow priority.
        initiated_by: User who started the workflow.
        created_at: When the workflow started.
        due_at: Deadline of the workflow.
        ended_at: When the workflow ended.
    """

    id: UUID
    template_id: UUID
    template_name: str | None
    document_id: str
    title: str
    status: str
    current_step_order: int | None
    priority: str
    initiated_by: str
    created_at: datetime
    due_at: datetime | None = None
    ended_at: datetime | None = None


@dataclass
class WorkflowInstanceDetailDTO(WorkflowInstanceDTO):
    """DTO for a workflow instance with its description, comments and tasks."""

    description: str | None = None
    comments: str | None = None
    tasks: list[TaskDTO] = field(default_factory=list)


@dataclass
class InstancePageDTO:
    """DTO for one page of workflow instances."""

    items: list[WorkflowInstanceDTO]
    total: int
    page: int
    size: int
    total_pages: int
    has_next: bool
    has_previous: bool


@dataclass
class HistoryEntryDTO:
    """DTO for one history entry."""

    id: UUID
    sequence: int
    action: str
    details: str | None
    performed_by: str | None
    action_date: datetime
    data: dict[str, Any] = field(default_factory=dict)


@dataclass
class TaskActionResultDTO:
    """DTO for the outcome of a task decision."""

    task_id: UUID
    instance_id: UUID
    action: str
    instance_status: str
    next_step_order: int | None


@dataclass
class BulkActionResultDTO:
    """DTO for the outcome of a bulk action on one instance."""

    instance_id: UUID
    success: bool
    error: str | None = None
    error_kind: str | None = None


@dataclass
class StatisticsDTO:
    """DTO for dashboard counts."""

    total: int
    by_status: dict[str, int]
    pending_tasks: int
    overdue_tasks: int


# ---------------------------------------------------------------------------
# Converters
# ---------------------------------------------------------------------------


def step_definition_to_dto(step: StepDefinitionModel) -> StepDefinitionDTO:
    return StepDefinitionDTO(
        id=step.id,
        order=step.step_order,
        name=step.name,
        required_role=step.required_role,
        is_required=step.is_required,
        sla_hours=step.sla_hours,
        step_type=step.step_type.value,
    )


def template_to_dto(template: WorkflowTemplateModel) -> TemplateDTO:
    return TemplateDTO(
        id=template.id,
        name=template.name,
        description=template.description,
        is_active=template.is_active,
        default_sla_hours=template.default_sla_hours,
        created_by=template.created_by,
        steps=[step_definition_to_dto(step) for step in template.steps],
    )


def task_to_dto(task: WorkflowTaskModel) -> TaskDTO:
    return TaskDTO(
        id=task.id,
        instance_id=task.instance_id,
        step_order=task.step_order,
        step_name=task.step_name,
        step_type=task.step_type.value,
        title=task.title,
        assignee_id=task.assignee_id,
        status=task.status.value,
        due_at=task.due_at,
        completed_at=task.completed_at,
        completed_by=task.completed_by,
        comments=task.comments,
    )


def _instance_fields(instance: WorkflowInstanceModel) -> dict[str, Any]:
    return {
        "id": instance.id,
        "template_id": instance.template_id,
        "template_name": instance.template.name if instance.template else None,
        "document_id": instance.document_id,
        "title": instance.title,
        "status": instance.status.value,
        "current_step_order": instance.current_step_order,
        "priority": instance.priority.value,
        "initiated_by": instance.initiated_by,
        "created_at": instance.created_at,
        "due_at": instance.due_at,
        "ended_at": instance.ended_at,
    }


def instance_to_dto(instance: WorkflowInstanceModel) -> WorkflowInstanceDTO:
    return WorkflowInstanceDTO(**_instance_fields(instance))


def instance_to_detail_dto(instance: WorkflowInstanceModel) -> WorkflowInstanceDetailDTO:
    return WorkflowInstanceDetailDTO(
        **_instance_fields(instance),
        description=instance.description,
        comments=instance.comments,
        tasks=[task_to_dto(task) for task in instance.tasks],
    )


def page_to_dto(page: Page[WorkflowInstanceModel]) -> InstancePageDTO:
    return InstancePageDTO(
        items=[instance_to_dto(instance) for instance in page.items],
        total=page.total,
        page=page.page,
        size=page.size,
        total_pages=page.total_pages,
        has_next=page.has_next,
        has_previous=page.has_previous,
    )


def history_to_dto(entry: WorkflowHistoryModel) -> HistoryEntryDTO:
    return HistoryEntryDTO(
        id=entry.id,
        sequence=entry.sequence,
        action=entry.action,
        details=entry.details,
        performed_by=entry.performed_by,
        action_date=entry.action_date,
        data=dict(entry.data or {}),
    )


def action_result_to_dto(result: TaskActionResult) -> TaskActionResultDTO:
    return TaskActionResultDTO(
        task_id=result.task_id,
        instance_id=result.instance_id,
        action=result.action.value,
        instance_status=result.instance_status.value,
        next_step_order=result.next_step_order,
    )


def bulk_result_to_dto(result: BulkActionResult) -> BulkActionResultDTO:
    return BulkActionResultDTO(
        instance_id=result.instance_id,
        success=result.success,
        error=result.error,
        error_kind=result.error_kind,
    )


def statistics_to_dto(stats: WorkflowStatistics) -> StatisticsDTO:
    return StatisticsDTO(
        total=stats.total,
        by_status=dict(stats.by_status),
        pending_tasks=stats.pending_tasks,
        overdue_tasks=stats.overdue_tasks,
    )
