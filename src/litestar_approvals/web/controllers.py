"""REST API controllers for document approvals.

This module provides the controller classes of the approvals API:
- WorkflowInstanceController: Start, list, inspect, cancel, hold and resume workflows
- ApprovalTaskController: List, decide and reassign tasks
- TemplateController: Manage approval templates
- StatisticsController: Dashboard counts

Errors raised by the engine propagate to the ``ApprovalsError`` exception handler
registered by the plugin.
"""

from __future__ import annotations

from typing import ClassVar
from uuid import UUID

from litestar import Controller, delete, get, post, put
from litestar.params import Parameter
from litestar.status_codes import HTTP_200_OK

from litestar_approvals.core.models import InstanceFilters, PageRequest
from litestar_approvals.core.types import TaskStatus, WorkflowPriority, WorkflowStatus
from litestar_approvals.engine.approvals import ApprovalEngine  # noqa: TC001 - needed for DI
from litestar_approvals.engine.queries import ApprovalQueries  # noqa: TC001 - needed for DI
from litestar_approvals.engine.templates import TemplateService  # noqa: TC001 - needed for DI
from litestar_approvals.web.dto import (
    BulkActionDTO,
    BulkActionResultDTO,
    CreateTemplateDTO,
    HistoryEntryDTO,
    InstanceActionDTO,
    InstancePageDTO,
    ReassignTaskDTO,
    StartWorkflowDTO,
    StatisticsDTO,
    StepDTO,
    TaskActionDTO,
    TaskActionResultDTO,
    TaskDTO,
    TemplateDTO,
    WorkflowInstanceDetailDTO,
    WorkflowInstanceDTO,
    action_result_to_dto,
    bulk_result_to_dto,
    history_to_dto,
    instance_to_detail_dto,
    instance_to_dto,
    page_to_dto,
    statistics_to_dto,
    task_to_dto,
    template_to_dto,
)

__all__ = [
    "ApprovalTaskController",
    "StatisticsController",
    "TemplateController",
    "WorkflowInstanceController",
]


class WorkflowInstanceController(Controller):
    """API controller for workflow instances.

    Provides endpoints for starting approval workflows on documents and for
    managing their lifecycle.

    Tags: Approval Workflows
    """

    path = "/instances"
    tags: ClassVar[list[str]] = ["Approval Workflows"]

    @post("/")
    async def start_workflow(
        self,
        data: StartWorkflowDTO,
        approval_engine: ApprovalEngine,
    ) -> WorkflowInstanceDTO:
        """Start an approval workflow on a document.

        Args:
            data: Workflow start parameters.
            approval_engine: Injected approval engine.

        Returns:
            The created workflow instance.
        """
        instance = await approval_engine.start_workflow(
            data.document_id,
            data.template_id,
            initiator_id=data.initiator_id,
            title=data.title,
            description=data.description,
            priority=data.priority,
        )
        return instance_to_dto(instance)

    @get("/")
    async def list_instances(
        self,
        approval_queries: ApprovalQueries,
        user_id: str = Parameter(description="User whose workflows are listed"),
        status: WorkflowStatus | None = Parameter(
            default=None,
            description="Filter by status",
        ),
        priority: WorkflowPriority | None = Parameter(
            default=None,
            description="Filter by priority",
        ),
        template_id: UUID | None = Parameter(
            default=None,
            description="Filter by template",
        ),
        document_id: str | None = Parameter(
            default=None,
            description="Filter by document",
        ),
        page: int = Parameter(
            default=1,
            ge=1,
            description="1-based page number",
        ),
        size: int = Parameter(
            default=20,
            ge=1,
            le=100,
            description="Page size",
        ),
    ) -> InstancePageDTO:
        """List workflows the user initiated or holds a task in, newest first.

        Args:
            approval_queries: Injected read projections.
            user_id: The user whose workflows are listed.
            status: Optional status filter.
            priority: Optional priority filter.
            template_id: Optional template filter.
            document_id: Optional document filter.
            page: Page number.
            size: Page size.

        Returns:
            One page of workflow instances.
        """
        result = await approval_queries.list_instances_for_user(
            user_id,
            InstanceFilters(status=status, priority=priority, template_id=template_id, document_id=document_id),
            PageRequest(page=page, size=size),
        )
        return page_to_dto(result)

    @post("/bulk", status_code=HTTP_200_OK)
    async def bulk_action(
        self,
        data: BulkActionDTO,
        approval_engine: ApprovalEngine,
    ) -> list[BulkActionResultDTO]:
        """Cancel, hold or resume many workflows, reporting each outcome.

        Args:
            data: Bulk action parameters.
            approval_engine: Injected approval engine.

        Returns:
            One result per distinct instance, in request order.
        """
        results = await approval_engine.bulk_action(
            data.action,
            data.instance_ids,
            acting_user_id=data.user_id,
            reason=data.reason,
        )
        return [bulk_result_to_dto(result) for result in results]

    @get("/{instance_id:uuid}")
    async def get_instance(
        self,
        instance_id: UUID,
        approval_queries: ApprovalQueries,
    ) -> WorkflowInstanceDetailDTO:
        """Get a workflow instance with its tasks.

        Args:
            instance_id: The workflow instance ID.
            approval_queries: Injected read projections.

        Returns:
            Detailed workflow instance DTO.
        """
        instance = await approval_queries.get_instance(instance_id)
        return instance_to_detail_dto(instance)

    @get("/{instance_id:uuid}/history")
    async def get_history(
        self,
        instance_id: UUID,
        approval_queries: ApprovalQueries,
    ) -> list[HistoryEntryDTO]:
        """Get the history of a workflow instance in order.

        Args:
            instance_id: The workflow instance ID.
            approval_queries: Injected read projections.

        Returns:
            History entries in sequence order.
        """
        entries = await approval_queries.get_history(instance_id)
        return [history_to_dto(entry) for entry in entries]

    @post("/{instance_id:uuid}/cancel", status_code=HTTP_200_OK)
    async def cancel_instance(
        self,
        instance_id: UUID,
        data: InstanceActionDTO,
        approval_engine: ApprovalEngine,
    ) -> WorkflowInstanceDTO:
        """Cancel a workflow that has not ended.

        Args:
            instance_id: The workflow instance ID.
            data: Acting user and optional reason.
            approval_engine: Injected approval engine.

        Returns:
            The cancelled workflow instance.
        """
        instance = await approval_engine.cancel_workflow(
            instance_id,
            acting_user_id=data.user_id,
            reason=data.reason,
        )
        return instance_to_dto(instance)

    @post("/{instance_id:uuid}/hold", status_code=HTTP_200_OK)
    async def hold_instance(
        self,
        instance_id: UUID,
        data: InstanceActionDTO,
        approval_engine: ApprovalEngine,
    ) -> WorkflowInstanceDTO:
        """Put a workflow on hold.

        Args:
            instance_id: The workflow instance ID.
            data: Acting user and optional reason.
            approval_engine: Injected approval engine.

        Returns:
            The paused workflow instance.
        """
        instance = await approval_engine.hold_workflow(
            instance_id,
            acting_user_id=data.user_id,
            reason=data.reason,
        )
        return instance_to_dto(instance)

    @post("/{instance_id:uuid}/resume", status_code=HTTP_200_OK)
    async def resume_instance(
        self,
        instance_id: UUID,
        data: InstanceActionDTO,
        approval_engine: ApprovalEngine,
    ) -> WorkflowInstanceDTO:
        """Resume a workflow that is on hold.

        Args:
            instance_id: The workflow instance ID.
            data: Acting user.
            approval_engine: Injected approval engine.

        Returns:
            The resumed workflow instance.
        """
        instance = await approval_engine.resume_workflow(instance_id, acting_user_id=data.user_id)
        return instance_to_dto(instance)


class ApprovalTaskController(Controller):
    """API controller for approval tasks.

    Tags: Approval Tasks
    """

    path = "/tasks"
    tags: ClassVar[list[str]] = ["Approval Tasks"]

    @get("/")
    async def list_tasks(
        self,
        approval_queries: ApprovalQueries,
        user_id: str = Parameter(description="Assignee whose tasks are listed"),
        status: TaskStatus = Parameter(
            default=TaskStatus.PENDING,
            description="Filter by task status",
        ),
    ) -> list[TaskDTO]:
        """List the tasks assigned to a user, soonest due first.

        Args:
            approval_queries: Injected read projections.
            user_id: The assignee.
            status: Task status filter, pending by default.

        Returns:
            List of task DTOs.
        """
        tasks = await approval_queries.list_tasks_for_user(user_id, status)
        return [task_to_dto(task) for task in tasks]

    @get("/overdue")
    async def list_overdue_tasks(self, approval_queries: ApprovalQueries) -> list[TaskDTO]:
        """List pending tasks past their due date, most overdue first.

        Args:
            approval_queries: Injected read projections.

        Returns:
            List of task DTOs.
        """
        tasks = await approval_queries.list_overdue_tasks()
        return [task_to_dto(task) for task in tasks]

    @post("/{task_id:uuid}/action", status_code=HTTP_200_OK)
    async def act_on_task(
        self,
        task_id: UUID,
        data: TaskActionDTO,
        approval_engine: ApprovalEngine,
    ) -> TaskActionResultDTO:
        """Approve or reject a task.

        Args:
            task_id: The task ID.
            data: Decision, acting user and optional comment.
            approval_engine: Injected approval engine.

        Returns:
            The outcome of the decision.
        """
        result = await approval_engine.process_task_action(
            task_id,
            data.action,
            acting_user_id=data.user_id,
            comments=data.comments,
        )
        return action_result_to_dto(result)

    @post("/{task_id:uuid}/reassign", status_code=HTTP_200_OK)
    async def reassign_task(
        self,
        task_id: UUID,
        data: ReassignTaskDTO,
        approval_engine: ApprovalEngine,
    ) -> TaskDTO:
        """Reassign a pending task to another holder of its role.

        Args:
            task_id: The task ID.
            data: New assignee, acting user and optional reason.
            approval_engine: Injected approval engine.

        Returns:
            The reassigned task.
        """
        task = await approval_engine.reassign_task(
            task_id,
            data.new_assignee_id,
            acting_user_id=data.user_id,
            reason=data.reason,
        )
        return task_to_dto(task)


class TemplateController(Controller):
    """API controller for approval templates.

    Tags: Approval Templates
    """

    path = "/templates"
    tags: ClassVar[list[str]] = ["Approval Templates"]

    @get("/")
    async def list_templates(self, template_service: TemplateService) -> list[TemplateDTO]:
        """List active templates ordered by name.

        Args:
            template_service: Injected template service.

        Returns:
            List of template DTOs.
        """
        templates = await template_service.list_active()
        return [template_to_dto(template) for template in templates]

    @post("/")
    async def create_template(
        self,
        data: CreateTemplateDTO,
        template_service: TemplateService,
    ) -> TemplateDTO:
        """Create a template.

        Args:
            data: Template name, steps and metadata.
            template_service: Injected template service.

        Returns:
            The created template.
        """
        template = await template_service.create_template(
            data.name,
            [step.to_spec() for step in data.steps],
            created_by=data.created_by,
            description=data.description,
            default_sla_hours=data.default_sla_hours,
        )
        return template_to_dto(template)

    @get("/{template_id:uuid}")
    async def get_template(
        self,
        template_id: UUID,
        template_service: TemplateService,
    ) -> TemplateDTO:
        """Get a template with its steps.

        Args:
            template_id: The template ID.
            template_service: Injected template service.

        Returns:
            The template.
        """
        return template_to_dto(await template_service.get_template(template_id))

    @put("/{template_id:uuid}/steps")
    async def replace_steps(
        self,
        template_id: UUID,
        data: list[StepDTO],
        template_service: TemplateService,
    ) -> TemplateDTO:
        """Replace the steps of a template no workflow uses yet.

        Args:
            template_id: The template ID.
            data: The new steps.
            template_service: Injected template service.

        Returns:
            The updated template.
        """
        template = await template_service.replace_steps(template_id, [step.to_spec() for step in data])
        return template_to_dto(template)

    @delete("/{template_id:uuid}")
    async def delete_template(
        self,
        template_id: UUID,
        template_service: TemplateService,
    ) -> None:
        """Delete a template no workflow uses yet.

        Args:
            template_id: The template ID.
            template_service: Injected template service.
        """
        await template_service.delete_template(template_id)


class StatisticsController(Controller):
    """API controller for dashboard statistics.

    Tags: Approval Workflows
    """

    path = "/statistics"
    tags: ClassVar[list[str]] = ["Approval Workflows"]

    @get("/")
    async def get_statistics(
        self,
        approval_queries: ApprovalQueries,
        user_id: str | None = Parameter(
            default=None,
            description="Restrict counts to this user's workflows and tasks",
        ),
    ) -> StatisticsDTO:
        """Get workflow counts per status and pending/overdue task counts.

        Args:
            approval_queries: Injected read projections.
            user_id: Optional user scope.

        Returns:
            Statistics DTO.
        """
        return statistics_to_dto(await approval_queries.statistics(user_id))
