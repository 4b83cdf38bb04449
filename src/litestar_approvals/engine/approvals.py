"""Approval engine: instantiation, task routing and lifecycle operations.

Each public operation runs in a single transaction on the engine's session, commits
on success and rolls back on any error. Notifications are delivered after commit.

Concurrency:
    The instance row is locked first (``SELECT ... FOR UPDATE``) by every operation
    that changes an instance or its tasks, so the lock order is always instance,
    then task. On top of that, the task decision is a conditional ``UPDATE ...
    WHERE status = 'pending'`` and the instance transition is conditional on the
    status read under the lock. A caller that loses either race gets an
    :class:`~litestar_approvals.exceptions.InvalidStateError` and its transaction
    is rolled back, so a task is decided at most once.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from functools import partial
from typing import TYPE_CHECKING

from sqlalchemy.exc import IntegrityError

from litestar_approvals.config import ApprovalsConfig
from litestar_approvals.core.models import BulkActionResult, TaskActionResult
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
from litestar_approvals.db.models import WorkflowInstanceModel, WorkflowTaskModel
from litestar_approvals.db.repositories import (
    WorkflowHistoryRepository,
    WorkflowInstanceRepository,
    WorkflowTaskRepository,
    WorkflowTemplateRepository,
)
from litestar_approvals.engine import routing
from litestar_approvals.engine.base import SessionService
from litestar_approvals.engine.notify import LoggingNotifier, deliver
from litestar_approvals.exceptions import (
    ApprovalsError,
    ConfigurationError,
    DocumentNotFoundError,
    DuplicateActiveWorkflowError,
    EmptyTemplateError,
    InstanceNotFoundError,
    InvalidTransitionError,
    TaskAlreadyDecidedError,
    TaskNotFoundError,
    TemplateNotFoundError,
    UnauthorizedTaskError,
    UserNotFoundError,
    ValidationError,
    WorkflowAlreadyTerminalError,
    WorkflowNotActiveError,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession

    from litestar_approvals.core.protocols import DocumentLookup, Notifier, UserDirectory, UserRef
    from litestar_approvals.db.models import StepDefinitionModel
    from litestar_approvals.engine.routing import RoutingDecision

__all__ = ["ApprovalEngine"]

logger = logging.getLogger(__name__)


class ApprovalEngine(SessionService):
    """Runs document approval workflows on top of an async SQLAlchemy session.

    Attributes:
        session: SQLAlchemy async session, one per request or unit of work.
        documents: Lookup used to validate documents.
        users: Directory used for assignment and authority checks.
        notifier: Receiver of assignment and completion notifications.
        config: Role and deadline policy.

    Example:
        >>> engine = ApprovalEngine(session, documents=docs, users=directory)
        >>> instance = await engine.start_workflow("doc-1", template.id, initiator_id="u-1")
        >>> task = (await engine.session.scalars(...)).one()
        >>> await engine.process_task_action(task.id, "approve", acting_user_id="u-2")
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        documents: DocumentLookup,
        users: UserDirectory,
        notifier: Notifier | None = None,
        config: ApprovalsConfig | None = None,
    ) -> None:
        """Initialize the approval engine.

        Args:
            session: SQLAlchemy async session.
            documents: Document lookup.
            users: User and role directory.
            notifier: Optional notifier, defaults to :class:`LoggingNotifier`.
            config: Optional policy, defaults to :class:`ApprovalsConfig`.
        """
        super().__init__(session)
        self.documents = documents
        self.users = users
        self.notifier = notifier or LoggingNotifier()
        self.config = config or ApprovalsConfig()

        # Initialize repositories
        self._template_repo = WorkflowTemplateRepository(session=session)
        self._instance_repo = WorkflowInstanceRepository(session=session)
        self._task_repo = WorkflowTaskRepository(session=session)
        self._history_repo = WorkflowHistoryRepository(session=session)

    # ------------------------------------------------------------------
    # Instantiation
    # ------------------------------------------------------------------

    async def start_workflow(
        self,
        document_id: str,
        template_id: UUID,
        *,
        initiator_id: str,
        title: str | None = None,
        description: str | None = None,
        priority: WorkflowPriority | str | None = None,
    ) -> WorkflowInstanceModel:
        """Bind a template to a document and dispatch the first step.

        Args:
            document_id: The document to approve.
            template_id: The template to instantiate.
            initiator_id: The user starting the workflow.
            title: Optional title, defaults to ``"Document Approval: <document title>"``.
            description: Optional description.
            priority: Optional priority; unknown values fall back to NORMAL.

        Returns:
            The created instance, with its first task pending.

        Raises:
            DocumentNotFoundError: If the document does not exist.
            TemplateNotFoundError: If the template does not exist.
            ValidationError: If the template is inactive or has no steps.
            UserNotFoundError: If the initiator is unknown.
            DuplicateActiveWorkflowError: If the document already has an active workflow.
            NoEligibleAssigneeError: If a required step has no eligible role holder.
        """
        outbox: list[Callable[[], Awaitable[None]]] = []
        async with self.transaction():
            document = await self.documents.get_document(document_id)
            if document is None:
                raise DocumentNotFoundError(document_id)

            template = await self._template_repo.get_one_or_none(id=template_id)
            if template is None:
                raise TemplateNotFoundError(template_id)
            if not template.is_active:
                msg = f"Workflow template '{template.name}' is inactive"
                raise ValidationError(msg)
            if not template.steps:
                raise EmptyTemplateError(template_id)

            initiator = await self._require_user(initiator_id)

            existing = await self._instance_repo.find_active_for_document(document_id)
            if existing is not None:
                raise DuplicateActiveWorkflowError(document_id, existing.id)

            decision = await routing.resolve_next_step(routing.steps_after(template.steps), self.users)
            if decision.step is None or decision.assignee is None:
                msg = f"Workflow template '{template.name}' has no step with an eligible assignee"
                raise ConfigurationError(msg)

            now = datetime.now(timezone.utc)
            instance = WorkflowInstanceModel(
                template_id=template.id,
                document_id=document_id,
                active_document_key=document_id,
                initiated_by=initiator.id,
                title=title or routing.default_title(document),
                description=description,
                status=routing.active_status(decision.step.step_type, first_dispatch=True),
                current_step_order=decision.step.step_order,
                priority=routing.parse_priority(priority),
                due_at=routing.instance_due_at(template, now),
            )
            self.session.add(instance)
            try:
                await self.session.flush()
            except IntegrityError as exc:
                raise DuplicateActiveWorkflowError(document_id) from exc
            await self.session.refresh(instance)

            task = await self._create_task(instance, decision.step, decision.assignee, now)
            await self._history_repo.append(
                instance.id,
                HistoryAction.WORKFLOW_CREATED,
                details=(
                    f"Workflow created from template '{template.name}' by {initiator.label}; "
                    f"{self._describe_dispatch(decision)}"
                ),
                data={
                    "template_id": str(template.id),
                    "initiated_by": initiator.id,
                    **self._dispatch_data(decision, task),
                },
                action_date=now,
            )
            outbox.append(partial(self.notifier.notify_task_assigned, decision.assignee, task))

        logger.info(
            "Started workflow %s for document %s (template %s), step %s assigned to %s",
            instance.id,
            document_id,
            template.name,
            task.step_order,
            task.assignee_id,
        )
        await deliver(outbox)
        return instance

    # ------------------------------------------------------------------
    # Task actions
    # ------------------------------------------------------------------

    async def process_task_action(
        self,
        task_id: UUID,
        action: TaskAction | str,
        *,
        acting_user_id: str,
        comments: str | None = None,
    ) -> TaskActionResult:
        """Apply an approve or reject decision to a pending task.

        Approving dispatches the next step, or approves the workflow when no step
        remains. Rejecting ends the workflow.

        Args:
            task_id: The task to decide.
            action: ``TaskAction`` or a case-insensitive ``"approve"``/``"reject"``.
            acting_user_id: The deciding user; must be the assignee or hold an override role.
            comments: Optional decision comment.

        Returns:
            The outcome of the decision.

        Raises:
            ValidationError: If the action is unknown, or a reject targets an informational step.
            TaskNotFoundError: If the task does not exist.
            UserNotFoundError: If the acting user is unknown.
            UnauthorizedTaskError: If the user may not decide the task.
            TaskAlreadyDecidedError: If the task is no longer pending.
            WorkflowNotActiveError: If the workflow does not accept decisions for this task.
            NoEligibleAssigneeError: If the next required step has no eligible role holder.
        """
        decision_action = routing.parse_action(action)
        outbox: list[Callable[[], Awaitable[None]]] = []
        async with self.transaction():
            task = await self._get_task(task_id)
            instance = await self._lock_instance(task.instance_id)
            await self.session.refresh(task)

            actor = await self._require_user(acting_user_id)
            if actor.id != task.assignee_id and not actor.has_role(*self.config.override_roles):
                logger.warning("User %s refused on task %s: not the assignee", actor.id, task.id)
                raise UnauthorizedTaskError(task.id, actor.id)
            if task.status != TaskStatus.PENDING:
                raise TaskAlreadyDecidedError(task.id, task.status, task.completed_by, task.completed_at)
            if instance.status not in ACTIONABLE_STATUSES:
                raise WorkflowNotActiveError(instance.id, instance.status)
            if instance.current_step_order != task.step_order:
                raise WorkflowNotActiveError(
                    instance.id,
                    instance.status,
                    reason=f"task belongs to step {task.step_order}, current step is {instance.current_step_order}",
                )
            if decision_action == TaskAction.REJECT and task.step_type == StepType.INFORMATIONAL:
                msg = f"Task '{task.id}' is informational and can only be approved"
                raise ValidationError(msg)

            now = datetime.now(timezone.utc)
            task_status = TaskStatus.APPROVED if decision_action == TaskAction.APPROVE else TaskStatus.REJECTED
            if not await self._task_repo.decide(
                task, task_status, completed_by=actor.id, comments=comments, completed_at=now
            ):
                await self.session.refresh(task)
                logger.warning("Task %s lost a concurrent decision to %s", task.id, task.completed_by)
                raise TaskAlreadyDecidedError(task.id, task.status, task.completed_by, task.completed_at)

            expected = {instance.status}
            next_task: WorkflowTaskModel | None = None
            routing_decision: RoutingDecision | None = None
            if decision_action == TaskAction.REJECT:
                await self._finish(instance, WorkflowStatus.REJECTED, expected, now, comments=comments)
            else:
                routing_decision = await routing.resolve_next_step(
                    routing.steps_after(instance.template.steps, task.step_order), self.users
                )
                if routing_decision.step is None or routing_decision.assignee is None:
                    await self._finish(instance, WorkflowStatus.APPROVED, expected, now, comments=comments)
                else:
                    await self._transition(
                        instance,
                        expected,
                        status=WorkflowStatus.IN_PROGRESS,
                        current_step_order=routing_decision.step.step_order,
                        comments=comments,
                    )
                    next_task = await self._create_task(
                        instance, routing_decision.step, routing_decision.assignee, now
                    )

            history_action = (
                HistoryAction.STEP_APPROVED if decision_action == TaskAction.APPROVE else HistoryAction.STEP_REJECTED
            )
            details = f"Step {task.step_order} '{task.step_name}' {task_status} by {actor.label}"
            data: dict[str, object] = {"task_id": str(task.id), "step_order": task.step_order}
            if comments:
                details += f": {comments}"
                data["comments"] = comments
            if routing_decision is not None and next_task is not None:
                details += f"; {self._describe_dispatch(routing_decision)}"
                data.update(self._dispatch_data(routing_decision, next_task))
            else:
                if routing_decision is not None and routing_decision.skipped:
                    data["skipped_steps"] = [step.step_order for step in routing_decision.skipped]
                details += f"; workflow {instance.status}"
                data["outcome"] = instance.status.value
            await self._history_repo.append(
                instance.id,
                history_action,
                performed_by=actor.id,
                details=details,
                data=data,
                action_date=now,
            )

            if next_task is not None and routing_decision is not None and routing_decision.assignee is not None:
                outbox.append(partial(self.notifier.notify_task_assigned, routing_decision.assignee, next_task))
            else:
                outbox.append(partial(self.notifier.notify_workflow_decided, instance))

        logger.info(
            "Task %s %s by %s; workflow %s is %s",
            task.id,
            task_status,
            actor.id,
            instance.id,
            instance.status,
        )
        await deliver(outbox)
        return TaskActionResult(
            task_id=task.id,
            instance_id=instance.id,
            action=decision_action,
            instance_status=instance.status,
            next_step_order=instance.current_step_order,
        )

    async def reassign_task(
        self,
        task_id: UUID,
        new_assignee_id: str,
        *,
        acting_user_id: str,
        reason: str | None = None,
    ) -> WorkflowTaskModel:
        """Hand a pending task to another holder of the step's role.

        Args:
            task_id: The task to reassign.
            new_assignee_id: The user who takes over the task.
            acting_user_id: The user performing the reassignment; must hold an override role.
            reason: Optional reason, recorded in the history.

        Returns:
            The reassigned task.

        Raises:
            TaskNotFoundError: If the task does not exist.
            UserNotFoundError: If the acting user or the new assignee is unknown.
            UnauthorizedTaskError: If the acting user holds no override role.
            TaskAlreadyDecidedError: If the task is no longer pending.
            WorkflowNotActiveError: If the workflow has ended.
            ValidationError: If the new assignee is inactive, lacks the role or already holds the task.
        """
        outbox: list[Callable[[], Awaitable[None]]] = []
        async with self.transaction():
            task = await self._get_task(task_id)
            instance = await self._lock_instance(task.instance_id)
            await self.session.refresh(task)

            actor = await self._require_user(acting_user_id)
            if not actor.has_role(*self.config.override_roles):
                logger.warning("User %s refused reassignment of task %s", actor.id, task.id)
                raise UnauthorizedTaskError(task.id, actor.id, action="reassign task")
            if task.status != TaskStatus.PENDING:
                raise TaskAlreadyDecidedError(task.id, task.status, task.completed_by, task.completed_at)
            if instance.status not in ACTIVE_STATUSES:
                raise WorkflowNotActiveError(instance.id, instance.status)

            assignee = await self._require_user(new_assignee_id)
            if not assignee.active or not assignee.has_role(task.required_role):
                msg = f"User '{assignee.id}' is not an active holder of role '{task.required_role}'"
                raise ValidationError(msg)
            if assignee.id == task.assignee_id:
                msg = f"Task '{task.id}' is already assigned to '{assignee.id}'"
                raise ValidationError(msg)

            previous = task.assignee_id
            task.assignee_id = assignee.id
            await self.session.flush()

            details = f"Step {task.step_order} '{task.step_name}' reassigned from {previous} to {assignee.label}"
            if reason:
                details += f": {reason}"
            await self._history_repo.append(
                instance.id,
                HistoryAction.TASK_REASSIGNED,
                performed_by=actor.id,
                details=details,
                data={"task_id": str(task.id), "from": previous, "to": assignee.id},
            )
            outbox.append(partial(self.notifier.notify_task_assigned, assignee, task))

        logger.info("Task %s reassigned from %s to %s by %s", task.id, previous, assignee.id, actor.id)
        await deliver(outbox)
        return task

    # ------------------------------------------------------------------
    # Instance lifecycle
    # ------------------------------------------------------------------

    async def cancel_workflow(
        self,
        instance_id: UUID,
        *,
        acting_user_id: str,
        reason: str | None = None,
    ) -> WorkflowInstanceModel:
        """Cancel a workflow that has not ended.

        Pending tasks are closed as COMPLETED in the same transaction, so they can no
        longer be decided.

        Args:
            instance_id: The workflow to cancel.
            acting_user_id: The initiator or a holder of a cancel role.
            reason: Optional reason, stored on the instance and its closed tasks.

        Returns:
            The cancelled instance.

        Raises:
            InstanceNotFoundError: If the instance does not exist.
            UserNotFoundError: If the acting user is unknown.
            UnauthorizedTaskError: If the user may not cancel the workflow.
            WorkflowAlreadyTerminalError: If the workflow already ended.
        """
        outbox: list[Callable[[], Awaitable[None]]] = []
        async with self.transaction():
            instance = await self._lock_instance(instance_id)
            actor = await self._require_user(acting_user_id)
            self._check_manage_authority(instance, actor, "cancel workflow")
            if instance.status in TERMINAL_STATUSES:
                raise WorkflowAlreadyTerminalError(instance.id, instance.status)

            now = datetime.now(timezone.utc)
            await self._finish(instance, WorkflowStatus.CANCELLED, ACTIVE_STATUSES, now, comments=reason)
            closed = await self._task_repo.close_pending(
                instance.id,
                comments=f"Workflow cancelled: {reason}" if reason else "Workflow cancelled",
                completed_at=now,
            )

            details = f"Workflow cancelled by {actor.label}"
            if reason:
                details += f": {reason}"
            await self._history_repo.append(
                instance.id,
                HistoryAction.WORKFLOW_CANCELLED,
                performed_by=actor.id,
                details=details,
                data={"reason": reason, "closed_tasks": closed},
                action_date=now,
            )
            outbox.append(partial(self.notifier.notify_workflow_decided, instance))

        logger.info("Workflow %s cancelled by %s, %d pending task(s) closed", instance.id, actor.id, closed)
        await deliver(outbox)
        return instance

    async def hold_workflow(
        self,
        instance_id: UUID,
        *,
        acting_user_id: str,
        reason: str | None = None,
    ) -> WorkflowInstanceModel:
        """Pause a workflow; task decisions are refused until it is resumed.

        Raises:
            InstanceNotFoundError: If the instance does not exist.
            UnauthorizedTaskError: If the user may not manage the workflow.
            WorkflowAlreadyTerminalError: If the workflow already ended.
            InvalidTransitionError: If the workflow is already on hold.
        """
        async with self.transaction():
            instance = await self._lock_instance(instance_id)
            actor = await self._require_user(acting_user_id)
            self._check_manage_authority(instance, actor, "hold workflow")
            if instance.status in TERMINAL_STATUSES:
                raise WorkflowAlreadyTerminalError(instance.id, instance.status)
            if instance.status not in ACTIONABLE_STATUSES:
                raise InvalidTransitionError(instance.id, instance.status, WorkflowStatus.ON_HOLD)

            await self._transition(instance, ACTIONABLE_STATUSES, status=WorkflowStatus.ON_HOLD, comments=reason)
            details = f"Workflow put on hold by {actor.label}"
            if reason:
                details += f": {reason}"
            await self._history_repo.append(
                instance.id,
                HistoryAction.WORKFLOW_ON_HOLD,
                performed_by=actor.id,
                details=details,
                data={"reason": reason},
            )

        logger.info("Workflow %s put on hold by %s", instance.id, actor.id)
        return instance

    async def resume_workflow(self, instance_id: UUID, *, acting_user_id: str) -> WorkflowInstanceModel:
        """Resume a workflow that is on hold.

        The workflow returns to the status it had before the hold: PENDING when its
        first, informational task is still open, IN_PROGRESS otherwise.

        Raises:
            InstanceNotFoundError: If the instance does not exist.
            UnauthorizedTaskError: If the user may not manage the workflow.
            WorkflowAlreadyTerminalError: If the workflow already ended.
            InvalidTransitionError: If the workflow is not on hold.
        """
        async with self.transaction():
            instance = await self._lock_instance(instance_id)
            actor = await self._require_user(acting_user_id)
            self._check_manage_authority(instance, actor, "resume workflow")
            if instance.status in TERMINAL_STATUSES:
                raise WorkflowAlreadyTerminalError(instance.id, instance.status)
            if instance.status != WorkflowStatus.ON_HOLD:
                raise InvalidTransitionError(instance.id, instance.status, WorkflowStatus.IN_PROGRESS)

            tasks = await self._task_repo.find_by_instance(instance.id)
            pending = [task for task in tasks if task.status == TaskStatus.PENDING]
            step_type = pending[0].step_type if pending else StepType.APPROVAL
            status = routing.active_status(step_type, first_dispatch=len(pending) == len(tasks))

            await self._transition(instance, {WorkflowStatus.ON_HOLD}, status=status)
            await self._history_repo.append(
                instance.id,
                HistoryAction.WORKFLOW_RESUMED,
                performed_by=actor.id,
                details=f"Workflow resumed by {actor.label}",
                data={"status": status.value},
            )

        logger.info("Workflow %s resumed by %s", instance.id, actor.id)
        return instance

    async def bulk_action(
        self,
        action: BulkAction | str,
        instance_ids: Iterable[UUID],
        *,
        acting_user_id: str,
        reason: str | None = None,
    ) -> list[BulkActionResult]:
        """Apply cancel, hold or resume to many workflows independently.

        Every instance is processed in its own transaction. Failures are reported per
        instance and never abort the batch. Duplicate IDs are processed once, at
        their first occurrence.

        Args:
            action: ``BulkAction`` or a case-insensitive ``"cancel"``/``"hold"``/``"resume"``.
            instance_ids: Workflows to process.
            acting_user_id: The user performing the action.
            reason: Optional reason for cancel and hold.

        Returns:
            One result per distinct instance ID, in input order.

        Raises:
            ValidationError: If the action is unknown; nothing is processed.
        """
        bulk = routing.parse_bulk_action(action)
        results: list[BulkActionResult] = []
        seen: set[UUID] = set()
        for instance_id in instance_ids:
            if instance_id in seen:
                continue
            seen.add(instance_id)
            try:
                if bulk == BulkAction.CANCEL:
                    await self.cancel_workflow(instance_id, acting_user_id=acting_user_id, reason=reason)
                elif bulk == BulkAction.HOLD:
                    await self.hold_workflow(instance_id, acting_user_id=acting_user_id, reason=reason)
                else:
                    await self.resume_workflow(instance_id, acting_user_id=acting_user_id)
            except ApprovalsError as exc:
                logger.warning("Bulk %s failed for workflow %s: %s", bulk, instance_id, exc)
                results.append(BulkActionResult(instance_id=instance_id, success=False, error=str(exc), error_kind=exc.kind))
            else:
                results.append(BulkActionResult(instance_id=instance_id, success=True))

        logger.info(
            "Bulk %s by %s: %d/%d succeeded",
            bulk,
            acting_user_id,
            sum(result.success for result in results),
            len(results),
        )
        return results

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _require_user(self, user_id: str) -> UserRef:
        user = await self.users.get_user(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    async def _get_task(self, task_id: UUID) -> WorkflowTaskModel:
        task = await self._task_repo.get_one_or_none(id=task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    async def _lock_instance(self, instance_id: UUID) -> WorkflowInstanceModel:
        instance = await self._instance_repo.get_for_update(instance_id)
        if instance is None:
            raise InstanceNotFoundError(instance_id)
        return instance

    def _check_manage_authority(self, instance: WorkflowInstanceModel, actor: UserRef, action: str) -> None:
        if actor.id == instance.initiated_by or actor.has_role(*self.config.cancel_roles):
            return
        logger.warning("User %s refused to %s %s", actor.id, action, instance.id)
        raise UnauthorizedTaskError(instance.id, actor.id, action=action)

    async def _transition(
        self,
        instance: WorkflowInstanceModel,
        expected: Iterable[WorkflowStatus],
        **values: object,
    ) -> None:
        """Apply a conditional instance update, raising if the status moved underneath."""
        if not await self._instance_repo.transition(instance, expected=set(expected), **values):
            await self.session.refresh(instance)
            logger.warning("Workflow %s changed concurrently, now %s", instance.id, instance.status)
            raise WorkflowNotActiveError(instance.id, instance.status, reason="status changed concurrently")

    async def _finish(
        self,
        instance: WorkflowInstanceModel,
        status: WorkflowStatus,
        expected: Iterable[WorkflowStatus],
        now: datetime,
        *,
        comments: str | None = None,
    ) -> None:
        await self._transition(
            instance,
            expected,
            status=status,
            current_step_order=None,
            active_document_key=None,
            ended_at=now,
            comments=comments,
        )

    async def _create_task(
        self,
        instance: WorkflowInstanceModel,
        step: StepDefinitionModel,
        assignee: UserRef,
        now: datetime,
    ) -> WorkflowTaskModel:
        task = WorkflowTaskModel(
            instance_id=instance.id,
            step_id=step.id,
            step_order=step.step_order,
            step_name=step.name,
            step_type=step.step_type,
            required_role=step.required_role,
            title=f"{step.name}: {instance.title}",
            description=instance.description,
            assignee_id=assignee.id,
            status=TaskStatus.PENDING,
            due_at=routing.task_due_at(
                step,
                now,
                instance_due=instance.due_at,
                default_hours=self.config.default_task_sla_hours,
            ),
        )
        return await self._task_repo.add(task)

    @staticmethod
    def _describe_dispatch(decision: RoutingDecision) -> str:
        step = decision.step
        assignee = decision.assignee
        if step is None or assignee is None:
            return "no step dispatched"
        text = f"step {step.step_order} '{step.name}' assigned to {assignee.label}"
        if decision.skipped:
            skipped = ", ".join(f"{skipped.step_order} '{skipped.name}'" for skipped in decision.skipped)
            text += f" (skipped {skipped})"
        return text

    @staticmethod
    def _dispatch_data(decision: RoutingDecision, task: WorkflowTaskModel) -> dict[str, object]:
        return {
            "next_step_order": task.step_order,
            "next_task_id": str(task.id),
            "assignee_id": task.assignee_id,
            "skipped_steps": [step.step_order for step in decision.skipped],
        }
