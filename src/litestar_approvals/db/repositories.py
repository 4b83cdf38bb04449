"""Repository implementations for approval persistence.

This module provides async repositories for the approval models using
advanced-alchemy's repository pattern. State transitions that must be applied at
most once are expressed as conditional ``UPDATE`` statements whose affected row
count tells the caller whether it won.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any
from uuid import UUID

from advanced_alchemy.filters import LimitOffset, OrderBy
from advanced_alchemy.repository import SQLAlchemyAsyncRepository
from sqlalchemy import and_, func, or_, select, update

from litestar_approvals.core.types import ACTIVE_STATUSES, TaskStatus, WorkflowStatus
from litestar_approvals.db.models import (
    WorkflowHistoryModel,
    WorkflowInstanceModel,
    WorkflowTaskModel,
    WorkflowTemplateModel,
)

if TYPE_CHECKING:
    from collections.abc import Collection, Sequence

    from sqlalchemy import ColumnElement

    from litestar_approvals.core.models import InstanceFilters

__all__ = [
    "WorkflowHistoryRepository",
    "WorkflowInstanceRepository",
    "WorkflowTaskRepository",
    "WorkflowTemplateRepository",
]


class WorkflowTemplateRepository(SQLAlchemyAsyncRepository[WorkflowTemplateModel]):
    """Repository for approval template CRUD operations."""

    model_type = WorkflowTemplateModel

    async def get_by_name(self, name: str) -> WorkflowTemplateModel | None:
        """Get a template by its unique name.

        Args:
            name: The template name.

        Returns:
            The template or None if not found.
        """
        return await self.get_one_or_none(name=name)

    async def list_active(self) -> Sequence[WorkflowTemplateModel]:
        """List all active templates ordered by name.

        Returns:
            List of active templates with their steps.
        """
        stmt = (
            select(WorkflowTemplateModel)
            .where(WorkflowTemplateModel.is_active == True)  # noqa: E712
            .order_by(WorkflowTemplateModel.name)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def count_instances(self, template_id: UUID) -> int:
        """Count the instances created from a template.

        Args:
            template_id: The template ID.

        Returns:
            Number of instances referencing the template, in any status.
        """
        stmt = select(func.count()).select_from(WorkflowInstanceModel).where(
            WorkflowInstanceModel.template_id == template_id
        )
        result = await self.session.execute(stmt)
        return int(result.scalar_one())


class WorkflowInstanceRepository(SQLAlchemyAsyncRepository[WorkflowInstanceModel]):
    """Repository for workflow instance operations.

    Provides row locking and conditional status transitions on top of the
    generic CRUD operations, plus the filtered listings used by the query layer.
    """

    model_type = WorkflowInstanceModel

    async def get_for_update(self, instance_id: UUID) -> WorkflowInstanceModel | None:
        """Load an instance and lock its row until the transaction ends.

        The lock is taken with ``SELECT ... FOR UPDATE``; dialects without row locks
        (SQLite) ignore it. The instance is always re-read from the database.

        Args:
            instance_id: The instance ID.

        Returns:
            The locked instance or None if not found.
        """
        stmt = (
            select(WorkflowInstanceModel)
            .where(WorkflowInstanceModel.id == instance_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_active_for_document(self, document_id: str) -> WorkflowInstanceModel | None:
        """Find the non-terminal instance bound to a document, if any.

        Args:
            document_id: The document ID.

        Returns:
            The active instance or None.
        """
        stmt = select(WorkflowInstanceModel).where(
            and_(
                WorkflowInstanceModel.document_id == document_id,
                WorkflowInstanceModel.status.in_(ACTIVE_STATUSES),
            )
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def transition(
        self,
        instance: WorkflowInstanceModel,
        *,
        expected: Collection[WorkflowStatus],
        **values: Any,
    ) -> bool:
        """Apply ``values`` to an instance only if its status is still one of ``expected``.

        On success the instance object is refreshed from the database.

        Args:
            instance: The instance to update.
            expected: Statuses the instance must currently have.
            **values: Column values to set.

        Returns:
            True if the row was updated, False if the status had changed.
        """
        values.setdefault("updated_at", datetime.now(timezone.utc))
        stmt = (
            update(WorkflowInstanceModel)
            .where(
                and_(
                    WorkflowInstanceModel.id == instance.id,
                    WorkflowInstanceModel.status.in_(list(expected)),
                )
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        if result.rowcount != 1:
            return False
        await self.session.refresh(instance)
        return True

    def _user_conditions(self, user_id: str, filters: InstanceFilters | None) -> list[ColumnElement[bool]]:
        assigned = select(WorkflowTaskModel.instance_id).where(WorkflowTaskModel.assignee_id == user_id)
        conditions: list[ColumnElement[bool]] = [
            or_(
                WorkflowInstanceModel.initiated_by == user_id,
                WorkflowInstanceModel.id.in_(assigned),
            )
        ]
        if filters is None:
            return conditions
        if filters.status:
            conditions.append(WorkflowInstanceModel.status == filters.status)
        if filters.priority:
            conditions.append(WorkflowInstanceModel.priority == filters.priority)
        if filters.template_id:
            conditions.append(WorkflowInstanceModel.template_id == filters.template_id)
        if filters.document_id:
            conditions.append(WorkflowInstanceModel.document_id == filters.document_id)
        return conditions

    async def find_for_user(
        self,
        user_id: str,
        filters: InstanceFilters | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[Sequence[WorkflowInstanceModel], int]:
        """Find instances a user initiated or holds a task in.

        Args:
            user_id: The user ID.
            filters: Optional status/priority/template/document filters.
            limit: Maximum number of results.
            offset: Number of results to skip.

        Returns:
            Tuple of (instances, total_count), newest first.
        """
        return await self.list_and_count(
            *self._user_conditions(user_id, filters),
            LimitOffset(limit=limit, offset=offset),
            OrderBy(field_name="created_at", sort_order="desc"),
        )

    async def count_by_status(self, user_id: str | None = None) -> dict[WorkflowStatus, int]:
        """Count instances per status.

        Args:
            user_id: Restrict to instances the user initiated or holds a task in.

        Returns:
            Mapping of status to count, statuses without instances omitted.
        """
        stmt = select(WorkflowInstanceModel.status, func.count()).group_by(WorkflowInstanceModel.status)
        if user_id is not None:
            stmt = stmt.where(*self._user_conditions(user_id, None))
        result = await self.session.execute(stmt)
        return {WorkflowStatus(status): int(count) for status, count in result.all()}


class WorkflowTaskRepository(SQLAlchemyAsyncRepository[WorkflowTaskModel]):
    """Repository for approval task operations.

    Provides the compare-and-swap decision used to guarantee that a task is
    decided at most once, and queries by assignee, instance and due date.
    """

    model_type = WorkflowTaskModel

    async def decide(
        self,
        task: WorkflowTaskModel,
        status: TaskStatus,
        *,
        completed_by: str,
        comments: str | None = None,
        completed_at: datetime | None = None,
    ) -> bool:
        """Move a pending task to ``status`` if, and only if, it is still pending.

        Args:
            task: The task to decide.
            status: The resulting task status.
            completed_by: The deciding user.
            comments: Optional decision comment.
            completed_at: Decision time, defaults to now.

        Returns:
            True if this call decided the task, False if it was no longer pending.
        """
        now = completed_at or datetime.now(timezone.utc)
        stmt = (
            update(WorkflowTaskModel)
            .where(
                and_(
                    WorkflowTaskModel.id == task.id,
                    WorkflowTaskModel.status == TaskStatus.PENDING,
                )
            )
            .values(
                status=status,
                completed_by=completed_by,
                completed_at=now,
                comments=comments,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        if result.rowcount != 1:
            return False
        await self.session.refresh(task)
        return True

    async def close_pending(
        self,
        instance_id: UUID,
        *,
        comments: str,
        completed_at: datetime | None = None,
    ) -> int:
        """Close every pending task of an instance as COMPLETED.

        Args:
            instance_id: The workflow instance ID.
            comments: Comment stored on each closed task.
            completed_at: Closing time, defaults to now.

        Returns:
            Number of tasks closed.
        """
        now = completed_at or datetime.now(timezone.utc)
        stmt = (
            update(WorkflowTaskModel)
            .where(
                and_(
                    WorkflowTaskModel.instance_id == instance_id,
                    WorkflowTaskModel.status == TaskStatus.PENDING,
                )
            )
            .values(status=TaskStatus.COMPLETED, completed_at=now, comments=comments, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return int(result.rowcount)

    async def find_by_instance(self, instance_id: UUID) -> Sequence[WorkflowTaskModel]:
        """Find all tasks of an instance.

        Args:
            instance_id: The workflow instance ID.

        Returns:
            Tasks ordered by step order, then creation time.
        """
        stmt = (
            select(WorkflowTaskModel)
            .where(WorkflowTaskModel.instance_id == instance_id)
            .order_by(WorkflowTaskModel.step_order, WorkflowTaskModel.created_at)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def find_pending_for_instance(self, instance_id: UUID) -> Sequence[WorkflowTaskModel]:
        """Find the pending tasks of an instance.

        Args:
            instance_id: The workflow instance ID.

        Returns:
            Pending tasks ordered by step order.
        """
        stmt = (
            select(WorkflowTaskModel)
            .where(
                and_(
                    WorkflowTaskModel.instance_id == instance_id,
                    WorkflowTaskModel.status == TaskStatus.PENDING,
                )
            )
            .order_by(WorkflowTaskModel.step_order)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def find_by_assignee(
        self,
        assignee_id: str,
        status: TaskStatus | None = TaskStatus.PENDING,
    ) -> Sequence[WorkflowTaskModel]:
        """Find tasks assigned to a user.

        Args:
            assignee_id: The assignee's user ID.
            status: Optional status filter, pending by default.

        Returns:
            Tasks ordered by due date (undated last), then creation time.
        """
        conditions = [WorkflowTaskModel.assignee_id == assignee_id]
        if status:
            conditions.append(WorkflowTaskModel.status == status)

        stmt = (
            select(WorkflowTaskModel)
            .where(and_(*conditions))
            .order_by(WorkflowTaskModel.due_at.asc().nullslast(), WorkflowTaskModel.created_at)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def find_overdue(self, now: datetime | None = None) -> Sequence[WorkflowTaskModel]:
        """Find pending tasks past their due date.

        Args:
            now: Reference time, defaults to the current time.

        Returns:
            Overdue tasks, most overdue first.
        """
        now = now or datetime.now(timezone.utc)
        stmt = (
            select(WorkflowTaskModel)
            .where(
                and_(
                    WorkflowTaskModel.status == TaskStatus.PENDING,
                    WorkflowTaskModel.due_at.isnot(None),
                    WorkflowTaskModel.due_at < now,
                )
            )
            .order_by(WorkflowTaskModel.due_at)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def count_pending(self, assignee_id: str | None = None, *, overdue_at: datetime | None = None) -> int:
        """Count pending tasks.

        Args:
            assignee_id: Restrict to tasks assigned to this user.
            overdue_at: When given, only count tasks due before this time.

        Returns:
            Number of matching tasks.
        """
        conditions = [WorkflowTaskModel.status == TaskStatus.PENDING]
        if assignee_id is not None:
            conditions.append(WorkflowTaskModel.assignee_id == assignee_id)
        if overdue_at is not None:
            conditions.extend([WorkflowTaskModel.due_at.isnot(None), WorkflowTaskModel.due_at < overdue_at])

        stmt = select(func.count()).select_from(WorkflowTaskModel).where(and_(*conditions))
        result = await self.session.execute(stmt)
        return int(result.scalar_one())


class WorkflowHistoryRepository(SQLAlchemyAsyncRepository[WorkflowHistoryModel]):
    """Append-only repository for workflow history.

    Entries are only ever added through :meth:`append`; the update and delete
    helpers inherited from the generic repository are disabled.
    """

    model_type = WorkflowHistoryModel

    async def append(
        self,
        instance_id: UUID,
        action: str,
        *,
        performed_by: str | None = None,
        details: str | None = None,
        data: dict[str, Any] | None = None,
        action_date: datetime | None = None,
    ) -> WorkflowHistoryModel:
        """Append an entry with the next sequence number of the instance.

        Must be called inside the transaction that holds the instance lock so that
        sequence numbers are allocated without gaps or duplicates.

        Args:
            instance_id: The workflow instance ID.
            action: History action label.
            performed_by: Acting user, None for system actions.
            details: Human-readable description.
            data: Structured details.
            action_date: When the transition happened, defaults to now.

        Returns:
            The persisted history entry.
        """
        stmt = select(func.coalesce(func.max(WorkflowHistoryModel.sequence), 0)).where(
            WorkflowHistoryModel.instance_id == instance_id
        )
        result = await self.session.execute(stmt)
        entry = WorkflowHistoryModel(
            instance_id=instance_id,
            sequence=int(result.scalar_one()) + 1,
            action=action,
            details=details,
            data=data or {},
            performed_by=performed_by,
            action_date=action_date or datetime.now(timezone.utc),
        )
        return await self.add(entry)

    async def find_by_instance(self, instance_id: UUID) -> Sequence[WorkflowHistoryModel]:
        """Find the history of an instance.

        Args:
            instance_id: The workflow instance ID.

        Returns:
            History entries in sequence order.
        """
        stmt = (
            select(WorkflowHistoryModel)
            .where(WorkflowHistoryModel.instance_id == instance_id)
            .order_by(WorkflowHistoryModel.sequence)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def _append_only(self, *args: Any, **kwargs: Any) -> Any:
        msg = "Workflow history is append-only"
        raise TypeError(msg)

    update = update_many = upsert = upsert_many = _append_only
    delete = delete_many = delete_where = _append_only
