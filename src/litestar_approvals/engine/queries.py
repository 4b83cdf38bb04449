"""Read projections over approval workflows.

Nothing here writes. Listings are scoped to a user: an instance is visible to the
user who initiated it and to every user who was assigned one of its tasks.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from litestar_approvals.core.models import Page, PageRequest, WorkflowStatistics
from litestar_approvals.core.types import TaskStatus
from litestar_approvals.db.models import WorkflowInstanceModel
from litestar_approvals.db.repositories import (
    WorkflowHistoryRepository,
    WorkflowInstanceRepository,
    WorkflowTaskRepository,
)
from litestar_approvals.exceptions import InstanceNotFoundError

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession

    from litestar_approvals.core.models import InstanceFilters
    from litestar_approvals.db.models import WorkflowHistoryModel, WorkflowTaskModel

__all__ = ["ApprovalQueries"]


class ApprovalQueries:
    """Read-only views of instances, tasks and history.

    Attributes:
        session: SQLAlchemy async session.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self._instance_repo = WorkflowInstanceRepository(session=session)
        self._task_repo = WorkflowTaskRepository(session=session)
        self._history_repo = WorkflowHistoryRepository(session=session)

    async def get_instance(self, instance_id: UUID) -> WorkflowInstanceModel:
        """Get an instance with its tasks loaded.

        Args:
            instance_id: The instance ID.

        Returns:
            The instance; ``instance.tasks`` holds every task in step order.

        Raises:
            InstanceNotFoundError: If the instance does not exist.
        """
        stmt = (
            select(WorkflowInstanceModel)
            .where(WorkflowInstanceModel.id == instance_id)
            .options(selectinload(WorkflowInstanceModel.tasks))
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        instance = result.scalar_one_or_none()
        if instance is None:
            raise InstanceNotFoundError(instance_id)
        return instance

    async def list_instances_for_user(
        self,
        user_id: str,
        filters: InstanceFilters | None = None,
        page: PageRequest | None = None,
    ) -> Page[WorkflowInstanceModel]:
        """List the instances visible to a user, newest first.

        Args:
            user_id: The user ID.
            filters: Optional status, priority, template and document filters.
            page: Page number and size, defaults to the first 20 items.

        Returns:
            The requested page.
        """
        page = page or PageRequest()
        items, total = await self._instance_repo.find_for_user(
            user_id,
            filters,
            limit=page.size,
            offset=page.offset,
        )
        return Page(items=list(items), total=total, page=page.page, size=page.size)

    async def list_tasks_for_user(
        self,
        user_id: str,
        status: TaskStatus | None = TaskStatus.PENDING,
    ) -> Sequence[WorkflowTaskModel]:
        """List the tasks assigned to a user, soonest due first.

        Args:
            user_id: The assignee's user ID.
            status: Task status filter, pending by default; None lists every task.
        """
        return await self._task_repo.find_by_assignee(user_id, status)

    async def get_history(self, instance_id: UUID) -> Sequence[WorkflowHistoryModel]:
        """Get the full history of an instance in sequence order.

        Raises:
            InstanceNotFoundError: If the instance does not exist.
        """
        if await self._instance_repo.get_one_or_none(id=instance_id) is None:
            raise InstanceNotFoundError(instance_id)
        return await self._history_repo.find_by_instance(instance_id)

    async def list_overdue_tasks(self, now: datetime | None = None) -> Sequence[WorkflowTaskModel]:
        """List pending tasks whose due date has passed."""
        return await self._task_repo.find_overdue(now)

    async def statistics(self, user_id: str | None = None, now: datetime | None = None) -> WorkflowStatistics:
        """Aggregate instance and task counts.

        Args:
            user_id: Restrict instance counts to the user's instances and task counts
                to the user's tasks. None aggregates everything.
            now: Reference time for overdue tasks, defaults to the current time.

        Returns:
            Instance counts per status plus pending and overdue task counts.
        """
        now = now or datetime.now(timezone.utc)
        stats = WorkflowStatistics()
        for status, count in (await self._instance_repo.count_by_status(user_id)).items():
            stats.by_status[status.value] = count
            stats.total += count
        stats.pending_tasks = await self._task_repo.count_pending(user_id)
        stats.overdue_tasks = await self._task_repo.count_pending(user_id, overdue_at=now)
        return stats
