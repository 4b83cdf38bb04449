"""Tests for database models and repositories."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.exc import IntegrityError

from litestar_approvals.core.models import InstanceFilters
from litestar_approvals.core.types import HistoryAction, StepType, TaskStatus, WorkflowPriority, WorkflowStatus
from litestar_approvals.db.models import (
    StepDefinitionModel,
    WorkflowInstanceModel,
    WorkflowTaskModel,
    WorkflowTemplateModel,
)
from litestar_approvals.db.repositories import (
    WorkflowHistoryRepository,
    WorkflowInstanceRepository,
    WorkflowTaskRepository,
    WorkflowTemplateRepository,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


NOW = datetime.now(timezone.utc)


async def seed_template(session: AsyncSession, name: str = "Review", *, active: bool = True) -> WorkflowTemplateModel:
    template = WorkflowTemplateModel(
        name=name,
        is_active=active,
        steps=[
            StepDefinitionModel(step_order=1, name="Manager", required_role="MANAGER", step_type=StepType.APPROVAL),
            StepDefinitionModel(step_order=2, name="Admin", required_role="ADMIN", step_type=StepType.APPROVAL),
        ],
    )
    session.add(template)
    await session.flush()
    await session.refresh(template)
    return template


async def seed_instance(
    session: AsyncSession,
    template: WorkflowTemplateModel,
    document_id: str = "doc-1",
    *,
    initiated_by: str = "u-author",
    status: WorkflowStatus = WorkflowStatus.IN_PROGRESS,
    priority: WorkflowPriority = WorkflowPriority.NORMAL,
) -> WorkflowInstanceModel:
    active = status not in {WorkflowStatus.APPROVED, WorkflowStatus.REJECTED, WorkflowStatus.CANCELLED}
    instance = WorkflowInstanceModel(
        template_id=template.id,
        document_id=document_id,
        active_document_key=document_id if active else None,
        initiated_by=initiated_by,
        title=f"Approval of {document_id}",
        status=status,
        current_step_order=1 if active else None,
        priority=priority,
    )
    session.add(instance)
    await session.flush()
    return instance


async def seed_task(
    session: AsyncSession,
    instance: WorkflowInstanceModel,
    step: StepDefinitionModel,
    *,
    assignee_id: str = "u-manager",
    due_at: datetime | None = None,
    status: TaskStatus = TaskStatus.PENDING,
) -> WorkflowTaskModel:
    task = WorkflowTaskModel(
        instance_id=instance.id,
        step_id=step.id,
        step_order=step.step_order,
        step_name=step.name,
        step_type=step.step_type,
        required_role=step.required_role,
        title=f"{step.name}: {instance.title}",
        assignee_id=assignee_id,
        status=status,
        due_at=due_at,
    )
    session.add(task)
    await session.flush()
    return task


@pytest.mark.unit
class TestModels:
    """Tests for model constraints."""

    async def test_steps_loaded_in_order(self, async_session: AsyncSession) -> None:
        """Test template steps come back sorted by order."""
        template = WorkflowTemplateModel(
            name="Reversed",
            steps=[
                StepDefinitionModel(step_order=2, name="Second", required_role="ADMIN"),
                StepDefinitionModel(step_order=1, name="First", required_role="MANAGER"),
            ],
        )
        async_session.add(template)
        await async_session.commit()
        async_session.expunge_all()

        loaded = await WorkflowTemplateRepository(session=async_session).get_by_name("Reversed")

        assert [step.name for step in loaded.steps] == ["First", "Second"]
        assert loaded.steps[0].step_type == StepType.APPROVAL
        assert loaded.steps[0].is_required is True

    async def test_duplicate_step_order_rejected(self, async_session: AsyncSession) -> None:
        """Test two steps of one template cannot share an order."""
        async_session.add(
            WorkflowTemplateModel(
                name="Broken",
                steps=[
                    StepDefinitionModel(step_order=1, name="A", required_role="MANAGER"),
                    StepDefinitionModel(step_order=1, name="B", required_role="ADMIN"),
                ],
            )
        )

        with pytest.raises(IntegrityError):
            await async_session.flush()

    async def test_one_active_instance_per_document(self, async_session: AsyncSession) -> None:
        """Test the active document key is unique."""
        template = await seed_template(async_session)
        await seed_instance(async_session, template, "doc-1")

        with pytest.raises(IntegrityError):
            await seed_instance(async_session, template, "doc-1")

    async def test_ended_instances_do_not_block_document(self, async_session: AsyncSession) -> None:
        """Test ended instances release the document."""
        template = await seed_template(async_session)
        await seed_instance(async_session, template, "doc-1", status=WorkflowStatus.REJECTED)
        await seed_instance(async_session, template, "doc-1", status=WorkflowStatus.CANCELLED)

        active = await seed_instance(async_session, template, "doc-1")

        assert active.active_document_key == "doc-1"
        assert not active.is_terminal

    async def test_template_with_instances_cannot_be_deleted(self, async_session: AsyncSession) -> None:
        """Test the template foreign key restricts deletes."""
        template = await seed_template(async_session)
        await seed_instance(async_session, template)
        await async_session.commit()

        await async_session.delete(template)
        with pytest.raises(IntegrityError):
            await async_session.flush()


@pytest.mark.unit
class TestTemplateRepository:
    """Tests for WorkflowTemplateRepository."""

    async def test_list_active(self, async_session: AsyncSession) -> None:
        """Test inactive templates are not listed."""
        await seed_template(async_session, "Zeta")
        await seed_template(async_session, "Alpha")
        await seed_template(async_session, "Retired", active=False)

        templates = await WorkflowTemplateRepository(session=async_session).list_active()

        assert [template.name for template in templates] == ["Alpha", "Zeta"]

    async def test_count_instances(self, async_session: AsyncSession) -> None:
        """Test instances of every status are counted."""
        template = await seed_template(async_session)
        repo = WorkflowTemplateRepository(session=async_session)
        assert await repo.count_instances(template.id) == 0

        await seed_instance(async_session, template, "doc-1")
        await seed_instance(async_session, template, "doc-2", status=WorkflowStatus.APPROVED)

        assert await repo.count_instances(template.id) == 2


@pytest.mark.unit
class TestInstanceRepository:
    """Tests for WorkflowInstanceRepository."""

    async def test_find_active_for_document(self, async_session: AsyncSession) -> None:
        """Test only non-terminal instances count as active."""
        template = await seed_template(async_session)
        await seed_instance(async_session, template, "doc-1", status=WorkflowStatus.APPROVED)
        repo = WorkflowInstanceRepository(session=async_session)

        assert await repo.find_active_for_document("doc-1") is None

        held = await seed_instance(async_session, template, "doc-1", status=WorkflowStatus.ON_HOLD)

        assert (await repo.find_active_for_document("doc-1")).id == held.id

    async def test_transition_applies_when_status_matches(self, async_session: AsyncSession) -> None:
        """Test the conditional update applies and refreshes the instance."""
        template = await seed_template(async_session)
        instance = await seed_instance(async_session, template)
        repo = WorkflowInstanceRepository(session=async_session)

        applied = await repo.transition(
            instance,
            expected={WorkflowStatus.IN_PROGRESS},
            status=WorkflowStatus.ON_HOLD,
        )

        assert applied is True
        assert instance.status == WorkflowStatus.ON_HOLD

    async def test_transition_refused_when_status_moved(self, async_session: AsyncSession) -> None:
        """Test the conditional update is a no-op when the status differs."""
        template = await seed_template(async_session)
        instance = await seed_instance(async_session, template, status=WorkflowStatus.ON_HOLD)
        repo = WorkflowInstanceRepository(session=async_session)

        applied = await repo.transition(
            instance,
            expected={WorkflowStatus.IN_PROGRESS},
            status=WorkflowStatus.APPROVED,
        )

        assert applied is False
        locked = await repo.get_for_update(instance.id)
        assert locked.status == WorkflowStatus.ON_HOLD

    async def test_find_for_user_covers_initiator_and_assignees(self, async_session: AsyncSession) -> None:
        """Test a user sees the instances they started or hold a task in."""
        template = await seed_template(async_session)
        own = await seed_instance(async_session, template, "doc-1", initiated_by="u-author")
        assigned = await seed_instance(async_session, template, "doc-2", initiated_by="u-other")
        await seed_task(async_session, assigned, template.steps[0], assignee_id="u-author")
        await seed_instance(async_session, template, "doc-3", initiated_by="u-other")
        repo = WorkflowInstanceRepository(session=async_session)

        items, total = await repo.find_for_user("u-author")

        assert total == 2
        assert {item.id for item in items} == {own.id, assigned.id}

    async def test_find_for_user_filters(self, async_session: AsyncSession) -> None:
        """Test status, priority and document filters narrow the listing."""
        template = await seed_template(async_session)
        await seed_instance(async_session, template, "doc-1", priority=WorkflowPriority.HIGH)
        await seed_instance(async_session, template, "doc-2", status=WorkflowStatus.ON_HOLD)
        await seed_instance(async_session, template, "doc-3", status=WorkflowStatus.APPROVED)
        repo = WorkflowInstanceRepository(session=async_session)

        _, by_status = await repo.find_for_user("u-author", InstanceFilters(status=WorkflowStatus.ON_HOLD))
        _, by_priority = await repo.find_for_user("u-author", InstanceFilters(priority=WorkflowPriority.HIGH))
        items, by_document = await repo.find_for_user("u-author", InstanceFilters(document_id="doc-3"))

        assert (by_status, by_priority, by_document) == (1, 1, 1)
        assert items[0].status == WorkflowStatus.APPROVED

    async def test_count_by_status(self, async_session: AsyncSession) -> None:
        """Test instances are counted per status."""
        template = await seed_template(async_session)
        await seed_instance(async_session, template, "doc-1")
        await seed_instance(async_session, template, "doc-2")
        await seed_instance(async_session, template, "doc-3", status=WorkflowStatus.REJECTED)
        await seed_instance(async_session, template, "doc-4", initiated_by="u-other")
        repo = WorkflowInstanceRepository(session=async_session)

        assert await repo.count_by_status() == {WorkflowStatus.IN_PROGRESS: 3, WorkflowStatus.REJECTED: 1}
        assert await repo.count_by_status("u-other") == {WorkflowStatus.IN_PROGRESS: 1}


@pytest.mark.unit
class TestTaskRepository:
    """Tests for WorkflowTaskRepository."""

    async def test_decide_once(self, async_session: AsyncSession) -> None:
        """Test only the first decision of a task applies."""
        template = await seed_template(async_session)
        instance = await seed_instance(async_session, template)
        task = await seed_task(async_session, instance, template.steps[0])
        repo = WorkflowTaskRepository(session=async_session)

        first = await repo.decide(task, TaskStatus.APPROVED, completed_by="u-manager", comments="fine")
        second = await repo.decide(task, TaskStatus.REJECTED, completed_by="u-admin")

        assert (first, second) == (True, False)
        assert task.status == TaskStatus.APPROVED
        assert task.completed_by == "u-manager"
        assert task.comments == "fine"
        assert task.completed_at is not None

    async def test_close_pending(self, async_session: AsyncSession) -> None:
        """Test closing only touches pending tasks of the instance."""
        template = await seed_template(async_session)
        instance = await seed_instance(async_session, template)
        other = await seed_instance(async_session, template, "doc-2")
        done = await seed_task(async_session, instance, template.steps[0], status=TaskStatus.APPROVED)
        await seed_task(async_session, instance, template.steps[1], assignee_id="u-admin")
        await seed_task(async_session, other, template.steps[0])
        repo = WorkflowTaskRepository(session=async_session)

        closed = await repo.close_pending(instance.id, comments="Workflow cancelled")

        assert closed == 1
        tasks = await repo.find_by_instance(instance.id)
        assert [task.status for task in tasks] == [TaskStatus.APPROVED, TaskStatus.COMPLETED]
        assert tasks[0].id == done.id
        assert tasks[1].comments == "Workflow cancelled"
        assert len(await repo.find_pending_for_instance(other.id)) == 1

    async def test_find_by_assignee_orders_by_due_date(self, async_session: AsyncSession) -> None:
        """Test tasks due soonest come first and undated tasks last."""
        template = await seed_template(async_session)
        step = template.steps[0]
        undated = await seed_task(async_session, await seed_instance(async_session, template, "doc-1"), step)
        later = await seed_task(
            async_session, await seed_instance(async_session, template, "doc-2"), step, due_at=NOW + timedelta(days=2)
        )
        sooner = await seed_task(
            async_session, await seed_instance(async_session, template, "doc-3"), step, due_at=NOW + timedelta(hours=1)
        )
        repo = WorkflowTaskRepository(session=async_session)

        tasks = await repo.find_by_assignee("u-manager")

        assert [task.id for task in tasks] == [sooner.id, later.id, undated.id]
        assert await repo.find_by_assignee("u-admin") == []

    async def test_overdue(self, async_session: AsyncSession) -> None:
        """Test only pending tasks past their due date are overdue."""
        template = await seed_template(async_session)
        step = template.steps[0]
        late = await seed_task(
            async_session, await seed_instance(async_session, template, "doc-1"), step, due_at=NOW - timedelta(hours=2)
        )
        await seed_task(
            async_session, await seed_instance(async_session, template, "doc-2"), step, due_at=NOW + timedelta(hours=2)
        )
        await seed_task(
            async_session,
            await seed_instance(async_session, template, "doc-3"),
            step,
            due_at=NOW - timedelta(hours=5),
            status=TaskStatus.APPROVED,
        )
        repo = WorkflowTaskRepository(session=async_session)

        overdue = await repo.find_overdue(NOW)

        assert [task.id for task in overdue] == [late.id]
        assert await repo.count_pending() == 2
        assert await repo.count_pending(overdue_at=NOW) == 1
        assert await repo.count_pending("u-admin") == 0


@pytest.mark.unit
class TestHistoryRepository:
    """Tests for WorkflowHistoryRepository."""

    async def test_append_numbers_entries(self, async_session: AsyncSession) -> None:
        """Test entries get consecutive sequence numbers per instance."""
        template = await seed_template(async_session)
        first = await seed_instance(async_session, template, "doc-1")
        second = await seed_instance(async_session, template, "doc-2")
        repo = WorkflowHistoryRepository(session=async_session)

        await repo.append(first.id, HistoryAction.WORKFLOW_CREATED)
        await repo.append(second.id, HistoryAction.WORKFLOW_CREATED)
        await repo.append(first.id, HistoryAction.STEP_APPROVED, performed_by="u-manager", data={"step_order": 1})
        await repo.append(first.id, HistoryAction.WORKFLOW_CANCELLED, performed_by="u-author")

        entries = await repo.find_by_instance(first.id)

        assert [entry.sequence for entry in entries] == [1, 2, 3]
        assert [entry.action for entry in entries] == ["Workflow Created", "Step Approved", "Workflow Cancelled"]
        assert entries[0].performed_by is None
        assert entries[1].data == {"step_order": 1}
        assert [entry.sequence for entry in await repo.find_by_instance(second.id)] == [1]

    async def test_duplicate_sequence_rejected(self, async_session: AsyncSession) -> None:
        """Test the store refuses two entries with one sequence number."""
        template = await seed_template(async_session)
        instance = await seed_instance(async_session, template)
        repo = WorkflowHistoryRepository(session=async_session)
        entry = await repo.append(instance.id, HistoryAction.WORKFLOW_CREATED)
        async_session.add(
            type(entry)(
                instance_id=instance.id,
                sequence=1,
                action=HistoryAction.STEP_APPROVED,
                data={},
                action_date=NOW,
            )
        )

        with pytest.raises(IntegrityError):
            await async_session.flush()

    @pytest.mark.parametrize("method", ["update", "update_many", "upsert", "delete", "delete_many", "delete_where"])
    async def test_history_is_append_only(self, async_session: AsyncSession, method: str) -> None:
        """Test the mutating repository helpers are disabled."""
        repo = WorkflowHistoryRepository(session=async_session)

        with pytest.raises(TypeError, match="append-only"):
            await getattr(repo, method)()
