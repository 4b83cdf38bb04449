"""SQLAlchemy models for approval workflow persistence.

This module defines the database models for document approvals:
- WorkflowTemplateModel: Reusable approval chain definition
- StepDefinitionModel: One ordered step of a template
- WorkflowInstanceModel: A template bound to one document
- WorkflowTaskModel: The decision task for one step of an instance
- WorkflowHistoryModel: Append-only audit trail of instance transitions
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from advanced_alchemy.base import UUIDAuditBase
from advanced_alchemy.types import DateTimeUTC
from sqlalchemy import JSON, Enum, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from litestar_approvals.core.types import StepType, TaskStatus, WorkflowPriority, WorkflowStatus

__all__ = [
    "StepDefinitionModel",
    "WorkflowHistoryModel",
    "WorkflowInstanceModel",
    "WorkflowTaskModel",
    "WorkflowTemplateModel",
]


# Cross-database JSON type: uses JSONB for PostgreSQL, JSON for others (SQLite, MySQL, etc.)
JSONType = JSON().with_variant(JSONB, "postgresql")


class WorkflowTemplateModel(UUIDAuditBase):
    """Reusable definition of an ordered approval chain.

    Attributes:
        name: Unique template name.
        description: Human-readable description.
        is_active: Inactive templates cannot be instantiated.
        default_sla_hours: Hours until an instance is due, if set.
        created_by: User who created the template.
        steps: Ordered step definitions.
    """

    __tablename__ = "approval_templates"

    name: Mapped[str] = mapped_column(String(255), unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(default=True)
    default_sla_hours: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_by: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Relationships
    steps: Mapped[list[StepDefinitionModel]] = relationship(
        back_populates="template",
        lazy="selectin",
        order_by="StepDefinitionModel.step_order",
        cascade="all, delete-orphan",
    )


class StepDefinitionModel(UUIDAuditBase):
    """One step of a template.

    Attributes:
        template_id: Foreign key to the owning template.
        step_order: 1-based position, unique within the template.
        name: Display name of the step.
        required_role: Role the assignee must hold.
        is_required: Non-required steps are skipped when nobody holds the role.
        sla_hours: Hours allowed for the step's task.
        step_type: Approval or informational step.
    """

    __tablename__ = "approval_step_definitions"
    __table_args__ = (UniqueConstraint("template_id", "step_order", name="uq_approval_step_definitions_order"),)

    template_id: Mapped[UUID] = mapped_column(
        ForeignKey("approval_templates.id", ondelete="CASCADE"),
    )
    step_order: Mapped[int] = mapped_column(Integer)
    name: Mapped[str] = mapped_column(String(255))
    required_role: Mapped[str] = mapped_column(String(100))
    is_required: Mapped[bool] = mapped_column(default=True)
    sla_hours: Mapped[int | None] = mapped_column(Integer, nullable=True)
    step_type: Mapped[StepType] = mapped_column(
        Enum(StepType, native_enum=False, length=50),
        default=StepType.APPROVAL,
    )

    # Relationships
    template: Mapped[WorkflowTemplateModel] = relationship(
        back_populates="steps",
        lazy="noload",
    )


class WorkflowInstanceModel(UUIDAuditBase):
    """A template bound to one document, tracking the current step.

    ``current_step_order`` is None exactly when the instance is terminal.
    ``active_document_key`` mirrors ``document_id`` while the instance is not terminal
    and is cleared when it ends; its unique constraint allows at most one active
    instance per document.

    Attributes:
        template_id: Foreign key to the template the instance was created from.
        document_id: Reference to the document under approval.
        active_document_key: ``document_id`` while active, None once terminal.
        initiated_by: User who started the workflow.
        title: Display title.
        description: Optional description.
        status: Current workflow status.
        current_step_order: Order of the step awaiting action.
        priority: Workflow priority.
        comments: Latest decision comment or cancellation reason.
        due_at: Deadline for the whole workflow.
        ended_at: When the workflow reached a terminal status.
    """

    __tablename__ = "approval_instances"
    __table_args__ = (
        Index("ix_approval_instances_status", "status"),
        Index("ix_approval_instances_document_id", "document_id"),
        Index("ix_approval_instances_initiated_by", "initiated_by"),
    )

    template_id: Mapped[UUID] = mapped_column(
        ForeignKey("approval_templates.id", ondelete="RESTRICT"),
    )
    document_id: Mapped[str] = mapped_column(String(255))
    active_document_key: Mapped[str | None] = mapped_column(String(255), nullable=True, unique=True)
    initiated_by: Mapped[str] = mapped_column(String(255))
    title: Mapped[str] = mapped_column(String(500))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[WorkflowStatus] = mapped_column(
        Enum(WorkflowStatus, native_enum=False, length=50),
        default=WorkflowStatus.PENDING,
    )
    current_step_order: Mapped[int | None] = mapped_column(Integer, nullable=True)
    priority: Mapped[WorkflowPriority] = mapped_column(
        Enum(WorkflowPriority, native_enum=False, length=50),
        default=WorkflowPriority.NORMAL,
    )
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    due_at: Mapped[datetime | None] = mapped_column(DateTimeUTC(timezone=True), nullable=True)
    ended_at: Mapped[datetime | None] = mapped_column(DateTimeUTC(timezone=True), nullable=True)

    # Relationships
    template: Mapped[WorkflowTemplateModel] = relationship(lazy="selectin")
    tasks: Mapped[list[WorkflowTaskModel]] = relationship(
        back_populates="instance",
        lazy="noload",
        order_by="WorkflowTaskModel.step_order",
        passive_deletes=True,
    )
    history: Mapped[list[WorkflowHistoryModel]] = relationship(
        back_populates="instance",
        lazy="noload",
        order_by="WorkflowHistoryModel.sequence",
        passive_deletes=True,
    )

    @property
    def is_terminal(self) -> bool:
        return self.current_step_order is None


class WorkflowTaskModel(UUIDAuditBase):
    """Decision task for one step of an instance.

    Step name, type and role are denormalized from the step definition so that task
    views and decisions never need the template.

    Attributes:
        instance_id: Foreign key to the workflow instance.
        step_id: Foreign key to the step definition.
        step_order: Order of the step this task belongs to.
        step_name: Name of the step.
        step_type: Approval or informational step.
        required_role: Role the assignee must hold.
        title: Display title for the task.
        description: Detailed description of the task.
        assignee_id: User ID assigned to decide the task.
        status: Current task status.
        comments: Decision comment.
        due_at: Deadline for the decision.
        completed_at: When the task was decided or closed.
        completed_by: User who decided the task.
    """

    __tablename__ = "approval_tasks"
    __table_args__ = (
        Index("ix_approval_tasks_instance_id", "instance_id"),
        Index("ix_approval_tasks_assignee_status", "assignee_id", "status"),
        Index("ix_approval_tasks_due_at", "due_at"),
    )

    instance_id: Mapped[UUID] = mapped_column(
        ForeignKey("approval_instances.id", ondelete="CASCADE"),
    )
    step_id: Mapped[UUID] = mapped_column(
        ForeignKey("approval_step_definitions.id", ondelete="RESTRICT"),
    )
    step_order: Mapped[int] = mapped_column(Integer)
    step_name: Mapped[str] = mapped_column(String(255))
    step_type: Mapped[StepType] = mapped_column(
        Enum(StepType, native_enum=False, length=50),
        default=StepType.APPROVAL,
    )
    required_role: Mapped[str] = mapped_column(String(100))
    title: Mapped[str] = mapped_column(String(500))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Assignment
    assignee_id: Mapped[str] = mapped_column(String(255))

    # Status
    status: Mapped[TaskStatus] = mapped_column(
        Enum(TaskStatus, native_enum=False, length=50),
        default=TaskStatus.PENDING,
    )
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    due_at: Mapped[datetime | None] = mapped_column(DateTimeUTC(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTimeUTC(timezone=True), nullable=True)
    completed_by: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Relationships
    instance: Mapped[WorkflowInstanceModel] = relationship(
        back_populates="tasks",
        lazy="noload",
    )


class WorkflowHistoryModel(UUIDAuditBase):
    """One append-only entry of an instance's audit trail.

    Attributes:
        instance_id: Foreign key to the workflow instance.
        sequence: Position in the instance's history, starting at 1.
        action: History action label (``Workflow Created``, ``Step Approved``...).
        details: Human-readable description of the transition.
        data: Structured details (step, assignee, skipped steps, outcome).
        performed_by: Acting user, None for system actions.
        action_date: When the transition happened.
    """

    __tablename__ = "approval_history"
    __table_args__ = (UniqueConstraint("instance_id", "sequence", name="uq_approval_history_sequence"),)

    instance_id: Mapped[UUID] = mapped_column(
        ForeignKey("approval_instances.id", ondelete="CASCADE"),
    )
    sequence: Mapped[int] = mapped_column(Integer)
    action: Mapped[str] = mapped_column(String(100))
    details: Mapped[str | None] = mapped_column(Text, nullable=True)
    data: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict)
    performed_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    action_date: Mapped[datetime] = mapped_column(DateTimeUTC(timezone=True))

    # Relationships
    instance: Mapped[WorkflowInstanceModel] = relationship(
        back_populates="history",
        lazy="noload",
    )
