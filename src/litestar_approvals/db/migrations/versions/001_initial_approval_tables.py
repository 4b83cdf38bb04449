"""Initial approval tables.

Revision ID: 001_initial_approval_tables
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial_approval_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _audit_columns() -> list[sa.Column]:
    return [
        sa.Column("sa_orm_sentinel", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    """Create approval tables."""
    # Create approval_templates table
    op.create_table(
        "approval_templates",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, default=True),
        sa.Column("default_sla_hours", sa.Integer(), nullable=True),
        sa.Column("created_by", sa.String(length=255), nullable=True),
        *_audit_columns(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )

    # Create approval_step_definitions table
    op.create_table(
        "approval_step_definitions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("template_id", sa.Uuid(), nullable=False),
        sa.Column("step_order", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("required_role", sa.String(length=100), nullable=False),
        sa.Column("is_required", sa.Boolean(), nullable=False, default=True),
        sa.Column("sla_hours", sa.Integer(), nullable=True),
        sa.Column("step_type", sa.String(length=50), nullable=False),
        *_audit_columns(),
        sa.ForeignKeyConstraint(
            ["template_id"],
            ["approval_templates.id"],
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("template_id", "step_order", name="uq_approval_step_definitions_order"),
    )

    # Create approval_instances table
    op.create_table(
        "approval_instances",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("template_id", sa.Uuid(), nullable=False),
        sa.Column("document_id", sa.String(length=255), nullable=False),
        sa.Column("active_document_key", sa.String(length=255), nullable=True),
        sa.Column("initiated_by", sa.String(length=255), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=50), nullable=False),
        sa.Column("current_step_order", sa.Integer(), nullable=True),
        sa.Column("priority", sa.String(length=50), nullable=False),
        sa.Column("comments", sa.Text(), nullable=True),
        sa.Column("due_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(
            ["template_id"],
            ["approval_templates.id"],
            ondelete="RESTRICT",
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("active_document_key"),
    )
    op.create_index(
        "ix_approval_instances_status",
        "approval_instances",
        ["status"],
    )
    op.create_index(
        "ix_approval_instances_document_id",
        "approval_instances",
        ["document_id"],
    )
    op.create_index(
        "ix_approval_instances_initiated_by",
        "approval_instances",
        ["initiated_by"],
    )

    # Create approval_tasks table
    op.create_table(
        "approval_tasks",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("instance_id", sa.Uuid(), nullable=False),
        sa.Column("step_id", sa.Uuid(), nullable=False),
        sa.Column("step_order", sa.Integer(), nullable=False),
        sa.Column("step_name", sa.String(length=255), nullable=False),
        sa.Column("step_type", sa.String(length=50), nullable=False),
        sa.Column("required_role", sa.String(length=100), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("assignee_id", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=50), nullable=False),
        sa.Column("comments", sa.Text(), nullable=True),
        sa.Column("due_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_by", sa.String(length=255), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(
            ["instance_id"],
            ["approval_instances.id"],
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["step_id"],
            ["approval_step_definitions.id"],
            ondelete="RESTRICT",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_approval_tasks_instance_id",
        "approval_tasks",
        ["instance_id"],
    )
    op.create_index(
        "ix_approval_tasks_assignee_status",
        "approval_tasks",
        ["assignee_id", "status"],
    )
    op.create_index(
        "ix_approval_tasks_due_at",
        "approval_tasks",
        ["due_at"],
    )

    # Create approval_history table
    op.create_table(
        "approval_history",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("instance_id", sa.Uuid(), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column(
            "data",
            sa.JSON().with_variant(postgresql.JSONB(), "postgresql"),
            nullable=False,
        ),
        sa.Column("performed_by", sa.String(length=255), nullable=True),
        sa.Column("action_date", sa.DateTime(timezone=True), nullable=False),
        *_audit_columns(),
        sa.ForeignKeyConstraint(
            ["instance_id"],
            ["approval_instances.id"],
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("instance_id", "sequence", name="uq_approval_history_sequence"),
    )


def downgrade() -> None:
    """Drop approval tables."""
    op.drop_index("ix_approval_tasks_due_at", table_name="approval_tasks")
    op.drop_index("ix_approval_tasks_assignee_status", table_name="approval_tasks")
    op.drop_index("ix_approval_tasks_instance_id", table_name="approval_tasks")
    op.drop_index("ix_approval_instances_initiated_by", table_name="approval_instances")
    op.drop_index("ix_approval_instances_document_id", table_name="approval_instances")
    op.drop_index("ix_approval_instances_status", table_name="approval_instances")

    op.drop_table("approval_history")
    op.drop_table("approval_tasks")
    op.drop_table("approval_instances")
    op.drop_table("approval_step_definitions")
    op.drop_table("approval_templates")
