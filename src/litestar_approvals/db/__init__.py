"""Database persistence layer for litestar-approvals.

This module provides SQLAlchemy models and repositories for persisting approval
templates, workflow instances, tasks and history.
"""

from __future__ import annotations

from litestar_approvals.db.models import (
    StepDefinitionModel,
    WorkflowHistoryModel,
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

__all__ = [
    "StepDefinitionModel",
    "WorkflowHistoryModel",
    "WorkflowHistoryRepository",
    "WorkflowInstanceModel",
    "WorkflowInstanceRepository",
    "WorkflowTaskModel",
    "WorkflowTaskRepository",
    "WorkflowTemplateModel",
    "WorkflowTemplateRepository",
]
