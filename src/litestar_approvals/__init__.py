"""Litestar Approvals - Document approval workflows for Litestar.

This package routes documents through ordered, role-based approval chains. A
template lists the steps and the role each one requires; starting a workflow binds
the template to a document and assigns the first step's task to a role holder.

Key Features:
    - Ordered approval chains with informational and optional steps
    - Role-based assignment with deterministic tie-breaking
    - At-most-once task decisions under concurrent requests
    - Append-only, ordered workflow history
    - Cancel, hold, resume, reassign and bulk operations
    - REST API and dependency injection through a Litestar plugin

Example:
    >>> from litestar_approvals import ApprovalEngine, StepSpec, TemplateService
    >>>
    >>> template = await TemplateService(session).create_template(
    ...     "Contract review",
    ...     [StepSpec(1, "Manager review", "MANAGER"), StepSpec(2, "Legal sign-off", "LEGAL")],
    ... )
    >>> engine = ApprovalEngine(session, documents=documents, users=directory)
    >>> instance = await engine.start_workflow("doc-42", template.id, initiator_id="u-1")
"""

from __future__ import annotations

from litestar_approvals.__metadata__ import __project__, __version__
from litestar_approvals.config import ApprovalsConfig
from litestar_approvals.core.models import (
    BulkActionResult,
    InstanceFilters,
    Page,
    PageRequest,
    StepSpec,
    TaskActionResult,
    WorkflowStatistics,
)
from litestar_approvals.core.protocols import DocumentLookup, DocumentRef, Notifier, UserDirectory, UserRef
from litestar_approvals.core.types import (
    BulkAction,
    HistoryAction,
    StepType,
    TaskAction,
    TaskStatus,
    WorkflowPriority,
    WorkflowStatus,
)
from litestar_approvals.engine import ApprovalEngine, ApprovalQueries, LoggingNotifier, TemplateService
from litestar_approvals.exceptions import (
    ApprovalsError,
    ConfigurationError,
    DocumentNotFoundError,
    DuplicateActiveWorkflowError,
    EmptyTemplateError,
    ForbiddenError,
    InstanceNotFoundError,
    InvalidStateError,
    InvalidTransitionError,
    NoEligibleAssigneeError,
    NotFoundError,
    TaskAlreadyDecidedError,
    TaskNotFoundError,
    TemplateInUseError,
    TemplateNotFoundError,
    UnauthorizedTaskError,
    UserNotFoundError,
    ValidationError,
    WorkflowAlreadyTerminalError,
    WorkflowNotActiveError,
)
from litestar_approvals.plugin import ApprovalsPlugin, ApprovalsPluginConfig

__all__ = (
    "ApprovalEngine",
    "ApprovalQueries",
    "ApprovalsConfig",
    "ApprovalsError",
    "ApprovalsPlugin",
    "ApprovalsPluginConfig",
    "BulkAction",
    "BulkActionResult",
    "ConfigurationError",
    "DocumentLookup",
    "DocumentNotFoundError",
    "DocumentRef",
    "DuplicateActiveWorkflowError",
    "EmptyTemplateError",
    "ForbiddenError",
    "HistoryAction",
    "InstanceFilters",
    "InstanceNotFoundError",
    "InvalidStateError",
    "InvalidTransitionError",
    "LoggingNotifier",
    "NoEligibleAssigneeError",
    "NotFoundError",
    "Notifier",
    "Page",
    "PageRequest",
    "StepSpec",
    "StepType",
    "TaskAction",
    "TaskActionResult",
    "TaskAlreadyDecidedError",
    "TaskNotFoundError",
    "TaskStatus",
    "TemplateInUseError",
    "TemplateNotFoundError",
    "TemplateService",
    "UnauthorizedTaskError",
    "UserDirectory",
    "UserNotFoundError",
    "UserRef",
    "ValidationError",
    "WorkflowAlreadyTerminalError",
    "WorkflowNotActiveError",
    "WorkflowPriority",
    "WorkflowStatistics",
    "WorkflowStatus",
    "__project__",
    "__version__",
)
