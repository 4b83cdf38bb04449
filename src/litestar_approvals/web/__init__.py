"""REST API layer for litestar-approvals.

The controllers are registered by :class:`~litestar_approvals.plugin.ApprovalsPlugin`
when ``enable_api`` is set (the default).
"""

from __future__ import annotations

from litestar_approvals.web.controllers import (
    ApprovalTaskController,
    StatisticsController,
    TemplateController,
    WorkflowInstanceController,
)
from litestar_approvals.web.exceptions import approvals_error_handler

__all__ = [
    "ApprovalTaskController",
    "StatisticsController",
    "TemplateController",
    "WorkflowInstanceController",
    "approvals_error_handler",
]
