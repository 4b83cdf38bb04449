"""Approval engine, template administration and read projections.

This module exports the services that operate on the approval tables through an
async SQLAlchemy session.
"""

from __future__ import annotations

from litestar_approvals.engine.approvals import ApprovalEngine
from litestar_approvals.engine.notify import LoggingNotifier
from litestar_approvals.engine.queries import ApprovalQueries
from litestar_approvals.engine.templates import TemplateService

__all__ = ["ApprovalEngine", "ApprovalQueries", "LoggingNotifier", "TemplateService"]
