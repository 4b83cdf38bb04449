"""Configuration for the approval engine.

This module provides the policy options of :class:`~litestar_approvals.engine.ApprovalEngine`:
which roles may override task assignment, which roles may cancel or pause any
workflow, and the fallback deadline of tasks.
"""

from __future__ import annotations

from dataclasses import dataclass

__all__ = ["ApprovalsConfig"]


@dataclass(frozen=True)
class ApprovalsConfig:
    """Policy configuration for the approval engine.

    Attributes:
        override_roles: Roles allowed to decide or reassign any task.
        cancel_roles: Roles allowed to cancel, hold or resume any workflow. The
            initiator of a workflow may always do so.
        default_task_sla_hours: Hours until a task is due when neither the step nor
            the instance defines a deadline.

    Example:
        >>> from litestar_approvals import ApprovalsConfig
        >>> config = ApprovalsConfig(override_roles=("ADMIN", "COMPLIANCE"))
    """

    override_roles: tuple[str, ...] = ("ADMIN",)
    cancel_roles: tuple[str, ...] = ("ADMIN", "MANAGER")
    default_task_sla_hours: int = 48

    def __post_init__(self) -> None:
        if self.default_task_sla_hours <= 0:
            msg = "default_task_sla_hours must be positive"
            raise ValueError(msg)
