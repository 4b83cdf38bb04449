"""Notification delivery for the approval engine.

Notifications are collected while a transition runs and delivered only after its
transaction has committed. Delivery failures are logged and never propagate.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

    from litestar_approvals.core.protocols import UserRef
    from litestar_approvals.db.models import WorkflowInstanceModel, WorkflowTaskModel

__all__ = ["LoggingNotifier", "deliver"]

logger = logging.getLogger(__name__)


class LoggingNotifier:
    """Notifier that writes notifications to the ``litestar_approvals`` log.

    Used when the host application does not provide a notifier.
    """

    async def notify_task_assigned(self, user: UserRef, task: WorkflowTaskModel) -> None:
        logger.info(
            "Task %s (%s) assigned to %s, due %s",
            task.id,
            task.step_name,
            user.username,
            task.due_at.isoformat() if task.due_at else "never",
        )

    async def notify_workflow_decided(self, instance: WorkflowInstanceModel) -> None:
        logger.info("Workflow %s for document %s ended as %s", instance.id, instance.document_id, instance.status)


async def deliver(outbox: Iterable[Callable[[], Awaitable[None]]]) -> None:
    """Run every pending notification, logging and discarding failures.

    Args:
        outbox: Zero-argument callables returning the notification coroutine.
    """
    for notification in outbox:
        try:
            await notification()
        except Exception:
            logger.exception("Notification delivery failed")
