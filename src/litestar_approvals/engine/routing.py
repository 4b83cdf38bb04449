"""Routing rules of the approval state machine.

These functions decide which step comes next, who gets its task, which status the
instance takes and when things are due. They hold no state and perform no writes;
the only I/O is the role lookup in :func:`resolve_next_step`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from litestar_approvals.core.types import BulkAction, StepType, TaskAction, WorkflowPriority, WorkflowStatus
from litestar_approvals.exceptions import NoEligibleAssigneeError, ValidationError

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from litestar_approvals.core.protocols import DocumentRef, UserDirectory, UserRef
    from litestar_approvals.db.models import StepDefinitionModel, WorkflowTemplateModel

__all__ = [
    "RoutingDecision",
    "active_status",
    "default_title",
    "instance_due_at",
    "parse_action",
    "parse_bulk_action",
    "parse_priority",
    "pick_assignee",
    "resolve_next_step",
    "steps_after",
    "task_due_at",
]


@dataclass
class RoutingDecision:
    """Result of looking for the next dispatchable step.

    Attributes:
        step: The step to dispatch, None when the chain is exhausted.
        assignee: The user who receives the step's task.
        skipped: Non-required steps passed over because nobody holds their role.
    """

    step: StepDefinitionModel | None = None
    assignee: UserRef | None = None
    skipped: list[StepDefinitionModel] = field(default_factory=list)

    @property
    def exhausted(self) -> bool:
        return self.step is None


def _parse_enum(value: object, enum_type: type[TaskAction] | type[BulkAction], label: str) -> TaskAction | BulkAction:
    if isinstance(value, enum_type):
        return value
    if isinstance(value, str):
        try:
            return enum_type(value.strip().lower())
        except ValueError:
            pass
    allowed = ", ".join(member.value.upper() for member in enum_type)
    msg = f"Invalid {label} {value!r}; expected one of {allowed}"
    raise ValidationError(msg)


def parse_action(value: TaskAction | str) -> TaskAction:
    """Parse a task decision, case-insensitively.

    Args:
        value: A :class:`TaskAction` or a string such as ``"approve"`` or ``"REJECT"``.

    Returns:
        The task action.

    Raises:
        ValidationError: If the value names no known action.
    """
    return TaskAction(_parse_enum(value, TaskAction, "task action"))


def parse_bulk_action(value: BulkAction | str) -> BulkAction:
    """Parse a bulk action, case-insensitively.

    Raises:
        ValidationError: If the value names no known bulk action.
    """
    return BulkAction(_parse_enum(value, BulkAction, "bulk action"))


def parse_priority(value: WorkflowPriority | str | None) -> WorkflowPriority:
    """Parse a priority, falling back to NORMAL for missing or unknown values."""
    if isinstance(value, WorkflowPriority):
        return value
    if isinstance(value, str):
        try:
            return WorkflowPriority(value.strip().lower())
        except ValueError:
            pass
    return WorkflowPriority.NORMAL


def steps_after(steps: Iterable[StepDefinitionModel], order: int | None = None) -> list[StepDefinitionModel]:
    """Return the steps whose order is greater than ``order``, sorted by order.

    Args:
        steps: Step definitions of a template.
        order: Current step order; None returns every step.
    """
    return sorted(
        (step for step in steps if order is None or step.step_order > order),
        key=lambda step: step.step_order,
    )


def pick_assignee(candidates: Iterable[UserRef], role: str) -> UserRef | None:
    """Choose the assignee among the holders of ``role``.

    Only active users holding the role are eligible. Ties are broken by username,
    then by user ID, so the choice is stable for a given directory state.

    Args:
        candidates: Users returned by the directory for the role.
        role: The role the step requires.

    Returns:
        The selected user, or None if nobody is eligible.
    """
    eligible = [user for user in candidates if user.active and user.has_role(role)]
    if not eligible:
        return None
    return min(eligible, key=lambda user: (user.username, user.id))


async def resolve_next_step(steps: Sequence[StepDefinitionModel], users: UserDirectory) -> RoutingDecision:
    """Find the first step of ``steps`` that can be dispatched.

    Non-required steps without an eligible role holder are skipped. A required step
    without one stops routing.

    Args:
        steps: Candidate steps in order.
        users: Directory used to find role holders.

    Returns:
        The routing decision. Its ``step`` is None when every remaining step was skipped.

    Raises:
        NoEligibleAssigneeError: If a required step has no eligible role holder.
    """
    decision = RoutingDecision()
    for step in steps:
        assignee = pick_assignee(await users.find_users_by_role(step.required_role), step.required_role)
        if assignee is not None:
            decision.step = step
            decision.assignee = assignee
            return decision
        if step.is_required:
            raise NoEligibleAssigneeError(step.name, step.required_role)
        decision.skipped.append(step)
    return decision


def active_status(step_type: StepType, *, first_dispatch: bool) -> WorkflowStatus:
    """Status of an instance waiting on a step.

    An instance whose very first task is informational stays PENDING until that
    task is acknowledged; every other waiting instance is IN_PROGRESS.
    """
    if first_dispatch and step_type == StepType.INFORMATIONAL:
        return WorkflowStatus.PENDING
    return WorkflowStatus.IN_PROGRESS


def instance_due_at(template: WorkflowTemplateModel, now: datetime) -> datetime | None:
    """Deadline of a new instance, from the template's default SLA."""
    if template.default_sla_hours:
        return now + timedelta(hours=template.default_sla_hours)
    return None


def task_due_at(
    step: StepDefinitionModel,
    now: datetime,
    *,
    instance_due: datetime | None = None,
    default_hours: int = 48,
) -> datetime:
    """Deadline of a new task.

    The step's SLA wins, then the instance deadline, then ``default_hours`` from now.
    """
    if step.sla_hours:
        return now + timedelta(hours=step.sla_hours)
    if instance_due is not None:
        return instance_due
    return now + timedelta(hours=default_hours)


def default_title(document: DocumentRef) -> str:
    """Default title of an instance bound to ``document``."""
    return f"Document Approval: {document.title or document.id}"
