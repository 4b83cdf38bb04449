"""Exception hierarchy for litestar-approvals.

Every error raised by the approval core derives from :class:`ApprovalsError` and
belongs to one of five families, identified by a stable ``kind`` string that callers
(HTTP handlers, bulk reports) can rely on:

- ``not_found``: a template, document, task, instance or user does not exist.
- ``validation``: malformed input or an unusable template.
- ``invalid_state``: the action is not allowed in the current state.
- ``forbidden``: the acting user lacks the required role or ownership.
- ``configuration``: the template cannot be routed (no eligible assignee).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

__all__ = (
    "ApprovalsError",
    "ConfigurationError",
    "DocumentNotFoundError",
    "DuplicateActiveWorkflowError",
    "EmptyTemplateError",
    "ForbiddenError",
    "InstanceNotFoundError",
    "InvalidStateError",
    "InvalidTransitionError",
    "NoEligibleAssigneeError",
    "NotFoundError",
    "TaskAlreadyDecidedError",
    "TaskNotFoundError",
    "TemplateInUseError",
    "TemplateNotFoundError",
    "UnauthorizedTaskError",
    "UserNotFoundError",
    "ValidationError",
    "WorkflowAlreadyTerminalError",
    "WorkflowNotActiveError",
)


class ApprovalsError(Exception):
    """Base exception for all litestar-approvals errors.

    Attributes:
        kind: Stable machine-readable error family.
    """

    kind: ClassVar[str] = "error"


class NotFoundError(ApprovalsError):
    """Raised when a referenced entity does not exist."""

    kind: ClassVar[str] = "not_found"


class ValidationError(ApprovalsError):
    """Raised on malformed input or an unusable template."""

    kind: ClassVar[str] = "validation"


class InvalidStateError(ApprovalsError):
    """Raised when an operation is not allowed in the entity's current state."""

    kind: ClassVar[str] = "invalid_state"


class ForbiddenError(ApprovalsError):
    """Raised when the acting user lacks authority for an operation."""

    kind: ClassVar[str] = "forbidden"


class ConfigurationError(ApprovalsError):
    """Raised when a template cannot be routed as configured."""

    kind: ClassVar[str] = "configuration"


class TemplateNotFoundError(NotFoundError):
    """Raised when a workflow template is not found.

    Attributes:
        template_id: The ID of the template that was not found.
    """

    def __init__(self, template_id: str | UUID) -> None:
        """Initialize the exception with template details.

        Args:
            template_id: The ID of the template that was not found.
        """
        self.template_id = template_id
        super().__init__(f"Workflow template '{template_id}' not found")


class DocumentNotFoundError(NotFoundError):
    """Raised when the document a workflow should bind to does not exist.

    Attributes:
        document_id: The ID of the missing document.
    """

    def __init__(self, document_id: str) -> None:
        """Initialize the exception with document details.

        Args:
            document_id: The ID of the missing document.
        """
        self.document_id = document_id
        super().__init__(f"Document '{document_id}' not found")


class InstanceNotFoundError(NotFoundError):
    """Raised when a workflow instance is not found.

    Attributes:
        instance_id: The ID of the workflow instance that was not found.
    """

    def __init__(self, instance_id: str | UUID) -> None:
        """Initialize the exception with instance details.

        Args:
            instance_id: The ID of the workflow instance that was not found.
        """
        self.instance_id = instance_id
        super().__init__(f"Workflow instance '{instance_id}' not found")


class TaskNotFoundError(NotFoundError):
    """Raised when an approval task is not found.

    Attributes:
        task_id: The ID of the task that was not found.
    """

    def __init__(self, task_id: str | UUID) -> None:
        """Initialize the exception with task details.

        Args:
            task_id: The ID of the task that was not found.
        """
        self.task_id = task_id
        super().__init__(f"Task '{task_id}' not found")


class UserNotFoundError(NotFoundError):
    """Raised when a user cannot be resolved through the user directory.

    Attributes:
        user_id: The ID of the unknown user.
    """

    def __init__(self, user_id: str) -> None:
        """Initialize the exception with user details.

        Args:
            user_id: The ID of the unknown user.
        """
        self.user_id = user_id
        super().__init__(f"User '{user_id}' not found")


class EmptyTemplateError(ValidationError):
    """Raised when a template without steps is instantiated.

    Attributes:
        template_id: The ID of the empty template.
    """

    def __init__(self, template_id: str | UUID) -> None:
        """Initialize the exception with template details.

        Args:
            template_id: The ID of the empty template.
        """
        self.template_id = template_id
        super().__init__(f"Workflow template '{template_id}' has no steps")


class TaskAlreadyDecidedError(InvalidStateError):
    """Raised when a decision is submitted for a task that is no longer pending.

    This is what the losing side of two concurrent decisions receives.

    Attributes:
        task_id: The ID of the task.
        status: The status the task was found in.
        decided_by: The user who decided the task, if known.
        decided_at: When the task was decided, if known.
    """

    def __init__(
        self,
        task_id: str | UUID,
        status: str,
        decided_by: str | None = None,
        decided_at: datetime | None = None,
    ) -> None:
        """Initialize the exception with the winning decision's details.

        Args:
            task_id: The ID of the task.
            status: The status the task was found in.
            decided_by: The user who decided the task, if known.
            decided_at: When the task was decided, if known.
        """
        self.task_id = task_id
        self.status = status
        self.decided_by = decided_by
        self.decided_at = decided_at
        if decided_by and decided_at:
            msg = f"Task '{task_id}' was already decided by {decided_by} at {decided_at.isoformat()}"
        else:
            msg = f"Task '{task_id}' is already {status}"
        super().__init__(msg)


class WorkflowNotActiveError(InvalidStateError):
    """Raised when a task action targets an instance that cannot accept it.

    Attributes:
        instance_id: The ID of the workflow instance.
        status: The instance status at the time of the action.
    """

    def __init__(self, instance_id: str | UUID, status: str, reason: str | None = None) -> None:
        """Initialize the exception with instance state details.

        Args:
            instance_id: The ID of the workflow instance.
            status: The instance status at the time of the action.
            reason: Additional context about why the action is refused.
        """
        self.instance_id = instance_id
        self.status = status
        msg = f"Workflow '{instance_id}' cannot accept task actions while {status}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class WorkflowAlreadyTerminalError(InvalidStateError):
    """Raised when trying to modify a workflow that already reached a terminal state.

    Attributes:
        instance_id: The ID of the workflow instance.
        status: The current terminal status of the workflow.
    """

    def __init__(self, instance_id: str | UUID, status: str) -> None:
        """Initialize the exception with workflow state details.

        Args:
            instance_id: The ID of the workflow instance.
            status: The current status of the workflow.
        """
        self.instance_id = instance_id
        self.status = status
        super().__init__(f"Workflow '{instance_id}' is already {status}")


class InvalidTransitionError(InvalidStateError):
    """Raised when a hold or resume is attempted from a status that does not allow it.

    Attributes:
        instance_id: The ID of the workflow instance.
        from_status: The current status.
        to_status: The requested status.
    """

    def __init__(self, instance_id: str | UUID, from_status: str, to_status: str) -> None:
        """Initialize the exception with transition details.

        Args:
            instance_id: The ID of the workflow instance.
            from_status: The current status.
            to_status: The requested status.
        """
        self.instance_id = instance_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(f"Cannot move workflow '{instance_id}' from {from_status} to {to_status}")


class DuplicateActiveWorkflowError(InvalidStateError):
    """Raised when a document already has an active workflow instance.

    Attributes:
        document_id: The document that is already under approval.
        instance_id: The active instance, if known.
    """

    def __init__(self, document_id: str, instance_id: str | UUID | None = None) -> None:
        """Initialize the exception with document details.

        Args:
            document_id: The document that is already under approval.
            instance_id: The active instance, if known.
        """
        self.document_id = document_id
        self.instance_id = instance_id
        msg = f"Document '{document_id}' already has an active workflow"
        if instance_id:
            msg += f" ('{instance_id}')"
        super().__init__(msg)


class TemplateInUseError(InvalidStateError):
    """Raised when deleting or restructuring a template that instances reference.

    Attributes:
        template_id: The ID of the template.
        instance_count: Number of instances referencing the template.
    """

    def __init__(self, template_id: str | UUID, instance_count: int) -> None:
        """Initialize the exception with template usage details.

        Args:
            template_id: The ID of the template.
            instance_count: Number of instances referencing the template.
        """
        self.template_id = template_id
        self.instance_count = instance_count
        super().__init__(f"Workflow template '{template_id}' is referenced by {instance_count} instance(s)")


class UnauthorizedTaskError(ForbiddenError):
    """Raised when a user is not allowed to act on a task or instance.

    Attributes:
        target_id: The ID of the task or instance.
        user_id: The ID of the user attempting the action.
    """

    def __init__(self, target_id: str | UUID, user_id: str, action: str = "complete task") -> None:
        """Initialize the exception with authorization details.

        Args:
            target_id: The ID of the task or instance.
            user_id: The ID of the user attempting the action.
            action: Short description of the refused action.
        """
        self.target_id = target_id
        self.user_id = user_id
        super().__init__(f"User '{user_id}' is not authorized to {action} '{target_id}'")


class NoEligibleAssigneeError(ConfigurationError):
    """Raised when no active user holds the role a required step needs.

    Attributes:
        step_name: The name of the step that cannot be assigned.
        role: The role nobody holds.
    """

    def __init__(self, step_name: str, role: str) -> None:
        """Initialize the exception with step details.

        Args:
            step_name: The name of the step that cannot be assigned.
            role: The role nobody holds.
        """
        self.step_name = step_name
        self.role = role
        super().__init__(f"No eligible user holds role '{role}' required by step '{step_name}'")
