"""Protocols for the collaborators the approval core depends on.

The engine never talks to document storage, the user store or a mail/push service
directly. The host application provides objects that satisfy these protocols;
structural typing keeps the coupling to the three narrow call contracts below.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from litestar_approvals.db.models import WorkflowInstanceModel, WorkflowTaskModel


__all__ = ["DocumentLookup", "DocumentRef", "Notifier", "UserDirectory", "UserRef"]


@dataclass(frozen=True)
class DocumentRef:
    """Minimal view of a document owned by the host application.

    Attributes:
        id: Document identifier.
        owner_id: User who owns the document.
        title: Display title, used for the default instance title.
    """

    id: str
    owner_id: str | None = None
    title: str | None = None


@dataclass(frozen=True)
class UserRef:
    """Minimal view of a user owned by the host application.

    Attributes:
        id: User identifier.
        username: Login name, used as the assignment tie-break.
        roles: Role names the user holds.
        active: Inactive users are never assigned tasks.
        display_name: Optional full name for history details.
    """

    id: str
    username: str
    roles: frozenset[str] = field(default_factory=frozenset)
    active: bool = True
    display_name: str | None = None

    def has_role(self, *roles: str) -> bool:
        """Return True if the user holds any of ``roles``."""
        return any(role in self.roles for role in roles)

    @property
    def label(self) -> str:
        """Name used in history details."""
        return self.display_name or self.username


@runtime_checkable
class DocumentLookup(Protocol):
    """Resolves document references at instantiation time."""

    async def get_document(self, document_id: str) -> DocumentRef | None:
        """Return the document or None if it does not exist."""
        ...


@runtime_checkable
class UserDirectory(Protocol):
    """Resolves users and role holders for assignment and authority checks."""

    async def find_users_by_role(self, role: str) -> Sequence[UserRef]:
        """Return every user holding ``role``, in any order."""
        ...

    async def get_user(self, user_id: str) -> UserRef | None:
        """Return the user or None if unknown."""
        ...


@runtime_checkable
class Notifier(Protocol):
    """Fire-and-forget delivery of approval notifications.

    Implementations may raise; the engine logs and discards notifier errors so a
    failed delivery never undoes the state transition that triggered it.
    """

    async def notify_task_assigned(self, user: UserRef, task: WorkflowTaskModel) -> None:
        """Tell ``user`` that ``task`` awaits their decision."""
        ...

    async def notify_workflow_decided(self, instance: WorkflowInstanceModel) -> None:
        """Announce that ``instance`` reached a terminal status."""
        ...
