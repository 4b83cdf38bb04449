"""Shared test fixtures for litestar-approvals test suite."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from litestar_approvals.core.models import StepSpec
from litestar_approvals.core.protocols import DocumentRef, UserRef
from litestar_approvals.core.types import StepType
from litestar_approvals.db.models import WorkflowTemplateModel

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Sequence
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncEngine

    from litestar_approvals.db.models import WorkflowInstanceModel, WorkflowTaskModel
    from litestar_approvals.engine.approvals import ApprovalEngine


# =============================================================================
# Collaborators
# =============================================================================


class InMemoryDirectory:
    """User directory backed by a dict."""

    def __init__(self, users: Sequence[UserRef] = ()) -> None:
        """Initialize the directory with ``users``."""
        self.users: dict[str, UserRef] = {user.id: user for user in users}
        self.role_lookups: list[str] = []

    def add(self, user_id: str, username: str, *roles: str, active: bool = True) -> UserRef:
        """Add or replace a user."""
        user = UserRef(id=user_id, username=username, roles=frozenset(roles), active=active)
        self.users[user_id] = user
        return user

    async def find_users_by_role(self, role: str) -> list[UserRef]:
        """Return the holders of ``role`` in insertion order."""
        self.role_lookups.append(role)
        return [user for user in self.users.values() if role in user.roles]

    async def get_user(self, user_id: str) -> UserRef | None:
        """Return the user or None."""
        return self.users.get(user_id)


class InMemoryDocuments:
    """Document lookup backed by a dict."""

    def __init__(self, documents: Sequence[DocumentRef] = ()) -> None:
        """Initialize the lookup with ``documents``."""
        self.documents: dict[str, DocumentRef] = {document.id: document for document in documents}

    async def get_document(self, document_id: str) -> DocumentRef | None:
        """Return the document or None."""
        return self.documents.get(document_id)


class RecordingNotifier:
    """Notifier that records every notification."""

    def __init__(self) -> None:
        """Initialize recording notifier."""
        self.assigned: list[tuple[str, WorkflowTaskModel]] = []
        self.decided: list[WorkflowInstanceModel] = []

    async def notify_task_assigned(self, user: UserRef, task: WorkflowTaskModel) -> None:
        """Record an assignment."""
        self.assigned.append((user.id, task))

    async def notify_workflow_decided(self, instance: WorkflowInstanceModel) -> None:
        """Record a terminal workflow."""
        self.decided.append(instance)


class FailingNotifier:
    """Notifier whose every delivery fails."""

    def __init__(self) -> None:
        """Initialize failing notifier."""
        self.calls = 0

    async def notify_task_assigned(self, user: UserRef, task: WorkflowTaskModel) -> None:
        """Fail an assignment notification."""
        self.calls += 1
        raise RuntimeError("mail server unreachable")

    async def notify_workflow_decided(self, instance: WorkflowInstanceModel) -> None:
        """Fail a completion notification."""
        self.calls += 1
        raise RuntimeError("mail server unreachable")


@pytest.fixture
def directory() -> InMemoryDirectory:
    """Create a directory with one or more holders of each role.

    Returns:
        InMemoryDirectory with users author, manager1, zara (MANAGER), admin,
        legal, outsider and an inactive manager aaron.
    """
    users = InMemoryDirectory()
    users.add("u-author", "author", "EMPLOYEE")
    users.add("u-manager", "manager1", "MANAGER")
    users.add("u-manager2", "zara", "MANAGER")
    users.add("u-retired", "aaron", "MANAGER", active=False)
    users.add("u-admin", "admin", "ADMIN")
    users.add("u-legal", "legal", "LEGAL")
    users.add("u-outsider", "outsider")
    return users


@pytest.fixture
def documents() -> InMemoryDocuments:
    """Create a document lookup with documents doc-1 to doc-5.

    Returns:
        InMemoryDocuments instance
    """
    return InMemoryDocuments(
        [DocumentRef(id=f"doc-{n}", owner_id="u-author", title=f"Contract {n}") for n in range(1, 6)]
    )


@pytest.fixture
def notifier() -> RecordingNotifier:
    """Create a recording notifier.

    Returns:
        RecordingNotifier instance
    """
    return RecordingNotifier()


@pytest.fixture
def failing_notifier() -> FailingNotifier:
    """Create a notifier whose deliveries fail.

    Returns:
        FailingNotifier instance
    """
    return FailingNotifier()


# =============================================================================
# Database Fixtures
# =============================================================================


def _enable_foreign_keys(engine: AsyncEngine) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


@pytest.fixture
async def async_engine() -> AsyncIterator[AsyncEngine]:
    """Create async SQLite in-memory engine for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        future=True,
    )
    _enable_foreign_keys(engine)

    async with engine.begin() as conn:
        await conn.run_sync(WorkflowTemplateModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def file_engine(tmp_path) -> AsyncIterator[AsyncEngine]:
    """Create async SQLite engine on a file, so that several connections share it."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'approvals.db'}",
        echo=False,
        future=True,
    )
    _enable_foreign_keys(engine)

    async with engine.begin() as conn:
        await conn.run_sync(WorkflowTemplateModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def async_session(async_engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    """Create async session for testing."""
    session_maker = async_sessionmaker(
        bind=async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with session_maker() as session:
        yield session
        await session.rollback()


# =============================================================================
# Approval Fixtures
# =============================================================================


TWO_STEP_CHAIN = [
    StepSpec(order=1, name="Manager Review", required_role="MANAGER"),
    StepSpec(order=2, name="Admin Approval", required_role="ADMIN", sla_hours=24),
]


@pytest.fixture
async def template_id(async_session: AsyncSession) -> UUID:
    """Create the MANAGER then ADMIN template.

    A failed operation rolls the session back and expires loaded objects, so
    tests hold on to the ID rather than the model.

    Returns:
        ID of the persisted template
    """
    from litestar_approvals.engine.templates import TemplateService

    template = await TemplateService(async_session).create_template(
        "Contract Review", TWO_STEP_CHAIN, created_by="u-admin", default_sla_hours=72
    )
    return template.id


@pytest.fixture
async def informational_template_id(async_session: AsyncSession) -> UUID:
    """Create a template starting with an informational LEGAL step.

    Returns:
        ID of the persisted template
    """
    from litestar_approvals.engine.templates import TemplateService

    template = await TemplateService(async_session).create_template(
        "Legal Notice",
        [
            StepSpec(order=1, name="Legal Heads-up", required_role="LEGAL", step_type=StepType.INFORMATIONAL),
            StepSpec(order=2, name="Manager Review", required_role="MANAGER"),
        ],
    )
    return template.id


@pytest.fixture
def engine(
    async_session: AsyncSession,
    documents: InMemoryDocuments,
    directory: InMemoryDirectory,
    notifier: RecordingNotifier,
) -> ApprovalEngine:
    """Create an approval engine over the in-memory collaborators.

    Args:
        async_session: Database session fixture
        documents: Document lookup fixture
        directory: User directory fixture
        notifier: Recording notifier fixture

    Returns:
        ApprovalEngine instance
    """
    from litestar_approvals.engine.approvals import ApprovalEngine

    return ApprovalEngine(async_session, documents=documents, users=directory, notifier=notifier)
