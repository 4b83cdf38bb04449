"""Shared transaction handling for session-bound services."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sqlalchemy.ext.asyncio import AsyncSession

__all__ = ["SessionService"]


class SessionService:
    """Base class for services that run each public operation in one transaction.

    Attributes:
        session: SQLAlchemy async session. It should be created with
            ``expire_on_commit=False`` so results stay readable after commit.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Commit when the block succeeds, roll back and re-raise when it fails."""
        try:
            yield
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
