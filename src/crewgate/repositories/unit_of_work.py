"""Write-side unit of work bound to the elevated session."""

import contextlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession

from src.crewgate.core.db import get_elevated_session
from src.crewgate.repositories.invitation import InvitationRepository
from src.crewgate.repositories.membership import MembershipRepository


class ElevatedUnitOfWork:
    """Repositories sharing one elevated session and its transaction."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.invitations = InvitationRepository(session)
        self.memberships = MembershipRepository(session)

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()


@asynccontextmanager
async def open_elevated_unit_of_work() -> AsyncGenerator[ElevatedUnitOfWork]:
    """Open an elevated unit of work; anything uncommitted is rolled back on error."""
    async with get_elevated_session() as session:
        uow = ElevatedUnitOfWork(session)
        try:
            yield uow
        except Exception:
            with contextlib.suppress(Exception):
                await uow.rollback()
            raise
