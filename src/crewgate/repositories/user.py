"""Repository for User entity."""

from collections.abc import Iterable
from uuid import UUID

from sqlmodel import col, select

from src.crewgate.core.validators import canonical_email
from src.crewgate.models import User
from src.crewgate.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Read-only access to users."""

    model = User

    async def get_by_email(self, email: str) -> User | None:
        """Get user by email (case-insensitive)."""
        result = await self.session.execute(
            select(User).where(User.email == canonical_email(email))
        )
        return result.scalar_one_or_none()

    async def get_many(self, ids: Iterable[UUID]) -> dict[UUID, User]:
        """Load several users at once, keyed by id."""
        wanted = set(ids)
        if not wanted:
            return {}
        result = await self.session.execute(select(User).where(col(User.id).in_(wanted)))
        return {user.id: user for user in result.scalars().all()}
