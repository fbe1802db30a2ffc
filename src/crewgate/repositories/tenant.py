"""Repository for Tenant entity."""

from sqlmodel import select

from src.crewgate.models import Tenant
from src.crewgate.repositories.base import BaseRepository


class TenantRepository(BaseRepository[Tenant]):
    """Read-only access to tenants."""

    model = Tenant

    async def get_by_slug(self, slug: str) -> Tenant | None:
        result = await self.session.execute(select(Tenant).where(Tenant.slug == slug))
        return result.scalar_one_or_none()
