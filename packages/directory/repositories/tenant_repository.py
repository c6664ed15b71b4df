from typing import Optional
from sqlalchemy import select

from common.repositories.base import BaseRepository
from common.core.otel_axiom_exporter import trace_span
from packages.directory.models.database.tenant import TenantEntity
from packages.directory.models.domain.tenant import Tenant


class TenantRepository(BaseRepository[TenantEntity, Tenant]):
    def __init__(self):
        super().__init__(TenantEntity, Tenant)

    @trace_span
    async def get_by_email(self, email: str) -> Optional[Tenant]:
        """Get tenant by (lower-cased) email."""
        async with self._get_session(readonly=True) as session:
            result = await session.execute(
                select(TenantEntity).where(TenantEntity.email == email.lower())
            )
            db_tenant = result.scalar_one_or_none()
            return self._entity_to_domain(db_tenant) if db_tenant else None
