"""SQL directory store backed by the SQLAlchemy repositories."""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, List, Optional

from sqlalchemy import text

from common.core.otel_axiom_exporter import get_logger
from common.db.scoped import savepoint as db_savepoint, transaction
from packages.billing.models.domain.subscription import Subscription
from packages.billing.repositories.subscription_repository import SubscriptionRepository
from packages.directory.models.domain.organization import Organization
from packages.directory.models.domain.parent_link import ParentStudentLink
from packages.directory.models.domain.tenant import Tenant
from packages.directory.providers.store.interface import DirectoryStoreInterface
from packages.directory.providers.store.locks import KeyedLocks
from packages.directory.repositories.organization_repository import OrganizationRepository
from packages.directory.repositories.parent_link_repository import ParentLinkRepository
from packages.directory.repositories.tenant_repository import TenantRepository

logger = get_logger(__name__)


class SqlDirectoryStore(DirectoryStoreInterface):
    """
    Store over the relational schema.

    billing_owner_lock opens a transaction and, on PostgreSQL, takes a
    transaction-scoped advisory lock keyed by the billing owner id, so the
    lock is released exactly when the transaction ends. Other dialects fall
    back to a per-process asyncio lock.
    """

    def __init__(self):
        self.tenant_repo = TenantRepository()
        self.organization_repo = OrganizationRepository()
        self.parent_link_repo = ParentLinkRepository()
        self.subscription_repo = SubscriptionRepository()
        self._local_locks = KeyedLocks()

    # Tenants

    async def get_tenant(self, tenant_id: str) -> Optional[Tenant]:
        return await self.tenant_repo.get(tenant_id)

    async def get_tenants(self, tenant_ids: List[str]) -> List[Tenant]:
        return await self.tenant_repo.get_by_ids(tenant_ids)

    async def find_tenant_by_email(self, email: str) -> Optional[Tenant]:
        return await self.tenant_repo.get_by_email(email)

    async def list_tenants(self, **equals: Any) -> List[Tenant]:
        return await self.tenant_repo.find(**_plain(equals))

    async def save_tenant(self, tenant: Tenant) -> Tenant:
        return await self.tenant_repo.save(tenant)

    async def delete_tenant(self, tenant_id: str) -> bool:
        return await self.tenant_repo.delete(tenant_id)

    # Organizations

    async def get_organization(self, organization_id: str) -> Optional[Organization]:
        return await self.organization_repo.get(organization_id)

    async def list_organizations(self, **equals: Any) -> List[Organization]:
        return await self.organization_repo.find(**_plain(equals))

    async def save_organization(self, organization: Organization) -> Organization:
        return await self.organization_repo.save(organization)

    async def delete_organization(self, organization_id: str) -> bool:
        return await self.organization_repo.delete(organization_id)

    # Parent links

    async def list_parent_links(self, **equals: Any) -> List[ParentStudentLink]:
        return await self.parent_link_repo.find(**_plain(equals))

    async def save_parent_link(self, link: ParentStudentLink) -> ParentStudentLink:
        return await self.parent_link_repo.save(link)

    async def delete_parent_links_for(self, tenant_id: str) -> int:
        return await self.parent_link_repo.delete_for_tenant(tenant_id)

    # Subscriptions

    async def get_subscription(self, billing_owner_id: str) -> Optional[Subscription]:
        return await self.subscription_repo.get(billing_owner_id)

    async def find_subscription_by_stripe_id(
        self, stripe_subscription_id: str
    ) -> Optional[Subscription]:
        return await self.subscription_repo.get_by_stripe_subscription_id(
            stripe_subscription_id
        )

    async def save_subscription(self, subscription: Subscription) -> Subscription:
        return await self.subscription_repo.save(subscription)

    # Concurrency

    @asynccontextmanager
    async def billing_owner_lock(self, billing_owner_id: str) -> AsyncGenerator[None, None]:
        async with transaction() as session:
            dialect = session.get_bind().dialect.name
            logger.debug(
                f"Acquiring billing owner lock for {billing_owner_id} ({dialect})"
            )
            if dialect == "postgresql":
                await session.execute(
                    text("SELECT pg_advisory_xact_lock(hashtext(:billing_owner_id))"),
                    {"billing_owner_id": billing_owner_id},
                )
                yield
            else:
                async with self._local_locks.hold(billing_owner_id):
                    yield

    @asynccontextmanager
    async def savepoint(self) -> AsyncGenerator[None, None]:
        async with db_savepoint():
            yield


def _plain(equals: Dict[str, Any]) -> Dict[str, Any]:
    """Enum filter values -> their column values."""
    return {k: v.value if hasattr(v, "value") else v for k, v in equals.items()}
