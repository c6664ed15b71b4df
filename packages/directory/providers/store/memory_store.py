"""In-memory directory store for tests and local runs."""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, List, Optional, TypeVar

from pydantic import BaseModel

from packages.billing.models.domain.subscription import Subscription
from packages.directory.models.domain.organization import Organization
from packages.directory.models.domain.parent_link import ParentStudentLink
from packages.directory.models.domain.tenant import Tenant
from packages.directory.providers.store.interface import DirectoryStoreInterface
from packages.directory.providers.store.locks import KeyedLocks

ModelType = TypeVar("ModelType", bound=BaseModel)


def _matches(record: BaseModel, equals: Dict[str, Any]) -> bool:
    for field, expected in equals.items():
        actual = getattr(record, field)
        if hasattr(actual, "value"):
            actual = actual.value
        if hasattr(expected, "value"):
            expected = expected.value
        if actual != expected:
            return False
    return True


class InMemoryDirectoryStore(DirectoryStoreInterface):
    """Dict-backed store. Records are copied in and out."""

    def __init__(self):
        self.tenants: Dict[str, Tenant] = {}
        self.organizations: Dict[str, Organization] = {}
        self.parent_links: Dict[str, ParentStudentLink] = {}
        self.subscriptions: Dict[str, Subscription] = {}
        self._locks = KeyedLocks()

    @staticmethod
    def _find(records: Dict[str, ModelType], equals: Dict[str, Any]) -> List[ModelType]:
        return [r.model_copy() for r in records.values() if _matches(r, equals)]

    @staticmethod
    def _get(records: Dict[str, ModelType], key: Optional[str]) -> Optional[ModelType]:
        record = records.get(key) if key else None
        return record.model_copy() if record else None

    # Tenants

    async def get_tenant(self, tenant_id: str) -> Optional[Tenant]:
        return self._get(self.tenants, tenant_id)

    async def get_tenants(self, tenant_ids: List[str]) -> List[Tenant]:
        return [self.tenants[i].model_copy() for i in dict.fromkeys(tenant_ids) if i in self.tenants]

    async def find_tenant_by_email(self, email: str) -> Optional[Tenant]:
        matches = self._find(self.tenants, {"email": email.lower()})
        return matches[0] if matches else None

    async def list_tenants(self, **equals: Any) -> List[Tenant]:
        return self._find(self.tenants, equals)

    async def save_tenant(self, tenant: Tenant) -> Tenant:
        # Same constraint as the unique email column
        if any(t.email == tenant.email and t.id != tenant.id for t in self.tenants.values()):
            raise ValueError(f"Email {tenant.email} belongs to another tenant")
        self.tenants[tenant.id] = tenant.model_copy()
        return tenant

    async def delete_tenant(self, tenant_id: str) -> bool:
        return self.tenants.pop(tenant_id, None) is not None

    # Organizations

    async def get_organization(self, organization_id: str) -> Optional[Organization]:
        return self._get(self.organizations, organization_id)

    async def list_organizations(self, **equals: Any) -> List[Organization]:
        return self._find(self.organizations, equals)

    async def save_organization(self, organization: Organization) -> Organization:
        self.organizations[organization.id] = organization.model_copy()
        return organization

    async def delete_organization(self, organization_id: str) -> bool:
        return self.organizations.pop(organization_id, None) is not None

    # Parent links

    async def list_parent_links(self, **equals: Any) -> List[ParentStudentLink]:
        return self._find(self.parent_links, equals)

    async def save_parent_link(self, link: ParentStudentLink) -> ParentStudentLink:
        self.parent_links[link.id] = link.model_copy()
        return link

    async def delete_parent_links_for(self, tenant_id: str) -> int:
        doomed = [
            link_id
            for link_id, link in self.parent_links.items()
            if tenant_id in (link.parent_id, link.student_id)
        ]
        for link_id in doomed:
            del self.parent_links[link_id]
        return len(doomed)

    # Subscriptions

    async def get_subscription(self, billing_owner_id: str) -> Optional[Subscription]:
        return self._get(self.subscriptions, billing_owner_id)

    async def find_subscription_by_stripe_id(
        self, stripe_subscription_id: str
    ) -> Optional[Subscription]:
        matches = self._find(
            self.subscriptions, {"stripe_subscription_id": stripe_subscription_id}
        )
        return matches[0] if matches else None

    async def save_subscription(self, subscription: Subscription) -> Subscription:
        self.subscriptions[subscription.billing_owner_id] = subscription.model_copy()
        return subscription

    # Concurrency

    @asynccontextmanager
    async def billing_owner_lock(self, billing_owner_id: str) -> AsyncGenerator[None, None]:
        async with self._locks.hold(billing_owner_id):
            yield

    @asynccontextmanager
    async def savepoint(self) -> AsyncGenerator[None, None]:
        # Writes land one at a time; a failed write leaves nothing to undo
        yield
