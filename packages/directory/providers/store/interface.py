"""
Directory store interface.

The keyed record store behind tenants, organizations, parent links and
subscriptions. Services receive a store instance instead of reaching for a
global database handle, so the same logic runs against SQL or memory.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from typing import Any, List, Optional

from packages.billing.models.domain.subscription import Subscription
from packages.directory.models.domain.organization import Organization
from packages.directory.models.domain.parent_link import ParentStudentLink
from packages.directory.models.domain.tenant import Tenant


class DirectoryStoreInterface(ABC):
    """Abstract interface for directory storage."""

    # ------------------------------------------------------------------
    # Tenants
    # ------------------------------------------------------------------

    @abstractmethod
    async def get_tenant(self, tenant_id: str) -> Optional[Tenant]:
        pass

    @abstractmethod
    async def get_tenants(self, tenant_ids: List[str]) -> List[Tenant]:
        """Fetch several tenants by id. Unknown ids are skipped."""
        pass

    @abstractmethod
    async def find_tenant_by_email(self, email: str) -> Optional[Tenant]:
        pass

    @abstractmethod
    async def list_tenants(self, **equals: Any) -> List[Tenant]:
        """
        List tenants whose fields equal the given values.

        Args:
            **equals: Field filters, e.g. billing_owner_id="uid", role="student"

        Returns:
            Matching tenants in no particular order
        """
        pass

    @abstractmethod
    async def save_tenant(self, tenant: Tenant) -> Tenant:
        """Insert or replace a tenant."""
        pass

    @abstractmethod
    async def delete_tenant(self, tenant_id: str) -> bool:
        pass

    # ------------------------------------------------------------------
    # Organizations
    # ------------------------------------------------------------------

    @abstractmethod
    async def get_organization(self, organization_id: str) -> Optional[Organization]:
        pass

    @abstractmethod
    async def list_organizations(self, **equals: Any) -> List[Organization]:
        pass

    @abstractmethod
    async def save_organization(self, organization: Organization) -> Organization:
        pass

    @abstractmethod
    async def delete_organization(self, organization_id: str) -> bool:
        pass

    # ------------------------------------------------------------------
    # Parent links
    # ------------------------------------------------------------------

    @abstractmethod
    async def list_parent_links(self, **equals: Any) -> List[ParentStudentLink]:
        pass

    @abstractmethod
    async def save_parent_link(self, link: ParentStudentLink) -> ParentStudentLink:
        pass

    @abstractmethod
    async def delete_parent_links_for(self, tenant_id: str) -> int:
        """Delete links where the tenant is parent or student. Returns count."""
        pass

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    @abstractmethod
    async def get_subscription(self, billing_owner_id: str) -> Optional[Subscription]:
        pass

    @abstractmethod
    async def find_subscription_by_stripe_id(
        self, stripe_subscription_id: str
    ) -> Optional[Subscription]:
        pass

    @abstractmethod
    async def save_subscription(self, subscription: Subscription) -> Subscription:
        pass

    # ------------------------------------------------------------------
    # Concurrency
    # ------------------------------------------------------------------

    @abstractmethod
    def billing_owner_lock(self, billing_owner_id: str) -> AbstractAsyncContextManager:
        """
        Serialize check-then-write sequences for one billing owner.

        Writes made inside the block become visible together when it exits.
        Different owners never block each other.
        """
        pass

    @abstractmethod
    def savepoint(self) -> AbstractAsyncContextManager:
        """
        Undo unit inside billing_owner_lock.

        If the block raises, only its own writes are discarded; writes made
        earlier under the same lock survive.
        """
        pass
