"""
Organization hierarchy.

Organizations form a forest through parent_organization_id (district ->
school). The tree is built from a set of organizations and answers
parent/child/ancestor queries without touching storage.
"""

from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from common.core.exceptions import InvalidArgumentError, NotFoundError
from common.core.otel_axiom_exporter import get_logger
from packages.directory.models.domain.organization import Organization
from packages.directory.providers.store.interface import DirectoryStoreInterface

logger = get_logger(__name__)


class OrganizationTree:
    """Parent-pointer tree over a set of organizations."""

    def __init__(self, organizations: Iterable[Organization]):
        self._nodes: Dict[str, Organization] = {}
        self._children: Dict[str, List[str]] = defaultdict(list)
        for organization in organizations:
            self._nodes[organization.id] = organization
        for organization in self._nodes.values():
            if organization.parent_organization_id:
                self._children[organization.parent_organization_id].append(organization.id)

    def __contains__(self, organization_id: str) -> bool:
        return organization_id in self._nodes

    def get(self, organization_id: str) -> Organization:
        organization = self._nodes.get(organization_id)
        if organization is None:
            raise NotFoundError(f"Organization {organization_id} not found")
        return organization

    def parent(self, organization_id: str) -> Optional[Organization]:
        """The parent organization, or None for a root or a parent outside the tree."""
        parent_id = self.get(organization_id).parent_organization_id
        return self._nodes.get(parent_id) if parent_id else None

    def children(self, organization_id: str) -> List[Organization]:
        self.get(organization_id)
        return [self._nodes[child_id] for child_id in self._children.get(organization_id, [])]

    def ancestors(self, organization_id: str) -> List[Organization]:
        """
        Ancestors from the direct parent up to the root.

        Raises:
            NotFoundError: Unknown organization id
            InvalidArgumentError: The parent chain loops
        """
        seen = {organization_id}
        chain: List[Organization] = []
        current = self.parent(organization_id)
        while current is not None:
            if current.id in seen:
                raise InvalidArgumentError(
                    f"Organization hierarchy of {organization_id} contains a cycle"
                )
            seen.add(current.id)
            chain.append(current)
            current = self.parent(current.id)
        return chain

    def root(self, organization_id: str) -> Organization:
        chain = self.ancestors(organization_id)
        return chain[-1] if chain else self.get(organization_id)

    def resolve_root_billing_owner(self, organization_id: str) -> str:
        """Billing owner of the root organization above (or at) organization_id."""
        return self.root(organization_id).billing_owner_id


async def load_organization_tree(
    store: DirectoryStoreInterface, organization_id: str
) -> OrganizationTree:
    """
    Load organization_id and its ancestor chain from the store.

    Raises:
        NotFoundError: The organization does not exist
        InvalidArgumentError: The parent chain loops
    """
    organizations: Dict[str, Organization] = {}
    next_id: Optional[str] = organization_id
    while next_id:
        if next_id in organizations:
            raise InvalidArgumentError(
                f"Organization hierarchy of {organization_id} contains a cycle"
            )
        organization = await store.get_organization(next_id)
        if organization is None:
            if next_id == organization_id:
                raise NotFoundError(f"Organization {organization_id} not found")
            logger.warning(
                f"Organization {organization_id} has a dangling parent {next_id}"
            )
            break
        organizations[next_id] = organization
        next_id = organization.parent_organization_id
    return OrganizationTree(organizations.values())
