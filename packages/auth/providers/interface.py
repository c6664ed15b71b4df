from abc import ABC, abstractmethod

from packages.auth.providers.models import (
    IdentityAccount,
    IdentityClaims,
    IdentityProvider,
    NewAccount,
)


class IdentityProviderInterface(ABC):
    """Interface for identity providers"""

    @abstractmethod
    async def verify_token(self, token: str) -> IdentityClaims:
        """Verify a bearer token and return its claims. Raises 401 on failure."""
        pass

    @abstractmethod
    async def create_user(self, account: NewAccount) -> IdentityAccount:
        """
        Create a login account.

        Raises ValidationError("Email already exists") for a taken email.
        """
        pass

    @abstractmethod
    async def delete_user(self, uid: str) -> None:
        """Delete a login account. Unknown uids are ignored."""
        pass

    @abstractmethod
    def get_provider_name(self) -> IdentityProvider:
        """Get the provider name"""
        pass
