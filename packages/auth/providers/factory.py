"""Factory for creating singleton identity provider instances."""

from typing import Dict, Optional
from packages.auth.providers.interface import IdentityProviderInterface
from packages.auth.providers.models import IdentityProvider
from packages.auth.providers.firebase_provider import FirebaseIdentityProvider


class IdentityProviderFactory:
    """Factory for creating and managing identity provider singletons."""

    _instances: Dict[IdentityProvider, IdentityProviderInterface] = {}

    @classmethod
    def get_provider(cls, provider: IdentityProvider) -> IdentityProviderInterface:
        """Get or create a singleton instance of the specified identity provider.

        Raises:
            ValueError: If the provider is not supported
        """
        if provider not in cls._instances:
            cls._instances[provider] = cls._create_provider(provider)

        return cls._instances[provider]

    @classmethod
    def _create_provider(cls, provider: IdentityProvider) -> IdentityProviderInterface:
        if provider == IdentityProvider.FIREBASE:
            return FirebaseIdentityProvider()
        raise ValueError(f"Unsupported identity provider: {provider}. Supported: FIREBASE.")

    @classmethod
    def clear_cache(cls, provider: Optional[IdentityProvider] = None):
        """Clear cached provider instances.

        Args:
            provider: Specific provider to clear, or None to clear all
        """
        if provider:
            cls._instances.pop(provider, None)
        else:
            cls._instances.clear()


def get_identity_provider() -> IdentityProviderInterface:
    """
    The configured identity provider.

    Also used as a FastAPI dependency; tests override it with a mock.
    """
    return IdentityProviderFactory.get_provider(IdentityProvider.FIREBASE)
