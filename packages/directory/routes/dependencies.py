from fastapi import Depends

from packages.auth.providers.factory import get_identity_provider
from packages.auth.providers.interface import IdentityProviderInterface
from packages.directory.providers.store.factory import get_directory_store
from packages.directory.providers.store.interface import DirectoryStoreInterface
from packages.directory.services.tenant_service import TenantService


def get_tenant_service(
    store: DirectoryStoreInterface = Depends(get_directory_store),
    identity: IdentityProviderInterface = Depends(get_identity_provider),
) -> TenantService:
    return TenantService(store=store, identity=identity)
