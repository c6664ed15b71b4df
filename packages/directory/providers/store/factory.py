from typing import Optional

from common.core.config import settings
from common.core.constants import DirectoryStoreProvider
from common.core.otel_axiom_exporter import get_logger
from packages.directory.providers.store.interface import DirectoryStoreInterface
from packages.directory.providers.store.memory_store import InMemoryDirectoryStore
from packages.directory.providers.store.sql_store import SqlDirectoryStore

logger = get_logger(__name__)

_directory_store: Optional[DirectoryStoreInterface] = None


def get_directory_store() -> DirectoryStoreInterface:
    """
    Get the configured directory store (process-wide singleton).

    Also used as a FastAPI dependency; tests override it.
    """
    global _directory_store

    if _directory_store is None:
        if settings.directory_store_provider == DirectoryStoreProvider.MEMORY:
            _directory_store = InMemoryDirectoryStore()
        else:
            _directory_store = SqlDirectoryStore()
        logger.info(
            f"Initialized {settings.directory_store_provider.value} directory store"
        )

    return _directory_store
