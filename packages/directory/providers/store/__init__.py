"""Directory store providers."""

from packages.directory.providers.store.interface import DirectoryStoreInterface
from packages.directory.providers.store.factory import get_directory_store

__all__ = ["DirectoryStoreInterface", "get_directory_store"]
