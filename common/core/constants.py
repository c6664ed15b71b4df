from enum import Enum


class Environment(str, Enum):
    """Environment profiles."""

    LOCAL = "local"
    DEV = "dev"
    STAGING = "staging"
    PRODUCTION = "production"


class CacheProviderType(str, Enum):
    """Cache provider types."""

    REDIS = "redis"
    MEMORY = "memory"


class DirectoryStoreProvider(str, Enum):
    """Directory store backends."""

    SQL = "sql"
    MEMORY = "memory"
