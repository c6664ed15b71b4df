from typing import Optional

from common.core.config import settings
from common.core.constants import CacheProviderType
from common.core.otel_axiom_exporter import get_logger

from .interface import CacheInterface
from .memory_cache import MemoryCache
from .redis_cache import RedisCache

logger = get_logger(__name__)

# Global instance
_cache_provider: Optional[CacheInterface] = None


def get_cache_provider() -> CacheInterface:
    """
    Get the configured cache provider.

    Returns:
        CacheInterface: The cache provider instance
    """
    global _cache_provider

    if _cache_provider is None:
        if settings.cache_provider == CacheProviderType.MEMORY:
            _cache_provider = MemoryCache()
        else:
            _cache_provider = RedisCache()
        logger.info(f"Initialized {settings.cache_provider.value} cache provider")

    return _cache_provider


def set_cache_provider(provider: Optional[CacheInterface]) -> None:
    """Replace the global cache provider (None resets to the configured one)."""
    global _cache_provider
    _cache_provider = provider
