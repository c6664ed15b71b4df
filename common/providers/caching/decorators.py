import functools
import hashlib
import json
from typing import Callable, Optional, Type
from pydantic import BaseModel

from common.core.otel_axiom_exporter import get_logger
from .factory import get_cache_provider

logger = get_logger(__name__)


def _default_cache_key(func: Callable, args: tuple, kwargs: dict) -> str:
    """Build "<Class>:<method>:<hash of args>" for a call."""
    if args and hasattr(args[0], func.__name__):
        owner = args[0].__class__.__name__
        key_args = args[1:]
    else:
        owner = func.__module__.split(".")[-1]
        key_args = args

    if not key_args and not kwargs:
        return f"{owner}:{func.__name__}"
    args_json = json.dumps(
        {"args": key_args, "kwargs": dict(sorted(kwargs.items()))},
        sort_keys=True,
        default=str,
    )
    return f"{owner}:{func.__name__}:{hashlib.sha256(args_json.encode()).hexdigest()[:16]}"


def cache(model_type: Type[BaseModel], ttl: int = 3600, key_generator: Optional[Callable] = None):
    """
    Cache decorator for async methods/functions returning a pydantic model.

    Cache failures never fail the call: a broken cache falls through to the
    wrapped function. None results are not cached.

    Args:
        model_type: Pydantic model type used to rebuild cached values
        ttl: Time to live in seconds (default: 1 hour)
        key_generator: Optional custom key generator, called without self
    """

    def decorator(func: Callable):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                if key_generator:
                    is_method = bool(args) and hasattr(args[0], func.__name__)
                    key_args = args[1:] if is_method else args
                    cache_key = key_generator(*key_args, **kwargs)
                else:
                    cache_key = _default_cache_key(func, args, kwargs)

                cache_provider = get_cache_provider()
                cached_value = await cache_provider.get(cache_key)
                if cached_value is not None:
                    logger.debug(f"Cache hit for key: {cache_key}")
                    return model_type.model_validate(cached_value)
            except Exception as e:
                logger.warning(f"Cache read failed for {func.__name__}: {e}")
                return await func(*args, **kwargs)

            result = await func(*args, **kwargs)

            if result is not None:
                try:
                    await cache_provider.set(cache_key, result.model_dump(mode="json"), ttl)
                except Exception as e:
                    logger.warning(f"Cache write failed for {cache_key}: {e}")
            return result

        return wrapper

    return decorator
