"""Lazily built, process-wide service instances.

The webhook, the API routes and the background sync sweep all reach the
same ingestion, sheets and LINE reply services through ``get_xxx()``
functions decorated here. Every decorated factory is registered so tests
can drop all instances at once with ``clear_all_service_caches()``.
"""

import functools
import threading
from typing import Any, Callable, Dict, List, Tuple, TypeVar

T = TypeVar("T")

_factories: List[Callable[..., Any]] = []


def service_factory(func: Callable[..., T]) -> Callable[..., T]:
    """
    Cache the service built by ``func``, one instance per argument set.

    The wrapper gains ``clear_cache()`` and ``cache_info()``.

    Args:
        func: Function that builds the service

    Returns:
        Wrapped factory
    """
    instances: Dict[Tuple, Any] = {}
    lock = threading.Lock()

    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> T:
        key = (args, tuple(sorted(kwargs.items())))
        with lock:
            if key not in instances:
                instances[key] = func(*args, **kwargs)
            return instances[key]

    def clear_cache() -> None:
        with lock:
            instances.clear()

    wrapper.clear_cache = clear_cache  # type: ignore[attr-defined]
    wrapper.cache_info = lambda: {"size": len(instances), "keys": list(instances)}  # type: ignore[attr-defined]

    _factories.append(wrapper)
    return wrapper


def clear_all_service_caches() -> None:
    """Drop the instances of every registered factory."""
    for factory in _factories:
        factory.clear_cache()  # type: ignore[attr-defined]
