"""Instance caches for service lifetimes.

Provides :class:`InstanceCache`, :class:`ScopedCaches` and
:class:`ServiceScope` -- the machinery that ties resolved instances to a
lifetime (singleton, scoped or transient).
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from .constants import Lifetime
from .exceptions import ScopeError

_logger = logging.getLogger(__name__)

MISSING = object()
"""Returned by :meth:`InstanceCache.get` when nothing is cached; cached values may be ``None``."""


class InstanceCache:
    def __init__(self) -> None:
        self._instances: Dict[object, object] = {}

    def get(self, key):
        return self._instances.get(key, MISSING)

    def put(self, key, value):
        self._instances[key] = value

    def items(self) -> List[Tuple[object, object]]:
        return list(self._instances.items())

    def clear(self) -> None:
        self._instances.clear()


class _NoCache(InstanceCache):
    def __init__(self) -> None:
        pass

    def get(self, key):
        return MISSING

    def put(self, key, value):
        return

    def items(self):
        return []

    def clear(self) -> None:
        return


class ScopedCaches:
    """Instance storage for one provider.

    The singleton cache is shared by a root provider and every scope created
    from it; each scope owns its own scoped cache. The root has no scoped
    cache, so scoped services cannot be resolved from it.
    """

    def __init__(self, singletons: Optional[InstanceCache] = None, scoped: Optional[InstanceCache] = None) -> None:
        self._singleton = singletons if singletons is not None else InstanceCache()
        self._scoped = scoped
        self._no_cache = _NoCache()
        self._closed = False

    @property
    def is_root(self) -> bool:
        return self._scoped is None

    @property
    def closed(self) -> bool:
        return self._closed

    def child(self) -> "ScopedCaches":
        return ScopedCaches(self._singleton, InstanceCache())

    def for_lifetime(self, lifetime: Lifetime) -> InstanceCache:
        if self._closed:
            raise ScopeError("Cannot resolve services from a disposed scope")
        if lifetime is Lifetime.SINGLETON:
            return self._singleton
        if lifetime is Lifetime.TRANSIENT:
            return self._no_cache
        if self._scoped is None:
            raise ScopeError(
                "Cannot resolve a scoped service from the root provider. "
                "Use provider.create_scope() and resolve it from the scope."
            )
        return self._scoped

    def _cleanup_object(self, obj: Any) -> None:
        close = getattr(obj, "close", None)
        if not callable(close):
            return
        try:
            close()
        except Exception as e:
            _logger.warning("Closing %s failed: %s", type(obj).__name__, e)

    def _cleanup_cache(self, cache: InstanceCache) -> None:
        # last created, first closed
        for _, obj in reversed(cache.items()):
            self._cleanup_object(obj)
        cache.clear()

    def close(self) -> None:
        """Close cached instances owned by this provider and refuse further resolution."""
        if self._closed:
            return
        self._closed = True
        if self._scoped is not None:
            self._cleanup_cache(self._scoped)
        else:
            self._cleanup_cache(self._singleton)


class ServiceScope:
    """A unit of work with its own scoped instances.

    Use as a context manager; leaving the block closes every scoped instance
    that exposes a ``close()`` method.
    """

    def __init__(self, provider) -> None:
        self.service_provider = provider

    def __enter__(self):
        return self.service_provider

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self.service_provider.close()
