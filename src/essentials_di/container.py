# src/essentials_di/container.py
import contextvars
import threading
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .analysis import DependencyRequest, analyze_callable_dependencies
from .collection import Binding
from .constants import LOGGER
from .exceptions import (
    CircularDependencyError,
    EssentialsError,
    ServiceCreationError,
    ServiceNotFoundError,
)
from .scope import MISSING, ScopedCaches, ServiceScope

_resolve_chain: contextvars.ContextVar[Tuple[Any, ...]] = contextvars.ContextVar("essentials_resolve_chain", default=())


class ServiceProvider:
    """Resolves instances from a list of bindings.

    ``get`` uses the last binding registered for a service type, ``get_all``
    every binding in registration order. Implementation types are built with
    constructor injection driven by parameter annotations.
    """

    def __init__(self, services: Iterable[Binding], *, _caches: Optional[ScopedCaches] = None, _lock: Optional[threading.RLock] = None) -> None:
        self._bindings: List[Binding] = list(services)
        self._index: Dict[Any, List[int]] = defaultdict(list)
        for i, b in enumerate(self._bindings):
            self._index[b.service_type].append(i)
        self._caches = _caches or ScopedCaches()
        self._lock = _lock or threading.RLock()

    @property
    def bindings(self) -> Tuple[Binding, ...]:
        return tuple(self._bindings)

    @property
    def is_root(self) -> bool:
        return self._caches.is_root

    def has(self, key: Any) -> bool:
        return bool(self._index.get(key))

    def get(self, key: Any) -> Any:
        idx = self._index.get(key)
        if not idx:
            chain = _resolve_chain.get()
            raise ServiceNotFoundError(key, chain[-1] if chain else None)
        return self._resolve(key, idx[-1])

    def get_optional(self, key: Any) -> Optional[Any]:
        if not self.has(key):
            return None
        return self.get(key)

    def get_all(self, key: Any) -> List[Any]:
        return [self._resolve(key, i) for i in self._index.get(key, ())]

    def create_scope(self) -> ServiceScope:
        LOGGER.debug("Creating service scope")
        return ServiceScope(ServiceProvider(self._bindings, _caches=self._caches.child(), _lock=self._lock))

    def validate(self) -> None:
        from .dependency_validator import DependencyValidator

        DependencyValidator(self).validate_bindings()

    def close(self) -> None:
        self._caches.close()

    def __enter__(self) -> "ServiceProvider":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _resolve(self, key: Any, index: int) -> Any:
        binding = self._bindings[index]
        if binding.implementation_instance is not None:
            return binding.implementation_instance

        cache = self._caches.for_lifetime(binding.lifetime)
        cached = cache.get(index)
        if cached is not MISSING:
            return cached

        chain = _resolve_chain.get()
        if key in chain:
            LOGGER.debug("Circular dependency while resolving %s", getattr(key, "__name__", key))
            raise CircularDependencyError(chain + (key,))

        token = _resolve_chain.set(chain + (key,))
        try:
            with self._lock:
                cached = cache.get(index)
                if cached is not MISSING:
                    return cached
                try:
                    instance = self._create(binding)
                except EssentialsError:
                    raise
                except Exception as creation_error:
                    raise ServiceCreationError(key, creation_error) from creation_error
                cache.put(index, instance)
                return instance
        finally:
            _resolve_chain.reset(token)

    def _create(self, binding: Binding) -> Any:
        if binding.implementation_factory is not None:
            return binding.implementation_factory(self)
        impl = binding.implementation_type
        return impl(**self._resolve_args(impl))

    def _resolve_args(self, impl: type) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {}
        for dep in analyze_callable_dependencies(impl):
            found, value = self._resolve_dependency(impl, dep)
            if found:
                kwargs[dep.parameter_name] = value
        return kwargs

    def _resolve_dependency(self, impl: type, dep: DependencyRequest) -> Tuple[bool, Any]:
        if dep.is_list:
            return True, self.get_all(dep.key)
        if self.has(dep.key):
            return True, self.get(dep.key)
        if dep.has_default:
            return False, None
        if dep.is_optional:
            return True, None
        raise ServiceNotFoundError(dep.key, impl)
