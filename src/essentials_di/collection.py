"""Bindings and the list-backed registration sink.

This module defines :class:`Binding` (the immutable association of a service
type with an implementation and a lifetime) and :class:`ServiceCollection`
(an append-only list of bindings that can be turned into a
:class:`~essentials_di.container.ServiceProvider`).
"""

import inspect
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator, List, Optional, Protocol

from .constants import Lifetime
from .exceptions import ConfigurationError

Factory = Callable[[Any], Any]


@dataclass(frozen=True)
class Binding:
    """Resolved association of a service type with its implementation.

    Exactly one of ``implementation_type``, ``implementation_factory`` and
    ``implementation_instance`` is set. Instances are only valid for
    singletons.

    Attributes:
        service_type: The type the binding is resolved by.
        lifetime: How long a resolved instance is reused.
        implementation_type: Class constructed with constructor injection.
        implementation_factory: Callable receiving the provider.
        implementation_instance: Pre-built singleton instance.
    """
    service_type: type
    lifetime: Lifetime = Lifetime.TRANSIENT
    implementation_type: Optional[type] = None
    implementation_factory: Optional[Factory] = None
    implementation_instance: Any = None

    def __post_init__(self) -> None:
        given = [
            self.implementation_type is not None,
            self.implementation_factory is not None,
            self.implementation_instance is not None,
        ]
        if sum(given) != 1:
            raise ConfigurationError(
                f"Binding for {getattr(self.service_type, '__name__', self.service_type)} needs exactly one "
                "of implementation_type, implementation_factory, implementation_instance",
                target=self.service_type,
            )
        if self.implementation_instance is not None and self.lifetime is not Lifetime.SINGLETON:
            raise ConfigurationError("Instance bindings must be singletons", target=self.service_type)

    @classmethod
    def describe(cls, service_type: type, implementation: type, lifetime: Lifetime = Lifetime.TRANSIENT) -> "Binding":
        return cls(service_type=service_type, implementation_type=implementation, lifetime=lifetime)

    @property
    def implementation(self) -> Any:
        if self.implementation_type is not None:
            return self.implementation_type
        if self.implementation_factory is not None:
            return self.implementation_factory
        return self.implementation_instance


class BindingSink(Protocol):
    """Anything that accepts bindings; the registry only ever calls ``add``."""

    def add(self, binding: Binding) -> Any: ...


class ServiceCollection:
    """Append-only list of :class:`Binding` objects.

    Duplicate bindings for the same service type are kept; the provider
    resolves the last one and ``get_all`` returns every one of them.
    """

    def __init__(self, bindings: Iterable[Binding] = ()) -> None:
        self._bindings: List[Binding] = list(bindings)

    def add(self, binding: Binding) -> "ServiceCollection":
        if not isinstance(binding, Binding):
            raise TypeError(f"Expected a Binding, got {type(binding).__name__}")
        self._bindings.append(binding)
        return self

    def _add(self, service_type: type, implementation: Optional[type], factory: Optional[Factory], lifetime: Lifetime) -> "ServiceCollection":
        if factory is not None:
            return self.add(Binding(service_type=service_type, implementation_factory=factory, lifetime=lifetime))
        impl = implementation if implementation is not None else service_type
        if not inspect.isclass(impl):
            raise ConfigurationError(f"Implementation for {service_type!r} must be a class, got {impl!r}", target=impl)
        return self.add(Binding.describe(service_type, impl, lifetime))

    def add_transient(self, service_type: type, implementation: Optional[type] = None, *, factory: Optional[Factory] = None) -> "ServiceCollection":
        return self._add(service_type, implementation, factory, Lifetime.TRANSIENT)

    def add_scoped(self, service_type: type, implementation: Optional[type] = None, *, factory: Optional[Factory] = None) -> "ServiceCollection":
        return self._add(service_type, implementation, factory, Lifetime.SCOPED)

    def add_singleton(self, service_type: type, implementation: Optional[type] = None, *, factory: Optional[Factory] = None, instance: Any = None) -> "ServiceCollection":
        if instance is not None:
            return self.add(Binding(service_type=service_type, implementation_instance=instance, lifetime=Lifetime.SINGLETON))
        return self._add(service_type, implementation, factory, Lifetime.SINGLETON)

    def add_self(self, service_type: type, lifetime: Lifetime = Lifetime.TRANSIENT) -> "ServiceCollection":
        """Bind a concrete type to itself."""
        return self.add(Binding.describe(service_type, service_type, lifetime))

    def add_singletons(self, *instances: Any) -> "ServiceCollection":
        """Register each instance as a singleton keyed by its runtime type."""
        for instance in instances:
            if instance is None:
                raise ValueError("Singleton instances cannot be None")
            self.add_singleton(type(instance), instance=instance)
        return self

    def remove(self, service_type: type) -> int:
        """Remove every binding whose service type is *service_type* or a subclass of it.

        Returns:
            The number of bindings removed.
        """
        kept = [b for b in self._bindings if not _is_subtype(b.service_type, service_type)]
        removed = len(self._bindings) - len(kept)
        self._bindings = kept
        return removed

    def contains(self, service_type: type) -> bool:
        return any(b.service_type is service_type for b in self._bindings)

    __contains__ = contains

    def bindings_for(self, service_type: type) -> List[Binding]:
        return [b for b in self._bindings if b.service_type is service_type]

    def __iter__(self) -> Iterator[Binding]:
        return iter(list(self._bindings))

    def __len__(self) -> int:
        return len(self._bindings)

    def build_service_provider(self, *, validate: bool = False):
        from .container import ServiceProvider

        provider = ServiceProvider(self)
        if validate:
            provider.validate()
        return provider


def _is_subtype(candidate: Any, base: type) -> bool:
    if candidate is base:
        return True
    try:
        return inspect.isclass(candidate) and issubclass(candidate, base)
    except TypeError:
        return False
