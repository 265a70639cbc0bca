"""Test helpers for services with many dependencies.

:class:`ServiceFactory` builds a :class:`~essentials_di.collection.ServiceCollection`
for the class under test and fills its interface-typed constructor
parameters with ``unittest.mock`` autospec mocks::

    services = ServiceFactory.generate_for(OrderService)
    ServiceFactory.get_mock(services, IOrderRepository).find.return_value = order
    service = services.build_service_provider().get(OrderService)
"""

from typing import Any, Callable, Optional
from unittest import mock

from .analysis import TypeKind, analyze_callable_dependencies, type_kind
from .collection import ServiceCollection


def add_mock(services: ServiceCollection, service_type: type) -> Any:
    """Register an autospec mock of *service_type* as a singleton and return it."""
    m = mock.create_autospec(service_type, instance=True)
    services.add_singleton(service_type, instance=m)
    return m


def add_dependency_mocks(services: ServiceCollection, impl: type) -> ServiceCollection:
    for dep in analyze_callable_dependencies(impl):
        if dep.is_list or dep.is_optional or dep.has_default or isinstance(dep.key, str):
            continue
        if type_kind(dep.key) is not TypeKind.INTERFACE:
            continue
        if dep.key not in services:
            add_mock(services, dep.key)
    return services


class ServiceFactory:
    @staticmethod
    def create(*singletons: Any) -> ServiceCollection:
        services = ServiceCollection()
        for instance in singletons:
            if instance is not None:
                services.add_singleton(type(instance), instance=instance)
        return services

    @staticmethod
    def generate_for(cls: type, *singletons: Any) -> ServiceCollection:
        """Collection resolving *cls* by itself, with every unbound interface dependency mocked."""
        services = ServiceFactory.create(*singletons)
        services.remove(cls)
        services.add_self(cls)
        return add_dependency_mocks(services, cls)

    @staticmethod
    def get_mock(services: ServiceCollection, service_type: type, setup: Optional[Callable[[Any], None]] = None) -> Any:
        """Return the mock registered for *service_type*, adding one when missing."""
        for binding in reversed(services.bindings_for(service_type)):
            if isinstance(binding.implementation_instance, mock.NonCallableMock):
                m = binding.implementation_instance
                break
        else:
            m = add_mock(services, service_type)
        if setup is not None:
            setup(m)
        return m
