"""
Tests for ServiceProvider: lifetimes, scopes, constructor injection and validation.
"""
import logging
import threading
from abc import ABC, abstractmethod
from typing import List, Optional

import pytest

from essentials_di import (
    CircularDependencyError,
    InvalidBindingError,
    Lifetime,
    ScopeError,
    ServiceCollection,
    ServiceCreationError,
    ServiceNotFoundError,
    ServiceProvider,
    register_attributed_services,
    service,
)


class IMessageSink(ABC):
    @abstractmethod
    def write(self, msg: str) -> None: ...


class MemorySink(IMessageSink):
    def __init__(self):
        self.lines: List[str] = []

    def write(self, msg: str) -> None:
        self.lines.append(msg)


class ConsoleSink(IMessageSink):
    def write(self, msg: str) -> None:
        pass


class Notifier:
    def __init__(self, sink: IMessageSink, prefix: str = "!"):
        self.sink = sink
        self.prefix = prefix


class Audit:
    def __init__(self, sinks: List[IMessageSink], fallback: Optional[Notifier]):
        self.sinks = sinks
        self.fallback = fallback


class UnitOfWork:
    instances = 0

    def __init__(self):
        UnitOfWork.instances += 1
        self.closed = False

    def close(self):
        self.closed = True


class Broken:
    def __init__(self):
        raise RuntimeError("boom")


class Chicken:
    def __init__(self, egg: "Egg"):
        self.egg = egg


class Egg:
    def __init__(self, chicken: Chicken):
        self.chicken = chicken


# --- Resolution ---

def test_get_uses_last_binding(services):
    services.add_transient(IMessageSink, ConsoleSink).add_transient(IMessageSink, MemorySink)
    provider = services.build_service_provider()

    assert isinstance(provider.get(IMessageSink), MemorySink)


def test_get_all_returns_every_binding_in_order(services):
    services.add_transient(IMessageSink, ConsoleSink).add_transient(IMessageSink, MemorySink)
    provider = services.build_service_provider()

    assert [type(s) for s in provider.get_all(IMessageSink)] == [ConsoleSink, MemorySink]
    assert provider.get_all(Notifier) == []


def test_missing_service(services):
    provider = services.build_service_provider()

    with pytest.raises(ServiceNotFoundError) as exc:
        provider.get(Notifier)
    assert exc.value.key is Notifier
    assert provider.get_optional(Notifier) is None


def test_constructor_injection_and_defaults(services):
    services.add_singleton(IMessageSink, MemorySink).add_transient(Notifier)
    provider = services.build_service_provider()

    notifier = provider.get(Notifier)

    assert notifier.sink is provider.get(IMessageSink)
    assert notifier.prefix == "!"


def test_list_and_optional_parameters(services):
    services.add_transient(IMessageSink, ConsoleSink).add_transient(IMessageSink, MemorySink).add_transient(Audit)
    provider = services.build_service_provider()

    audit = provider.get(Audit)

    assert [type(s) for s in audit.sinks] == [ConsoleSink, MemorySink]
    assert audit.fallback is None


def test_missing_constructor_dependency_names_requester(services):
    services.add_transient(Notifier)
    provider = services.build_service_provider()

    with pytest.raises(ServiceNotFoundError) as exc:
        provider.get(Notifier)
    assert exc.value.key is IMessageSink
    assert exc.value.origin is Notifier


def test_factory_receives_provider(services):
    services.add_singleton(IMessageSink, MemorySink)
    services.add_transient(Notifier, factory=lambda sp: Notifier(sp.get(IMessageSink), prefix="?"))
    provider = services.build_service_provider()

    notifier = provider.get(Notifier)
    assert notifier.prefix == "?"
    assert isinstance(notifier.sink, MemorySink)


def test_factory_returning_none_is_cached(services):
    calls = []

    def build(sp):
        calls.append(sp)
        return None

    services.add_singleton(Notifier, factory=build)
    provider = services.build_service_provider()

    assert provider.get(Notifier) is None
    assert provider.get(Notifier) is None
    assert len(calls) == 1


def test_instance_binding_is_returned_as_is(services):
    sink = MemorySink()
    services.add_singletons(sink)

    assert services.build_service_provider().get(MemorySink) is sink


def test_creation_errors_are_wrapped(services):
    services.add_transient(Broken)
    provider = services.build_service_provider()

    with pytest.raises(ServiceCreationError) as exc:
        provider.get(Broken)
    assert isinstance(exc.value.cause, RuntimeError)
    assert exc.value.__cause__ is exc.value.cause


def test_circular_dependency_is_detected(services):
    services.add_transient(Chicken).add_transient(Egg)
    provider = services.build_service_provider()

    with pytest.raises(CircularDependencyError) as exc:
        provider.get(Chicken)
    assert exc.value.chain == (Chicken, Egg, Chicken)
    assert "Chicken -> Egg -> Chicken" in str(exc.value)


# --- Lifetimes ---

def test_transient_creates_new_instances(services):
    services.add_transient(MemorySink)
    provider = services.build_service_provider()

    assert provider.get(MemorySink) is not provider.get(MemorySink)


def test_singleton_is_shared_with_scopes(services):
    services.add_singleton(MemorySink)
    provider = services.build_service_provider()

    root = provider.get(MemorySink)
    with provider.create_scope() as scoped:
        assert scoped.get(MemorySink) is root


def test_scoped_instances_live_per_scope(services):
    services.add_scoped(UnitOfWork)
    provider = services.build_service_provider()

    with provider.create_scope() as first:
        a1 = first.get(UnitOfWork)
        a2 = first.get(UnitOfWork)
    with provider.create_scope() as second:
        b = second.get(UnitOfWork)

    assert a1 is a2
    assert a1 is not b
    assert a1.closed and b.closed


def test_scoped_from_root_raises(services):
    services.add_scoped(UnitOfWork)
    provider = services.build_service_provider()

    assert provider.is_root
    with pytest.raises(ScopeError):
        provider.get(UnitOfWork)


def test_disposed_scope_refuses_resolution(services):
    services.add_scoped(UnitOfWork)
    provider = services.build_service_provider()

    scope = provider.create_scope()
    scoped = scope.service_provider
    scoped.get(UnitOfWork)
    scope.close()

    with pytest.raises(ScopeError):
        scoped.get(UnitOfWork)


def test_root_close_closes_singletons(services):
    services.add_singleton(UnitOfWork)
    with services.build_service_provider() as provider:
        uow = provider.get(UnitOfWork)

    assert uow.closed is True


def test_close_failures_are_logged(services, caplog):
    class Flaky:
        def close(self):
            raise OSError("disk gone")

    services.add_singleton(Flaky)
    provider = services.build_service_provider()
    provider.get(Flaky)

    with caplog.at_level(logging.WARNING, logger="essentials_di.scope"):
        provider.close()

    assert any("disk gone" in r.getMessage() for r in caplog.records)


def test_singleton_created_once_across_threads(services):
    UnitOfWork.instances = 0
    services.add_singleton(UnitOfWork)
    provider = services.build_service_provider()
    results = []

    def worker():
        results.append(provider.get(UnitOfWork))

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert UnitOfWork.instances == 1
    assert len({id(r) for r in results}) == 1


# --- Validation ---

def test_validate_reports_every_problem(services):
    class Unannotated:
        def __init__(self, thing):
            self.thing = thing

    services.add_transient(Notifier).add_transient(Unannotated)

    with pytest.raises(InvalidBindingError) as exc:
        services.build_service_provider(validate=True)

    assert len(exc.value.errors) == 2
    assert "IMessageSink which is not registered" in exc.value.errors[0]
    assert "'thing' has no type annotation" in exc.value.errors[1]


def test_validate_flags_singleton_consuming_scoped(services):
    services.add_scoped(IMessageSink, MemorySink).add_singleton(Notifier)

    with pytest.raises(InvalidBindingError, match="singleton cannot consume scoped service IMessageSink"):
        services.build_service_provider(validate=True)


def test_validate_accepts_consistent_bindings(services):
    services.add_singleton(IMessageSink, MemorySink).add_transient(Notifier).add_transient(Audit)

    provider = services.build_service_provider(validate=True)

    assert isinstance(provider, ServiceProvider)


# --- End to end with attributed registration ---

def test_scanned_package_resolves(services):
    register_attributed_services(services, ["sample_services"])

    from sample_services.contracts import IClock, IGreeter

    provider = services.build_service_provider(validate=True)

    greeter = provider.get(IGreeter)
    assert greeter.greet("ana") == "hello ana at 42.0"
    assert greeter.clock is provider.get(IClock)


def test_duplicate_scan_resolves_last_and_collects_all(make_module):
    class IHandler(ABC):
        @abstractmethod
        def handle(self): ...

    @service(lifetime=Lifetime.SINGLETON)
    class Handler(IHandler):
        def handle(self):
            return "ok"

    mod = make_module(IHandler=IHandler, Handler=Handler)
    services = ServiceCollection()
    register_attributed_services(services, [mod])
    register_attributed_services(services, [mod])
    provider = services.build_service_provider()

    handlers = provider.get_all(IHandler)
    assert len(handlers) == 2
    assert provider.get(IHandler) is handlers[-1]
