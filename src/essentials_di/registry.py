"""Marker-driven service registration.

:func:`register_attributed_services` scans modules for objects decorated with
:func:`~essentials_di.decorators.service` and appends the resulting
:class:`~essentials_di.collection.Binding` objects to a sink, in discovery
order. Nothing is deduplicated: scanning twice into the same sink registers
every binding twice.
"""

import importlib
import inspect
import logging
import pkgutil
import sys
from types import ModuleType
from typing import Any, Dict, Iterable, Iterator, List, Optional, Set, Union

from .analysis import TypeKind, direct_interfaces, is_assignable, type_kind
from .collection import Binding, BindingSink
from .constants import LOGGER
from .decorators import ServiceMarker, get_service_marker
from .exceptions import ConfigurationError, describe

SourceT = Union[ModuleType, str]


def _scan_package(package) -> Iterable[Any]:
    for _, name, _ in pkgutil.walk_packages(package.__path__, package.__name__ + "."):
        yield importlib.import_module(name)


def _iter_input_modules(seq: Iterable[SourceT]) -> Iterable[ModuleType]:
    seen: Set[str] = set()
    for it in seq:
        if isinstance(it, str):
            mod = importlib.import_module(it)
        elif inspect.ismodule(it):
            mod = it
        else:
            raise ConfigurationError(f"Cannot scan {it!r}: expected a module or a module name", target=it)

        found = [mod]
        if hasattr(mod, "__path__"):
            found.extend(_scan_package(mod))
        for m in found:
            name = getattr(m, "__name__", None)
            if name and name not in seen:
                seen.add(name)
                yield m


def _exported_members(mod: ModuleType) -> List[Any]:
    # __all__ decides when present, so imported names are not re-registered.
    namespace = vars(mod)
    exported = namespace.get("__all__")
    if exported is not None:
        return [namespace[name] for name in exported if name in namespace]
    return [obj for name, obj in list(namespace.items()) if not name.startswith("_")]


class ServiceRegistry:
    """Resolves service markers found in a list of source modules.

    Args:
        sources: Modules, module names or packages to scan, in order. When
            empty, the module defining this class is scanned.
        logger: Logger for registration diagnostics; defaults to the package
            logger.
    """

    def __init__(self, sources: Union[SourceT, Iterable[SourceT]] = (), *, logger: Optional[logging.Logger] = None) -> None:
        if inspect.ismodule(sources) or isinstance(sources, str):
            self._sources: List[SourceT] = [sources]
        else:
            self._sources = list(sources)
        self._logger = logger or LOGGER

    def modules(self) -> List[ModuleType]:
        sources = self._sources or [sys.modules[__name__]]
        return list(_iter_input_modules(sources))

    def candidates(self) -> List[Any]:
        """Exported members of every source module, first occurrence wins."""
        seen: Dict[int, Any] = {}
        for mod in self.modules():
            for obj in _exported_members(mod):
                if id(obj) not in seen:
                    seen[id(obj)] = obj
        return list(seen.values())

    def bindings(self) -> Iterator[Binding]:
        candidates = self.candidates()
        implementations = [c for c in candidates if type_kind(c) is TypeKind.CLASS]

        for obj in candidates:
            marker = get_service_marker(obj)
            if marker is None:
                continue
            kind = type_kind(obj)
            if kind is TypeKind.INTERFACE:
                yield from self._interface_bindings(obj, marker, implementations)
            elif kind is TypeKind.CLASS:
                yield from self._class_bindings(obj, marker)
            else:
                raise ConfigurationError(
                    f"@service can only mark an interface or a class: {describe(obj)}",
                    target=obj,
                )

    def _interface_bindings(self, iface: type, marker: ServiceMarker, implementations: List[type]) -> Iterator[Binding]:
        if marker.service_type is not None:
            yield Binding.describe(iface, marker.service_type, marker.lifetime)
            return
        matched = False
        for impl in implementations:
            if is_assignable(impl, iface):
                matched = True
                yield Binding.describe(iface, impl, marker.lifetime)
        if not matched:
            self._logger.debug("No implementation found for interface %s", describe(iface))

    def _class_bindings(self, cls: type, marker: ServiceMarker) -> Iterator[Binding]:
        if marker.service_type is not None:
            yield Binding.describe(marker.service_type, cls, marker.lifetime)
            return
        for iface in direct_interfaces(cls):
            yield Binding.describe(iface, cls, marker.lifetime)
        yield Binding.describe(cls, cls, marker.lifetime)

    def register(self, sink: BindingSink) -> None:
        """Add every binding to *sink* as soon as it is resolved.

        Bindings added before a :class:`ConfigurationError` stay in the sink.
        Errors raised by ``sink.add`` propagate unchanged.
        """
        count = 0
        for binding in self.bindings():
            sink.add(binding)
            count += 1
            self._logger.debug(
                "Registered %s -> %s [%s]",
                describe(binding.service_type),
                describe(binding.implementation_type),
                binding.lifetime.value,
            )
        self._logger.info("Registered %d attributed service binding(s)", count)


def register_attributed_services(
    sink: BindingSink,
    sources: Union[SourceT, Iterable[SourceT]] = (),
    *,
    logger: Optional[logging.Logger] = None,
) -> None:
    """Scan *sources* for ``@service`` markers and add the resulting bindings to *sink*."""
    ServiceRegistry(sources, logger=logger).register(sink)
