# essentials_di/decorators.py
from __future__ import annotations
import inspect
import weakref
from dataclasses import dataclass
from typing import Any, Optional

from .constants import SERVICE_MARKER, Lifetime
from .exceptions import ConfigurationError

# Kept outside the class namespace: typing treats every attribute of a
# Protocol as a member, which would break runtime_checkable matching.
_class_markers: "weakref.WeakKeyDictionary[type, ServiceMarker]" = weakref.WeakKeyDictionary()
_no_auto_registration: "weakref.WeakSet[type]" = weakref.WeakSet()


@dataclass(frozen=True)
class ServiceMarker:
    """Declaration attached to a type by :func:`service`.

    Attributes:
        service_type: Explicit service type to bind to, or ``None`` to infer
            it from the implemented interfaces (classes) or the concrete
            implementations (interfaces).
        lifetime: Lifetime of the produced bindings.
    """
    service_type: Optional[type] = None
    lifetime: Lifetime = Lifetime.TRANSIENT


def service(obj=None, *, service_type: Optional[type] = None, lifetime: Lifetime = Lifetime.TRANSIENT):
    """
    Mark a class or interface for automatic registration.

    Works bare (``@service``) or with arguments
    (``@service(lifetime=Lifetime.SINGLETON)``). The marker belongs to the
    decorated object only; subclasses are not marked.
    """
    if service_type is not None and not inspect.isclass(service_type):
        raise ConfigurationError(f"service_type must be a class, got {service_type!r}", target=service_type)
    if not isinstance(lifetime, Lifetime):
        raise ConfigurationError(f"lifetime must be a Lifetime, got {lifetime!r}")

    marker = ServiceMarker(service_type=service_type, lifetime=lifetime)

    def dec(o):
        if inspect.isclass(o):
            _class_markers[o] = marker
        else:
            setattr(o, SERVICE_MARKER, marker)
        return o
    return dec(obj) if obj is not None else dec


def disallow_automatic_registration(cls):
    """Exclude an interface from the bindings inferred for the classes implementing it."""
    if not inspect.isclass(cls):
        raise ConfigurationError(f"@disallow_automatic_registration expects a class, got {cls!r}", target=cls)
    _no_auto_registration.add(cls)
    return cls


def get_service_marker(obj: Any) -> Optional[ServiceMarker]:
    # Classes are looked up by identity, so markers are not inherited.
    if inspect.isclass(obj):
        return _class_markers.get(obj)
    marker = getattr(obj, SERVICE_MARKER, None)
    return marker if isinstance(marker, ServiceMarker) else None


def is_auto_registration_disallowed(cls: type) -> bool:
    return cls in _no_auto_registration


__all__ = [
    "ServiceMarker",
    "service",
    "disallow_automatic_registration",
    "get_service_marker",
    "is_auto_registration_disallowed",
]
