# essentials_di/__init__.py
try:
    from ._version import __version__
except Exception:
    __version__ = "0.0.0"

from .constants import Lifetime
from .decorators import ServiceMarker, service, disallow_automatic_registration, get_service_marker
from .analysis import TypeKind, type_kind
from .collection import Binding, BindingSink, ServiceCollection
from .container import ServiceProvider
from .scope import ServiceScope
from .registry import ServiceRegistry, register_attributed_services
from .exceptions import (
    EssentialsError,
    ConfigurationError,
    ServiceNotFoundError,
    ServiceCreationError,
    CircularDependencyError,
    ScopeError,
    ValidationError,
    InvalidBindingError,
)

__all__ = [
    "__version__",
    "Lifetime",
    "ServiceMarker",
    "service",
    "disallow_automatic_registration",
    "get_service_marker",
    "TypeKind",
    "type_kind",
    "Binding",
    "BindingSink",
    "ServiceCollection",
    "ServiceProvider",
    "ServiceScope",
    "ServiceRegistry",
    "register_attributed_services",
    "EssentialsError",
    "ConfigurationError",
    "ServiceNotFoundError",
    "ServiceCreationError",
    "CircularDependencyError",
    "ScopeError",
    "ValidationError",
    "InvalidBindingError",
]
