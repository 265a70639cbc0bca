"""Exception hierarchy for essentials-di.

All library-specific exceptions inherit from :class:`EssentialsError`, making
it easy to catch any essentials-di error with a single ``except`` clause.
Errors raised by a registration sink are never wrapped.
"""

from typing import Any, Iterable


def describe(obj: Any) -> str:
    """Fully qualified, human-readable name of *obj* for error messages."""
    mod = getattr(obj, "__module__", None)
    qual = getattr(obj, "__qualname__", None) or getattr(obj, "__name__", None)
    if qual is None:
        return repr(obj)
    return f"{mod}.{qual}" if mod else qual


class EssentialsError(Exception):
    """Base exception for all essentials-di errors."""

    pass


class ConfigurationError(EssentialsError):
    """Raised when a service marker is misconfigured.

    Attributes:
        target: The offending object, when known.
    """

    def __init__(self, msg: str, target: Any = None):
        super().__init__(msg)
        self.target = target


class ServiceNotFoundError(EssentialsError):
    """Raised when the provider has no binding for a requested service type.

    Attributes:
        key: The service type that was not found.
        origin: The implementation that requested the key.
    """

    def __init__(self, key: Any, origin: Any | None = None):
        key_name = getattr(key, "__name__", str(key))
        origin_name = getattr(origin, "__name__", str(origin)) if origin else "root"
        super().__init__(f"No service for type '{key_name}' has been registered (required by: '{origin_name}')")
        self.key = key
        self.origin = origin


class ServiceCreationError(EssentialsError):
    """Raised when an implementation fails while being created.

    Attributes:
        key: The service type whose creation failed.
        cause: The original exception that caused the failure.
    """

    def __init__(self, key: Any, cause: Exception):
        k = getattr(key, "__name__", key)
        super().__init__(f"Failed to create service for type: {k}; cause: {cause.__class__.__name__}: {cause}")
        self.key = key
        self.cause = cause


class CircularDependencyError(EssentialsError):
    """Raised when constructor dependencies form a cycle.

    Attributes:
        chain: The resolution chain, ending with the repeated service type.
    """

    def __init__(self, chain: Iterable[Any]):
        self.chain = tuple(chain)
        path = " -> ".join(getattr(k, "__name__", str(k)) for k in self.chain)
        super().__init__(f"Circular dependency detected: {path}")


class ScopeError(EssentialsError):
    """Raised for scope-related errors (scoped service resolved from the root, disposed scope)."""

    def __init__(self, msg: str):
        super().__init__(msg)


class ValidationError(EssentialsError):
    """Raised when provider validation detects wiring problems."""

    def __init__(self, msg: str):
        super().__init__(msg)


class InvalidBindingError(ValidationError):
    """Raised when one or more bindings have unsatisfiable dependencies.

    Attributes:
        errors: List of human-readable error descriptions.
    """

    def __init__(self, errors: list[str]):
        super().__init__("Invalid bindings:\n" + "\n".join(f"- {e}" for e in errors))
        self.errors = errors
