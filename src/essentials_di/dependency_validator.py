from typing import Any, List, Optional

from .analysis import DependencyRequest, analyze_callable_dependencies
from .collection import Binding
from .constants import Lifetime
from .exceptions import InvalidBindingError


def _fmt(k: Any) -> str:
    return getattr(k, "__name__", str(k))


class DependencyValidator:
    """Checks, without instantiating anything, that every binding can be built."""

    def __init__(self, provider) -> None:
        self._provider = provider

    def validate_bindings(self) -> None:
        errors: List[str] = []

        for binding in self._provider.bindings:
            impl = binding.implementation_type
            if impl is None:
                continue

            loc_name = f"{_fmt(binding.service_type)} -> {_fmt(impl)}"
            for dep in analyze_callable_dependencies(impl):
                error = self._validate_dependency(binding, dep, loc_name)
                if error:
                    errors.append(error)

        if errors:
            raise InvalidBindingError(errors)

    def _validate_dependency(self, binding: Binding, dep: DependencyRequest, loc_name: str) -> Optional[str]:
        if dep.is_list:
            return None

        if isinstance(dep.key, str):
            if dep.is_optional:
                return None
            return f"{loc_name}: parameter '{dep.parameter_name}' has no type annotation"

        if not self._provider.has(dep.key):
            if dep.is_optional:
                return None
            return f"{loc_name}: parameter '{dep.parameter_name}' depends on {_fmt(dep.key)} which is not registered"

        if binding.lifetime is Lifetime.SINGLETON and self._depends_on_scoped(dep.key):
            return f"{loc_name}: singleton cannot consume scoped service {_fmt(dep.key)}"
        return None

    def _depends_on_scoped(self, key: Any) -> bool:
        last = [b for b in self._provider.bindings if b.service_type is key][-1]
        return last.lifetime is Lifetime.SCOPED
