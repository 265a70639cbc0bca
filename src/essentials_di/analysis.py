import inspect
import types
from abc import ABC
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Generic, List, Protocol, Tuple, Union, get_args, get_origin

from .decorators import is_auto_registration_disallowed

KeyT = Union[str, type]

_VALUE_TYPES: Tuple[type, ...] = (int, float, complex, str, bytes, bool)
_MARKER_BASES: Tuple[type, ...] = (object, ABC, Protocol, Generic)


class TypeKind(Enum):
    INTERFACE = "interface"
    CLASS = "class"
    OTHER = "other"


def type_kind(obj: Any) -> TypeKind:
    """
    Classify a scanned object.

    Interfaces are protocols, classes with unimplemented abstract methods and
    classes deriving directly from ``abc.ABC``. Enums and subclasses of the
    builtin value types are ``OTHER``, like anything that is not a class.
    """
    if not inspect.isclass(obj):
        return TypeKind.OTHER
    if issubclass(obj, Enum) or issubclass(obj, _VALUE_TYPES):
        return TypeKind.OTHER
    if obj.__dict__.get("_is_protocol", False):
        return TypeKind.INTERFACE
    if inspect.isabstract(obj) or ABC in obj.__bases__:
        return TypeKind.INTERFACE
    return TypeKind.CLASS


def direct_interfaces(cls: type) -> Tuple[type, ...]:
    out: List[type] = []
    for base in cls.__bases__:
        if base in _MARKER_BASES:
            continue
        if type_kind(base) is not TypeKind.INTERFACE:
            continue
        if is_auto_registration_disallowed(base):
            continue
        out.append(base)
    return tuple(out)


def is_assignable(impl: type, iface: type) -> bool:
    if iface in getattr(impl, "__mro__", ()):
        return True
    try:
        return issubclass(impl, iface)
    except TypeError:
        # non runtime-checkable protocols only match nominally
        return False


@dataclass(frozen=True)
class DependencyRequest:
    parameter_name: str
    key: KeyT
    is_list: bool = False
    is_optional: bool = False
    has_default: bool = False


def _check_optional(ann: Any) -> Tuple[Any, bool]:
    origin = get_origin(ann)
    if origin is Union or origin is types.UnionType:
        args = [a for a in get_args(ann) if a is not type(None)]
        if len(args) == 1:
            return args[0], True
    return ann, False


def analyze_callable_dependencies(callable_obj: Callable[..., Any]) -> Tuple[DependencyRequest, ...]:
    try:
        sig = inspect.signature(callable_obj, eval_str=True)
    except (ValueError, TypeError, NameError):
        return ()

    plan: List[DependencyRequest] = []

    for name, param in sig.parameters.items():
        if name in ("self", "cls"):
            continue
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue

        ann = param.annotation
        base_type, is_optional = _check_optional(ann)

        is_list = False
        origin = get_origin(base_type)
        if origin in (list, List):
            is_list = True
            args = get_args(base_type)
            base_type = args[0] if args else Any

        final_key: KeyT
        if ann is inspect.Parameter.empty:
            final_key = name
        else:
            final_key = base_type

        plan.append(
            DependencyRequest(
                parameter_name=name,
                key=final_key,
                is_list=is_list,
                is_optional=is_optional or (param.default is not inspect.Parameter.empty),
                has_default=param.default is not inspect.Parameter.empty,
            )
        )

    return tuple(plan)
