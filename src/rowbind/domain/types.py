"""Type erasure and generic type-argument resolution.

A *resolved type* is either a plain class or a parameterised alias such as
``SubValue[str, int]``. Accessor annotations are declared against the type
parameters of the class that declares them, so resolving a property type means
walking ``__orig_bases__`` from the resolved type down to that declaring class
and substituting type variables along the way.
"""

from __future__ import annotations

import inspect
from abc import ABC
from types import NoneType, UnionType
from typing import (
    Annotated,
    Any,
    Generic,
    NewType,
    Protocol,
    TypeAliasType,
    TypeVar,
    Union,
    get_args,
    get_origin,
)

# Members declared here are never properties.
UNIVERSAL_BASES: frozenset[type] = frozenset({object, Protocol, Generic, ABC})  # type: ignore[arg-type]

type TypeVarBindings = dict[type, dict[TypeVar, Any]]


def erase(tp: object) -> type:
    """Return the raw class for ``tp``.

    ``X | None`` erases to ``X``; other unions, literals and unresolvable forms
    erase to ``object``.
    """

    if isinstance(tp, TypeVar):
        return erase(tp.__bound__) if tp.__bound__ is not None else object
    if isinstance(tp, NewType):
        return erase(tp.__supertype__)
    if isinstance(tp, TypeAliasType):
        return erase(tp.__value__)
    if tp is None:
        return NoneType
    if tp is Any:
        return object

    origin = get_origin(tp)
    if origin is Annotated:
        return erase(get_args(tp)[0])
    if origin is Union or origin is UnionType:
        members = [arg for arg in get_args(tp) if arg is not NoneType]
        return erase(members[0]) if len(members) == 1 else object
    if isinstance(origin, type):
        return origin
    if isinstance(tp, type):
        return tp
    return object


def is_contract(cls: object) -> bool:
    """Whether ``cls`` is a contract (a protocol or abstract class) rather than concrete."""

    if not isinstance(cls, type):
        return False
    return bool(cls.__dict__.get("_is_protocol", False)) or inspect.isabstract(cls)


def type_var_bindings(resolved: object) -> TypeVarBindings:
    """Map every class in the resolved type's hierarchy to its type-variable bindings."""

    root = erase(resolved)
    args = get_args(resolved) if get_origin(resolved) is not None else ()
    params: tuple[TypeVar, ...] = getattr(root, "__parameters__", ())
    bindings: TypeVarBindings = {}
    _visit(root, dict(zip(params, args, strict=False)), bindings)
    return bindings


def _visit(cls: type, mapping: dict[TypeVar, Any], bindings: TypeVarBindings) -> None:
    if cls in bindings:
        return
    bindings[cls] = mapping
    for base in cls.__dict__.get("__orig_bases__", cls.__bases__):
        base_origin = get_origin(base) or base
        if not isinstance(base_origin, type) or base_origin in UNIVERSAL_BASES:
            continue
        base_params: tuple[TypeVar, ...] = getattr(base_origin, "__parameters__", ())
        base_args = tuple(substitute(arg, mapping) for arg in get_args(base))
        _visit(base_origin, dict(zip(base_params, base_args, strict=False)), bindings)


def substitute(annotation: object, mapping: dict[TypeVar, Any]) -> Any:
    """Replace type variables in ``annotation`` using ``mapping``."""

    if isinstance(annotation, TypeVar):
        return mapping.get(annotation, annotation)
    if isinstance(annotation, type) or not mapping:
        return annotation
    params: tuple[TypeVar, ...] = getattr(annotation, "__parameters__", ())
    if not params:
        return annotation
    replaced = tuple(mapping.get(param, param) for param in params)
    if replaced == params:
        return annotation
    return annotation[replaced if len(replaced) > 1 else replaced[0]]  # type: ignore[index]


def resolve_type(annotation: object, declaring_class: type, bindings: TypeVarBindings) -> Any:
    """Resolve an annotation declared on ``declaring_class`` against the resolved type."""

    return substitute(annotation, bindings.get(declaring_class, {}))


def strip_annotated(annotation: object) -> tuple[Any, tuple[object, ...]]:
    """Split ``Annotated[T, *metadata]`` into ``T`` and its metadata."""

    if get_origin(annotation) is Annotated:
        return annotation.__origin__, tuple(annotation.__metadata__)  # type: ignore[attr-defined]
    return annotation, ()
