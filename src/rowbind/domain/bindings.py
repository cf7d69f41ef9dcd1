"""Property bindings: per-type accessor tables and the sessions that construct values.

Two variants exist. ``ImmutableBinding`` drives a builder obtained from the
implementation's ``builder()`` factory and finishes with ``build()``.
``ModifiableBinding`` creates a blank instance with ``create()`` and mutates it in
place through ``set<Name>`` setters, honouring optional ``<name>IsSet`` probes.
"""

from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from functools import singledispatchmethod
from logging import getLogger
from operator import attrgetter
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, ClassVar, Protocol

from rowbind.domain.errors import (
    STRUCTURAL_ERRORS,
    BindingConfigurationError,
    Operation,
    SessionClosedError,
    UnknownPropertyError,
    guarded,
)
from rowbind.domain.properties import (
    PropertyAccessor,
    accepts_arguments,
    always_set,
    discover_properties,
    is_unresolved,
    parameter_annotation,
    return_annotation,
)
from rowbind.domain.types import erase

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Mapping

    from rowbind.domain.properties import DeclaredProperty

log = getLogger(__name__)

type Setter = Callable[[object, Any], Any]


class ConstructionSession[T](Protocol):
    """Accumulates property writes for one value, then finishes it."""

    def write(self, name: str, value: object) -> None: ...

    def finish(self) -> T: ...


class PropertyBinding[T](ABC):
    """Accessor table for one resolved type, built once and read-only afterwards."""

    variant: ClassVar[str]

    def __init__(self, resolved: object, *, definition: type[T], implementation: type[T]) -> None:
        self.type = resolved
        self.definition = definition
        self.implementation = implementation
        declared = discover_properties(resolved, definition)
        self._properties: Mapping[str, PropertyAccessor] = MappingProxyType(
            {name: self._bind(prop) for name, prop in declared.items()}
        )
        log.debug(
            "Built %s binding for %s with properties %s",
            self.variant,
            resolved,
            sorted(self._properties),
        )

    @property
    def properties(self) -> Mapping[str, PropertyAccessor]:
        return self._properties

    def __contains__(self, name: object) -> bool:
        return name in self._properties

    def __iter__(self) -> Iterator[PropertyAccessor]:
        return iter(self._properties.values())

    def __len__(self) -> int:
        return len(self._properties)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.type!r}, properties={list(self._properties)})"

    def accessor(self, name: str) -> PropertyAccessor:
        try:
            return self._properties[name]
        except KeyError:
            raise UnknownPropertyError(
                Operation.SET,
                self.type,
                name,
                f"{self.type!r} has no property '{name}'",
            ) from None

    @abstractmethod
    def open(self) -> ConstructionSession[T]:
        """Start constructing a new value."""

    def construct(self, values: Mapping[str, object]) -> T:
        """Open a session, write every entry of ``values`` and finish it."""

        session = self.open()
        for name, value in values.items():
            session.write(name, value)
        return session.finish()

    def read(self, instance: object) -> dict[str, Any]:
        """Read every property of ``instance``; unset ones map to ``ABSENT``."""

        return {name: accessor.get(instance) for name, accessor in self._properties.items()}

    @abstractmethod
    def _bind(self, declared: DeclaredProperty) -> PropertyAccessor: ...


class _Session[T]:
    def __init__(self, binding: PropertyBinding[T], target: object) -> None:
        self._binding = binding
        self._target: object | None = target
        self._closed = False

    def write(self, name: str, value: object) -> None:
        accessor = self._binding.accessor(name)
        accessor.set(self._open_target(), value)

    def _open_target(self) -> object:
        if self._closed:
            raise SessionClosedError(
                Operation.SET,
                self._binding.type,
                message=f"Construction of {self._binding.type!r} already finished",
            )
        return self._target

    def _close(self) -> object:
        target = self._open_target()
        self._closed = True
        self._target = None
        return target


class ImmutableSession[T](_Session[T]):
    """Writes go to a builder; ``finish()`` builds the value and drops the builder."""

    def __init__(self, binding: ImmutableBinding[T], builder: object) -> None:
        super().__init__(binding, builder)
        self._build = binding.build_operation

    def finish(self) -> T:
        builder = self._close()
        return guarded(
            Operation.BUILD,
            self._binding.implementation,
            None,
            lambda: self._build(builder),
        )


class ModifiableSession[T](_Session[T]):
    """The session target is the value itself, mutated in place."""

    def finish(self) -> T:
        return self._close()  # type: ignore[return-value]


def _find_factory(implementation: type, name: str) -> Callable[[], Any]:
    member = inspect.getattr_static(implementation, name, None)
    if not isinstance(member, staticmethod | classmethod):
        raise BindingConfigurationError(
            f"Failed to inspect {implementation.__qualname__}: "
            f"expected a static or class method {name}()"
        )
    factory = getattr(implementation, name)
    if not accepts_arguments(factory, 0, bound=True):
        raise BindingConfigurationError(
            f"Failed to inspect {implementation.__qualname__}: {name}() must take no arguments"
        )
    return factory


def _dispatching_setter(name: str) -> Setter:
    def invoke(target: object, value: Any) -> Any:
        return getattr(target, name)(value)

    return invoke


def _admits(supplied: object, annotation: object) -> bool:
    """Whether ``supplied`` fits ``annotation``; annotations that cannot be checked fit."""

    if is_unresolved(supplied) or is_unresolved(annotation):
        return True
    actual, expected = erase(supplied), erase(annotation)
    if actual is expected:
        return True
    try:
        return issubclass(actual, expected)
    except TypeError:
        # protocols without @runtime_checkable reject issubclass()
        return True


def _name(annotation: object) -> str:
    return getattr(annotation, "__qualname__", None) or repr(annotation)


class ImmutableBinding[T](PropertyBinding[T]):
    variant = "immutable"

    def __init__(
        self,
        resolved: object,
        *,
        definition: type[T],
        implementation: type[T],
        builder: Callable[[], Any] | None = None,
    ) -> None:
        self._builder_factory = builder or _find_factory(implementation, "builder")
        try:
            self.builder_class: type = type(self._builder_factory())
        except STRUCTURAL_ERRORS as exc:
            raise BindingConfigurationError(
                f"Failed to inspect {implementation.__qualname__}: builder factory failed"
            ) from exc
        self.build_operation = self._find_build(self.builder_class, implementation)
        super().__init__(resolved, definition=definition, implementation=implementation)

    def open(self) -> ImmutableSession[T]:
        builder = guarded(Operation.CREATE, self.implementation, None, self._builder_factory)
        return ImmutableSession(self, builder)

    def _bind(self, declared: DeclaredProperty) -> PropertyAccessor:
        return PropertyAccessor(
            name=declared.name,
            type=declared.type,
            declaration=declared.declaration,
            owner=self.type,
            getter=declared.reader(),
            setter=self._find_setter(declared),
            metadata_items=declared.metadata_items,
        )

    def _find_setter(self, declared: DeclaredProperty) -> Setter:
        member = inspect.getattr_static(self.builder_class, declared.name, None)
        if isinstance(member, singledispatchmethod):
            exact = None
            if not is_unresolved(declared.type):
                exact = member.dispatcher.registry.get(erase(declared.type))
            if exact is not None:
                return exact
            # no overload for the erased type; let the written value pick one
            return _dispatching_setter(declared.name)
        if inspect.isfunction(member) and accepts_arguments(member, 1):
            return member
        raise BindingConfigurationError(
            f"Failed to inspect {self.builder_class.__qualname__}: "
            f"no single-argument setter {declared.name}() for {self.definition.__qualname__}"
        )

    @staticmethod
    def _find_build(builder_class: type, implementation: type) -> Callable[[object], Any]:
        member = inspect.getattr_static(builder_class, "build", None)
        if not (inspect.isfunction(member) and accepts_arguments(member, 0)):
            raise BindingConfigurationError(
                f"Failed to inspect {builder_class.__qualname__}: expected a build() method"
            )
        produced = return_annotation(member, builder_class)
        if not _admits(implementation, produced):
            raise BindingConfigurationError(
                f"{builder_class.__qualname__}.build() returns {_name(produced)}, "
                f"not {implementation.__qualname__}"
            )
        return member


class ModifiableBinding[T](PropertyBinding[T]):
    variant = "modifiable"

    def __init__(
        self,
        resolved: object,
        *,
        definition: type[T],
        implementation: type[T],
        create: Callable[[], Any] | None = None,
    ) -> None:
        self._create = create or _find_factory(implementation, "create")
        super().__init__(resolved, definition=definition, implementation=implementation)

    def open(self) -> ModifiableSession[T]:
        instance = guarded(Operation.CREATE, self.implementation, None, self._create)
        return ModifiableSession(self, instance)

    def _bind(self, declared: DeclaredProperty) -> PropertyAccessor:
        return PropertyAccessor(
            name=declared.name,
            type=declared.type,
            declaration=declared.declaration,
            owner=self.type,
            getter=declared.reader(),
            setter=self._find_setter(declared),
            is_set=self._find_probe(declared.name),
            metadata_items=declared.metadata_items,
        )

    def _find_setter(self, declared: DeclaredProperty) -> Setter:
        name = setter_name(declared.name)
        member = inspect.getattr_static(self.implementation, name, None)
        if not (inspect.isfunction(member) and accepts_arguments(member, 1)):
            raise BindingConfigurationError(
                f"Failed to inspect {self.implementation.__qualname__}: "
                f"no single-argument setter {name}()"
            )
        accepted = parameter_annotation(member, self.implementation)
        if accepted is not None and not _admits(declared.type, accepted):
            raise BindingConfigurationError(
                f"{self.implementation.__qualname__}.{name}() accepts {accepted!r}, "
                f"property '{declared.name}' is {declared.type!r}"
            )
        returned = return_annotation(member, self.implementation)
        if not _admits(self.implementation, returned):
            raise BindingConfigurationError(
                f"{self.implementation.__qualname__}.{name}() returns {_name(returned)}, "
                f"not {self.implementation.__qualname__}"
            )
        return member

    def _find_probe(self, name: str) -> Callable[[object], bool]:
        probe_name = f"{name}IsSet"
        member = inspect.getattr_static(self.implementation, probe_name, None)
        if member is None:
            return always_set
        if isinstance(member, property):
            return attrgetter(probe_name)
        if inspect.isfunction(member) and accepts_arguments(member, 0):
            return member
        raise BindingConfigurationError(
            f"Failed to inspect {self.implementation.__qualname__}: "
            f"{probe_name} must be a zero-argument method"
        )


def setter_name(name: str) -> str:
    return "set" + name[:1].upper() + name[1:]
