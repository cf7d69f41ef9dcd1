"""Property accessors and accessor discovery on definition types."""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from enum import Enum
from logging import getLogger
from operator import attrgetter, methodcaller
from typing import TYPE_CHECKING, Any, Final, get_type_hints

from rowbind.domain.errors import Operation, guarded
from rowbind.domain.types import (
    UNIVERSAL_BASES,
    resolve_type,
    strip_annotated,
    type_var_bindings,
)

if TYPE_CHECKING:
    from collections.abc import Callable

log = getLogger(__name__)

_POSITIONAL: Final = (
    inspect.Parameter.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD,
)


class Absent(Enum):
    """Result of reading a property that was never set."""

    ABSENT = "absent"

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "ABSENT"


ABSENT: Final = Absent.ABSENT


def always_set(_instance: object) -> bool:
    return True


@dataclass(frozen=True, slots=True)
class DeclaredProperty:
    """A property as declared on the definition type, before binding to an implementation."""

    name: str
    type: Any
    declaration: Callable[..., Any]
    declaring_class: type
    is_attribute: bool = False
    metadata_items: tuple[object, ...] = ()

    def reader(self) -> Callable[[object], Any]:
        return attrgetter(self.name) if self.is_attribute else methodcaller(self.name)


@dataclass(frozen=True, slots=True)
class PropertyAccessor:
    """Reads, probes and writes one named property of a bound type."""

    name: str
    type: Any
    declaration: Callable[..., Any]
    owner: object
    getter: Callable[[object], Any] = field(repr=False)
    setter: Callable[[object, Any], Any] = field(repr=False)
    is_set: Callable[[object], bool] = field(default=always_set, repr=False)
    metadata_items: tuple[object, ...] = ()

    @property
    def tracks_presence(self) -> bool:
        return self.is_set is not always_set

    def metadata[M](self, kind: type[M]) -> M | None:
        for item in self.metadata_items:
            if isinstance(item, kind):
                return item
        return None

    def is_present(self, value: object) -> bool:
        return bool(guarded(Operation.IS_SET, self.owner, self.name, lambda: self.is_set(value)))

    def get(self, value: object) -> Any:
        """Return the property value, or ``ABSENT`` when the probe reports it unset."""

        if not self.is_present(value):
            return ABSENT
        return guarded(Operation.GET, self.owner, self.name, lambda: self.getter(value))

    def set(self, target: object, value: object) -> None:
        guarded(Operation.SET, self.owner, self.name, lambda: self.setter(target, value))


def discover_properties(resolved: object, definition: type) -> dict[str, DeclaredProperty]:
    """Enumerate the accessors of ``definition`` with types resolved against ``resolved``.

    Accessors are public zero-argument instance methods or read-only properties.
    Members of universal bases, static and class methods, and underscore names are
    skipped. The most-derived declaration of a name wins.
    """

    bindings = type_var_bindings(resolved)
    if definition not in bindings:
        # the resolved type does not inherit the definition explicitly
        bindings.update(type_var_bindings(definition))

    seen: set[str] = set()
    properties: dict[str, DeclaredProperty] = {}
    for cls in definition.__mro__:
        if cls in UNIVERSAL_BASES:
            continue
        for name, member in vars(cls).items():
            if name in seen or name.startswith("_"):
                continue
            seen.add(name)
            declared = _declare(name, member, cls, bindings)
            if declared is not None:
                properties[name] = declared

    log.debug("Discovered %d properties on %s: %s", len(properties), resolved, list(properties))
    return properties


def _declare(
    name: str,
    member: object,
    cls: type,
    bindings: dict[type, Any],
) -> DeclaredProperty | None:
    if isinstance(member, property):
        if member.fget is None:
            return None
        function, is_attribute = member.fget, True
    elif inspect.isfunction(member) and accepts_arguments(member, 0):
        function, is_attribute = member, False
    else:
        return None

    annotation = return_annotation(function, cls)
    bare, metadata_items = strip_annotated(resolve_type(annotation, cls, bindings))
    return DeclaredProperty(
        name=name,
        type=bare,
        declaration=function,
        declaring_class=cls,
        is_attribute=is_attribute,
        metadata_items=metadata_items,
    )


def accepts_arguments(function: Callable[..., Any], count: int, *, bound: bool = False) -> bool:
    """Whether ``function`` takes exactly ``count`` positional arguments besides ``self``."""

    try:
        parameters = list(inspect.signature(function).parameters.values())
    except (TypeError, ValueError):
        return False
    if not bound:
        if not parameters or parameters[0].kind not in _POSITIONAL:
            return False
        parameters = parameters[1:]
    required = [p for p in parameters if p.default is inspect.Parameter.empty]
    if any(p.kind not in _POSITIONAL for p in required):
        return False
    positional = [p for p in parameters if p.kind in _POSITIONAL]
    return len(required) <= count <= len(positional)


def return_annotation(function: Callable[..., Any], cls: type) -> Any:
    """The evaluated return annotation of ``function``, or ``Any`` when it has none.

    Names that only exist for type checkers cannot be evaluated; the annotation is
    then returned unevaluated, as a string (see ``is_unresolved``).
    """

    try:
        return _hints(function, cls).get("return", Any)
    except NameError:
        raw = inspect.get_annotations(function).get("return", Any)
        log.debug(
            "Keeping unresolved return annotation %r of %s.%s",
            raw,
            cls.__qualname__,
            function.__name__,
        )
        return raw


def is_unresolved(annotation: object) -> bool:
    return isinstance(annotation, str)


def parameter_annotation(function: Callable[..., Any], cls: type) -> Any | None:
    """The evaluated annotation of the first non-self parameter, if it can be resolved."""

    parameters = list(inspect.signature(function).parameters)
    if len(parameters) < 2:
        return None
    try:
        return _hints(function, cls).get(parameters[1])
    except NameError:
        return None


def _hints(function: Callable[..., Any], cls: type) -> dict[str, Any]:
    # PEP 695 class parameters are not module globals
    localns = {param.__name__: param for param in getattr(cls, "__type_params__", ())}
    localns.setdefault(cls.__name__, cls)
    return get_type_hints(function, localns=localns, include_extras=True)
