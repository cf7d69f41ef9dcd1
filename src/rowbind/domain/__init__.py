"""Property discovery and construction for mapped value types."""

from __future__ import annotations

from .bindings import (
    ConstructionSession,
    ImmutableBinding,
    ImmutableSession,
    ModifiableBinding,
    ModifiableSession,
    PropertyBinding,
)
from .cache import BindingCache
from .errors import (
    BindingConfigurationError,
    ConstructionError,
    Operation,
    SessionClosedError,
    UnknownPropertyError,
)
from .properties import ABSENT, Absent, PropertyAccessor
from .registry import TypeRegistry

__all__ = [
    "ABSENT",
    "Absent",
    "BindingCache",
    "BindingConfigurationError",
    "ConstructionError",
    "ConstructionSession",
    "ImmutableBinding",
    "ImmutableSession",
    "ModifiableBinding",
    "ModifiableSession",
    "Operation",
    "PropertyAccessor",
    "PropertyBinding",
    "SessionClosedError",
    "TypeRegistry",
    "UnknownPropertyError",
]
