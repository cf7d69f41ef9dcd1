"""Errors raised while discovering and driving property bindings."""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, Final

from rowbind.config.errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Callable


class Operation(StrEnum):
    CREATE = "create"
    SET = "set"
    BUILD = "build"
    GET = "get"
    IS_SET = "is_set"


# Failures meaning "this instance does not behave like the shape discovered for it".
# Anything else raised by user code propagates untouched.
STRUCTURAL_ERRORS: Final[tuple[type[Exception], ...]] = (
    TypeError,
    AttributeError,
    LookupError,
    ValueError,
)


class BindingConfigurationError(ConfigurationError):
    """Raised when a registered type does not have the shape its variant requires."""


class ConstructionError(RuntimeError):
    """Raised when a discovered accessor, setter, factory or build step fails."""

    def __init__(
        self,
        operation: Operation,
        target: object,
        property_name: str | None = None,
        message: str | None = None,
    ) -> None:
        self.operation = operation
        self.target = target
        self.property_name = property_name
        if message is None:
            subject = f"property '{property_name}' of " if property_name else ""
            message = f"Couldn't {operation} {subject}{_type_name(target)}"
        super().__init__(message)


class UnknownPropertyError(ConstructionError):
    """Raised when a session is asked to write a property its binding does not have."""


class SessionClosedError(ConstructionError):
    """Raised when a construction session is used after ``finish()``."""


def guarded[R](
    operation: Operation,
    target: object,
    property_name: str | None,
    call: Callable[[], R],
) -> R:
    """Run ``call``, wrapping structural failures into a ``ConstructionError``."""

    try:
        return call()
    except ConstructionError:
        raise
    except STRUCTURAL_ERRORS as exc:
        raise ConstructionError(operation, target, property_name) from exc


def _type_name(target: object) -> str:
    return getattr(target, "__qualname__", None) or repr(target)
