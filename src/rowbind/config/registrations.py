"""Declarative type registrations loaded from TOML.

Example::

    [[registrations]]
    definition = "shop.model:Order"
    immutable = "shop.model:ImmutableOrder"
    modifiable = "shop.model:ModifiableOrder"
"""

from __future__ import annotations

import importlib
import tomllib
from logging import getLogger
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigurationError, InvalidConfigurationError

if TYPE_CHECKING:
    from pathlib import Path

    from rowbind.domain.registry import TypeRegistry

log = getLogger(__name__)


class RegistrationsBaseModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class Registration(RegistrationsBaseModel):
    definition: str
    immutable: str
    modifiable: str | None = None
    builder: str | None = None
    create: str | None = None

    @field_validator("definition", "immutable", "modifiable", "builder", "create")
    @classmethod
    def _check_reference(cls, value: str | None) -> str | None:
        if value is None:
            return None
        module, sep, qualname = value.partition(":")
        if not sep or not module.strip() or not qualname.strip():
            raise ValueError(f"expected 'package.module:Name', got {value!r}")
        return value.strip()


class RegistrationsDocument(RegistrationsBaseModel):
    registrations: list[Registration] = Field(default_factory=list["Registration"])


def load_registrations(path: Path) -> RegistrationsDocument:
    """Parse and validate a registrations file."""

    try:
        with path.open("rb") as handle:
            document = tomllib.load(handle)
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Registrations file not found: {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise InvalidConfigurationError(f"Invalid TOML in {path}: {exc}") from exc

    try:
        return RegistrationsDocument.model_validate(document)
    except ValidationError as exc:
        raise InvalidConfigurationError(f"Invalid registrations in {path}:\n{exc}") from exc


def import_reference(reference: str) -> Any:
    """Import ``package.module:Qualified.Name``."""

    module_name, _, qualname = reference.partition(":")
    try:
        target: Any = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigurationError(f"Cannot import module {module_name!r}") from exc
    for part in qualname.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as exc:
            raise ConfigurationError(f"Cannot resolve {reference!r}") from exc
    return target


def apply_registrations(registry: TypeRegistry, document: RegistrationsDocument) -> TypeRegistry:
    for entry in document.registrations:
        registry.register(
            import_reference(entry.definition),
            import_reference(entry.immutable),
            import_reference(entry.modifiable) if entry.modifiable else None,
            builder=import_reference(entry.builder) if entry.builder else None,
            create=import_reference(entry.create) if entry.create else None,
        )
    log.debug("Applied %d registrations", len(document.registrations))
    return registry
