"""SQLAlchemy row mapping and parameter binding driven by property bindings."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy.engine import Row

from rowbind.domain.properties import ABSENT

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from sqlalchemy.engine import Result

    from rowbind.domain.bindings import PropertyBinding
    from rowbind.domain.registry import TypeRegistry

log = getLogger(__name__)


class MappingError(RuntimeError):
    """Raised when rows cannot be mapped onto the requested type."""


def normalize_column_name(name: str) -> str:
    """Column and property names match case-insensitively, ignoring underscores."""

    return name.replace("_", "").lower()


class RowMapper[T]:
    """Maps result rows onto a registered value type.

    Columns are matched to property names with ``normalize_column_name``, after
    stripping ``prefix`` when one is given. Columns without a property are ignored.
    """

    def __init__(
        self,
        registry: TypeRegistry,
        target: type[T] | object,
        *,
        prefix: str = "",
    ) -> None:
        self._registry = registry
        self._target = target
        self._prefix = normalize_column_name(prefix)

    @property
    def binding(self) -> PropertyBinding[T]:
        binding = self._registry.resolve(self._target)
        if binding is None:
            raise MappingError(f"No property binding registered for {self._target!r}")
        return binding

    def __call__(self, row: Row[Any] | Mapping[str, Any]) -> T:
        return self.map_row(row)

    def map_row(self, row: Row[Any] | Mapping[str, Any]) -> T:
        values = _row_mapping(row)
        binding = self.binding
        columns = self._match_columns(binding, values.keys())
        session = binding.open()
        for column, name in columns.items():
            session.write(name, values[column])
        return session.finish()

    def map_all(self, result: Result[Any] | Iterable[Row[Any]]) -> list[T]:
        rows = list(result)
        if not rows:
            return []
        binding = self.binding
        columns = self._match_columns(binding, _row_mapping(rows[0]).keys())
        mapped: list[T] = []
        for row in rows:
            values = _row_mapping(row)
            session = binding.open()
            for column, name in columns.items():
                session.write(name, values[column])
            mapped.append(session.finish())
        return mapped

    def _match_columns(self, binding: PropertyBinding[T], columns: Iterable[str]) -> dict[str, str]:
        by_normalized = {normalize_column_name(name): name for name in binding.properties}
        matched: dict[str, str] = {}
        for column in columns:
            key = normalize_column_name(column)
            if self._prefix:
                if not key.startswith(self._prefix):
                    continue
                key = key[len(self._prefix) :]
            name = by_normalized.get(key)
            if name is not None:
                matched[column] = name
        if not matched:
            raise MappingError(
                f"Mapping {binding.type!r} didn't find any matching columns in {list(columns)}"
            )
        log.debug("Matched columns %s for %s", matched, binding.type)
        return matched


def bind_properties(registry: TypeRegistry, value: object, *, prefix: str = "") -> dict[str, Any]:
    """Return statement parameters named after the properties of ``value``.

    Properties reported absent bind as ``None``.
    """

    binding = registry.resolve(type(value))
    if binding is None:
        raise MappingError(f"No property binding registered for {type(value)!r}")
    parameters: dict[str, Any] = {}
    for accessor in binding:
        current = accessor.get(value)
        parameters[prefix + accessor.name] = None if current is ABSENT else current
    return parameters


def _row_mapping(row: Row[Any] | Mapping[str, Any]) -> Mapping[str, Any]:
    if isinstance(row, Row):
        return cast("Mapping[str, Any]", row._mapping)  # noqa: SLF001
    return row
