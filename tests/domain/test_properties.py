from __future__ import annotations

from operator import methodcaller

import pytest

from rowbind.domain import ABSENT, ConstructionError, Operation
from rowbind.domain.properties import (
    PropertyAccessor,
    accepts_arguments,
    always_set,
    discover_properties,
)
from tests.helpers.values import (
    Column,
    FooBarBaz,
    ImmutableSubValue,
    ImmutableTrain,
    Measurement,
    ModifiableFooBarBaz,
    SubValue,
    Train,
)


def test_discovery_uses_accessor_names_verbatim() -> None:
    properties = discover_properties(Train, Train)

    assert list(properties) == ["name", "carriages", "observationCar"]
    assert properties["name"].type is str
    assert properties["carriages"].type is int
    assert properties["observationCar"].type is bool


def test_discovery_against_implementation_matches_definition() -> None:
    assert discover_properties(ImmutableTrain, Train).keys() == discover_properties(
        Train, Train
    ).keys()


def test_discovery_skips_static_methods_and_methods_with_arguments() -> None:
    properties = discover_properties(Measurement, Measurement)

    assert set(properties) == {"label", "reading"}
    assert properties["label"].is_attribute


def test_discovery_strips_annotated_metadata() -> None:
    label = discover_properties(Measurement, Measurement)["label"]

    assert label.type is str
    assert label.metadata_items == (Column("measurement_label"),)


def test_discovery_resolves_inherited_generic_accessors() -> None:
    properties = discover_properties(SubValue[str, int], SubValue)

    assert set(properties) == {"x", "t"}
    assert properties["x"].type is str
    assert properties["t"].type is int


def test_discovery_through_parameterised_implementation() -> None:
    properties = discover_properties(ImmutableSubValue[int, bytes], SubValue)

    assert properties["x"].type is int
    assert properties["t"].type is bytes


def test_discovery_keeps_optional_types() -> None:
    properties = discover_properties(FooBarBaz, FooBarBaz)

    assert properties["foo"].type == str | None
    assert properties["bar"].type == int | None


@pytest.mark.parametrize(
    ("function", "count", "expected"),
    [
        (lambda self: None, 0, True),
        (lambda self, value: None, 1, True),
        (lambda self, value, extra=None: None, 1, True),
        (lambda self, value: None, 0, False),
        (lambda self, *, value: None, 0, False),
        (lambda: None, 0, False),
    ],
)
def test_accepts_arguments(function: object, count: int, expected: bool) -> None:
    assert accepts_arguments(function, count) is expected  # type: ignore[arg-type]


def _accessor(name: str, **overrides: object) -> PropertyAccessor:
    values: dict[str, object] = {
        "name": name,
        "type": object,
        "declaration": getattr(FooBarBaz, name),
        "owner": ModifiableFooBarBaz,
        "getter": methodcaller(name),
        "setter": lambda target, value: None,
    }
    values.update(overrides)
    return PropertyAccessor(**values)  # type: ignore[arg-type]


def test_get_returns_absent_when_probe_reports_unset() -> None:
    accessor = _accessor("foo", is_set=methodcaller("fooIsSet"))
    value = ModifiableFooBarBaz.create()

    assert accessor.tracks_presence
    assert accessor.get(value) is ABSENT
    assert not accessor.is_present(value)

    value.setFoo("foo")
    assert accessor.get(value) == "foo"


def test_get_without_probe_is_always_present() -> None:
    accessor = _accessor("id")

    assert accessor.is_set is always_set
    assert not accessor.tracks_presence
    assert accessor.get(ModifiableFooBarBaz.create()) == 0


def test_absent_is_falsy_and_distinct_from_none() -> None:
    assert not ABSENT
    assert ABSENT is not None
    assert repr(ABSENT) == "ABSENT"


def test_metadata_lookup_by_kind() -> None:
    accessor = _accessor("foo", metadata_items=("plain", Column("foo_column")))

    assert accessor.metadata(Column) == Column("foo_column")
    assert accessor.metadata(str) == "plain"
    assert accessor.metadata(int) is None


def test_structural_getter_failure_is_wrapped() -> None:
    accessor = _accessor("foo")

    with pytest.raises(ConstructionError) as excinfo:
        accessor.get(object())

    assert excinfo.value.operation is Operation.GET
    assert excinfo.value.property_name == "foo"
    assert isinstance(excinfo.value.__cause__, AttributeError)


def test_runtime_failures_propagate_unwrapped() -> None:
    def explode(_value: object) -> object:
        raise RuntimeError("boom")

    accessor = _accessor("foo", getter=explode)

    with pytest.raises(RuntimeError, match="boom") as excinfo:
        accessor.get(ModifiableFooBarBaz.create())

    assert not isinstance(excinfo.value, ConstructionError)


def test_failing_probe_reports_is_set_operation() -> None:
    def probe(_value: object) -> bool:
        raise TypeError("not a FooBarBaz")

    accessor = _accessor("foo", is_set=probe)

    with pytest.raises(ConstructionError) as excinfo:
        accessor.get(ModifiableFooBarBaz.create())

    assert excinfo.value.operation is Operation.IS_SET


def test_set_wraps_structural_failures() -> None:
    def setter(_target: object, value: object) -> None:
        raise ValueError(f"rejected {value!r}")

    accessor = _accessor("foo", setter=setter)

    with pytest.raises(ConstructionError, match="Couldn't set property 'foo'") as excinfo:
        accessor.set(ModifiableFooBarBaz.create(), "x")

    assert isinstance(excinfo.value.__cause__, ValueError)
