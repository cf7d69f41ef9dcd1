from __future__ import annotations

from typing import Protocol, Self

import pytest

from rowbind.domain import (
    ABSENT,
    BindingConfigurationError,
    ConstructionError,
    ModifiableBinding,
    Operation,
    SessionClosedError,
)
from rowbind.domain.bindings import setter_name
from tests.helpers.values import FooBarBaz, ModifiableFooBarBaz


def _binding() -> ModifiableBinding[FooBarBaz]:
    return ModifiableBinding(
        ModifiableFooBarBaz,
        definition=FooBarBaz,
        implementation=ModifiableFooBarBaz,
    )


def test_foo_bar_baz_presence_tracking() -> None:
    binding = _binding()
    session = binding.open()
    properties = binding.properties

    # the session target is the value being built
    blank = session.finish()
    assert properties["foo"].get(blank) is ABSENT
    assert properties["bar"].get(blank) is ABSENT
    assert properties["baz"].get(blank) is ABSENT

    session = binding.open()
    session.write("foo", "foo")
    session.write("bar", 42)
    session.write("baz", 1.0)
    value = session.finish()

    assert isinstance(value, ModifiableFooBarBaz)
    assert properties["id"].is_present(value)
    assert properties["id"].get(value) == 0
    assert properties["foo"].get(value) == "foo"
    assert properties["bar"].get(value) == 42
    assert properties["baz"].get(value) == 1.0


def test_presence_flips_after_first_write() -> None:
    binding = _binding()
    value = ModifiableFooBarBaz.create()
    foo = binding.properties["foo"]

    assert not foo.is_present(value)
    foo.set(value, None)
    assert foo.is_present(value)
    assert foo.get(value) is None


def test_properties_without_probe_are_always_present() -> None:
    binding = _binding()

    assert not binding.properties["id"].tracks_presence
    assert binding.properties["foo"].tracks_presence
    assert binding.properties["bar"].tracks_presence
    assert binding.properties["baz"].tracks_presence


def test_session_mutates_one_instance_in_place() -> None:
    created: list[ModifiableFooBarBaz] = []

    def create() -> ModifiableFooBarBaz:
        created.append(ModifiableFooBarBaz())
        return created[-1]

    binding = ModifiableBinding(
        ModifiableFooBarBaz,
        definition=FooBarBaz,
        implementation=ModifiableFooBarBaz,
        create=create,
    )
    session = binding.open()
    session.write("id", 7)

    assert len(created) == 1
    assert created[0].id() == 7
    assert session.finish() is created[0]


def test_read_reports_absent_properties() -> None:
    value = ModifiableFooBarBaz.create().setFoo("foo")

    assert _binding().read(value) == {"id": 0, "foo": "foo", "bar": ABSENT, "baz": ABSENT}


def test_session_closes_after_finish() -> None:
    session = _binding().open()
    session.finish()

    with pytest.raises(SessionClosedError, match="already finished"):
        session.write("id", 1)


def test_setter_name_capitalises_first_letter_only() -> None:
    assert setter_name("foo") == "setFoo"
    assert setter_name("observationCar") == "setObservationCar"
    assert setter_name("x") == "setX"


class Lamp(Protocol):
    def watts(self) -> int: ...


class LampWithoutCreate(Lamp):
    def watts(self) -> int:
        return 60

    def setWatts(self, watts: int) -> Self:  # noqa: N802
        return self


class LampWithoutSetter(Lamp):
    def watts(self) -> int:
        return 60

    @staticmethod
    def create() -> LampWithoutSetter:
        return LampWithoutSetter()


class LampWithStringSetter(Lamp):
    def watts(self) -> int:
        return 60

    @staticmethod
    def create() -> LampWithStringSetter:
        return LampWithStringSetter()

    def setWatts(self, watts: str) -> Self:  # noqa: N802
        return self


class LampWithBrokenProbe(Lamp):
    wattsIsSet = True  # noqa: N815

    def watts(self) -> int:
        return 60

    @staticmethod
    def create() -> LampWithBrokenProbe:
        return LampWithBrokenProbe()

    def setWatts(self, watts: int) -> Self:  # noqa: N802
        return self


@pytest.mark.parametrize(
    ("implementation", "message"),
    [
        (LampWithoutCreate, "static or class method create"),
        (LampWithoutSetter, "no single-argument setter setWatts"),
        (LampWithStringSetter, "accepts"),
        (LampWithBrokenProbe, "wattsIsSet must be a zero-argument method"),
    ],
)
def test_discovery_rejects_incomplete_shapes(implementation: type[Lamp], message: str) -> None:
    with pytest.raises(BindingConfigurationError, match=message):
        ModifiableBinding(implementation, definition=Lamp, implementation=implementation)


class LampWithFaultyFactory(Lamp):
    def watts(self) -> int:
        return 60

    @staticmethod
    def create() -> LampWithFaultyFactory:
        raise LookupError("no lamp in stock")

    def setWatts(self, watts: int) -> Self:  # noqa: N802
        return self


def test_failing_factory_is_wrapped() -> None:
    binding = ModifiableBinding(
        LampWithFaultyFactory,
        definition=Lamp,
        implementation=LampWithFaultyFactory,
    )

    with pytest.raises(ConstructionError) as excinfo:
        binding.open()

    assert excinfo.value.operation is Operation.CREATE
    assert isinstance(excinfo.value.__cause__, LookupError)
