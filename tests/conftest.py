from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine

from rowbind.domain import TypeRegistry
from tests.helpers.values import (
    FooBarBaz,
    ImmutableFooBarBaz,
    ImmutableMeasurement,
    ImmutableSubValue,
    ImmutableTrain,
    Measurement,
    ModifiableFooBarBaz,
    SubValue,
    Train,
)

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.engine import Engine


@pytest.fixture
def registry() -> TypeRegistry:
    return (
        TypeRegistry()
        .register(Train, ImmutableTrain)
        .register(FooBarBaz, ImmutableFooBarBaz, ModifiableFooBarBaz)
        .register(SubValue, ImmutableSubValue)
        .register(Measurement, ImmutableMeasurement)
    )


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    try:
        yield engine
    finally:
        engine.dispose()
