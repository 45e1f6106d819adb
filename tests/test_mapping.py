"""Tests for schema discovery and object mapping."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

import pytest

from tabular_io.errors import ConversionError, MappingConstructionError
from tabular_io.field_map import HeaderSource
from tabular_io.mapping import (
    deserialize,
    read_objects,
    serialize,
    serialize_many,
    serialize_to_dict,
)
from tabular_io.record_reader import RecordReader
from tabular_io.schema import Int16, Int32, ScalarKind, Single, property_map, schema_for


@dataclass
class Employee:
    name: str = ""
    age: Int32 = 0
    salary: Decimal = Decimal(0)
    hired: Optional[datetime] = None
    rating: Single = 0.0
    tags: List[str] = field(default_factory=list)
    code: str = field(default="", metadata={"column": "Employee Code"})


@dataclass(frozen=True)
class Point:
    x: int = 0
    y: float = 0.0


class Account:
    number: str
    balance: Optional[Decimal]

    def __init__(self) -> None:
        self.number = ""
        self.balance = None
        self._level = 0

    @property
    def level(self) -> Int16:
        return self._level

    @level.setter
    def level(self, value: Int16) -> None:
        self._level = value

    @property
    def label(self) -> str:
        return f"{self.number}:{self._level}"


@dataclass
class NeedsArgs:
    name: str


def test_schema_discovery_order_and_kinds() -> None:
    schema = schema_for(Employee)
    assert [prop.name for prop in schema.properties] == ["name", "age", "salary", "hired", "rating", "code"]
    kinds = {prop.name: prop.kind for prop in schema.properties}
    assert kinds["age"] is ScalarKind.INT32
    assert kinds["rating"] is ScalarKind.SINGLE
    hired = schema.properties[3]
    assert hired.nullable is True and hired.kind is ScalarKind.DATETIME
    assert schema.properties[-1].column == "Employee Code"
    assert schema_for(Employee) is schema


def test_schema_for_plain_class_with_properties() -> None:
    schema = schema_for(Account)
    assert [(prop.name, prop.kind) for prop in schema.properties] == [
        ("number", ScalarKind.TEXT),
        ("balance", ScalarKind.DECIMAL),
        ("level", ScalarKind.INT16),
        ("label", ScalarKind.TEXT),
    ]
    assert [prop.name for prop in schema.writable()] == ["number", "balance", "level"]
    assert property_map(Account) == {"number": 0, "balance": 1, "level": 2, "label": 3}


def test_deserialize_converts_by_property_kind() -> None:
    rows = [
        ["name", "age", "salary", "hired", "rating", "Employee Code", "ignored"],
        ["Ann", Decimal("30"), 1234.56789012, datetime(2023, 2, 1), Decimal("4.5"), "E-1", "x"],
    ]
    reader = RecordReader(rows)
    reader.advance()
    employee = deserialize(reader, Employee)

    assert employee.name == "Ann"
    assert employee.age == 30 and isinstance(employee.age, int)
    assert employee.salary == Decimal("1234.56789")
    assert employee.hired == datetime(2023, 2, 1)
    assert employee.rating == 4.5
    assert employee.code == "E-1"
    assert employee.tags == []


def test_nulls_assign_none_and_missing_columns_keep_defaults() -> None:
    reader = RecordReader([["name", "hired"], [None, None]])
    reader.advance()
    employee = deserialize(reader, Employee)
    assert employee.name is None
    assert employee.hired is None
    assert employee.age == 0


def test_explicit_field_map_overrides_reader_map() -> None:
    reader = RecordReader([["A", "B"], ["Bob", "41"]], HeaderSource.FIRST_ROW)
    reader.advance()
    employee = deserialize(reader, Employee, {"name": 0, "age": 1})
    assert (employee.name, employee.age) == ("Bob", 41)


def test_frozen_dataclass_is_rebuilt() -> None:
    reader = RecordReader([["x", "y"], [Decimal("3"), Decimal("1.25")]])
    reader.advance()
    assert deserialize(reader, Point) == Point(x=3, y=1.25)


def test_plain_class_and_setter_properties() -> None:
    reader = RecordReader([["number", "balance", "level", "label"], ["AC-9", "10.5", Decimal("2"), "ignored"]])
    reader.advance()
    account = deserialize(reader, Account)
    assert account.number == "AC-9"
    assert account.balance == Decimal("10.5")
    assert account.level == 2
    assert account.label == "AC-9:2"


def test_constructor_requirements() -> None:
    reader = RecordReader([["name"], ["x"]])
    reader.advance()
    with pytest.raises(MappingConstructionError):
        deserialize(reader, NeedsArgs)


def test_conversion_errors_propagate() -> None:
    reader = RecordReader([["age"], ["thirty"]])
    reader.advance()
    with pytest.raises(ConversionError):
        deserialize(reader, Employee)


def test_read_objects_iterates_reader() -> None:
    reader = RecordReader([["x", "y"], [1, 2.5], [2, 3.5]])
    assert list(read_objects(reader, Point)) == [Point(1, 2.5), Point(2, 3.5)]


def test_serialize_follows_property_map() -> None:
    employee = Employee(name="Ann", age=30, salary=Decimal("10"), code="E-1")
    values = serialize(employee)
    slots = property_map(Employee)
    assert values[slots["name"]] == "Ann"
    assert values[slots["Employee Code"]] == "E-1"
    assert list(serialize_to_dict(employee)) == list(slots)


def test_round_trip_through_dict_reader() -> None:
    original = Employee(
        name="Ann",
        age=30,
        salary=Decimal("1200.50"),
        hired=datetime(2023, 2, 1, 9, 30),
        rating=4.5,
        code="E-7",
    )
    reader = RecordReader.from_dicts([serialize_to_dict(original)])
    assert reader.advance()
    assert deserialize(reader, Employee) == original


def test_round_trip_through_index_map() -> None:
    points = [Point(1, 0.5), Point(-4, 2.0)]
    reader = serialize_many(points)
    assert reader.header_source is HeaderSource.INDEX_MAP
    assert list(read_objects(reader, Point)) == points
