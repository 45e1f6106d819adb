"""Tests for the high-level Excel reading helpers."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path

import pytest

from tabular_io.config import settings_from_mapping
from tabular_io.errors import StructuralError
from tabular_io.excel_reader import open_records, read_objects_from, read_table
from tabular_io.schema import Int32


@dataclass
class Person:
    name: str = ""
    age: Int32 = 0


PEOPLE = (
    '<row r="1"><c r="B1" t="s"><v>1</v></c></row>'
    '<row r="2"><c r="B2" t="s"><v>2</v></c><c r="C2" t="s"><v>3</v></c></row>'
    '<row r="3"><c r="B3" t="s"><v>4</v></c><c r="C3"><v>30</v></c></row>'
    '<row r="4"><c r="B4" t="s"><v>5</v></c><c r="C4"><v>41</v></c></row>'
)


def _build_workbook(xlsx_factory) -> Path:
    return xlsx_factory(
        {"Summary": '<row r="1"><c r="A1" t="s"><v>0</v></c></row>', "People": PEOPLE},
        name="people.xlsx",
        shared_strings=["ignored", "Title row", "name", "age", "Ann", "Bob"],
    )


def test_open_records_with_window(xlsx_factory) -> None:
    path = _build_workbook(xlsx_factory)
    settings = settings_from_mapping({"sheet": "People", "min_row": 2, "min_col": "B"})

    with open_records(path, settings) as reader:
        assert list(reader.field_map) == ["name", "age"]
        records = [record.as_dict() for record in reader]

    assert records == [{"name": "Ann", "age": Decimal("30")}, {"name": "Bob", "age": Decimal("41")}]


def test_read_objects_from(xlsx_factory) -> None:
    path = _build_workbook(xlsx_factory)
    settings = settings_from_mapping({"sheet": "People", "min_row": 2, "min_col": 2})
    assert read_objects_from(path, Person, settings) == [Person("Ann", 30), Person("Bob", 41)]


def test_read_table_with_json_map(xlsx_factory) -> None:
    path = _build_workbook(xlsx_factory)
    settings = settings_from_mapping(
        {
            "sheet": "People",
            "min_row": 3,
            "header_source": "json_map",
            "json_map": '{"Who": "B", "Years": "C", "Nope": "Z"}',
        }
    )
    df = read_table(path, settings)
    assert df.columns.tolist() == ["Who", "Years"]
    assert df["Who"].tolist() == ["Ann", "Bob"]
    assert df["Years"].tolist() == [Decimal("30"), Decimal("41")]


def test_strict_sheet_lookup(xlsx_factory) -> None:
    path = _build_workbook(xlsx_factory)
    settings = settings_from_mapping({"sheet": "Staff", "strict_sheet": True})
    with open_records(path, settings) as reader:
        with pytest.raises(StructuralError):
            reader.advance()


def test_missing_workbook(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        read_table(tmp_path / "absent.xlsx")
