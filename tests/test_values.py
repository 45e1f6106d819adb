"""Unit tests for raw cell decoding."""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from tabular_io.errors import FormatError, StructuralError
from tabular_io.values import (
    TypeTag,
    ValueKind,
    datetime_to_serial,
    resolve_cell_value,
    serial_to_datetime,
    value_kind,
)

STRINGS = ("alpha", "beta")


def _resolve(text, tag=None, fmt=None, use_1904=False):
    return resolve_cell_value(text, tag, fmt, use_1904, STRINGS)


def test_missing_payload_is_null() -> None:
    assert _resolve(None) is None
    assert _resolve(None, TypeTag.SHARED_STRING) is None


def test_untyped_numbers_become_decimal() -> None:
    assert _resolve("42") == Decimal("42")
    assert _resolve("3.25") == Decimal("3.25")
    assert isinstance(_resolve("1E3"), Decimal)


def test_untyped_text_and_blank() -> None:
    assert _resolve("hello") == "hello"
    assert _resolve("   ") is None
    # Non-finite numbers are not numbers.
    assert _resolve("NaN") == "NaN"


def test_date_format_turns_serial_into_datetime() -> None:
    expected = datetime(1899, 12, 30) + timedelta(days=44958)
    assert _resolve("44958", fmt=14) == expected
    assert expected == datetime(2023, 2, 1)
    assert _resolve("44958", fmt=14, use_1904=True) == expected + timedelta(days=1462)


def test_date_format_keeps_time_of_day() -> None:
    assert _resolve("44958.5", fmt=22) == datetime(2023, 2, 1, 12, 0)


def test_non_date_format_keeps_decimal() -> None:
    assert _resolve("44958", fmt=4) == Decimal("44958")
    assert _resolve("44958", fmt=None) == Decimal("44958")


def test_date_format_with_text_payload_falls_back() -> None:
    assert _resolve("n/a", fmt=14) == "n/a"


def test_boolean_becomes_int() -> None:
    assert _resolve("1", TypeTag.BOOLEAN) == 1
    assert _resolve("0", "b") == 0
    with pytest.raises(FormatError):
        _resolve("yes", TypeTag.BOOLEAN)


def test_error_cells_are_null() -> None:
    assert _resolve("#DIV/0!", TypeTag.ERROR) is None


def test_shared_string_lookup() -> None:
    assert _resolve("1", TypeTag.SHARED_STRING) == "beta"
    with pytest.raises(StructuralError):
        _resolve("5", TypeTag.SHARED_STRING)
    with pytest.raises(FormatError):
        _resolve("x", TypeTag.SHARED_STRING)


def test_string_tag_returns_text() -> None:
    assert _resolve("inline", TypeTag.STRING) == "inline"
    assert _resolve("", TypeTag.STRING) is None


def test_unknown_and_unhandled_tags_are_null() -> None:
    assert _resolve("x", "zz") is None
    assert _resolve("2023-02-01", TypeTag.DATE) is None


def test_serial_round_trip() -> None:
    moment = datetime(2024, 3, 9, 18, 0)
    assert serial_to_datetime(datetime_to_serial(moment)) == moment
    assert serial_to_datetime(datetime_to_serial(moment, use_1904=True), use_1904=True) == moment


def test_value_kind() -> None:
    assert value_kind(None) is ValueKind.NULL
    assert value_kind(Decimal("1")) is ValueKind.DECIMAL
    assert value_kind("a") is ValueKind.TEXT
    assert value_kind(datetime(2020, 1, 1)) is ValueKind.DATETIME
    assert value_kind(1) is ValueKind.BOOLEAN_AS_INT
    with pytest.raises(TypeError):
        value_kind(1.5)
