"""Cell value decoding for raw worksheet cells."""

# Module responsibilities:
# - Define the CellValue union produced by worksheet reads and the raw cell type tags.
# - Decode (text, type tag, number format) triples into typed Python values.
# - Convert between serial day counts and datetimes for both date systems.

from __future__ import annotations

import math
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import FrozenSet, Optional, Protocol, Union

from openpyxl.utils.datetime import MAC_EPOCH, WINDOWS_EPOCH

from .errors import ConversionError, FormatError, StructuralError

CellValue = Union[None, Decimal, str, datetime, int]

# Built-in number formats that render a serial number as a date or time.
DATE_FORMAT_IDS: FrozenSet[int] = frozenset({14, 15, 16, 17, 18, 19, 20, 21, 22, 45, 46, 47})

_ONE_DAY = timedelta(days=1)


class ValueKind(Enum):
    """Names the case a CellValue currently holds."""

    NULL = "null"
    DECIMAL = "decimal"
    TEXT = "text"
    DATETIME = "datetime"
    BOOLEAN_AS_INT = "boolean_as_int"


class TypeTag(str, Enum):
    """Explicit cell type tags (the ``t`` attribute of a cell)."""

    BOOLEAN = "b"
    ERROR = "e"
    SHARED_STRING = "s"
    STRING = "str"
    INLINE_STRING = "inlineStr"
    NUMBER = "n"
    DATE = "d"


class StringTable(Protocol):
    def __getitem__(self, index: int) -> str: ...

    def __len__(self) -> int: ...


def value_kind(value: CellValue) -> ValueKind:
    """Return the union case held by ``value``."""

    if value is None:
        return ValueKind.NULL
    if isinstance(value, Decimal):
        return ValueKind.DECIMAL
    if isinstance(value, str):
        return ValueKind.TEXT
    if isinstance(value, datetime):
        return ValueKind.DATETIME
    if isinstance(value, int) and not isinstance(value, bool):
        return ValueKind.BOOLEAN_AS_INT
    raise TypeError(f"{type(value).__name__} is not a cell value type")


def _epoch(use_1904: bool) -> datetime:
    return MAC_EPOCH if use_1904 else WINDOWS_EPOCH


def serial_to_datetime(serial: float, use_1904: bool = False) -> datetime:
    """Convert a serial day count to a datetime.

    Day 0 is 1899-12-30 in the default date system; the 1904 system starts
    1462 days later.
    """

    try:
        return _epoch(use_1904) + timedelta(days=serial)
    except (OverflowError, ValueError) as exc:
        raise ConversionError(f"Serial date {serial!r} is out of range") from exc


def datetime_to_serial(value: datetime, use_1904: bool = False) -> float:
    """Inverse of :func:`serial_to_datetime`."""

    if value.tzinfo is not None:
        value = value.replace(tzinfo=None)
    return (value - _epoch(use_1904)) / _ONE_DAY


def _parse_float(text: str) -> Optional[float]:
    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def _parse_decimal(text: str) -> Optional[Decimal]:
    try:
        number = Decimal(text.strip())
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


def _parse_int(text: str, tag: TypeTag) -> int:
    try:
        return int(text.strip())
    except ValueError as exc:
        raise FormatError(f"Cell payload {text!r} is not an integer for type {tag.name}") from exc


def _resolve_untyped(text: str, number_format_id: Optional[int], use_1904: bool) -> CellValue:
    if number_format_id in DATE_FORMAT_IDS:
        serial = _parse_float(text)
        if serial is not None:
            return serial_to_datetime(serial, use_1904)
    number = _parse_decimal(text)
    if number is not None:
        return number
    if not text.strip():
        return None
    return text


def resolve_cell_value(
    text: Optional[str],
    type_tag: Optional[TypeTag],
    number_format_id: Optional[int],
    use_1904: bool,
    shared_strings: StringTable,
) -> CellValue:
    """Decode one raw cell into a typed value.

    Args:
        text: Raw ``<v>`` payload; ``None`` when the cell has no value.
        type_tag: Explicit type tag, ``None`` for untyped numeric-or-text cells.
        number_format_id: Number format of the cell's style, used to detect dates.
        use_1904: Whether the workbook uses the 1904 date system.
        shared_strings: Shared string table indexed by integer.

    Returns:
        ``None``, ``Decimal``, ``str``, ``datetime`` or ``int`` (booleans).

    Raises:
        FormatError: When an integer payload (boolean, shared string index) is malformed.
        StructuralError: When a shared string index is outside the table.
    """

    if text is None:
        return None
    if type_tag is None:
        return _resolve_untyped(text, number_format_id, use_1904)
    if not isinstance(type_tag, TypeTag):
        try:
            type_tag = TypeTag(type_tag)
        except ValueError:
            return None
    if type_tag is TypeTag.BOOLEAN:
        return _parse_int(text, type_tag)
    if type_tag is TypeTag.ERROR:
        return None
    if type_tag is TypeTag.SHARED_STRING:
        index = _parse_int(text, type_tag)
        if index < 0 or index >= len(shared_strings):
            raise StructuralError(f"Shared string index {index} is outside the table")
        return shared_strings[index]
    if type_tag is TypeTag.STRING:
        return text if text.strip() else None
    return None


__all__ = [
    "CellValue",
    "DATE_FORMAT_IDS",
    "ValueKind",
    "TypeTag",
    "StringTable",
    "value_kind",
    "serial_to_datetime",
    "datetime_to_serial",
    "resolve_cell_value",
]
