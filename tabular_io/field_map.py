"""Field name to row position maps and the strategies that build them."""

# Module responsibilities:
# - Provide the immutable FieldMap shared by readers, records and the object mapper.
# - Build FieldMaps from a header row, from column letters and from external maps.

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional, Sequence, Tuple, Union

from .columns import index_to_letter, letter_to_index
from .errors import FieldLookupError, FormatError, RangeError


class HeaderSource(str, Enum):
    """Where a reader takes its field names from."""

    FIRST_ROW = "first_row"
    COLUMN_LETTERS = "column_letters"
    JSON_MAP = "json_map"
    INDEX_MAP = "index_map"


class FieldMap(Mapping[str, int]):
    """Ordered, read-only mapping of field name to zero-based row position."""

    __slots__ = ("_positions", "_names")

    def __init__(self, positions: Union[Mapping[str, int], Iterable[Tuple[str, int]]] = ()) -> None:
        items = positions.items() if isinstance(positions, Mapping) else positions
        built: Dict[str, int] = {}
        for name, position in items:
            if not isinstance(name, str):
                raise FormatError(f"Field name {name!r} must be a string")
            if isinstance(position, bool) or not isinstance(position, int) or position < 0:
                raise FormatError(f"Position of field {name!r} must be a non-negative integer")
            if name in built:
                raise FormatError(f"Duplicate field name {name!r}")
            built[name] = position
        self._positions = built
        self._names = tuple(built)

    def __getitem__(self, name: str) -> int:
        return self.index_of(name)

    def __iter__(self) -> Iterator[str]:
        return iter(self._names)

    def __len__(self) -> int:
        return len(self._names)

    def __repr__(self) -> str:
        return f"FieldMap({self._positions!r})"

    def index_of(self, name: str) -> int:
        try:
            return self._positions[name]
        except KeyError:
            raise FieldLookupError(name) from None

    def name_at(self, ordinal: int) -> str:
        """Return the field name at *ordinal* in map order."""

        if isinstance(ordinal, bool) or not 0 <= ordinal < len(self._names):
            raise RangeError(f"Field ordinal {ordinal} is outside 0..{len(self._names) - 1}")
        return self._names[ordinal]


def header_from_row(row: Sequence[Any]) -> FieldMap:
    """Use a header row as field names; blank cells get ``NoName<i>`` names."""

    width = len(str(len(row)))
    names = []
    for position, value in enumerate(row):
        names.append((f"NoName{position:0{width}d}" if value is None else str(value), position))
    return FieldMap(names)


def column_letter_map(width: int, column_offset: int = 1) -> FieldMap:
    """Name each position after its worksheet column letter."""

    return FieldMap((index_to_letter(position + column_offset), position) for position in range(width))


def field_map_from_json(text: str, field_count: int, column_offset: int = 1) -> FieldMap:
    """Build a FieldMap from a JSON object of field name to column letter.

    Letters are stored as zero-based row positions relative to the window, so
    with the default ``column_offset`` of 1 ``"A"`` maps to position 0 rather
    than to the raw column number 1. Values that are not valid column letters
    are dropped, and so are columns falling outside the ``field_count``
    positions starting at ``column_offset``.

    Raises:
        FormatError: When *text* is not a JSON object.
    """

    try:
        payload = json.loads(text)
    except (TypeError, json.JSONDecodeError) as exc:
        raise FormatError(f"Invalid JSON field map: {exc}") from exc
    if not isinstance(payload, dict):
        raise FormatError("JSON field map must be an object of name to column letter")

    positions = []
    for name, letter in payload.items():
        if not isinstance(letter, str):
            continue
        try:
            position = letter_to_index(letter) - column_offset
        except (FormatError, RangeError):
            continue
        if 0 <= position < field_count:
            positions.append((name, position))
    return FieldMap(positions)


def field_map_from_index(mapping: Optional[Mapping[str, int]]) -> FieldMap:
    if mapping is None:
        return FieldMap()
    if isinstance(mapping, FieldMap):
        return mapping
    return FieldMap(mapping)


__all__ = [
    "HeaderSource",
    "FieldMap",
    "header_from_row",
    "column_letter_map",
    "field_map_from_json",
    "field_map_from_index",
]
