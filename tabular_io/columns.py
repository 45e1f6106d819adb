"""Spreadsheet column letter helpers."""

# Module responsibilities:
# - Convert between column letters ("A".."XFD") and 1-based indices with Excel bounds.
# - Split cell references such as "B12" into their column and row parts.

from __future__ import annotations

import re
from typing import Tuple

from openpyxl.utils.cell import column_index_from_string, coordinate_from_string, get_column_letter
from openpyxl.utils.exceptions import CellCoordinatesException

from .errors import FormatError, RangeError

MAX_ROW = 1_048_576
MAX_COLUMN = 16_384
MAX_COLUMN_LETTERS = "XFD"

_LETTERS_RE = re.compile(r"^[A-Za-z]+$")


def letter_to_index(letters: str) -> int:
    """Convert a column literal ("A".."XFD", case-insensitive) to its 1-based index.

    Raises:
        FormatError: When the literal is blank or contains anything but letters.
        RangeError: When the literal lies beyond column ``XFD``.
    """

    if not isinstance(letters, str) or not letters.strip():
        raise FormatError(f"Column literal must be a non-empty string: {letters!r}")
    if not _LETTERS_RE.match(letters):
        raise FormatError(f"Column literal must contain only letters: {letters!r}")
    upper = letters.upper()
    if len(upper) > 3 or (len(upper) == 3 and upper > MAX_COLUMN_LETTERS):
        raise RangeError(f"Column {letters} is not a valid Excel column")
    return column_index_from_string(upper)


def index_to_letter(index: int) -> str:
    """Return the column literal for a 1-based column index."""

    if isinstance(index, bool) or not isinstance(index, int):
        raise RangeError(f"Column index must be an integer: {index!r}")
    if index < 1 or index > MAX_COLUMN:
        raise RangeError(f"Column index {index} out of range")
    return get_column_letter(index)


def split_reference(reference: str) -> Tuple[str, int]:
    """Split a cell reference like ``"B12"`` into ``("B", 12)``."""

    try:
        column, row = coordinate_from_string(reference)
    except (CellCoordinatesException, TypeError, ValueError) as exc:
        raise FormatError(f"Address {reference!r} is not a correct Excel cell address") from exc
    return column, row


def column_of(reference: str) -> int:
    """Return the 1-based column index of a cell reference."""

    column, _ = split_reference(reference)
    return letter_to_index(column)


__all__ = [
    "MAX_ROW",
    "MAX_COLUMN",
    "letter_to_index",
    "index_to_letter",
    "split_reference",
    "column_of",
]
