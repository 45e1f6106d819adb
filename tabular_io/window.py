"""Row/column window bookkeeping for worksheet iteration."""

# Module responsibilities:
# - Hold the mutable window bounds and validate every assignment immediately.
# - Produce the immutable BoundWindow snapshot used by a single iteration pass.

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from .columns import MAX_COLUMN, MAX_ROW, letter_to_index
from .errors import RangeError

ColumnBound = Union[int, str, None]


def _coerce_column(value: ColumnBound) -> Optional[int]:
    if isinstance(value, str):
        return letter_to_index(value)
    return value


def _check(value: Optional[int], limit: int, axis: str) -> int:
    if value is None or value == 0:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise RangeError(f"{value!r} is not a correct Excel {axis}")
    if value < 1 or value > limit:
        raise RangeError(f"{value} is not a correct Excel {axis}")
    return value


class ColumnWindow:
    """Bounds of the rectangle an iterator is restricted to.

    All bounds are 1-based; ``0`` means unbounded on that side. Once both
    bounds of an axis are set, ``min <= max`` must hold, and any assignment
    breaking it raises :class:`RangeError` right away.
    """

    __slots__ = ("_min_row", "_max_row", "_min_col", "_max_col")

    def __init__(
        self,
        min_row: Optional[int] = None,
        max_row: Optional[int] = None,
        min_col: ColumnBound = None,
        max_col: ColumnBound = None,
    ) -> None:
        self._min_row = 0
        self._max_row = 0
        self._min_col = 0
        self._max_col = 0
        self.min_row = min_row
        self.max_row = max_row
        self.min_col = min_col
        self.max_col = max_col

    @property
    def min_row(self) -> int:
        return self._min_row

    @min_row.setter
    def min_row(self, value: Optional[int]) -> None:
        value = _check(value, MAX_ROW, "row")
        if value and self._max_row and value > self._max_row:
            raise RangeError(f"min_row ({value}) cannot be greater than max_row ({self._max_row})")
        self._min_row = value

    @property
    def max_row(self) -> int:
        return self._max_row

    @max_row.setter
    def max_row(self, value: Optional[int]) -> None:
        value = _check(value, MAX_ROW, "row")
        if value and self._min_row and value < self._min_row:
            raise RangeError(f"max_row ({value}) cannot be smaller than min_row ({self._min_row})")
        self._max_row = value

    @property
    def min_col(self) -> int:
        return self._min_col

    @min_col.setter
    def min_col(self, value: ColumnBound) -> None:
        value = _check(_coerce_column(value), MAX_COLUMN, "column")
        if value and self._max_col and value > self._max_col:
            raise RangeError(f"min_col ({value}) cannot be greater than max_col ({self._max_col})")
        self._min_col = value

    @property
    def max_col(self) -> int:
        return self._max_col

    @max_col.setter
    def max_col(self, value: ColumnBound) -> None:
        value = _check(_coerce_column(value), MAX_COLUMN, "column")
        if value and self._min_col and value < self._min_col:
            raise RangeError(f"max_col ({value}) cannot be smaller than min_col ({self._min_col})")
        self._max_col = value

    def __repr__(self) -> str:
        return (
            f"ColumnWindow(min_row={self._min_row}, max_row={self._max_row}, "
            f"min_col={self._min_col}, max_col={self._max_col})"
        )


@dataclass(frozen=True, slots=True)
class BoundWindow:
    """Window resolved against a concrete worksheet for one iteration pass."""

    sheet_name: str
    sheet_id: str
    min_col: int
    max_col: int
    min_row: int = 0
    max_row: int = 0

    @property
    def width(self) -> int:
        return self.max_col - self.min_col + 1

    def contains_row(self, index: int) -> bool:
        if self.min_row and index < self.min_row:
            return False
        if self.max_row and index > self.max_row:
            return False
        return True


__all__ = ["ColumnWindow", "BoundWindow", "ColumnBound"]
