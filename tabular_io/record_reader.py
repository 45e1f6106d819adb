"""
RESPONSIBILITIES
- Expose any positional row source as a forward-only cursor of named records.
- Resolve the field map once, using one of the four header strategies.
- Offer typed getters, immutable record snapshots and DataFrame export.
PROCESS OVERVIEW
1. The first advance() (or first field map access) peeks the first upstream row.
2. FIRST_ROW consumes that row as the header; the other strategies keep it as data.
3. Every advance() pulls one more row; values are read by position or by field name.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Protocol, Sequence, Tuple, Union

import pandas as pd

from . import convert
from .errors import ConfigurationError, FormatError, RangeError, ReaderStateError
from .field_map import (
    FieldMap,
    HeaderSource,
    column_letter_map,
    field_map_from_index,
    field_map_from_json,
    header_from_row,
)
from .utils.log import get_logger

logger = get_logger("record_reader")

Key = Union[int, str]
Row = Tuple[Any, ...]


class DataRecord(Protocol):
    """Read-only view of one record, as consumed by the object mapper."""

    @property
    def field_map(self) -> FieldMap: ...

    def value_by_index(self, index: int) -> Any: ...

    def is_null(self, index: int) -> bool: ...


class _RecordAccess:
    """Value accessors shared by the live reader and record snapshots."""

    @property
    def field_map(self) -> FieldMap:
        raise NotImplementedError

    def _current_row(self) -> Row:
        raise NotImplementedError

    @property
    def field_count(self) -> int:
        return len(self.field_map)

    def field_name(self, ordinal: int) -> str:
        return self.field_map.name_at(ordinal)

    def field_index(self, name: str) -> int:
        return self.field_map.index_of(name)

    def value_by_index(self, index: int) -> Any:
        row = self._current_row()
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(row):
            raise RangeError(f"Position {index!r} is outside the current row of {len(row)} values")
        return row[index]

    def value_by_name(self, name: str) -> Any:
        return self.value_by_index(self.field_index(name))

    def is_null(self, index: int) -> bool:
        return self.value_by_index(index) is None

    def __getitem__(self, key: Key) -> Any:
        if isinstance(key, str):
            return self.value_by_name(key)
        return self.value_by_index(key)

    def get_values(self) -> tuple:
        """Values of the current record in field map order."""

        return tuple(self.value_by_index(position) for position in self.field_map.values())

    def as_dict(self) -> Dict[str, Any]:
        return {name: self.value_by_index(position) for name, position in self.field_map.items()}

    def get_decimal(self, key: Key) -> Decimal:
        return convert.to_decimal(self[key])

    def get_datetime(self, key: Key, use_1904: bool = False) -> datetime:
        return convert.to_datetime(self[key], use_1904)

    def get_int16(self, key: Key) -> int:
        return convert.to_int(self[key], 16)

    def get_int32(self, key: Key) -> int:
        return convert.to_int(self[key], 32)

    def get_int64(self, key: Key) -> int:
        return convert.to_int(self[key], 64)

    def get_float(self, key: Key) -> float:
        return convert.to_float(self[key], single=True)

    def get_double(self, key: Key) -> float:
        return convert.to_float(self[key])

    def get_string(self, key: Key) -> str:
        return convert.to_text(self[key])


@dataclass(frozen=True)
class Record(_RecordAccess):
    """Snapshot of one record; stays valid after the reader moves on."""

    fields: FieldMap
    row: Row

    @property
    def field_map(self) -> FieldMap:
        return self.fields

    def _current_row(self) -> Row:
        return self.row


class RecordReader(_RecordAccess):
    """Forward-only cursor over rows addressed by field name or row position.

    Args:
        rows: Any iterable of positional rows, typically a
            :class:`~tabular_io.excel_iterator.WorksheetIterator`. Its shape
            must not change while the reader is in use.
        header_source: Strategy used to resolve field names.
        json_map: JSON object of field name to column letter (``JSON_MAP``).
        index_map: Mapping of field name to row position (``INDEX_MAP``).
    """

    def __init__(
        self,
        rows: Iterable[Sequence[Any]],
        header_source: Union[HeaderSource, str] = HeaderSource.FIRST_ROW,
        *,
        json_map: Optional[str] = None,
        index_map: Optional[Mapping[str, int]] = None,
    ) -> None:
        self._source = rows
        try:
            self.header_source = HeaderSource(header_source)
        except ValueError as exc:
            raise ConfigurationError(f"Unknown header source: {header_source!r}") from exc
        self.json_map = json_map
        self.index_map = index_map
        self._field_map: Optional[FieldMap] = None
        self._upstream: Optional[Iterator[Sequence[Any]]] = None
        self._rows: Optional[Iterator[Sequence[Any]]] = None
        self._current: Optional[Row] = None
        self._records_read = 0
        self._closed = False

    # -- alternative sources -------------------------------------------------

    @classmethod
    def from_dicts(cls, records: Iterable[Mapping[str, Any]]) -> "RecordReader":
        """Read name-keyed records; the first record's key order defines the fields."""

        materialized = list(records)
        if not materialized:
            return cls([], HeaderSource.INDEX_MAP, index_map={})
        names = list(materialized[0].keys())
        rows = [tuple(record.get(name) for name in names) for record in materialized]
        return cls(rows, HeaderSource.INDEX_MAP, index_map={name: i for i, name in enumerate(names)})

    @classmethod
    def from_dataframe(cls, frame: pd.DataFrame) -> "RecordReader":
        """Read the rows of a DataFrame; missing values become ``None``."""

        names = [str(column) for column in frame.columns]
        if len(set(names)) != len(names):
            raise FormatError(f"DataFrame has duplicate column names: {names}")
        rows = [
            tuple(_unbox(value) for value in values)
            for values in frame.itertuples(index=False, name=None)
        ]
        return cls(rows, HeaderSource.INDEX_MAP, index_map={name: i for i, name in enumerate(names)})

    # -- lifecycle -----------------------------------------------------------

    def __enter__(self) -> "RecordReader":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._current = None
        for resource in (self._upstream, self._source):
            closer = getattr(resource, "close", None)
            if callable(closer):
                closer()
        self._rows = self._upstream = None
        logger.info("Reader closed", extra={"records_read": self.records_read})

    # -- field map -------------------------------------------------------------

    @property
    def field_map(self) -> FieldMap:
        if self._field_map is None:
            self._resolve()
        return self._field_map

    def _resolve(self) -> None:
        source = self.header_source
        if source is HeaderSource.JSON_MAP and self.json_map is None:
            raise ConfigurationError("header_source json_map requires json_map to be set")
        if source is HeaderSource.INDEX_MAP and self.index_map is None:
            raise ConfigurationError("header_source index_map requires index_map to be set")

        upstream = self._upstream = iter(self._source)
        first = next(upstream, None)
        width = len(first) if first is not None else 0
        offset = getattr(self._source, "column_offset", 1)

        if source is HeaderSource.FIRST_ROW:
            field_map = header_from_row(first) if first is not None else FieldMap()
            self._rows = upstream
        else:
            if source is HeaderSource.COLUMN_LETTERS:
                field_map = column_letter_map(width, offset)
            elif source is HeaderSource.JSON_MAP:
                field_map = field_map_from_json(self.json_map, width, offset)
            else:
                field_map = field_map_from_index(self.index_map)
            self._rows = upstream if first is None else itertools.chain([first], upstream)

        self._field_map = field_map
        logger.info(
            "Field map resolved",
            extra={"header_source": source.value, "fields": list(field_map), "width": width},
        )

    # -- cursor ----------------------------------------------------------------

    def advance(self) -> bool:
        """Move to the next record; ``False`` once the source is exhausted."""

        if self._closed:
            raise ReaderStateError("Reader has been closed")
        if self._field_map is None:
            self._resolve()
        row = next(self._rows, None)
        if row is None:
            self._current = None
            return False
        self._current = tuple(row)
        self._records_read += 1
        return True

    @property
    def current(self) -> Optional[Row]:
        return self._current

    @property
    def records_read(self) -> int:
        return self._records_read

    def _current_row(self) -> Row:
        if self._current is None:
            raise ReaderStateError("No current record; call advance() first")
        return self._current

    def snapshot(self) -> Record:
        return Record(self.field_map, self._current_row())

    def records(self) -> Iterator[Record]:
        while self.advance():
            yield Record(self.field_map, self._current)

    def __iter__(self) -> Iterator[Record]:
        return self.records()

    def to_dataframe(self) -> pd.DataFrame:
        """Collect the remaining records into a DataFrame with one column per field."""

        columns = list(self.field_map)
        data: List[tuple] = [record.get_values() for record in self.records()]
        return pd.DataFrame.from_records(data, columns=columns)


def _unbox(value: Any) -> Any:
    if value is None:
        return None
    if pd.api.types.is_scalar(value) and pd.isna(value):
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if hasattr(value, "item") and not isinstance(value, (str, bytes, Decimal)):
        return value.item()
    return value


__all__ = ["DataRecord", "Record", "RecordReader"]
