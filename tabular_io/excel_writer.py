"""Whole-sheet Excel output from record readers, objects and DataFrames."""

# Module responsibilities:
# - Encode Python values as styled output cells.
# - Append a header row plus one row per record to a fresh worksheet.
# - Flush the workbook once on close; discard it when the writing block fails.

from __future__ import annotations

import math
import numbers
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Iterable, Optional, Union

import pandas as pd

from .backend import EncodedCell, WorkbookBuilder
from .errors import StructuralError
from .mapping import serialize_many
from .openxml import create_workbook
from .record_reader import RecordReader
from .utils.log import get_logger

logger = get_logger("excel_writer")


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    return bool(pd.api.types.is_scalar(value) and pd.isna(value))


def encode_cell(value: Any) -> EncodedCell:
    """Pick the stored value and style for one output cell.

    Missing values become empty cells, dates use the ``Date`` style, numbers
    the ``Number`` style and anything else is written as text.
    """

    if _is_missing(value):
        return EncodedCell(None)
    if isinstance(value, pd.Timestamp):
        value = value.to_pydatetime()
    if isinstance(value, datetime):
        return EncodedCell(value.replace(tzinfo=None), "Date")
    if isinstance(value, date):
        return EncodedCell(value, "Date")
    if isinstance(value, bool):
        return EncodedCell(str(value))
    if isinstance(value, Decimal):
        return EncodedCell(value, "Number") if value.is_finite() else EncodedCell(str(value))
    if isinstance(value, numbers.Real) and not isinstance(value, numbers.Integral):
        number = float(value)
        return EncodedCell(number, "Number") if math.isfinite(number) else EncodedCell(str(value))
    if isinstance(value, numbers.Integral):
        return EncodedCell(int(value), "Number")
    return EncodedCell(str(value))


class ExcelWriter:
    """Writes one or more sheets and saves the workbook when the block ends.

    Example::

        with ExcelWriter(out_path) as writer:
            writer.write_records("Employees", reader)
    """

    def __init__(self, path: Union[str, Path], builder: Optional[WorkbookBuilder] = None) -> None:
        self.path = Path(path)
        self._builder: Optional[WorkbookBuilder] = builder if builder is not None else create_workbook(self.path)

    def __enter__(self) -> "ExcelWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.close()
            return
        logger.error(
            "Excel write failed, discarding workbook",
            extra={"output": str(self.path), "error": str(exc)},
        )
        self.discard()

    def _require_builder(self) -> WorkbookBuilder:
        if self._builder is None:
            raise StructuralError(f"Writer for {self.path} has already been closed")
        return self._builder

    def write_records(self, sheet_name: str, reader: RecordReader) -> int:
        """Write the field names and every remaining record of *reader* to a new sheet.

        Returns:
            Number of data rows written (the header row excluded).
        """

        sheet = self._require_builder().add_sheet(sheet_name)
        sheet.append_row(EncodedCell(name, "Header") for name in reader.field_map)
        written = 0
        while reader.advance():
            sheet.append_row(encode_cell(value) for value in reader.get_values())
            written += 1
        logger.info(
            "Sheet written",
            extra={"output": str(self.path), "sheet": sheet_name, "rows": written},
        )
        return written

    def write_objects(self, sheet_name: str, objects: Iterable[Any], cls: Optional[type] = None) -> int:
        return self.write_records(sheet_name, serialize_many(objects, cls))

    def write_table(self, sheet_name: str, frame: pd.DataFrame) -> int:
        return self.write_records(sheet_name, RecordReader.from_dataframe(frame))

    def close(self) -> None:
        if self._builder is not None:
            builder, self._builder = self._builder, None
            builder.close()

    def discard(self) -> None:
        if self._builder is not None:
            builder, self._builder = self._builder, None
            builder.discard()


__all__ = ["ExcelWriter", "encode_cell"]
