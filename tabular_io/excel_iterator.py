"""Windowed, restartable iteration over worksheet rows."""

# Module responsibilities:
# - Resolve the target worksheet and the effective column window on every pass.
# - Materialise fixed-width rows of decoded cell values, one worksheet row at a time.
# - Own (and release) the workbook when constructed from a path.

from __future__ import annotations

import weakref
from pathlib import Path
from typing import Dict, Iterator, Optional, Tuple, Union

from .backend import RawCell, RawRow, SheetInfo, WorkbookHandle
from .errors import StructuralError
from .openxml import open_workbook
from .utils.log import get_logger
from .values import CellValue, StringTable, resolve_cell_value
from .window import BoundWindow, ColumnBound, ColumnWindow

logger = get_logger("excel_iterator")

Row = Tuple[CellValue, ...]


class WorksheetIterator:
    """Iterates a rectangular window of a worksheet as tuples of cell values.

    Every call to ``iter()`` starts from scratch: the worksheet is looked up,
    the column span is rescanned when ``max_col`` is unset and the row filters
    are applied again, so repeated passes yield the same rows.

    Bounds can be changed between passes; invalid values raise
    :class:`~tabular_io.errors.RangeError` at assignment. Worksheet problems
    surface as :class:`~tabular_io.errors.StructuralError` on the first pull.
    """

    def __init__(
        self,
        source: Union[str, Path, WorkbookHandle],
        *,
        sheet: Optional[str] = None,
        min_row: Optional[int] = None,
        max_row: Optional[int] = None,
        min_col: ColumnBound = None,
        max_col: ColumnBound = None,
        strict_sheet: bool = False,
    ) -> None:
        self.window = ColumnWindow(min_row, max_row, min_col, max_col)
        if isinstance(source, (str, Path)):
            self._workbook: Optional[WorkbookHandle] = open_workbook(Path(source))
            self._owns_workbook = True
        else:
            self._workbook = source
            self._owns_workbook = False
        self.sheet = sheet
        self.strict_sheet = strict_sheet
        self._row_index = 0
        self._passes: "weakref.WeakSet[Iterator[Row]]" = weakref.WeakSet()

    def __enter__(self) -> "WorksheetIterator":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # -- window bounds -----------------------------------------------------

    @property
    def min_row(self) -> int:
        return self.window.min_row

    @min_row.setter
    def min_row(self, value: Optional[int]) -> None:
        self.window.min_row = value

    @property
    def max_row(self) -> int:
        return self.window.max_row

    @max_row.setter
    def max_row(self, value: Optional[int]) -> None:
        self.window.max_row = value

    @property
    def min_col(self) -> int:
        return self.window.min_col

    @min_col.setter
    def min_col(self, value: ColumnBound) -> None:
        self.window.min_col = value

    @property
    def max_col(self) -> int:
        return self.window.max_col

    @max_col.setter
    def max_col(self, value: ColumnBound) -> None:
        self.window.max_col = value

    @property
    def column_offset(self) -> int:
        """Worksheet column of the first value in each row."""

        return self.window.min_col or 1

    @property
    def row_index(self) -> int:
        """Worksheet row index of the most recently produced row (0 before any)."""

        return self._row_index

    # -- resolution --------------------------------------------------------

    def _require_workbook(self) -> WorkbookHandle:
        if self._workbook is None:
            raise StructuralError("Worksheet iterator has been closed")
        return self._workbook

    def _resolve_sheet(self, workbook: WorkbookHandle) -> SheetInfo:
        sheets = workbook.worksheets()
        if not sheets:
            raise StructuralError("Workbook does not contain any worksheet")
        if self.sheet is None:
            return sheets[0]
        for info in sheets:
            if info.name == self.sheet:
                return info
        if self.strict_sheet:
            raise StructuralError(f"Worksheet {self.sheet!r} not found")
        logger.warning(
            "Worksheet not found, using first worksheet",
            extra={"requested": self.sheet, "fallback": sheets[0].name},
        )
        return sheets[0]

    def bind(self) -> BoundWindow:
        """Resolve the worksheet and the concrete window for one pass."""

        workbook = self._require_workbook()
        info = self._resolve_sheet(workbook)
        min_col = self.window.min_col or 1
        max_col = self.window.max_col
        if not max_col:
            observed = max((row.span_end for row in workbook.rows(info.sheet_id)), default=0)
            max_col = max(observed, min_col)
        bound = BoundWindow(
            sheet_name=info.name,
            sheet_id=info.sheet_id,
            min_col=min_col,
            max_col=max_col,
            min_row=self.window.min_row,
            max_row=self.window.max_row,
        )
        logger.info(
            "Worksheet window bound",
            extra={
                "sheet": bound.sheet_name,
                "columns": (bound.min_col, bound.max_col),
                "rows": (bound.min_row, bound.max_row),
            },
        )
        return bound

    # -- iteration -----------------------------------------------------------

    def __iter__(self) -> Iterator[Row]:
        rows = self._pass()
        self._passes.add(rows)
        return rows

    def _pass(self) -> Iterator[Row]:
        bound = self.bind()
        workbook = self._require_workbook()
        use_1904 = workbook.is_date1904()
        strings = workbook.shared_strings
        self._row_index = 0
        raw_rows = workbook.rows(bound.sheet_id)
        try:
            for raw in raw_rows:
                if not bound.contains_row(raw.index):
                    continue
                self._row_index = raw.index
                yield self._materialize(raw, bound, workbook, use_1904, strings)
        finally:
            closer = getattr(raw_rows, "close", None)
            if callable(closer):
                closer()

    @staticmethod
    def _materialize(
        raw: RawRow,
        bound: BoundWindow,
        workbook: WorkbookHandle,
        use_1904: bool,
        strings: StringTable,
    ) -> Row:
        by_column: Dict[int, RawCell] = {}
        for cell in raw.cells:
            by_column.setdefault(cell.column_index, cell)

        values = []
        for column in range(bound.min_col, bound.max_col + 1):
            cell = by_column.get(column)
            if cell is None:
                values.append(None)
                continue
            number_format = (
                workbook.number_format_id(cell.style_index) if cell.style_index is not None else None
            )
            values.append(
                resolve_cell_value(cell.text, cell.type_tag, number_format, use_1904, strings)
            )
        return tuple(values)

    def close(self) -> None:
        for rows in list(self._passes):
            rows.close()
        if self._workbook is not None and self._owns_workbook:
            self._workbook.close()
        self._workbook = None


__all__ = ["Row", "WorksheetIterator"]
