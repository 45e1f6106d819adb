"""
RESPONSIBILITIES
- Define the raw row/cell containers a workbook backend hands to the iterator.
- Describe the read-side (WorkbookHandle) and write-side (WorkbookBuilder) contracts.
PROCESS OVERVIEW
1. A backend opens a package and exposes worksheets, shared strings and styles.
2. rows(sheet_id) streams RawRow objects whose cells are still undecoded text.
3. Writers receive EncodedCell values and append them row by row to a sheet.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Optional, Protocol, Sequence, Tuple

from .columns import letter_to_index
from .values import TypeTag


@dataclass(frozen=True, slots=True)
class SheetInfo:
    """A worksheet entry of the workbook: display name plus backend id."""

    name: str
    sheet_id: str


@dataclass(frozen=True, slots=True)
class RawCell:
    """Undecoded cell as stored in the worksheet part."""

    column: str
    text: Optional[str]
    type_tag: Optional[TypeTag] = None
    style_index: Optional[int] = None

    @property
    def column_index(self) -> int:
        return letter_to_index(self.column)


@dataclass(frozen=True, slots=True)
class RawRow:
    """One ``<row>`` element: its 1-based index, cells and declared span."""

    index: int
    cells: Tuple[RawCell, ...]
    spans: Optional[Tuple[int, int]] = None

    @property
    def span_end(self) -> int:
        """Upper bound of the declared span, or the last cell column when undeclared."""

        if self.spans is not None:
            return self.spans[1]
        if not self.cells:
            return 0
        return max(cell.column_index for cell in self.cells)


@dataclass(frozen=True, slots=True)
class EncodedCell:
    """Backend-neutral output cell: the value to store and a named style."""

    value: Any
    style: str = "Default"


class WorkbookHandle(Protocol):
    """Read-side contract a document backend must offer."""

    @property
    def shared_strings(self) -> Sequence[str]:
        """Immutable shared string table."""

    def worksheets(self) -> Sequence[SheetInfo]:
        """Worksheets in workbook order."""

    def rows(self, sheet_id: str) -> Iterator[RawRow]:
        """Stream the rows of a worksheet; each call starts a fresh pass."""

    def shared_string(self, index: int) -> str:
        """Return one entry of the shared string table."""

    def number_format_id(self, style_index: int) -> Optional[int]:
        """Number format id of a cell style, ``None`` when unknown."""

    def is_date1904(self) -> bool:
        """Whether serial dates count from 1904-01-01."""

    def close(self) -> None:
        """Release the underlying package."""


class SheetHandle(Protocol):
    """Write-side worksheet accepting whole rows."""

    title: str

    def append_row(self, cells: Iterable[EncodedCell]) -> None:
        """Append one row of encoded cells after the previous one."""


class WorkbookBuilder(Protocol):
    """Write-side contract: sheets are added, filled and flushed once on close."""

    def add_sheet(self, name: str) -> SheetHandle:
        """Create a new, empty worksheet."""

    def close(self) -> None:
        """Flush the document to storage and release it."""

    def discard(self) -> None:
        """Release the document without writing it."""


__all__ = [
    "SheetInfo",
    "RawCell",
    "RawRow",
    "EncodedCell",
    "WorkbookHandle",
    "SheetHandle",
    "WorkbookBuilder",
]
