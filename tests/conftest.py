from __future__ import annotations

import faulthandler
import os
import sys
import zipfile
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

faulthandler.enable()  # Ensure crashes emit tracebacks.

from tabular_io.backend import RawCell, RawRow, SheetInfo
from tabular_io.values import TypeTag

MAIN_NS = "http://schemas.openxmlformats.org/spreadsheetml/2006/main"
DOC_REL_NS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
PKG_REL_NS = "http://schemas.openxmlformats.org/package/2006/relationships"

CellSpec = Union[str, None, Tuple[Optional[str], Optional[str], Optional[int]]]


class FakeWorkbook:
    """In-memory WorkbookHandle; counts row passes and close calls."""

    def __init__(
        self,
        sheets: Mapping[str, Sequence[RawRow]],
        shared_strings: Sequence[str] = (),
        number_formats: Sequence[int] = (),
        date1904: bool = False,
    ) -> None:
        self._infos = tuple(
            SheetInfo(name=name, sheet_id=f"rId{position}") for position, name in enumerate(sheets, start=1)
        )
        self._rows: Dict[str, List[RawRow]] = {
            info.sheet_id: list(rows) for info, rows in zip(self._infos, sheets.values())
        }
        self._shared_strings = tuple(shared_strings)
        self._number_formats = tuple(number_formats)
        self._date1904 = date1904
        self.passes = 0
        self.close_calls = 0

    @property
    def shared_strings(self) -> Sequence[str]:
        return self._shared_strings

    def worksheets(self) -> Sequence[SheetInfo]:
        return self._infos

    def rows(self, sheet_id: str) -> Iterator[RawRow]:
        self.passes += 1
        return iter(self._rows[sheet_id])

    def shared_string(self, index: int) -> str:
        return self._shared_strings[index]

    def number_format_id(self, style_index: int) -> Optional[int]:
        if 0 <= style_index < len(self._number_formats):
            return self._number_formats[style_index]
        return None

    def is_date1904(self) -> bool:
        return self._date1904

    def close(self) -> None:
        self.close_calls += 1


def make_row(index: int, cells: Mapping[str, CellSpec], spans: Optional[Tuple[int, int]] = None) -> RawRow:
    """Build a RawRow from ``{"A": "text"}`` or ``{"A": (text, tag, style)}`` specs."""

    raw_cells = []
    for column, spec in cells.items():
        if isinstance(spec, tuple):
            text, tag, style = spec
            raw_cells.append(
                RawCell(column=column, text=text, type_tag=TypeTag(tag) if tag else None, style_index=style)
            )
        else:
            raw_cells.append(RawCell(column=column, text=spec))
    return RawRow(index=index, cells=tuple(raw_cells), spans=spans)


@pytest.fixture
def fake_workbook() -> Callable[..., FakeWorkbook]:
    return FakeWorkbook


@pytest.fixture
def raw_row() -> Callable[..., RawRow]:
    return make_row


def _escape(text: str) -> str:
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def build_xlsx(
    path: Path,
    sheets: Mapping[str, str],
    shared_strings: Sequence[str] = (),
    number_formats: Sequence[int] = (0,),
    date1904: bool = False,
    include_shared_strings: bool = True,
) -> Path:
    """Write a minimal .xlsx package; *sheets* maps names to ``<sheetData>`` inner XML."""

    sheet_entries = []
    sheet_rels = []
    parts: Dict[str, str] = {}
    for position, (name, body) in enumerate(sheets.items(), start=1):
        sheet_entries.append(f'<sheet name="{_escape(name)}" sheetId="{position}" r:id="rId{position}"/>')
        sheet_rels.append(
            f'<Relationship Id="rId{position}" Type="{DOC_REL_NS}/worksheet" '
            f'Target="worksheets/sheet{position}.xml"/>'
        )
        parts[f"xl/worksheets/sheet{position}.xml"] = (
            f'<worksheet xmlns="{MAIN_NS}"><sheetData>{body}</sheetData></worksheet>'
        )

    extra = len(sheets)
    sheet_rels.append(f'<Relationship Id="rId{extra + 1}" Type="{DOC_REL_NS}/styles" Target="styles.xml"/>')
    if include_shared_strings:
        sheet_rels.append(
            f'<Relationship Id="rId{extra + 2}" Type="{DOC_REL_NS}/sharedStrings" Target="sharedStrings.xml"/>'
        )
        items = "".join(f"<si><t>{_escape(text)}</t></si>" for text in shared_strings)
        parts["xl/sharedStrings.xml"] = (
            f'<sst xmlns="{MAIN_NS}" count="{len(shared_strings)}" '
            f'uniqueCount="{len(shared_strings)}">{items}</sst>'
        )

    xfs = "".join(f'<xf numFmtId="{fmt}" fontId="0" fillId="0" borderId="0" xfId="0"/>' for fmt in number_formats)
    parts["xl/styles.xml"] = (
        f'<styleSheet xmlns="{MAIN_NS}"><cellXfs count="{len(number_formats)}">{xfs}</cellXfs></styleSheet>'
    )

    workbook_pr = '<workbookPr date1904="1"/>' if date1904 else "<workbookPr/>"
    parts["xl/workbook.xml"] = (
        f'<workbook xmlns="{MAIN_NS}" xmlns:r="{DOC_REL_NS}">{workbook_pr}'
        f'<sheets>{"".join(sheet_entries)}</sheets></workbook>'
    )
    parts["xl/_rels/workbook.xml.rels"] = (
        f'<Relationships xmlns="{PKG_REL_NS}">{"".join(sheet_rels)}</Relationships>'
    )
    parts["_rels/.rels"] = (
        f'<Relationships xmlns="{PKG_REL_NS}"><Relationship Id="rId1" '
        f'Type="{DOC_REL_NS}/officeDocument" Target="xl/workbook.xml"/></Relationships>'
    )

    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as archive:
        for name, content in parts.items():
            archive.writestr(name, '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>' + content)
    return path


@pytest.fixture
def xlsx_factory(tmp_path: Path) -> Callable[..., Path]:
    def _factory(sheets: Mapping[str, str], name: str = "book.xlsx", **options) -> Path:
        return build_xlsx(tmp_path / name, sheets, **options)

    return _factory


PROC_FDS = Path("/proc/self/fd")


def count_open_handles(path: Path) -> int:
    """Number of this process's file descriptors that point at *path*."""

    target = str(path.resolve())
    count = 0
    for entry in PROC_FDS.iterdir():
        try:
            if os.readlink(entry) == target:
                count += 1
        except OSError:
            continue
    return count


@pytest.fixture
def open_handles() -> Callable[[Path], int]:
    if not PROC_FDS.is_dir():
        pytest.skip("file descriptor listing requires /proc")
    return count_open_handles
