"""
RESPONSIBILITIES
- Implement the WorkbookHandle contract directly over an .xlsx package.
- Implement the WorkbookBuilder contract on top of an openpyxl write-only workbook.
PROCESS OVERVIEW
1. open_workbook() opens the zip package and lets openpyxl resolve the package
   relationships, the workbook properties and the stylesheet; the shared string
   table is loaded with openpyxl's string reader.
2. rows() streams <row> elements with iterparse on every call; nothing is cached.
   Open streams are closed together with the workbook.
3. create_workbook() collects rows in memory and saves the document once on close(),
   adding the shared string part openpyxl leaves out.
"""

from __future__ import annotations

import weakref
import zipfile
from io import BytesIO
from pathlib import Path
from typing import IO, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

from openpyxl import Workbook
from openpyxl.cell import WriteOnlyCell
from openpyxl.packaging.manifest import Manifest, Override
from openpyxl.packaging.relationship import Relationship, RelationshipList, get_dependents, get_rels_path
from openpyxl.reader.strings import read_string_table
from openpyxl.reader.workbook import WorkbookParser
from openpyxl.styles import Font
from openpyxl.styles.stylesheet import Stylesheet
from openpyxl.utils.datetime import MAC_EPOCH
from openpyxl.xml.constants import (
    ARC_CONTENT_TYPES,
    ARC_ROOT_RELS,
    ARC_SHARED_STRINGS,
    ARC_STYLE,
    ARC_WORKBOOK,
    REL_NS,
    SHARED_STRINGS,
    SHEET_MAIN_NS,
)
from openpyxl.xml.functions import fromstring, iterparse, tostring

from .backend import EncodedCell, RawCell, RawRow, SheetInfo
from .columns import column_of, index_to_letter
from .errors import FormatError, StructuralError
from .utils.log import get_logger
from .values import TypeTag

logger = get_logger("openxml")

PathOrFile = Union[str, Path, IO[bytes]]

_ROW_TAG = f"{{{SHEET_MAIN_NS}}}row"
_CELL_TAG = f"{{{SHEET_MAIN_NS}}}c"
_VALUE_TAG = f"{{{SHEET_MAIN_NS}}}v"
_INLINE_TAG = f"{{{SHEET_MAIN_NS}}}is"
_TEXT_TAG = f"{{{SHEET_MAIN_NS}}}t"

_OFFICE_DOCUMENT = f"{REL_NS}/officeDocument"
_SHARED_STRINGS_REL = f"{REL_NS}/sharedStrings"
_STYLES_REL = f"{REL_NS}/styles"

_UNTYPED_TAGS = {None, "n"}
_STRING_TAGS = {"str", "inlineStr"}

MAX_SHEET_TITLE = 31


def _parse_spans(raw: Optional[str]) -> Optional[Tuple[int, int]]:
    if not raw:
        return None
    tokens = raw.split()
    try:
        return int(tokens[0].split(":")[0]), int(tokens[-1].split(":")[-1])
    except ValueError:
        return None


def _normalize_tag(raw: Optional[str]) -> Optional[Union[TypeTag, str]]:
    if raw in _UNTYPED_TAGS:
        return None
    if raw in _STRING_TAGS:
        return TypeTag.STRING
    try:
        return TypeTag(raw)
    except ValueError:
        return raw


class OpenXmlWorkbook:
    """Read-only view of an .xlsx package exposing raw rows and lookup tables."""

    def __init__(self, source: PathOrFile) -> None:
        self.source = source
        self._streams: "weakref.WeakSet[Iterator[RawRow]]" = weakref.WeakSet()
        try:
            self._archive: Optional[zipfile.ZipFile] = zipfile.ZipFile(source)
        except zipfile.BadZipFile as exc:
            raise StructuralError(f"Not a spreadsheet package: {source}") from exc
        try:
            self._load()
        except Exception:
            self.close()
            raise
        logger.info(
            "Workbook opened",
            extra={"source": str(source), "sheets": [sheet.name for sheet in self._sheets]},
        )

    def __enter__(self) -> "OpenXmlWorkbook":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # -- loading ---------------------------------------------------------

    def _dependents(self, part: str, names: set[str]) -> RelationshipList:
        rels_part = ARC_ROOT_RELS if part == "" else get_rels_path(part)
        if rels_part not in names:
            return RelationshipList()
        return get_dependents(self._require_archive(), rels_part)

    @staticmethod
    def _target(rels: RelationshipList, rel_type: str, default: str) -> str:
        for rel in rels:
            if rel.Type == rel_type and rel.TargetMode != "External":
                return rel.Target
        return default

    def _load(self) -> None:
        archive = self._require_archive()
        names = set(archive.namelist())
        workbook_part = self._target(self._dependents("", names), _OFFICE_DOCUMENT, ARC_WORKBOOK)
        if workbook_part not in names:
            raise StructuralError("File does not contain a proper workbook part")

        workbook_rels = self._dependents(workbook_part, names)
        shared_part = self._target(workbook_rels, _SHARED_STRINGS_REL, ARC_SHARED_STRINGS)
        if shared_part not in names:
            raise StructuralError("Shared strings part is missing in the file")
        with archive.open(shared_part) as handle:
            self._shared_strings: Tuple[str, ...] = tuple(read_string_table(handle))

        style_part = self._target(workbook_rels, _STYLES_REL, ARC_STYLE)
        try:
            self._number_formats: Tuple[int, ...] = (
                self._read_number_formats(style_part) if style_part in names else ()
            )
            parser = WorkbookParser(archive, workbook_part)
            parser.parse()
            found = list(parser.find_sheets())
        except (KeyError, TypeError, ValueError) as exc:
            raise StructuralError(f"Workbook part {workbook_part} cannot be read: {exc}") from exc

        self._date1904 = parser.wb.epoch == MAC_EPOCH
        self._sheets: List[SheetInfo] = []
        self._sheet_parts: Dict[str, str] = {}
        for sheet, rel in found:
            self._sheets.append(SheetInfo(name=sheet.name, sheet_id=sheet.id))
            self._sheet_parts[sheet.id] = rel.Target

    def _read_number_formats(self, style_part: str) -> Tuple[int, ...]:
        stylesheet = Stylesheet.from_tree(fromstring(self._require_archive().read(style_part)))
        return tuple(style.numFmtId for style in stylesheet.cell_styles)

    def _require_archive(self) -> zipfile.ZipFile:
        if self._archive is None:
            raise StructuralError("Workbook has already been closed")
        return self._archive

    # -- WorkbookHandle --------------------------------------------------

    @property
    def shared_strings(self) -> Sequence[str]:
        return self._shared_strings

    def worksheets(self) -> Sequence[SheetInfo]:
        return tuple(self._sheets)

    def shared_string(self, index: int) -> str:
        return self._shared_strings[index]

    def number_format_id(self, style_index: int) -> Optional[int]:
        if 0 <= style_index < len(self._number_formats):
            return self._number_formats[style_index]
        return None

    def is_date1904(self) -> bool:
        return self._date1904

    def rows(self, sheet_id: str) -> Iterator[RawRow]:
        part = self._sheet_parts.get(sheet_id)
        if part is None:
            raise StructuralError(f"Worksheet {sheet_id!r} is not part of the workbook")
        archive = self._require_archive()
        if part not in archive.namelist():
            raise StructuralError(f"Worksheet part {part} is missing in the file")
        stream = self._stream_rows(archive, part)
        self._streams.add(stream)
        return stream

    def _stream_rows(self, archive: zipfile.ZipFile, part: str) -> Iterator[RawRow]:
        previous = 0
        with archive.open(part) as handle:
            for _, element in iterparse(handle):
                if element.tag != _ROW_TAG:
                    continue
                row = self._parse_row(element, previous + 1)
                previous = row.index
                element.clear()
                yield row

    @staticmethod
    def _parse_row(element, default_index: int) -> RawRow:
        raw_index = element.get("r")
        index = int(raw_index) if raw_index else default_index
        cells: List[RawCell] = []
        column = 0
        for node in element.iter(_CELL_TAG):
            reference = node.get("r")
            if reference:
                column = column_of(reference)
            else:
                column += 1
            tag = node.get("t")
            if tag == "inlineStr":
                inline = node.find(_INLINE_TAG)
                text = (
                    "".join(part.text or "" for part in inline.iter(_TEXT_TAG))
                    if inline is not None
                    else None
                )
            else:
                value = node.find(_VALUE_TAG)
                text = value.text if value is not None else None
            style = node.get("s")
            cells.append(
                RawCell(
                    column=index_to_letter(column),
                    text=text,
                    type_tag=_normalize_tag(tag),
                    style_index=int(style) if style else None,
                )
            )
        return RawRow(index=index, cells=tuple(cells), spans=_parse_spans(element.get("spans")))

    def close(self) -> None:
        for stream in list(self._streams):
            stream.close()
        if self._archive is not None:
            self._archive.close()
            self._archive = None
            logger.info("Workbook closed", extra={"source": str(self.source)})


def open_workbook(source: PathOrFile) -> OpenXmlWorkbook:
    """Open an .xlsx package for raw row access.

    Raises:
        FileNotFoundError: When a path is given and the file does not exist.
        StructuralError: When the package lacks a workbook or shared string part.
    """

    if isinstance(source, (str, Path)) and not Path(source).exists():
        raise FileNotFoundError(f"Source workbook not found: {source}")
    return OpenXmlWorkbook(source)


# -- writing -------------------------------------------------------------

_EMPTY_SHARED_STRINGS = f'<sst xmlns="{SHEET_MAIN_NS}" count="0" uniqueCount="0"/>'


def _next_rel_id(rels: RelationshipList) -> str:
    taken = {rel.Id for rel in rels}
    number = len(taken) + 1
    while f"rId{number}" in taken:
        number += 1
    return f"rId{number}"


def _write_package(buffer: BytesIO, path: Path) -> None:
    """Copy a saved package to *path*, registering an empty shared string part.

    openpyxl stores text inline and omits the shared string part, which
    :func:`open_workbook` requires.
    """

    with zipfile.ZipFile(buffer) as archive:
        parts = {name: archive.read(name) for name in archive.namelist()}

    if ARC_SHARED_STRINGS not in parts:
        rels_part = get_rels_path(ARC_WORKBOOK)
        rels = RelationshipList.from_tree(fromstring(parts[rels_part]))
        rels.append(Relationship(Id=_next_rel_id(rels), type="sharedStrings", Target="sharedStrings.xml"))
        parts[rels_part] = tostring(rels.to_tree())

        manifest = Manifest.from_tree(fromstring(parts[ARC_CONTENT_TYPES]))
        shared = Override(PartName=f"/{ARC_SHARED_STRINGS}", ContentType=SHARED_STRINGS)
        manifest.Override = list(manifest.Override) + [shared]
        parts[ARC_CONTENT_TYPES] = tostring(manifest.to_tree())

        parts[ARC_SHARED_STRINGS] = _EMPTY_SHARED_STRINGS.encode("utf-8")

    with zipfile.ZipFile(path, "w", zipfile.ZIP_DEFLATED) as archive:
        for name, data in parts.items():
            archive.writestr(name, data)


_FONT_NAME = "Arial Narrow"

STYLES: Dict[str, Tuple[Font, str]] = {
    "Default": (Font(name=_FONT_NAME, size=12), "General"),
    "Header": (Font(name=_FONT_NAME, size=12, bold=True), "General"),
    # Built-in format 15 keeps the value recognisable as a date when read back.
    "Date": (Font(name=_FONT_NAME, size=12), "d-mmm-yy"),
    "Number": (Font(name="Consolas", size=12), "#,##0.00"),
}


class OpenXmlSheet:
    """Append-only worksheet inside an :class:`OpenXmlWorkbookBuilder`."""

    def __init__(self, worksheet) -> None:
        self._worksheet = worksheet
        self.rows_written = 0

    @property
    def title(self) -> str:
        return self._worksheet.title

    def append_row(self, cells: Iterable[EncodedCell]) -> None:
        row = []
        for cell in cells:
            font, number_format = STYLES.get(cell.style, STYLES["Default"])
            styled = WriteOnlyCell(self._worksheet, value=cell.value)
            styled.font = font
            styled.number_format = number_format
            row.append(styled)
        self._worksheet.append(row)
        self.rows_written += 1


class OpenXmlWorkbookBuilder:
    """Accumulates sheets in a write-only openpyxl workbook and saves once."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        self._workbook: Optional[Workbook] = Workbook(write_only=True)
        self._sheets: Dict[str, OpenXmlSheet] = {}

    def __enter__(self) -> "OpenXmlWorkbookBuilder":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.close()
        else:
            self.discard()

    def add_sheet(self, name: str) -> OpenXmlSheet:
        workbook = self._require_workbook()
        if not name or not name.strip():
            raise FormatError("Sheet name must not be blank")
        if len(name) > MAX_SHEET_TITLE:
            raise FormatError(f"Sheet name {name!r} exceeds {MAX_SHEET_TITLE} characters")
        if name.lower() in {existing.lower() for existing in self._sheets}:
            raise FormatError(f"Sheet {name!r} already exists")
        try:
            worksheet = workbook.create_sheet(title=name)
        except ValueError as exc:
            raise FormatError(f"Invalid sheet name {name!r}: {exc}") from exc
        sheet = OpenXmlSheet(worksheet)
        self._sheets[name] = sheet
        return sheet

    def _require_workbook(self) -> Workbook:
        if self._workbook is None:
            raise StructuralError(f"Workbook {self.path} has already been closed")
        return self._workbook

    def close(self) -> None:
        if self._workbook is None:
            return
        workbook = self._workbook
        self._workbook = None
        if not self._sheets:
            workbook.create_sheet(title="Sheet1")
        buffer = BytesIO()
        try:
            workbook.save(buffer)
        finally:
            workbook.close()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        _write_package(buffer, self.path)
        logger.info(
            "Workbook saved",
            extra={
                "output": str(self.path),
                "sheets": {name: sheet.rows_written for name, sheet in self._sheets.items()},
            },
        )

    def discard(self) -> None:
        if self._workbook is not None:
            self._workbook.close()
            self._workbook = None
            logger.info("Workbook discarded", extra={"output": str(self.path)})


def create_workbook(path: Union[str, Path]) -> OpenXmlWorkbookBuilder:
    """Create an in-memory workbook that is written to *path* on close()."""

    return OpenXmlWorkbookBuilder(path)


__all__ = [
    "OpenXmlWorkbook",
    "OpenXmlSheet",
    "OpenXmlWorkbookBuilder",
    "STYLES",
    "open_workbook",
    "create_workbook",
]
