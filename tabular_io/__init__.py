"""`tabular_io` reads worksheets and in-memory tables as named records and maps them to objects."""

# Module responsibilities:
# - Re-export the reader, writer and mapping interfaces so consumers have a stable API surface.
# - Provide the package version.

from __future__ import annotations

from .config import ReaderSettings, load_reader_settings
from .errors import (
    ConfigurationError,
    ConversionError,
    FieldLookupError,
    FormatError,
    MappingConstructionError,
    RangeError,
    ReaderStateError,
    StructuralError,
    TabularError,
)
from .excel_iterator import WorksheetIterator
from .excel_reader import open_records, read_objects_from, read_table
from .excel_writer import ExcelWriter, encode_cell
from .field_map import FieldMap, HeaderSource, field_map_from_json
from .mapping import deserialize, read_objects, serialize, serialize_to_dict
from .openxml import create_workbook, open_workbook
from .record_reader import Record, RecordReader
from .schema import Double, Int16, Int32, Int64, Single, property_map, schema_for
from .values import CellValue, resolve_cell_value

__all__ = [
    "ReaderSettings",
    "load_reader_settings",
    "TabularError",
    "ConfigurationError",
    "RangeError",
    "FormatError",
    "StructuralError",
    "ConversionError",
    "FieldLookupError",
    "ReaderStateError",
    "MappingConstructionError",
    "WorksheetIterator",
    "open_records",
    "read_objects_from",
    "read_table",
    "ExcelWriter",
    "encode_cell",
    "FieldMap",
    "HeaderSource",
    "field_map_from_json",
    "deserialize",
    "read_objects",
    "serialize",
    "serialize_to_dict",
    "open_workbook",
    "create_workbook",
    "Record",
    "RecordReader",
    "Int16",
    "Int32",
    "Int64",
    "Single",
    "Double",
    "property_map",
    "schema_for",
    "CellValue",
    "resolve_cell_value",
]

__version__ = "0.1.0"
