"""Excel input helpers."""

# Module responsibilities:
# - Open a worksheet as a RecordReader configured from ReaderSettings.
# - Offer one-call reads into typed objects or a pandas DataFrame.
# - Emit structured logs for traceability.

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Type, TypeVar, Union

import pandas as pd

from .config import ReaderSettings
from .errors import TabularError
from .mapping import read_objects
from .record_reader import RecordReader
from .utils.log import get_logger

logger = get_logger("excel_reader")

T = TypeVar("T")


def open_records(path: Union[str, Path], settings: Optional[ReaderSettings] = None) -> RecordReader:
    """Open *path* and return a reader over the configured worksheet window.

    Closing the reader closes the workbook.

    Raises:
        FileNotFoundError: When the Excel file does not exist.
        StructuralError: When the file is not a readable workbook.
    """

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Source workbook not found: {path}")
    settings = settings or ReaderSettings()
    logger.info(
        "Reading Excel workbook",
        extra={"path": str(path), "sheet": settings.sheet, "header_source": settings.header_source.value},
    )
    iterator = settings.iterator_for(path)
    try:
        return settings.reader_for(iterator)
    except TabularError:
        iterator.close()
        raise


def read_objects_from(
    path: Union[str, Path], cls: Type[T], settings: Optional[ReaderSettings] = None
) -> List[T]:
    """Read every record of the configured worksheet as a ``cls`` instance."""

    with open_records(path, settings) as reader:
        try:
            items = list(read_objects(reader, cls))
        except TabularError as exc:
            logger.error(
                "Failed to map worksheet records",
                extra={"path": str(path), "type": cls.__name__, "error": str(exc)},
            )
            raise
    logger.info("Objects loaded", extra={"path": str(path), "type": cls.__name__, "count": len(items)})
    return items


def read_table(path: Union[str, Path], settings: Optional[ReaderSettings] = None) -> pd.DataFrame:
    """Load the configured worksheet window into a DataFrame.

    Returns:
        DataFrame with one column per field, values as decoded from the cells.

    Raises:
        FileNotFoundError: When the Excel file does not exist.
    """

    with open_records(path, settings) as reader:
        df = reader.to_dataframe()
    logger.info(
        "Excel workbook loaded",
        extra={"rows": len(df.index), "columns": df.columns.tolist()},
    )
    return df


__all__ = ["open_records", "read_objects_from", "read_table"]
