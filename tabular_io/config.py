"""Reader settings loaded from YAML and validated with pydantic."""

# Module responsibilities:
# - Describe how a worksheet should be windowed and how its field names are resolved.
# - Load those settings from YAML files and turn validation failures into ConfigurationError.
# - Build configured WorksheetIterator / RecordReader instances.

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError, model_validator

from .errors import ConfigurationError
from .excel_iterator import WorksheetIterator
from .field_map import HeaderSource
from .record_reader import RecordReader
from .utils.log import get_logger

logger = get_logger("config")


class ReaderSettings(BaseModel):
    """Window and header options for reading one worksheet.

    Row and column bounds are range-checked when applied to an iterator,
    not here, so that out-of-range values raise ``RangeError`` like any
    other bound assignment.
    """

    model_config = ConfigDict(extra="forbid")

    sheet: Optional[str] = None
    strict_sheet: bool = False
    min_row: Optional[int] = None
    max_row: Optional[int] = None
    min_col: Optional[Union[int, str]] = None
    max_col: Optional[Union[int, str]] = None
    header_source: HeaderSource = HeaderSource.FIRST_ROW
    json_map: Optional[str] = None
    json_map_path: Optional[Path] = None
    index_map: Optional[Dict[str, int]] = None

    @model_validator(mode="after")
    def _single_json_source(self) -> "ReaderSettings":
        if self.json_map is not None and self.json_map_path is not None:
            raise ValueError("json_map and json_map_path are mutually exclusive")
        return self

    def resolved_json_map(self) -> Optional[str]:
        """Inline JSON map, or the content of ``json_map_path``."""

        if self.json_map is not None or self.json_map_path is None:
            return self.json_map
        try:
            return self.json_map_path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigurationError(f"Cannot read JSON map {self.json_map_path}: {exc}") from exc

    def apply(self, iterator: WorksheetIterator) -> WorksheetIterator:
        iterator.sheet = self.sheet
        iterator.strict_sheet = self.strict_sheet
        # Clear first so the new bounds are not checked against the old ones.
        iterator.min_row = iterator.max_row = None
        iterator.min_col = iterator.max_col = None
        iterator.min_row = self.min_row
        iterator.max_row = self.max_row
        iterator.min_col = self.min_col
        iterator.max_col = self.max_col
        return iterator

    def iterator_for(self, source: Any) -> WorksheetIterator:
        return WorksheetIterator(
            source,
            sheet=self.sheet,
            strict_sheet=self.strict_sheet,
            min_row=self.min_row,
            max_row=self.max_row,
            min_col=self.min_col,
            max_col=self.max_col,
        )

    def reader_for(self, rows: Any) -> RecordReader:
        return RecordReader(
            rows,
            self.header_source,
            json_map=self.resolved_json_map(),
            index_map=self.index_map,
        )


def settings_from_mapping(payload: Mapping[str, Any], base_dir: Optional[Path] = None) -> ReaderSettings:
    """Validate a settings mapping; relative ``json_map_path`` values resolve against *base_dir*."""

    try:
        settings = ReaderSettings.model_validate(dict(payload))
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid reader settings: {exc}") from exc
    if base_dir is not None and settings.json_map_path is not None and not settings.json_map_path.is_absolute():
        settings = settings.model_copy(update={"json_map_path": base_dir / settings.json_map_path})
    return settings


def load_reader_settings(path: Union[str, Path]) -> ReaderSettings:
    """Load :class:`ReaderSettings` from a YAML file.

    Raises:
        ConfigurationError: When the file is missing, is not valid YAML, is not
            a mapping or fails validation.
    """

    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Reader settings file not found: {path}")
    try:
        with path.open("r", encoding="utf-8") as fh:
            payload = yaml.safe_load(fh) or {}
    except yaml.YAMLError as exc:
        logger.error("Failed to parse reader settings", extra={"path": str(path), "error": str(exc)})
        raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ConfigurationError(f"Reader settings in {path} must be a mapping")

    settings = settings_from_mapping(payload, base_dir=path.parent)
    logger.info(
        "Reader settings loaded",
        extra={"path": str(path), "sheet": settings.sheet, "header_source": settings.header_source.value},
    )
    return settings


__all__ = ["ReaderSettings", "settings_from_mapping", "load_reader_settings"]
