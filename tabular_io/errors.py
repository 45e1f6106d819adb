"""Custom exceptions used across tabular_io."""

# Module responsibilities:
# - Define one exception family so callers can catch every library failure at once.
# - Mix in the matching builtin exception so generic handlers keep working.


class TabularError(Exception):
    """Base error for the package."""


class ConfigurationError(TabularError):
    """A required map, source or setting was not provided or is invalid."""


class RangeError(TabularError, IndexError):
    """A row/column bound or position lies outside the allowed range."""


class FormatError(TabularError, ValueError):
    """Malformed external input: JSON maps, column letters, cell payloads, names."""


class StructuralError(TabularError):
    """The workbook package is missing a required part or worksheet."""


class ConversionError(TabularError, ValueError):
    """A value cannot be coerced to the requested scalar type."""


class FieldLookupError(TabularError, KeyError):
    """Raised when a field name is not present in the field map."""


class ReaderStateError(TabularError):
    """Raised when record values are requested without a current record."""


class MappingConstructionError(TabularError, TypeError):
    """Raised when a target type cannot be instantiated without arguments."""


__all__ = [
    "TabularError",
    "ConfigurationError",
    "RangeError",
    "FormatError",
    "StructuralError",
    "ConversionError",
    "FieldLookupError",
    "ReaderStateError",
    "MappingConstructionError",
]
