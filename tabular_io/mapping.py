"""Map records to typed objects and objects back to rows."""

# Module responsibilities:
# - Populate new instances of a type from a record, property by property, via its schema.
# - Serialise instances to positional tuples or column-keyed dicts in schema order.

from __future__ import annotations

import dataclasses
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Type, TypeVar

from . import convert
from .errors import MappingConstructionError
from .field_map import HeaderSource
from .record_reader import DataRecord, RecordReader
from .schema import ScalarKind, property_map, schema_for

T = TypeVar("T")

_CONVERTERS: Dict[ScalarKind, Callable[[Any], Any]] = {
    ScalarKind.INT16: lambda value: convert.to_int(value, 16),
    ScalarKind.INT32: lambda value: convert.to_int(value, 32),
    ScalarKind.INT64: lambda value: convert.to_int(value, 64),
    ScalarKind.SINGLE: lambda value: convert.to_float(value, single=True),
    ScalarKind.DOUBLE: convert.to_float,
    ScalarKind.DECIMAL: convert.to_decimal,
    ScalarKind.TEXT: convert.to_text,
    ScalarKind.DATETIME: convert.to_datetime,
}


def convert_scalar(value: Any, kind: ScalarKind) -> Any:
    return _CONVERTERS[kind](value)


def deserialize(record: DataRecord, cls: Type[T], field_map: Optional[Mapping[str, int]] = None) -> T:
    """Create a ``cls`` instance and fill it from the current values of *record*.

    Only writable properties whose column appears in the field map are
    assigned; null cells assign ``None`` and every other property keeps its
    default. *field_map* overrides the record's own map.

    Raises:
        MappingConstructionError: When ``cls()`` cannot be called without arguments.
        ConversionError: When a value cannot be converted to the property type.
    """

    schema = schema_for(cls)
    try:
        instance = cls()
    except TypeError as exc:
        raise MappingConstructionError(
            f"{cls.__name__} must be constructible without arguments"
        ) from exc

    positions = field_map if field_map is not None else record.field_map
    values: Dict[str, Any] = {}
    for prop in schema.writable():
        if prop.column not in positions:
            continue
        index = positions[prop.column]
        if record.is_null(index):
            values[prop.name] = None
        else:
            values[prop.name] = convert_scalar(record.value_by_index(index), prop.kind)

    if schema.frozen:
        return dataclasses.replace(instance, **values)
    for name, value in values.items():
        setattr(instance, name, value)
    return instance


def read_objects(reader: RecordReader, cls: Type[T]) -> Iterator[T]:
    """Advance *reader* to the end, yielding one ``cls`` instance per record."""

    schema_for(cls)
    while reader.advance():
        yield deserialize(reader, cls)


def serialize(obj: Any) -> tuple:
    """Readable property values of *obj*, ordered by :func:`property_map` slot."""

    return tuple(getattr(obj, prop.name) for prop in schema_for(type(obj)).readable())


def serialize_to_dict(obj: Any) -> Dict[str, Any]:
    return {prop.column: getattr(obj, prop.name) for prop in schema_for(type(obj)).readable()}


def serialize_many(objects: Iterable[Any], cls: Optional[type] = None) -> RecordReader:
    """Wrap objects in an ``INDEX_MAP`` reader keyed by their property map."""

    items: List[Any] = list(objects)
    if cls is None:
        if not items:
            return RecordReader.from_dicts([])
        cls = type(items[0])
    return RecordReader(
        [serialize(item) for item in items],
        HeaderSource.INDEX_MAP,
        index_map=property_map(cls),
    )


__all__ = [
    "convert_scalar",
    "deserialize",
    "read_objects",
    "serialize",
    "serialize_to_dict",
    "serialize_many",
    "property_map",
    "schema_for",
]
