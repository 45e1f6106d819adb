"""Per-type record schemas discovered from dataclasses, annotations and properties."""

# Module responsibilities:
# - Define the scalar whitelist, including the sized Int16/Int32/Int64/Single/Double markers.
# - Discover and cache, per type, which attributes map to which column and scalar kind.

from __future__ import annotations

import dataclasses
import types
from datetime import datetime
from decimal import Decimal
from enum import Enum
from functools import lru_cache
from typing import Any, Dict, List, NewType, Optional, Tuple, Union, get_args, get_origin, get_type_hints

Int16 = NewType("Int16", int)
Int32 = NewType("Int32", int)
Int64 = NewType("Int64", int)
Single = NewType("Single", float)
Double = NewType("Double", float)


class ScalarKind(Enum):
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    SINGLE = "single"
    DOUBLE = "double"
    DECIMAL = "decimal"
    TEXT = "text"
    DATETIME = "datetime"


_SCALAR_KINDS: Dict[Any, ScalarKind] = {
    Int16: ScalarKind.INT16,
    Int32: ScalarKind.INT32,
    Int64: ScalarKind.INT64,
    int: ScalarKind.INT64,
    Single: ScalarKind.SINGLE,
    Double: ScalarKind.DOUBLE,
    float: ScalarKind.DOUBLE,
    Decimal: ScalarKind.DECIMAL,
    str: ScalarKind.TEXT,
    datetime: ScalarKind.DATETIME,
}


@dataclasses.dataclass(frozen=True)
class PropertySpec:
    """One mapped attribute: where it is read from and how it is converted."""

    name: str
    column: str
    kind: ScalarKind
    nullable: bool = False
    readable: bool = True
    writable: bool = True


@dataclasses.dataclass(frozen=True)
class RecordSchema:
    """Ordered property specs of a type, in discovery order."""

    cls: type
    properties: Tuple[PropertySpec, ...]
    frozen: bool = False

    def readable(self) -> List[PropertySpec]:
        return [prop for prop in self.properties if prop.readable]

    def writable(self) -> List[PropertySpec]:
        return [prop for prop in self.properties if prop.writable]

    def property_map(self) -> Dict[str, int]:
        """Column name to serialisation slot, over readable properties."""

        return {prop.column: slot for slot, prop in enumerate(self.readable())}


def scalar_kind(annotation: Any) -> Tuple[Optional[ScalarKind], bool]:
    """Return ``(kind, nullable)`` for an annotation; kind is ``None`` if unsupported."""

    nullable = False
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        members = [arg for arg in get_args(annotation) if arg is not type(None)]
        if len(members) != 1:
            return None, False
        annotation = members[0]
        nullable = True
    try:
        return _SCALAR_KINDS.get(annotation), nullable
    except TypeError:
        return None, False


def _dataclass_specs(cls: type, hints: Dict[str, Any], frozen: bool) -> List[PropertySpec]:
    specs = []
    for field in dataclasses.fields(cls):
        kind, nullable = scalar_kind(hints.get(field.name))
        if kind is None or field.name.startswith("_"):
            continue
        specs.append(
            PropertySpec(
                name=field.name,
                column=field.metadata.get("column", field.name),
                kind=kind,
                nullable=nullable,
                writable=field.init or not frozen,
            )
        )
    return specs


def _annotation_specs(hints: Dict[str, Any]) -> List[PropertySpec]:
    specs = []
    for name, annotation in hints.items():
        kind, nullable = scalar_kind(annotation)
        if kind is None or name.startswith("_"):
            continue
        specs.append(PropertySpec(name=name, column=name, kind=kind, nullable=nullable))
    return specs


def _property_specs(cls: type, seen: set) -> List[PropertySpec]:
    specs = []
    for klass in reversed(cls.__mro__):
        for name, member in vars(klass).items():
            if not isinstance(member, property) or name in seen or name.startswith("_"):
                continue
            if member.fget is None:
                continue
            kind, nullable = scalar_kind(get_type_hints(member.fget).get("return"))
            if kind is None:
                continue
            seen.add(name)
            specs.append(
                PropertySpec(
                    name=name,
                    column=name,
                    kind=kind,
                    nullable=nullable,
                    readable=True,
                    writable=member.fset is not None,
                )
            )
    return specs


@lru_cache(maxsize=None)
def schema_for(cls: type) -> RecordSchema:
    """Build (once per type) the schema of mappable attributes of *cls*.

    Dataclass fields are taken in definition order and may rename their
    column with ``field(metadata={"column": "..."})``. Plain classes
    contribute their annotated attributes. Annotated properties follow in
    both cases. Only whitelisted scalar types are kept; ``Optional[...]``
    is unwrapped and marks the property nullable.
    """

    hints = get_type_hints(cls)
    frozen = False
    if dataclasses.is_dataclass(cls):
        frozen = cls.__dataclass_params__.frozen
        specs = _dataclass_specs(cls, hints, frozen)
    else:
        specs = _annotation_specs(hints)
    specs.extend(_property_specs(cls, {spec.name for spec in specs}))
    return RecordSchema(cls=cls, properties=tuple(specs), frozen=frozen)


def property_map(cls: type) -> Dict[str, int]:
    return schema_for(cls).property_map()


__all__ = [
    "Int16",
    "Int32",
    "Int64",
    "Single",
    "Double",
    "ScalarKind",
    "PropertySpec",
    "RecordSchema",
    "scalar_kind",
    "schema_for",
    "property_map",
]
