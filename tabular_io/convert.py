"""Scalar coercion rules shared by typed getters and the object mapper."""

# Module responsibilities:
# - Coerce cell values (and in-memory values) to the supported scalar types.
# - Apply the single lossy rule: decimals that cannot be represented become zero.

from __future__ import annotations

import math
import struct
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Tuple

from .errors import ConversionError
from .utils.log import get_logger
from .values import serial_to_datetime

logger = get_logger("convert")

# Floats are stored as doubles; fixed-point targets keep six fractional digits.
DECIMAL_PLACES = 6

_INT_RANGES: Dict[int, Tuple[int, int]] = {
    16: (-(2**15), 2**15 - 1),
    32: (-(2**31), 2**31 - 1),
    64: (-(2**63), 2**63 - 1),
}


def _describe(value: Any) -> str:
    return f"{value!r} ({type(value).__name__})"


def to_decimal(value: Any) -> Decimal:
    """Convert to ``Decimal``; overflowing or non-finite numbers become ``Decimal(0)``."""

    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(int(value))
    elif isinstance(value, float):
        if not math.isfinite(value):
            result = Decimal("NaN")
        else:
            result = Decimal(repr(round(value, DECIMAL_PLACES)))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation as exc:
            raise ConversionError(f"Cannot convert {_describe(value)} to Decimal") from exc
    else:
        raise ConversionError(f"Cannot convert {_describe(value)} to Decimal")

    if not result.is_finite():
        logger.warning("Decimal value out of range, using 0", extra={"value": repr(value)})
        return Decimal(0)
    return result


def to_int(value: Any, bits: int = 32) -> int:
    """Convert to an integer that fits a signed ``bits``-wide type.

    Fractional numbers are rounded half to even.
    """

    if bits not in _INT_RANGES:
        raise ValueError(f"Unsupported integer width: {bits}")
    if isinstance(value, int):
        number = int(value)
    elif isinstance(value, (float, Decimal)):
        if not (value.is_finite() if isinstance(value, Decimal) else math.isfinite(value)):
            raise ConversionError(f"Cannot convert {_describe(value)} to Int{bits}")
        number = int(round(value))
    elif isinstance(value, str):
        try:
            number = int(value.strip())
        except ValueError as exc:
            raise ConversionError(f"Cannot convert {_describe(value)} to Int{bits}") from exc
    else:
        raise ConversionError(f"Cannot convert {_describe(value)} to Int{bits}")

    low, high = _INT_RANGES[bits]
    if not low <= number <= high:
        raise ConversionError(f"{number} does not fit in Int{bits}")
    return number


def to_float(value: Any, single: bool = False) -> float:
    """Convert to ``float``; ``single`` narrows the result to 32-bit precision."""

    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError as exc:
            raise ConversionError(f"Cannot convert {_describe(value)} to float") from exc
    else:
        raise ConversionError(f"Cannot convert {_describe(value)} to float")

    if not single:
        return number
    try:
        narrowed = struct.unpack("f", struct.pack("f", number))[0]
    except (OverflowError, struct.error) as exc:
        raise ConversionError(f"{number!r} does not fit in single precision") from exc
    if math.isinf(narrowed) and math.isfinite(number):
        raise ConversionError(f"{number!r} does not fit in single precision")
    return narrowed


def to_datetime(value: Any, use_1904: bool = False) -> datetime:
    """Convert datetimes, dates, serial day numbers and ISO strings to ``datetime``."""

    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time())
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        return serial_to_datetime(float(value), use_1904)
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip())
        except ValueError as exc:
            raise ConversionError(f"Cannot convert {_describe(value)} to datetime") from exc
    raise ConversionError(f"Cannot convert {_describe(value)} to datetime")


def to_text(value: Any) -> str:
    return "" if value is None else str(value)


__all__ = ["DECIMAL_PLACES", "to_decimal", "to_int", "to_float", "to_datetime", "to_text"]
