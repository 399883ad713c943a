"""Conversion between raw text and typed option values.

Every option holds one of six kinds of values:

    bool      -> bool
    int32     -> int within the signed 32 bit range
    float32   -> float rounded to single precision
    string    -> str
    datetime  -> timezone aware datetime
    json      -> str holding valid JSON text

Raw text comes from config files, environment variables and command line
arguments. `coerce_string` turns it into a value, `format_value` turns a
value back into text that `coerce_string` accepts.
"""

import json
import math
import re
import struct
from datetime import datetime, timedelta, timezone
from typing import Any

from .exceptions import InvalidValueError
from .grammar import OptionType

Value = bool | int | float | str | datetime

INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1

_BOOL_TRUE = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_BOOL_FALSE = frozenset({"0", "f", "F", "FALSE", "false", "False"})

_INT_RE = re.compile(r"[+-]?[0-9]+")
_FLOAT_RE = re.compile(
    r"[+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|inf|infinity|nan)",
    re.IGNORECASE,
)
_DATETIME_RE = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?"
    r"(?:(Z)|([+-])(\d{2}):(\d{2}))"
)


def to_float32(value: float) -> float:
    """Round a float to the nearest single precision value.

    Raises:
        OverflowError: If the value is out of float32 range.
    """
    return struct.unpack("<f", struct.pack("<f", value))[0]


def parse_datetime(raw: str) -> datetime:
    """Parse an RFC 3339 timestamp such as `2006-01-02T15:04:05+07:00`.

    Fractions beyond microseconds are truncated.

    Raises:
        ValueError: If raw is not a valid RFC 3339 timestamp.
    """
    m = _DATETIME_RE.fullmatch(raw)
    if m is None:
        raise ValueError(f"not an RFC 3339 timestamp: {raw!r}")
    year, month, day, hour, minute, second = (int(g) for g in m.group(1, 2, 3, 4, 5, 6))
    micro = int((m.group(7) or "")[:6].ljust(6, "0"))
    if m.group(8):
        tz = timezone.utc
    else:
        offset = timedelta(hours=int(m.group(10)), minutes=int(m.group(11)))
        tz = timezone(-offset if m.group(9) == "-" else offset)
    return datetime(year, month, day, hour, minute, second, micro, tzinfo=tz)


def format_datetime(value: datetime) -> str:
    text = (
        f"{value.year:04d}-{value.month:02d}-{value.day:02d}"
        f"T{value.hour:02d}:{value.minute:02d}:{value.second:02d}"
    )
    if value.microsecond:
        text += f".{value.microsecond:06d}".rstrip("0")
    offset = value.utcoffset()
    if not offset:
        return text + "Z"
    minutes = int(offset.total_seconds()) // 60
    sign = "-" if minutes < 0 else "+"
    hours, minutes = divmod(abs(minutes), 60)
    return f"{text}{sign}{hours:02d}:{minutes:02d}"


def _format_float32(value: float) -> str:
    if math.isnan(value) or math.isinf(value):
        return repr(value)
    # shortest text that reads back to the same float32
    for precision in range(1, 10):
        text = f"{value:.{precision}g}"
        if to_float32(float(text)) == value:
            return text
    return repr(value)


def coerce_string(type_: OptionType | str, raw: str, key: str = "") -> Value:
    """Convert raw text to a value of the given option type.

    Args:
        type_: The declared option type.
        raw: The raw text, already trimmed by the caller.
        key: Option name, used in the error message.

    Returns:
        The typed value.

    Raises:
        InvalidValueError: If raw can't be parsed as the given type.
    """
    match OptionType(type_):
        case OptionType.BOOL:
            if raw in _BOOL_TRUE:
                return True
            if raw in _BOOL_FALSE:
                return False
        case OptionType.INT32:
            if _INT_RE.fullmatch(raw):
                number = int(raw)
                if INT32_MIN <= number <= INT32_MAX:
                    return number
        case OptionType.FLOAT32:
            if _FLOAT_RE.fullmatch(raw):
                try:
                    return to_float32(float(raw))
                except OverflowError:
                    pass
        case OptionType.STRING:
            return raw
        case OptionType.DATETIME:
            try:
                return parse_datetime(raw)
            except ValueError:
                pass
        case OptionType.JSON:
            try:
                json.loads(raw)
            except ValueError:
                pass
            else:
                return raw
    raise InvalidValueError(key, raw)


def check_value(type_: OptionType | str, value: Any) -> bool:
    """Return True if value is a valid, non-None value of the given type."""
    match OptionType(type_):
        case OptionType.BOOL:
            return type(value) is bool
        case OptionType.INT32:
            return type(value) is int and INT32_MIN <= value <= INT32_MAX
        case OptionType.FLOAT32:
            if type(value) is not float:
                return False
            try:
                to_float32(value)
            except OverflowError:
                return False
            return True
        case OptionType.STRING:
            return isinstance(value, str)
        case OptionType.DATETIME:
            return isinstance(value, datetime) and value.utcoffset() is not None
        case OptionType.JSON:
            if not isinstance(value, str):
                return False
            try:
                json.loads(value)
            except ValueError:
                return False
            return True
    return False


def format_value(type_: OptionType | str, value: Value) -> str:
    """Print a value the way it is written to config files."""
    match OptionType(type_):
        case OptionType.BOOL:
            return "true" if value else "false"
        case OptionType.INT32:
            return str(value)
        case OptionType.FLOAT32:
            return _format_float32(value)
        case OptionType.DATETIME:
            return format_datetime(value)
        case OptionType.STRING | OptionType.JSON:
            return value
    raise TypeError(f"unknown option type {type_!r}")


def zero_value(type_: OptionType | str) -> Value | None:
    """Return what a getter yields for an option that is not set."""
    match OptionType(type_):
        case OptionType.BOOL:
            return False
        case OptionType.INT32:
            return 0
        case OptionType.FLOAT32:
            return 0.0
        case OptionType.STRING:
            return ""
    return None
