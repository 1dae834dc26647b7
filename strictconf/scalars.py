"""Fixed-width numeric aliases and scalar literal parsers.

Python integers are unbounded, so configuration types declare their width
explicitly through ``typing.Annotated`` aliases such as :data:`Uint16`. Plain
``int`` is rejected by the shape validator. ``float`` is accepted as a 64-bit
float and :data:`Float32` narrows the accepted range.

Durations are written as unit-suffixed literals (``"300ms"``, ``"1h30m"``) and
parsed into :class:`datetime.timedelta`.

Examples
--------
>>> from strictconf.scalars import Uint8, parse_duration
>>> parse_duration("1h30m")
datetime.timedelta(seconds=5400)
>>> Uint8.__metadata__[0].max_value
255
"""

from __future__ import annotations

import dataclasses as dc
import datetime as dt
import math
import re
import typing as typ
from decimal import Decimal

from ._constants import FLOAT32_MAX


@dc.dataclass(frozen=True, slots=True)
class IntWidth:
    """Width and signedness marker attached to ``int`` annotations."""

    bits: int
    signed: bool = True

    @property
    def name(self) -> str:
        """Return the type name used in messages, for example ``uint16``."""
        return f"{'int' if self.signed else 'uint'}{self.bits}"

    @property
    def min_value(self) -> int:
        return -(1 << (self.bits - 1)) if self.signed else 0

    @property
    def max_value(self) -> int:
        if self.signed:
            return (1 << (self.bits - 1)) - 1
        return (1 << self.bits) - 1

    def contains(self, value: int) -> bool:
        """Return whether ``value`` fits into this width."""
        return self.min_value <= value <= self.max_value


@dc.dataclass(frozen=True, slots=True)
class FloatWidth:
    """Width marker attached to ``float`` annotations."""

    bits: int

    @property
    def name(self) -> str:
        return f"float{self.bits}"

    def contains(self, value: float) -> bool:
        """Return whether ``value`` is representable at this width."""
        if self.bits == 64 or math.isinf(value) or math.isnan(value):
            return True
        return abs(value) <= FLOAT32_MAX


Int8 = typ.Annotated[int, IntWidth(8)]
Int16 = typ.Annotated[int, IntWidth(16)]
Int32 = typ.Annotated[int, IntWidth(32)]
Int64 = typ.Annotated[int, IntWidth(64)]
Uint8 = typ.Annotated[int, IntWidth(8, signed=False)]
Uint16 = typ.Annotated[int, IntWidth(16, signed=False)]
Uint32 = typ.Annotated[int, IntWidth(32, signed=False)]
Uint64 = typ.Annotated[int, IntWidth(64, signed=False)]
Float32 = typ.Annotated[float, FloatWidth(32)]
Float64 = typ.Annotated[float, FloatWidth(64)]

_NS_PER_UNIT: dict[str, int] = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}
_DURATION_PART_RE = re.compile(
    r"([0-9]+(?:\.[0-9]*)?|\.[0-9]+)(ns|us|µs|μs|ms|s|m|h)"
)

# YAML literal forms accepted by the decoder. Booleans use the YAML 1.1 set
# so that the value validator can report non-canonical spellings precisely.
YAML_BOOLS: dict[str, bool] = {
    **dict.fromkeys(
        ("y", "Y", "yes", "Yes", "YES", "on", "On", "ON"), True
    ),
    **dict.fromkeys(("true", "True", "TRUE"), True),
    **dict.fromkeys(
        ("n", "N", "no", "No", "NO", "off", "Off", "OFF"), False
    ),
    **dict.fromkeys(("false", "False", "FALSE"), False),
}
_YAML_INT_RE = re.compile(
    r"^[-+]?(?:0b[01_]+|0o[0-7_]+|0x[0-9a-fA-F_]+|[0-9][0-9_]*)$"
)
_YAML_FLOAT_RE = re.compile(
    r"^[-+]?(?:\.[0-9]+|[0-9][0-9_]*(?:\.[0-9_]*)?)(?:[eE][-+]?[0-9]+)?$"
)
_YAML_INF_RE = re.compile(r"^([-+]?)\.(?:inf|Inf|INF)$")
_YAML_NAN_RE = re.compile(r"^\.(?:nan|NaN|NAN)$")

_ENV_SIGNED_RE = re.compile(r"^[-+]?[0-9]+$")
_ENV_UNSIGNED_RE = re.compile(r"^[0-9]+$")
_ENV_FLOAT_RE = re.compile(
    r"^[-+]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][-+]?[0-9]+)?"
    r"|inf|infinity|nan)$",
    re.IGNORECASE,
)


def parse_duration(text: str) -> dt.timedelta:
    """Parse a duration literal into a :class:`~datetime.timedelta`.

    Parameters
    ----------
    text : str
        A possibly signed sequence of decimal numbers, each with optional
        fraction and a unit suffix, such as ``"300ms"``, ``"-1.5h"`` or
        ``"2h45m"``. Valid units are ``ns``, ``us`` (or ``µs``), ``ms``,
        ``s``, ``m`` and ``h``. ``"0"`` needs no unit.

    Returns
    -------
    datetime.timedelta
        The parsed duration, truncated to microsecond resolution.

    Raises
    ------
    ValueError
        If ``text`` is not a valid duration literal.
    """
    body = text
    sign = 1
    if body[:1] in {"-", "+"}:
        sign = -1 if body[0] == "-" else 1
        body = body[1:]
    if body == "0":
        return dt.timedelta(0)
    if not body:
        msg = f"invalid duration {text!r}"
        raise ValueError(msg)

    total = Decimal(0)
    position = 0
    while position < len(body):
        match = _DURATION_PART_RE.match(body, position)
        if match is None:
            msg = f"invalid duration {text!r}"
            raise ValueError(msg)
        total += Decimal(match.group(1)) * _NS_PER_UNIT[match.group(2)]
        position = match.end()

    try:
        return dt.timedelta(microseconds=sign * int(total / 1000))
    except OverflowError as exc:
        msg = f"invalid duration {text!r}: out of range"
        raise ValueError(msg) from exc


def parse_yaml_int(text: str) -> int | None:
    """Return the integer written as a YAML int literal, or ``None``."""
    if not _YAML_INT_RE.fullmatch(text):
        return None
    digits = text.replace("_", "")
    base = 0 if digits.lstrip("+-")[:2] in {"0b", "0o", "0x"} else 10
    try:
        return int(digits, base)
    except ValueError:
        return None


def parse_yaml_float(text: str) -> float | None:
    """Return the float written as a YAML 1.2 float literal, or ``None``."""
    if match := _YAML_INF_RE.fullmatch(text):
        return -math.inf if match.group(1) == "-" else math.inf
    if _YAML_NAN_RE.fullmatch(text):
        return math.nan
    if not _YAML_FLOAT_RE.fullmatch(text):
        return None
    try:
        return float(text.replace("_", ""))
    except ValueError:
        return None


def parse_env_int(text: str, width: IntWidth) -> int:
    """Strictly parse a base-10 integer from an environment variable.

    Raises
    ------
    ValueError
        If ``text`` is not a plain decimal number, carries a sign on an
        unsigned width, or does not fit into ``width``.
    """
    pattern = _ENV_SIGNED_RE if width.signed else _ENV_UNSIGNED_RE
    if not pattern.fullmatch(text):
        msg = f"invalid syntax {text!r}"
        raise ValueError(msg)
    value = int(text, 10)
    if not width.contains(value):
        msg = f"value {text!r} out of range for {width.name}"
        raise ValueError(msg)
    return value


def parse_env_float(text: str, width: FloatWidth) -> float:
    """Strictly parse a float from an environment variable.

    Raises
    ------
    ValueError
        If ``text`` is not a float literal or overflows ``width``.
    """
    if not _ENV_FLOAT_RE.fullmatch(text):
        msg = f"invalid syntax {text!r}"
        raise ValueError(msg)
    value = float(text)
    if not width.contains(value):
        msg = f"value {text!r} out of range for {width.name}"
        raise ValueError(msg)
    return value


def parse_env_bool(text: str) -> bool:
    """Accept only the literals ``true`` and ``false``."""
    if text == "true":
        return True
    if text == "false":
        return False
    msg = f"invalid syntax {text!r}, expected true or false"
    raise ValueError(msg)


__all__ = [
    "YAML_BOOLS",
    "FloatWidth",
    "Float32",
    "Float64",
    "Int8",
    "Int16",
    "Int32",
    "Int64",
    "IntWidth",
    "Uint8",
    "Uint16",
    "Uint32",
    "Uint64",
    "parse_duration",
    "parse_env_bool",
    "parse_env_float",
    "parse_env_int",
    "parse_yaml_float",
    "parse_yaml_int",
]
