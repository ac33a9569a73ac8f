"""
probkit Intervals

Half- or fully-open/closed intervals over the closed set of scalar types a
variant can carry. An interval knows which of its sides are finite and which
of them include their boundary; an infinite side holds the domain minimum
(or maximum) of its scalar type and always accepts on that side.

Construction:
    Interval(scalar_type=ScalarType.FLOAT)          full range, closed
    Interval(0.5)                                   [0.5, +inf)
    Interval(0.5, bounds=Bound.LEFT_INFINITE)       (-inf, 0.5]
    Interval(1.0, 0.0, Bound.RIGHT_OPEN)            [0.0, 1.0)
"""

from __future__ import annotations

import functools
from datetime import datetime
from enum import Enum, Flag
from typing import Any, Optional


# ============================================================================
# Scalar domains
# ============================================================================

INT_MIN = -(2 ** 63)
INT_MAX = 2 ** 63 - 1
UINT_MIN = 0
UINT_MAX = 2 ** 64 - 1
CHAR_MIN = "\x00"
CHAR_MAX = "\U0010ffff"

TIMESTAMP_MIN = datetime.min
TIMESTAMP_MAX = datetime.max


class ScalarType(Enum):
    """The closed set of scalar payloads. Values are the stable tag names."""
    BOOL = "bool"
    CHAR = "char"
    INT = "int"
    UINT = "uint"
    FLOAT = "float"
    DATE = "date"
    STRING = "string"

    @property
    def domain_min(self) -> Any:
        return _DOMAINS[self][0]

    @property
    def domain_max(self) -> Any:
        """Largest value of the domain. Strings have no maximum and report None."""
        return _DOMAINS[self][1]

    @property
    def is_integral(self) -> bool:
        return self in (ScalarType.BOOL, ScalarType.CHAR, ScalarType.INT, ScalarType.UINT)

    def accepts(self, value: Any) -> bool:
        """Whether a Python value is a well-formed payload for this type."""
        if self is ScalarType.BOOL:
            return isinstance(value, bool)
        if self is ScalarType.CHAR:
            return isinstance(value, str) and len(value) == 1
        if self is ScalarType.INT:
            return (isinstance(value, int) and not isinstance(value, bool)
                    and INT_MIN <= value <= INT_MAX)
        if self is ScalarType.UINT:
            return (isinstance(value, int) and not isinstance(value, bool)
                    and UINT_MIN <= value <= UINT_MAX)
        if self is ScalarType.FLOAT:
            return isinstance(value, float)
        if self is ScalarType.DATE:
            return isinstance(value, datetime)
        return isinstance(value, str)


_DOMAINS: dict[ScalarType, tuple[Any, Any]] = {
    ScalarType.BOOL: (False, True),
    ScalarType.CHAR: (CHAR_MIN, CHAR_MAX),
    ScalarType.INT: (INT_MIN, INT_MAX),
    ScalarType.UINT: (UINT_MIN, UINT_MAX),
    ScalarType.FLOAT: (float("-inf"), float("inf")),
    ScalarType.DATE: (TIMESTAMP_MIN, TIMESTAMP_MAX),
    ScalarType.STRING: ("", None),
}


def scalar_type_of(value: Any) -> ScalarType:
    """Infer the scalar type of a plain Python value.

    Plain ints map to INT and plain strings to STRING; use explicit types
    for UINT and CHAR.
    """
    if isinstance(value, bool):
        return ScalarType.BOOL
    if isinstance(value, int):
        return ScalarType.INT
    if isinstance(value, float):
        return ScalarType.FLOAT
    if isinstance(value, datetime):
        return ScalarType.DATE
    if isinstance(value, str):
        return ScalarType.STRING
    raise TypeError(f"No scalar type for value {value!r} of type {type(value).__name__}")


def coerce_scalar(value: Any, scalar_type: ScalarType) -> Any:
    """Bring a Python value into the payload form of scalar_type."""
    if scalar_type is ScalarType.FLOAT and isinstance(value, int) and not isinstance(value, bool):
        value = float(value)
    if not scalar_type.accepts(value):
        raise ValueError(f"{value!r} is not a valid '{scalar_type.value}' value")
    return value


# ============================================================================
# Boundary tags
# ============================================================================

class Bound(Flag):
    """Boundary tags accepted by the Interval constructors.

    LEFT_FINITE and RIGHT_INFINITE mean the same thing for a half-open
    interval, as do RIGHT_FINITE and LEFT_INFINITE. An explicit CLOSED tag
    beats an explicit OPEN tag on the same side; sides default to closed.
    """
    NONE = 0
    LEFT_FINITE = 0x01
    LEFT_INFINITE = 0x02
    RIGHT_FINITE = 0x04
    RIGHT_INFINITE = 0x08
    LEFT_CLOSED = 0x10
    LEFT_OPEN = 0x20
    RIGHT_CLOSED = 0x40
    RIGHT_OPEN = 0x80

    CLOSED = 0x50
    OPEN = 0xA0


def _side_closed(bounds: Bound, closed: Bound, opened: Bound) -> bool:
    if closed in bounds:
        return True
    return opened not in bounds


# ============================================================================
# Interval
# ============================================================================

@functools.total_ordering
class Interval:
    """An interval over one ScalarType."""

    __slots__ = ("scalar_type", "low", "high", "left_full", "right_full",
                 "left_closed", "right_closed")

    def __init__(
        self,
        v1: Any = None,
        v2: Any = None,
        bounds: Bound = Bound.NONE,
        scalar_type: Optional[ScalarType] = None,
    ) -> None:
        if scalar_type is None:
            if v1 is None:
                raise TypeError("A full interval needs an explicit scalar_type")
            scalar_type = scalar_type_of(v1)
        self.scalar_type = scalar_type
        self.left_closed = _side_closed(bounds, Bound.LEFT_CLOSED, Bound.LEFT_OPEN)
        self.right_closed = _side_closed(bounds, Bound.RIGHT_CLOSED, Bound.RIGHT_OPEN)

        if v1 is None:
            self.low = scalar_type.domain_min
            self.high = scalar_type.domain_max
            self.left_full = self.right_full = True
            self.left_closed = self.right_closed = True
        elif v2 is None:
            value = coerce_scalar(v1, scalar_type)
            finite_left = bool(bounds & (Bound.LEFT_FINITE | Bound.RIGHT_INFINITE))
            finite_right = bool(bounds & (Bound.RIGHT_FINITE | Bound.LEFT_INFINITE))
            if finite_right and not finite_left:
                self.low, self.high = scalar_type.domain_min, value
                self.left_full, self.right_full = True, False
            else:
                self.low, self.high = value, scalar_type.domain_max
                self.left_full, self.right_full = False, True
        else:
            a = coerce_scalar(v1, scalar_type)
            b = coerce_scalar(v2, scalar_type)
            self.low, self.high = (a, b) if a <= b else (b, a)
            self.left_full = self.right_full = False

    @classmethod
    def point(cls, value: Any, scalar_type: Optional[ScalarType] = None) -> Interval:
        """The closed interval [value, value]."""
        return cls(value, value, Bound.CLOSED, scalar_type)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def is_full(self) -> bool:
        return self.left_full and self.right_full

    @property
    def is_left_infinite(self) -> bool:
        return self.left_full

    @property
    def is_right_infinite(self) -> bool:
        return self.right_full

    @property
    def is_left_closed(self) -> bool:
        return self.left_full or self.left_closed

    @property
    def is_right_closed(self) -> bool:
        return self.right_full or self.right_closed

    @property
    def is_empty(self) -> bool:
        if self.left_full or self.right_full:
            return False
        return self.low == self.high and not (self.left_closed and self.right_closed)

    def contains(self, value: Any) -> bool:
        if not self.left_full:
            if self.left_closed:
                if not self.low <= value:
                    return False
            elif not self.low < value:
                return False
        if not self.right_full:
            if self.right_closed:
                if not value <= self.high:
                    return False
            elif not value < self.high:
                return False
        return True

    __contains__ = contains

    def is_sub_interval_of(self, other: Interval) -> bool:
        """Whether every value of this interval also lies in other."""
        if self.scalar_type is not other.scalar_type:
            return False
        if self.is_empty:
            return True
        return self._left_within(other) and self._right_within(other)

    def _left_within(self, other: Interval) -> bool:
        if other.left_full:
            return True
        if self.left_full:
            return False
        if self.low != other.low:
            return self.low > other.low
        return other.left_closed or not self.left_closed

    def _right_within(self, other: Interval) -> bool:
        if other.right_full:
            return True
        if self.right_full:
            return False
        if self.high != other.high:
            return self.high < other.high
        return other.right_closed or not self.right_closed

    # ------------------------------------------------------------------
    # Comparison
    # ------------------------------------------------------------------

    @property
    def range_type(self) -> int:
        """Boundary flags packed into one code, used as the primary sort key."""
        return (int(self.left_full) | int(self.right_full) << 1
                | int(self.left_closed) << 2 | int(self.right_closed) << 3)

    def _key(self) -> tuple:
        return (self.range_type, self.low, self.high)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Interval):
            return NotImplemented
        return self.scalar_type is other.scalar_type and self._key() == other._key()

    def __lt__(self, other: Interval) -> bool:
        if not isinstance(other, Interval):
            return NotImplemented
        if self.scalar_type is not other.scalar_type:
            return self.scalar_type.value < other.scalar_type.value
        return self._key() < other._key()

    def __hash__(self) -> int:
        return hash((self.scalar_type, self._key()))

    def __repr__(self) -> str:
        left = "(-inf" if self.left_full else ("[" if self.left_closed else "(") + repr(self.low)
        right = "+inf)" if self.right_full else repr(self.high) + ("]" if self.right_closed else ")")
        return f"<Interval<{self.scalar_type.value}> {left}, {right}>"
