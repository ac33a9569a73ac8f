"""
probkit Bounded Integers

A bounded integer is an integer constrained to [low, high]. The bounds, the
underlying machine type, the out-of-range resolver and the cross-range
converter are fixed per class, so each range is its own type:

    class Degrees(BoundedInt, low=0, high=359):
        pass

    class SignedDegrees(BoundedInt, low=-179, high=180,
                        converter=ConvertCircularScale):
        pass

    Degrees(720)                      -> 0     (modulo resolver)
    SignedDegrees(Degrees(270))       -> -90   (circular scale)

Every class reserves an invalid sentinel outside its range: the minimum of
the machine type, or its maximum when low already equals that minimum.

Resolvers:
    ResolveModulo   wrap into [low, high] by the range's period
    ResolveInvalid  store the invalid sentinel
    ResolveThrow    raise OutOfRangeError

Converters:
    ConvertScale          affine map of [low1, high1] onto [low2, high2]
    ConvertCircularScale  period-preserving map between ranges that are
                          either [0, n] or symmetric around zero
"""

from __future__ import annotations

import functools
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import ClassVar, Optional, Union

from probkit.errors import OutOfRangeError

logger = logging.getLogger(__name__)


# ============================================================================
# Machine types
# ============================================================================

class IntType(Enum):
    """Underlying integer types and their (min, max)."""
    INT8 = (-(2 ** 7), 2 ** 7 - 1)
    INT16 = (-(2 ** 15), 2 ** 15 - 1)
    INT32 = (-(2 ** 31), 2 ** 31 - 1)
    INT64 = (-(2 ** 63), 2 ** 63 - 1)
    UINT8 = (0, 2 ** 8 - 1)
    UINT16 = (0, 2 ** 16 - 1)
    UINT32 = (0, 2 ** 32 - 1)
    UINT64 = (0, 2 ** 64 - 1)

    @property
    def min(self) -> int:
        return self.value[0]

    @property
    def max(self) -> int:
        return self.value[1]


# ============================================================================
# Resolvers
# ============================================================================

class Resolver(ABC):
    """Strategy deciding what an out-of-range value becomes."""

    @staticmethod
    @abstractmethod
    def resolve(value: int, low: int, high: int, invalid: int) -> int:
        ...


class ResolveModulo(Resolver):
    @staticmethod
    def resolve(value: int, low: int, high: int, invalid: int) -> int:
        if low <= value <= high:
            return value
        distance = high - low + 1
        return (value - low) % distance + low


class ResolveInvalid(Resolver):
    @staticmethod
    def resolve(value: int, low: int, high: int, invalid: int) -> int:
        if low <= value <= high:
            return value
        return invalid


class ResolveThrow(Resolver):
    @staticmethod
    def resolve(value: int, low: int, high: int, invalid: int) -> int:
        if low <= value <= high:
            return value
        raise OutOfRangeError(low, high, value)


# ============================================================================
# Converters
# ============================================================================

class Converter(ABC):
    """Strategy mapping a value of one range onto another range."""

    @staticmethod
    @abstractmethod
    def convert(value: int, src_low: int, src_high: int,
                dst_low: int, dst_high: int) -> int:
        ...


class ConvertScale(Converter):
    @staticmethod
    def convert(value: int, src_low: int, src_high: int,
                dst_low: int, dst_high: int) -> int:
        return dst_low + (value - src_low) * (dst_high - dst_low) // (src_high - src_low)


class ConvertCircularScale(Converter):
    """Scale by period. Both ranges must be [0, n] or symmetric around zero
    (low + high <= 1); otherwise OutOfRangeError is raised."""

    @staticmethod
    def check_range(low: int, high: int) -> None:
        if not (low == 0 or low + high <= 1):
            raise OutOfRangeError(low, high, low + high)

    @staticmethod
    def convert(value: int, src_low: int, src_high: int,
                dst_low: int, dst_high: int) -> int:
        ConvertCircularScale.check_range(src_low, src_high)
        ConvertCircularScale.check_range(dst_low, dst_high)
        src_period = src_high - src_low + 1
        dst_period = dst_high - dst_low + 1
        scaled = (value % src_period) * dst_period // src_period
        return (scaled - dst_low) % dst_period + dst_low


# ============================================================================
# BoundedInt
# ============================================================================

@functools.total_ordering
class BoundedInt:
    """Integer constrained to the class's [LOW, HIGH].

    Subclass with keyword arguments low, high and optionally resolver
    (default ResolveModulo), converter (default ConvertScale) and int_type
    (default IntType.INT64).
    """

    LOW: ClassVar[int]
    HIGH: ClassVar[int]
    INVALID: ClassVar[int]
    RESOLVER: ClassVar[type[Resolver]]
    CONVERTER: ClassVar[type[Converter]]
    INT_TYPE: ClassVar[IntType]

    __slots__ = ("_value",)

    def __init_subclass__(
        cls,
        low: Optional[int] = None,
        high: Optional[int] = None,
        resolver: type[Resolver] = ResolveModulo,
        converter: type[Converter] = ConvertScale,
        int_type: IntType = IntType.INT64,
        **kwargs,
    ) -> None:
        super().__init_subclass__(**kwargs)
        if low is None or high is None:
            if not hasattr(cls, "LOW"):
                raise TypeError(f"{cls.__name__} needs low= and high= bounds")
            return
        if not low < high:
            raise ValueError(f"{cls.__name__}: low ({low}) must be less than high ({high})")
        if low < int_type.min or high > int_type.max:
            raise ValueError(
                f"{cls.__name__}: [{low}, {high}] does not fit {int_type.name} "
                f"[{int_type.min}, {int_type.max}]"
            )
        if low == int_type.min and high == int_type.max:
            raise ValueError(f"{cls.__name__}: no room for an invalid value in {int_type.name}")
        cls.LOW = low
        cls.HIGH = high
        cls.INVALID = int_type.min if low != int_type.min else int_type.max
        cls.RESOLVER = resolver
        cls.CONVERTER = converter
        cls.INT_TYPE = int_type

    def __init__(self, value: Union[int, BoundedInt, None] = None) -> None:
        if value is None:
            self._value = self.LOW
        elif isinstance(value, BoundedInt):
            self._value = self._convert_from(value)
        else:
            self._value = self.resolve(int(value))

    @classmethod
    def resolve(cls, value: int) -> int:
        return cls.RESOLVER.resolve(value, cls.LOW, cls.HIGH, cls.INVALID)

    @classmethod
    def _convert_from(cls, other: BoundedInt) -> int:
        if not other.is_valid():
            return cls.INVALID
        if type(other).LOW == cls.LOW and type(other).HIGH == cls.HIGH:
            return other._value
        converted = cls.CONVERTER.convert(
            other._value, type(other).LOW, type(other).HIGH, cls.LOW, cls.HIGH
        )
        return cls.resolve(converted)

    @classmethod
    def invalid(cls) -> BoundedInt:
        instance = cls.__new__(cls)
        instance._value = cls.INVALID
        return instance

    @classmethod
    def nth_next(cls, value: int, n: int) -> int:
        """value + n, resolved. The invalid sentinel stays invalid."""
        if value == cls.INVALID:
            return cls.INVALID
        return cls.resolve(value + n)

    # ------------------------------------------------------------------
    # Value access
    # ------------------------------------------------------------------

    @property
    def value(self) -> int:
        return self._value

    def is_valid(self) -> bool:
        return self._value != self.INVALID

    def __int__(self) -> int:
        return self._value

    def __index__(self) -> int:
        return self._value

    def __bool__(self) -> bool:
        return self._value != 0

    # ------------------------------------------------------------------
    # Arithmetic: results are resolved, and invalid operands yield invalid
    # ------------------------------------------------------------------

    def _arith(self, other: Union[int, BoundedInt], op) -> BoundedInt:
        if not self.is_valid():
            return self.invalid()
        if isinstance(other, BoundedInt):
            if not other.is_valid():
                return self.invalid()
            other = int(type(self)(other))
        result = type(self).__new__(type(self))
        result._value = self.resolve(op(self._value, int(other)))
        return result

    def __add__(self, other):
        return self._arith(other, lambda a, b: a + b)

    __radd__ = __add__

    def __sub__(self, other):
        return self._arith(other, lambda a, b: a - b)

    def __mul__(self, other):
        return self._arith(other, lambda a, b: a * b)

    __rmul__ = __mul__

    def __neg__(self):
        return self._arith(-1, lambda a, b: a * b)

    # ------------------------------------------------------------------
    # Comparison
    # ------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if isinstance(other, BoundedInt):
            return self._value == other._value
        if isinstance(other, int):
            return self._value == other
        return NotImplemented

    def __lt__(self, other: Union[int, BoundedInt]) -> bool:
        if isinstance(other, (BoundedInt, int)):
            return self._value < int(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)

    def __repr__(self) -> str:
        shown = self._value if self.is_valid() else "invalid"
        return f"<{type(self).__name__} {shown} in [{self.LOW}, {self.HIGH}]>"

    # ------------------------------------------------------------------
    # Iteration
    # ------------------------------------------------------------------

    @classmethod
    def begin(cls, start: Optional[int] = None) -> BoundedIntIterator:
        return BoundedIntIterator(cls, cls.LOW if start is None else start, 1)

    @classmethod
    def end(cls, finish: Optional[int] = None) -> BoundedIntIterator:
        return BoundedIntIterator(cls, cls.INVALID if finish is None else finish, 1)

    @classmethod
    def rbegin(cls, start: Optional[int] = None) -> BoundedIntIterator:
        return BoundedIntIterator(cls, cls.HIGH if start is None else start, -1)

    @classmethod
    def rend(cls, finish: Optional[int] = None) -> BoundedIntIterator:
        return BoundedIntIterator(cls, cls.INVALID if finish is None else finish, -1)

    @classmethod
    def values(cls, start: Optional[int] = None, finish: Optional[int] = None,
               reverse: bool = False) -> BoundedIntIterator:
        """Iterate from start up to (excluding) finish.

        Without a finish the iteration stops at the invalid sentinel, or
        after one full period under the modulo resolver.
        """
        it = cls.rbegin(start) if reverse else cls.begin(start)
        it.finish = cls.INVALID if finish is None else finish
        return it


class BoundedIntIterator:
    """Random-access iterator over a BoundedInt class.

    Steps go through the class's nth_next, so the modulo resolver wraps,
    the invalid resolver runs into end() and the throw resolver raises
    OutOfRangeError when a step leaves the range.
    """

    def __init__(self, bounded: type[BoundedInt], current: int, direction: int = 1) -> None:
        self.bounded = bounded
        self.current = current
        self.direction = direction
        self.finish: Optional[int] = None
        self._steps = 0

    def _moved(self, n: int) -> int:
        return self.bounded.nth_next(self.current, n * self.direction)

    def __iadd__(self, n: int) -> BoundedIntIterator:
        self.current = self._moved(n)
        return self

    def __isub__(self, n: int) -> BoundedIntIterator:
        self.current = self._moved(-n)
        return self

    def __add__(self, n: int) -> BoundedIntIterator:
        return BoundedIntIterator(self.bounded, self._moved(n), self.direction)

    def __sub__(self, n: int) -> BoundedIntIterator:
        return BoundedIntIterator(self.bounded, self._moved(-n), self.direction)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, BoundedIntIterator):
            return self.current == other.current
        if isinstance(other, (int, BoundedInt)):
            return self.current == int(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.current)

    def deref(self) -> BoundedInt:
        if self.current == self.bounded.INVALID:
            return self.bounded.invalid()
        return self.bounded(self.current)

    def __iter__(self) -> BoundedIntIterator:
        return self

    def __next__(self) -> BoundedInt:
        finish = self.bounded.INVALID if self.finish is None else self.finish
        period = self.bounded.HIGH - self.bounded.LOW + 1
        if self.current == finish or self.current == self.bounded.INVALID or self._steps >= period:
            raise StopIteration
        item = self.deref()
        self._steps += 1
        try:
            self.current = self._moved(1)
        except OutOfRangeError:
            self.current = self.bounded.INVALID
        return item

    def __repr__(self) -> str:
        arrow = "+" if self.direction > 0 else "-"
        return f"<BoundedIntIterator {self.bounded.__name__} {arrow}{self.current}>"
