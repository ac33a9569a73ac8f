"""
probkit Variants

Var is a tagged value over the closed set of scalar types (bool, char, int,
uint, float, date, string) and the intervals over each of them. Variants are
immutable, hashable and totally ordered: values of different tags order by
their stable tag name, values of the same tag by payload.

Operation is the match abstraction used by events: an operation is applied
as op(lhs, rhs) to two variants and answers whether lhs satisfies the
predicate parameterised by rhs.
"""

from __future__ import annotations

import functools
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from probkit.errors import BoolScanError, CastError
from probkit.interval import Interval, ScalarType, coerce_scalar, scalar_type_of


TRUE_LITERALS = frozenset({"true", "yes", "on", "t", "y", "1"})
FALSE_LITERALS = frozenset({"false", "no", "off", "f", "n", "0"})


def is_bool_literal(text: str) -> bool:
    return text.strip().lower() in TRUE_LITERALS | FALSE_LITERALS


def scan_bool(text: str) -> bool:
    """Parse a boolean literal (case-insensitive).

    Raises:
        BoolScanError: text is not one of true/false/yes/no/on/off/t/f/y/n/1/0
    """
    literal = text.strip().lower()
    if literal in TRUE_LITERALS:
        return True
    if literal in FALSE_LITERALS:
        return False
    raise BoolScanError(text)


# ============================================================================
# Var
# ============================================================================

@functools.total_ordering
class Var:
    """An immutable tagged value.

    Var(3)                          int
    Var(3, ScalarType.UINT)         uint
    Var("a", ScalarType.CHAR)       char
    Var(Interval(0.0, 1.0))         interval over float
    """

    __slots__ = ("_type", "_interval", "_value")

    def __init__(self, value: Any, scalar_type: Optional[ScalarType] = None) -> None:
        if isinstance(value, Var):
            value = value.value
        if isinstance(value, Interval):
            if scalar_type is not None and scalar_type is not value.scalar_type:
                raise CastError(f"interval<{value.scalar_type.value}>",
                                f"interval<{scalar_type.value}>")
            self._type = value.scalar_type
            self._interval = True
            self._value = value
            return
        if scalar_type is None:
            scalar_type = scalar_type_of(value)
        self._type = scalar_type
        self._interval = False
        self._value = coerce_scalar(value, scalar_type)

    # ------------------------------------------------------------------
    # Tag access
    # ------------------------------------------------------------------

    @property
    def type(self) -> ScalarType:
        """Scalar type of the payload, or of the interval's elements."""
        return self._type

    @property
    def is_interval(self) -> bool:
        return self._interval

    @property
    def tag(self) -> str:
        if self._interval:
            return f"interval<{self._type.value}>"
        return self._type.value

    @property
    def value(self) -> Any:
        return self._value

    def same_tag(self, other: Var) -> bool:
        return self._type is other._type and self._interval == other._interval

    def as_type(self, scalar_type: ScalarType, interval: bool = False) -> Any:
        """Return the payload, insisting on the given tag.

        Raises:
            CastError: the variant carries a different tag
        """
        if self._type is not scalar_type or self._interval != interval:
            wanted = f"interval<{scalar_type.value}>" if interval else scalar_type.value
            raise CastError(self.tag, wanted)
        return self._value

    def as_bool(self) -> bool:
        return self.as_type(ScalarType.BOOL)

    def as_char(self) -> str:
        return self.as_type(ScalarType.CHAR)

    def as_int(self) -> int:
        return self.as_type(ScalarType.INT)

    def as_uint(self) -> int:
        return self.as_type(ScalarType.UINT)

    def as_float(self) -> float:
        return self.as_type(ScalarType.FLOAT)

    def as_date(self) -> datetime:
        return self.as_type(ScalarType.DATE)

    def as_string(self) -> str:
        return self.as_type(ScalarType.STRING)

    def as_interval(self) -> Interval:
        if not self._interval:
            raise CastError(self.tag, f"interval<{self._type.value}>")
        return self._value

    def to_interval(self) -> Interval:
        """The interval payload, or [v, v] for a scalar."""
        if self._interval:
            return self._value
        return Interval.point(self._value, self._type)

    # ------------------------------------------------------------------
    # Equality and order
    # ------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Var):
            return NotImplemented
        return self.same_tag(other) and self._value == other._value

    def __lt__(self, other: Var) -> bool:
        if not isinstance(other, Var):
            return NotImplemented
        if not self.same_tag(other):
            return self.tag < other.tag
        return self._value < other._value

    def __hash__(self) -> int:
        return hash((self.tag, self._value))

    def __repr__(self) -> str:
        return f"Var({self._value!r}:{self.tag})"

    def __str__(self) -> str:
        if self._type is ScalarType.DATE and not self._interval:
            return self._value.isoformat(sep=" ")
        if self._type is ScalarType.BOOL and not self._interval:
            return "true" if self._value else "false"
        return str(self._value)


def scan_as(scalar_type: ScalarType, text: str) -> Var:
    """Scan a string into a variant of the given scalar type.

    Raises:
        BoolScanError: for BOOL when text is not a boolean literal
        ValueError: when text does not parse as the requested type
    """
    text = text.strip()
    if scalar_type is ScalarType.BOOL:
        return Var(scan_bool(text))
    if scalar_type is ScalarType.CHAR:
        if len(text) != 1:
            raise ValueError(f"'{text}' is not a single character")
        return Var(text, ScalarType.CHAR)
    if scalar_type in (ScalarType.INT, ScalarType.UINT):
        return Var(int(text), scalar_type)
    if scalar_type is ScalarType.FLOAT:
        return Var(float(text))
    if scalar_type is ScalarType.DATE:
        return Var(datetime.fromisoformat(text))
    return Var(text)


# ============================================================================
# Match operations
# ============================================================================

class Operation(Enum):
    """Predicates an event applies between a candidate value and its own value.

    Ordering ops require both variants to carry the same tag; mixed tags
    never match. IS_ELEMENT_OF accepts a scalar (or interval) lhs against an
    interval rhs of the same element type; against a scalar rhs it means
    equality. PLACEHOLDER never matches.
    """
    EQUALS = "="
    LESS = "<"
    LESS_EQUAL = "<="
    GREATER = ">"
    GREATER_EQUAL = ">="
    IS_ELEMENT_OF = "in"
    PLACEHOLDER = "?"

    @property
    def symbol(self) -> str:
        return self.value

    def __call__(self, lhs: Var, rhs: Var) -> bool:
        if self is Operation.PLACEHOLDER:
            return False
        if self is Operation.EQUALS:
            return lhs == rhs
        if self is Operation.IS_ELEMENT_OF:
            return _is_element_of(lhs, rhs)
        if not lhs.same_tag(rhs):
            return False
        if self is Operation.LESS:
            return lhs.value < rhs.value
        if self is Operation.LESS_EQUAL:
            return lhs.value <= rhs.value
        if self is Operation.GREATER:
            return lhs.value > rhs.value
        return lhs.value >= rhs.value


def _is_element_of(lhs: Var, rhs: Var) -> bool:
    if not rhs.is_interval:
        return lhs == rhs
    if lhs.type is not rhs.type:
        return False
    if lhs.is_interval:
        return lhs.value.is_sub_interval_of(rhs.value)
    return rhs.value.contains(lhs.value)


def default_operation(value: Var) -> Operation:
    """EQUALS for scalar values, IS_ELEMENT_OF for intervals."""
    return Operation.IS_ELEMENT_OF if value.is_interval else Operation.EQUALS
