"""
probkit Event Value Ranges

An EventValueRange describes the values an event variable may take: either
an enumerated set of variants sharing one tag (discrete), or a continuous
float extent tagged with the distribution family that lives on it.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Iterable, Iterator, Optional

from probkit.events import Event
from probkit.interval import ScalarType
from probkit.variant import Operation, Var


class DistributionType(Enum):
    DISCRETE = "discrete"
    FLOAT_UNIFORM = "float_uniform"
    GAUSSIAN = "gaussian"
    EXPONENTIAL = "exponential"

    @property
    def is_continuous(self) -> bool:
        return self is not DistributionType.DISCRETE


def _as_var(value: Any) -> Var:
    return value if isinstance(value, Var) else Var(value)


class EventValueRange:
    """Set or continuous extent of the values of one event variable.

    Discrete ranges hold their values; continuous ranges hold at most two
    float bounds. A GAUSSIAN range without bounds spans the whole float
    line, an EXPONENTIAL one starts at zero.
    """

    def __init__(
        self,
        values: Iterable[Any] = (),
        dist_type: DistributionType = DistributionType.DISCRETE,
    ) -> None:
        self.dist_type = dist_type
        self._values: set[Var] = set()
        for v in values:
            var = _as_var(v)
            if dist_type.is_continuous:
                if var.type is not ScalarType.FLOAT or var.is_interval:
                    raise ValueError(f"Continuous range bounds must be floats, got {var!r}")
                if len(self._values) >= 2:
                    raise ValueError("A continuous range holds at most two bounds")
                self._values.add(var)
            elif not self.add(var):
                raise ValueError(f"Value {var!r} does not match the range type {self.type}")

    @classmethod
    def boolean(cls) -> EventValueRange:
        """The range {false, true}."""
        return cls([False, True])

    @classmethod
    def uniform(cls, low: float, high: float) -> EventValueRange:
        return cls([float(low), float(high)], DistributionType.FLOAT_UNIFORM)

    @classmethod
    def gaussian(cls) -> EventValueRange:
        return cls(dist_type=DistributionType.GAUSSIAN)

    @classmethod
    def exponential(cls) -> EventValueRange:
        return cls([0.0], DistributionType.EXPONENTIAL)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def type(self) -> Optional[ScalarType]:
        """Scalar type of the members, None while a discrete range is empty."""
        if self.dist_type.is_continuous:
            return ScalarType.FLOAT
        for v in self._values:
            return v.type
        return None

    @property
    def values(self) -> list[Var]:
        return sorted(self._values)

    @property
    def low(self) -> Any:
        if self.dist_type is DistributionType.EXPONENTIAL and len(self._values) < 2:
            return 0.0
        if not self._values:
            return float("-inf") if self.dist_type.is_continuous else None
        return min(self._values).value

    @property
    def high(self) -> Any:
        if self.dist_type.is_continuous and len(self._values) < 2:
            return float("inf")
        if not self._values:
            return None
        return max(self._values).value

    def empty(self) -> bool:
        return not self._values

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[Var]:
        return iter(self.values)

    def __contains__(self, value: Any) -> bool:
        return self.valid_value(_as_var(value))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EventValueRange):
            return NotImplemented
        return self.dist_type is other.dist_type and self._values == other._values

    def __repr__(self) -> str:
        if self.dist_type.is_continuous:
            return f"<EventValueRange {self.dist_type.value} [{self.low}, {self.high}]>"
        shown = ", ".join(str(v) for v in self.values)
        return f"<EventValueRange {{{shown}}}>"

    # ------------------------------------------------------------------
    # Extension
    # ------------------------------------------------------------------

    def _same_tag(self, value: Var) -> bool:
        for member in self._values:
            return member.same_tag(value)
        return True

    def add(self, value: Any) -> bool:
        """Insert a value. Fails for continuous ranges and mismatching tags."""
        if self.dist_type.is_continuous:
            return False
        var = _as_var(value)
        if not self._same_tag(var):
            return False
        self._values.add(var)
        return True

    def add_range(self, low: Any, high: Any) -> bool:
        """Add every value of [low, high] for integral types; for floats store
        the two bounds and switch to a continuous uniform range."""
        lo, hi = _as_var(low), _as_var(high)
        if not lo.same_tag(hi) or lo.is_interval:
            return False
        if lo.type is ScalarType.FLOAT:
            if lo == hi:
                return False
            if self._values and not self.dist_type.is_continuous:
                return False
            self._values = {lo, hi}
            if self.dist_type is DistributionType.DISCRETE:
                self.dist_type = DistributionType.FLOAT_UNIFORM
            return True
        if not lo.type.is_integral or self.dist_type.is_continuous or not self._same_tag(lo):
            return False
        if hi < lo:
            lo, hi = hi, lo
        if lo.type is ScalarType.BOOL:
            candidates = [b for b in (False, True) if lo.value <= b <= hi.value]
        elif lo.type is ScalarType.CHAR:
            candidates = [chr(c) for c in range(ord(lo.value), ord(hi.value) + 1)]
        else:
            candidates = list(range(lo.value, hi.value + 1))
        self._values.update(Var(c, lo.type) for c in candidates)
        return True

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def valid_type(self, value: Var) -> bool:
        """Whether value (or an interval over its type) fits the range's scalar type."""
        if self.dist_type.is_continuous:
            return value.type is ScalarType.FLOAT
        for member in self._values:
            return member.type is value.type
        return True

    def valid_value(self, value: Var) -> bool:
        """Membership for discrete ranges; for continuous ones a float (or
        float interval) within [low, high]. An empty continuous range accepts
        any float."""
        if self.dist_type.is_continuous:
            if value.type is not ScalarType.FLOAT:
                return False
            if not self._values and self.dist_type is not DistributionType.EXPONENTIAL:
                return True
            if value.is_interval:
                return True
            return self.low <= value.value <= self.high
        return value in self._values

    def make_event_collection(self, name: str) -> list[Event]:
        """One equality event per value, in value order."""
        return [Event(name, v, Operation.EQUALS) for v in self.values]

    def copy(self) -> EventValueRange:
        clone = EventValueRange(dist_type=self.dist_type)
        clone._values = set(self._values)
        return clone
