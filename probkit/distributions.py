"""
probkit Probability Functions

A probability function answers P(event | condition) for conditional events
whose event side holds exactly one event. The condition side selects the
parameters: a discrete table keeps one probability per (event, condition)
combination, the continuous families keep their parameters per condition.

All functions train from a Table laid out as

    event column, condition columns..., [weight column]

and every function validates a query against its declared event and
condition value ranges before evaluating it.

Families:
    DiscreteProbability    table of probabilities summing to 1 per condition
    UniformFloatFunction   uniform on [low, high]
    GaussFunction          normal with (mu, sigma)
    ExponentialFunction    1 - exp(-lambda x) on x >= 0
"""

from __future__ import annotations

import itertools
import logging
import math
from abc import ABC, abstractmethod
from typing import ClassVar, Iterator, Optional

import numpy as np
from scipy import stats

from probkit.errors import DistributionError, EventRangeError
from probkit.events import CondEvent, Event, EventCatenation
from probkit.interval import ScalarType
from probkit.ranges import DistributionType, EventValueRange
from probkit.table import ColumnType, Table
from probkit.variant import Operation, Var

logger = logging.getLogger(__name__)

NORMALISATION_TOLERANCE = 1e-12
RESULT_COLUMN = "[[RESULT]]"


# ============================================================================
# Base
# ============================================================================

class ProbabilityFunction(ABC):
    """Common contract of all probability functions.

    Subclasses implement `probability` (evaluation of an already validated
    query) and `train`. Callers use `P`, which validates first.
    """

    dist_type: ClassVar[DistributionType]

    def __init__(
        self,
        event_value_ranges: Optional[dict[str, EventValueRange]] = None,
        condition_value_ranges: Optional[dict[str, EventValueRange]] = None,
    ) -> None:
        self.event_value_ranges: dict[str, EventValueRange] = {
            name: r.copy() for name, r in (event_value_ranges or {}).items()
        }
        self.condition_value_ranges: dict[str, EventValueRange] = {
            name: r.copy() for name, r in (condition_value_ranges or {}).items()
        }

    @abstractmethod
    def probability(self, ce: CondEvent) -> float:
        """Evaluate P(ce). The query has already passed possible_cond_event."""
        ...

    @abstractmethod
    def train(self, table: Table, accumulative: bool = False) -> None:
        ...

    @abstractmethod
    def clear(self) -> None:
        ...

    def P(self, ce: CondEvent) -> float:
        """P(event | condition).

        Raises:
            DistributionError: the query names unknown events or conditions,
                or its values do not fit the declared ranges
        """
        problem = self.explain_impossible(ce)
        if problem is not None:
            raise DistributionError(problem)
        return self.probability(ce)

    # ------------------------------------------------------------------
    # Query validation
    # ------------------------------------------------------------------

    def explain_impossible(self, ce: CondEvent) -> Optional[str]:
        """Why ce cannot be asked of this function, or None if it can."""
        for event in ce.event:
            if event.name not in self.event_value_ranges:
                return f"Unknown event '{event.name}'. Events: {sorted(self.event_value_ranges)}"
            if event.value is not None and not self.event_value_ranges[event.name].valid_type(event.value):
                return f"Event {event} does not match the type of its range"
        for cond in ce.condition:
            if cond.name not in self.condition_value_ranges:
                return (f"Unknown condition '{cond.name}'. "
                        f"Conditions: {sorted(self.condition_value_ranges)}")
            if cond.value is not None and not self.condition_value_ranges[cond.name].valid_type(cond.value):
                return f"Condition {cond} does not match the type of its range"
        return None

    def possible_cond_event(self, ce: CondEvent) -> bool:
        return self.explain_impossible(ce) is None

    # ------------------------------------------------------------------
    # Ranges
    # ------------------------------------------------------------------

    def add_value_to_event_range(self, name: str, value: Var) -> None:
        if name in self.condition_value_ranges:
            raise DistributionError(f"'{name}' is already a condition, it cannot be an event")
        rng = self.event_value_ranges.setdefault(name, EventValueRange())
        if not rng.dist_type.is_continuous and not rng.add(value):
            raise DistributionError(f"Value {value!r} does not fit the range of event '{name}'")

    def add_value_to_condition_range(self, name: str, value: Var) -> None:
        if name in self.event_value_ranges:
            raise DistributionError(f"'{name}' is already an event, it cannot be a condition")
        rng = self.condition_value_ranges.setdefault(name, EventValueRange())
        if not rng.add(value):
            raise DistributionError(f"Value {value!r} does not fit the range of condition '{name}'")

    # ------------------------------------------------------------------
    # Training helpers
    # ------------------------------------------------------------------

    @staticmethod
    def prepare_table(table: Table, accumulative: bool) -> Table:
        """Make sure the last column holds row weights."""
        if table.columns == 0:
            raise DistributionError("Cannot train from a table without columns")
        if not accumulative or table.columns < 2 or not table.has_weight_column:
            table = table.append_column(RESULT_COLUMN, ColumnType.FLOAT, 1.0)
        return table

    @staticmethod
    def observations(table: Table) -> Iterator[tuple[CondEvent, float]]:
        """(P(event | conditions), weight) per row of a prepared table."""
        names = table.header
        last = table.columns - 1
        for row in table.rows:
            event = Event(names[0], row[0], Operation.EQUALS)
            conditions = EventCatenation(
                Event(names[i], row[i], Operation.EQUALS) for i in range(1, last)
            )
            yield CondEvent(event, conditions), row[last].as_float()

    def _train_conditions(self, table: Table) -> None:
        for i in range(1, table.columns - 1):
            for value in table.column(i):
                self.add_value_to_condition_range(table.header[i], value)

    def __repr__(self) -> str:
        return (f"<{type(self).__name__} events={sorted(self.event_value_ranges)} "
                f"conditions={sorted(self.condition_value_ranges)}>")


def _float_bounds(event: Event) -> tuple[Optional[float], Optional[float]]:
    """(low, high) of a float event; None marks an infinite side."""
    itvl = event.interval(ScalarType.FLOAT)
    low = None if itvl.left_full else itvl.low
    high = None if itvl.right_full else itvl.high
    return low, high


def _single_event(ce: CondEvent) -> Event:
    if ce.event_size != 1:
        raise DistributionError(f"Expected exactly one event, got {ce.event_size} in {ce}")
    return ce.event.events[0]


# ============================================================================
# Discrete
# ============================================================================

class DiscreteProbability(ProbabilityFunction):
    """A table of P(event | condition) over discrete ranges."""

    dist_type = DistributionType.DISCRETE

    def __init__(
        self,
        event_value_ranges: Optional[dict[str, EventValueRange]] = None,
        condition_value_ranges: Optional[dict[str, EventValueRange]] = None,
    ) -> None:
        super().__init__(event_value_ranges, condition_value_ranges)
        self.values: dict[CondEvent, float] = {}

    def clear(self) -> None:
        self.values.clear()

    def __len__(self) -> int:
        return len(self.values)

    def __setitem__(self, ce: CondEvent, p: float) -> None:
        self.values[ce] = float(p)

    def __getitem__(self, ce: CondEvent) -> float:
        return self.values.get(ce, 0.0)

    def blocks(self) -> dict[EventCatenation, list[CondEvent]]:
        """Table keys grouped by their condition side."""
        grouped: dict[EventCatenation, list[CondEvent]] = {}
        for ce in sorted(self.values):
            grouped.setdefault(ce.condition, []).append(ce)
        return grouped

    # ------------------------------------------------------------------
    # Training
    # ------------------------------------------------------------------

    def train(self, table: Table, accumulative: bool = False) -> None:
        """Accumulate row weights per (event, condition), then normalize."""
        table = self.prepare_table(table, accumulative)
        self.values.clear()
        for ce, weight in self.observations(table):
            self.values[ce] = self.values.get(ce, 0.0) + weight
        for ce in self.values:
            for event in ce.event:
                self.add_value_to_event_range(event.name, event.value)
            for cond in ce.condition:
                self.add_value_to_condition_range(cond.name, cond.value)
        logger.debug("Trained discrete table with %d entries from %d rows",
                     len(self.values), table.lines)
        self.normalize()

    # ------------------------------------------------------------------
    # Shaping
    # ------------------------------------------------------------------

    def canonize(self) -> None:
        """Add a zero entry for every (event, condition) combination the
        ranges admit.

        Raises:
            DistributionError: the event ranges are empty or a range is
                continuous
        """
        if not self.event_value_ranges or any(r.empty() for r in self.event_value_ranges.values()):
            raise DistributionError("Canonise: event value ranges are empty")
        for name, rng in {**self.event_value_ranges, **self.condition_value_ranges}.items():
            if rng.dist_type.is_continuous:
                raise DistributionError(f"Canonise: range of '{name}' is continuous")
            if rng.empty():
                raise DistributionError(f"Canonise: range of '{name}' is empty")
        event_sets = [self.event_value_ranges[n].make_event_collection(n)
                      for n in sorted(self.event_value_ranges)]
        cond_sets = [self.condition_value_ranges[n].make_event_collection(n)
                     for n in sorted(self.condition_value_ranges)]
        for cond_combo in itertools.product(*cond_sets):
            condition = EventCatenation(cond_combo)
            for event_combo in itertools.product(*event_sets):
                self.values.setdefault(CondEvent(EventCatenation(event_combo), condition), 0.0)

    def normalize(self) -> None:
        """Scale each condition block to sum 1; all-zero blocks become uniform.

        Raises:
            DistributionError: a negative entry
        """
        if not self.values:
            self.canonize()
        for ce, p in self.values.items():
            if p < 0.0:
                raise DistributionError(f"Normalise: negative probability for {ce}", p)
        for keys in self.blocks().values():
            total = math.fsum(self.values[k] for k in keys)
            for k in keys:
                self.values[k] = 1.0 / len(keys) if total == 0.0 else self.values[k] / total

    def make_uniform(self) -> None:
        self.canonize()
        for keys in self.blocks().values():
            for k in keys:
                self.values[k] = 1.0 / len(keys)

    def is_distribution(self) -> bool:
        if not self.values:
            return False
        if any(p < 0.0 for p in self.values.values()):
            return False
        return all(
            abs(math.fsum(self.values[k] for k in keys) - 1.0) <= NORMALISATION_TOLERANCE
            for keys in self.blocks().values()
        )

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def P(self, ce: CondEvent) -> float:
        """Table lookup of P(ce). Entries missing from the table are 0.

        Raises:
            DistributionError: the table is not a distribution, or the query
                does not fit the ranges
        """
        if not self.is_distribution():
            raise DistributionError("Table is not a normalised distribution")
        return super().P(ce)

    def probability(self, ce: CondEvent) -> float:
        if ce in self.values:
            return self.values[ce]
        if all(e.op is Operation.EQUALS for e in ce.event):
            return 0.0
        # predicate events sum the matching entries of their condition block
        return math.fsum(
            p for key, p in self.values.items()
            if key.condition == ce.condition and key.event.matches(ce.event)
        )

    def __str__(self) -> str:
        lines = []
        for ce in sorted(self.values):
            lines.append(f"{ce} = {self.values[ce]:.6g}")
        return "\n".join(lines)


# ============================================================================
# Uniform
# ============================================================================

class UniformFloatFunction(ProbabilityFunction):
    """Uniform density on [low, high] per condition."""

    dist_type = DistributionType.FLOAT_UNIFORM

    def __init__(
        self,
        low: Optional[float] = None,
        high: Optional[float] = None,
        event_value_ranges: Optional[dict[str, EventValueRange]] = None,
        condition_value_ranges: Optional[dict[str, EventValueRange]] = None,
    ) -> None:
        super().__init__(event_value_ranges, condition_value_ranges)
        self.params: dict[EventCatenation, tuple[float, float]] = {}
        if low is not None and high is not None:
            self.set_parameter(low, high)

    def clear(self) -> None:
        self.params.clear()

    def set_parameter(self, low: float, high: float,
                      condition: Optional[EventCatenation] = None) -> None:
        low, high = sorted((float(low), float(high)))
        if low == high:
            raise DistributionError("Uniform distribution needs low < high", low)
        self.params[condition or EventCatenation()] = (low, high)

    def parameter(self, condition: Optional[EventCatenation] = None) -> tuple[float, float]:
        key = condition or EventCatenation()
        if key not in self.params:
            raise DistributionError(f"No uniform parameters for condition ({key})")
        return self.params[key]

    def probability(self, ce: CondEvent) -> float:
        low, high = self.parameter(ce.condition)
        ev_low, ev_high = _float_bounds(_single_event(ce))
        lo = low if ev_low is None else max(ev_low, low)
        hi = high if ev_high is None else min(ev_high, high)
        if hi <= lo:
            return 0.0
        return (hi - lo) / (high - low)

    def train(self, table: Table, accumulative: bool = False) -> None:
        """Min and max of the observations per condition, each side widened
        by 1/occurrences."""
        table = self.prepare_table(table, accumulative)
        self.params.clear()
        extents: dict[EventCatenation, list[float]] = {}
        for ce, weight in self.observations(table):
            if weight <= 0.0:
                continue
            x = _single_event(ce).value.as_float()
            low, high, seen = extents.get(ce.condition, (x, x, 0.0))
            extents[ce.condition] = [min(low, x), max(high, x), seen + weight]
        for condition, (low, high, seen) in extents.items():
            self.params[condition] = (low - 1.0 / seen, high + 1.0 / seen)
        if self.params:
            overall_low = min(p[0] for p in self.params.values())
            overall_high = max(p[1] for p in self.params.values())
            self.event_value_ranges[table.header[0]] = EventValueRange.uniform(overall_low, overall_high)
        self._train_conditions(table)
        logger.debug("Trained uniform function for %d conditions", len(self.params))

    def __str__(self) -> str:
        return "\n".join(
            f"({cond}) uniform on [{low:.6g}, {high:.6g}]"
            for cond, (low, high) in sorted(self.params.items())
        )


# ============================================================================
# Gaussian
# ============================================================================

class GaussFunction(ProbabilityFunction):
    """Normal distribution per condition, evaluated through the normal CDF."""

    dist_type = DistributionType.GAUSSIAN

    def __init__(
        self,
        mu: Optional[float] = None,
        sigma: Optional[float] = None,
        event_value_ranges: Optional[dict[str, EventValueRange]] = None,
        condition_value_ranges: Optional[dict[str, EventValueRange]] = None,
    ) -> None:
        super().__init__(event_value_ranges, condition_value_ranges)
        self.params: dict[EventCatenation, tuple[float, float]] = {}
        if mu is not None and sigma is not None:
            self.set_parameter(mu, sigma)

    def clear(self) -> None:
        self.params.clear()

    def set_parameter(self, mu: float, sigma: float,
                      condition: Optional[EventCatenation] = None) -> None:
        if sigma < 0.0:
            raise DistributionError("Standard deviation must not be negative", sigma)
        self.params[condition or EventCatenation()] = (float(mu), float(sigma))

    def _parameter(self, condition: Optional[EventCatenation]) -> tuple[float, float]:
        key = condition or EventCatenation()
        if key not in self.params:
            raise DistributionError(f"No gaussian parameters for condition ({key})")
        return self.params[key]

    def mu(self, condition: Optional[EventCatenation] = None) -> float:
        return self._parameter(condition)[0]

    def sigma(self, condition: Optional[EventCatenation] = None) -> float:
        return self._parameter(condition)[1]

    def probability(self, ce: CondEvent) -> float:
        mu, sigma = self._parameter(ce.condition)
        low, high = _float_bounds(_single_event(ce))

        def cdf(x: float) -> float:
            if sigma == 0.0:
                return 1.0 if x >= mu else 0.0
            return float(stats.norm.cdf(x, loc=mu, scale=sigma))

        p_low = 0.0 if low is None else cdf(low)
        p_high = 1.0 if high is None else cdf(high)
        return max(0.0, p_high - p_low)

    def train(self, table: Table, accumulative: bool = False) -> None:
        """Weighted mean and weighted (population) variance per condition."""
        table = self.prepare_table(table, accumulative)
        self.params.clear()
        samples: dict[EventCatenation, tuple[list[float], list[float]]] = {}
        for ce, weight in self.observations(table):
            if weight <= 0.0:
                continue
            xs, ws = samples.setdefault(ce.condition, ([], []))
            xs.append(_single_event(ce).value.as_float())
            ws.append(weight)
        for condition, (xs, ws) in samples.items():
            x = np.asarray(xs, dtype=float)
            w = np.asarray(ws, dtype=float)
            total = np.sum(w)
            mu = float(np.sum(x * w) / total)
            variance = float(np.sum((x - mu) ** 2 * w) / total)
            self.params[condition] = (mu, math.sqrt(variance))
        self.event_value_ranges[table.header[0]] = EventValueRange.gaussian()
        self._train_conditions(table)
        logger.debug("Trained gaussian function for %d conditions", len(self.params))

    def __str__(self) -> str:
        return "\n".join(
            f"({cond}) gaussian mu={mu:.6g} sigma={sigma:.6g}"
            for cond, (mu, sigma) in sorted(self.params.items())
        )


# ============================================================================
# Exponential
# ============================================================================

class ExponentialFunction(ProbabilityFunction):
    """P(x) = 1 - exp(-lambda x) on x >= 0, per condition."""

    dist_type = DistributionType.EXPONENTIAL

    def __init__(
        self,
        lambda_: Optional[float] = None,
        event_value_ranges: Optional[dict[str, EventValueRange]] = None,
        condition_value_ranges: Optional[dict[str, EventValueRange]] = None,
    ) -> None:
        super().__init__(event_value_ranges, condition_value_ranges)
        self.params: dict[EventCatenation, float] = {}
        if lambda_ is not None:
            self.set_parameter(lambda_)

    def clear(self) -> None:
        self.params.clear()

    def set_parameter(self, lambda_: float, condition: Optional[EventCatenation] = None) -> None:
        if lambda_ <= 0.0:
            raise DistributionError("Lambda must be positive", lambda_)
        self.params[condition or EventCatenation()] = float(lambda_)

    def lambda_(self, condition: Optional[EventCatenation] = None) -> float:
        key = condition or EventCatenation()
        if key not in self.params:
            raise DistributionError(f"No exponential parameter for condition ({key})")
        return self.params[key]

    def ln2_by_lambda(self, condition: Optional[EventCatenation] = None) -> float:
        """The median: P(0 <= x <= ln(2)/lambda) = 0.5."""
        return math.log(2.0) / self.lambda_(condition)

    def probability(self, ce: CondEvent) -> float:
        rate = self.lambda_(ce.condition)
        if rate <= 0.0:
            raise DistributionError(f"Lambda for condition ({ce.condition}) is not positive", rate)
        low, high = _float_bounds(_single_event(ce))
        low = 0.0 if low is None else max(low, 0.0)
        if high is not None and high <= 0.0:
            return 0.0

        def cdf(x: float) -> float:
            return float(stats.expon.cdf(x, scale=1.0 / rate))

        p_high = 1.0 if high is None else cdf(high)
        return max(0.0, p_high - cdf(low))

    def train(self, table: Table, accumulative: bool = False) -> None:
        """lambda = sum(w x) / sum(w) per condition.

        Raises:
            EventRangeError: a negative observation
            DistributionError: a condition whose observations are all 0
        """
        table = self.prepare_table(table, accumulative)
        self.params.clear()
        sums: dict[EventCatenation, list[float]] = {}
        for ce, weight in self.observations(table):
            if weight <= 0.0:
                continue
            x = _single_event(ce).value.as_float()
            if x < 0.0:
                raise EventRangeError(EventRangeError.EXPONENTIAL_RANGE, x)
            acc = sums.setdefault(ce.condition, [0.0, 0.0])
            acc[0] += weight * x
            acc[1] += weight
        for condition, (weighted, total) in sums.items():
            rate = weighted / total
            if rate <= 0.0:
                self.params.clear()
                raise DistributionError(f"Lambda for condition ({condition}) is not positive", rate)
            self.params[condition] = rate
        self.event_value_ranges[table.header[0]] = EventValueRange.exponential()
        self._train_conditions(table)
        logger.debug("Trained exponential function for %d conditions", len(self.params))

    def __str__(self) -> str:
        return "\n".join(
            f"({cond}) exponential lambda={rate:.6g}"
            for cond, rate in sorted(self.params.items())
        )


def make_function(
    dist_type: DistributionType,
    event_value_ranges: Optional[dict[str, EventValueRange]] = None,
    condition_value_ranges: Optional[dict[str, EventValueRange]] = None,
) -> ProbabilityFunction:
    """An empty function of the given family."""
    if dist_type is DistributionType.FLOAT_UNIFORM:
        return UniformFloatFunction(event_value_ranges=event_value_ranges,
                                    condition_value_ranges=condition_value_ranges)
    if dist_type is DistributionType.GAUSSIAN:
        return GaussFunction(event_value_ranges=event_value_ranges,
                             condition_value_ranges=condition_value_ranges)
    if dist_type is DistributionType.EXPONENTIAL:
        return ExponentialFunction(event_value_ranges=event_value_ranges,
                                   condition_value_ranges=condition_value_ranges)
    return DiscreteProbability(event_value_ranges, condition_value_ranges)
