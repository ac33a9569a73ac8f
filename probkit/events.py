"""
probkit Events

The algebraic skeleton of P(event | condition):

- Event: a predicate over a named variable, (name, value, operation)
- EventCatenation: a conjunction of events, kept sorted by event order
- CondEvent: a pair of catenations denoting P(event | condition)

Two events conflict when they share a name but differ in value or
operation. Catenations and conditional events refuse conflicting members
with EventListConflictError, so a well-formed CondEvent never asks for two
incompatible values of one variable.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Union

from probkit.errors import EventError, EventListConflictError
from probkit.interval import Interval, ScalarType
from probkit.variant import Operation, Var, default_operation


# ============================================================================
# Event
# ============================================================================

@functools.total_ordering
@dataclass(frozen=True, eq=False)
class Event:
    """A named predicate. A placeholder event carries no value and matches nothing."""
    name: str
    value: Optional[Var] = None
    op: Optional[Operation] = None

    def __post_init__(self) -> None:
        value = self.value
        if value is not None and not isinstance(value, Var):
            value = Var(value)
            object.__setattr__(self, "value", value)
        if self.op is None:
            op = Operation.PLACEHOLDER if value is None else default_operation(value)
            object.__setattr__(self, "op", op)
        elif value is None and self.op is not Operation.PLACEHOLDER:
            raise EventError(f"Event '{self.name}' with operation {self.op.name} needs a value")

    @classmethod
    def placeholder(cls, name: str) -> Event:
        return cls(name, None, Operation.PLACEHOLDER)

    @property
    def is_placeholder(self) -> bool:
        return self.op is Operation.PLACEHOLDER

    def interval(self, scalar_type: Optional[ScalarType] = None) -> Interval:
        """The event's interval, or [v, v] for a scalar value.

        Raises:
            EventError: placeholder event, or a value of another scalar type
                than the one requested
        """
        if self.value is None:
            raise EventError(f"Placeholder event '{self.name}' has no interval")
        if scalar_type is not None and self.value.type is not scalar_type:
            raise EventError(
                f"Event '{self.name}' holds a {self.value.tag} value, "
                f"not a {scalar_type.value} interval"
            )
        return self.value.to_interval()

    def not_conflicting(self, other: Event) -> bool:
        return self.name != other.name or (self.value == other.value and self.op is other.op)

    def conflicts(self, other: Event) -> bool:
        return not self.not_conflicting(other)

    def matches(self, other: Event) -> bool:
        """Whether this event's value satisfies other's predicate."""
        if self.value is None or other.value is None:
            return False
        return self.name == other.name and other.op(self.value, other.value)

    def __and__(self, other: EventLike) -> EventCatenation:
        return EventCatenation(self) & other

    def _key(self) -> tuple:
        return (self.name, self.value is not None, self.value, self.op.name)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Event):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other: Event) -> bool:
        if not isinstance(other, Event):
            return NotImplemented
        return self._key() < other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __str__(self) -> str:
        if self.is_placeholder:
            return f"{self.name}=?"
        if self.op is Operation.EQUALS:
            return f"{self.name}={self.value}"
        return f"{self.name} {self.op.symbol} {self.value}"

    def __repr__(self) -> str:
        return f"<Event {self}>"


# ============================================================================
# Event catenation
# ============================================================================

EventLike = Union[Event, "EventCatenation", Iterable[Event], None]


@functools.total_ordering
class EventCatenation:
    """An immutable conjunction of events, sorted by event order.

    Built with & :  Event("A", 1) & Event("B", 2)
    """

    __slots__ = ("_events",)

    def __init__(self, events: EventLike = None) -> None:
        self._events: tuple[Event, ...] = ()
        for event in _flatten(events):
            self._events = self._inserted(event)

    def _inserted(self, event: Event) -> tuple[Event, ...]:
        for existing in self._events:
            if existing.conflicts(event):
                raise EventListConflictError(existing, event)
            if existing == event:
                return self._events
        return tuple(sorted(self._events + (event,)))

    def __and__(self, other: EventLike) -> EventCatenation:
        result = EventCatenation(self._events)
        for event in _flatten(other):
            result._events = result._inserted(event)
        return result

    __rand__ = __and__

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def events(self) -> tuple[Event, ...]:
        return self._events

    def names(self) -> list[str]:
        return [e.name for e in self._events]

    def has_event(self, name_or_event: Union[str, Event]) -> bool:
        if isinstance(name_or_event, Event):
            return name_or_event in self._events
        return any(e.name == name_or_event for e in self._events)

    def event_by_name(self, name: str) -> Optional[Event]:
        for event in self._events:
            if event.name == name:
                return event
        return None

    def without(self, name: str) -> EventCatenation:
        return EventCatenation(e for e in self._events if e.name != name)

    def move_event(self, name: str, target: EventCatenation) -> tuple[EventCatenation, EventCatenation]:
        """Move the event called name into target.

        Returns (self without the event, target with it). Unknown names leave
        both unchanged.
        """
        event = self.event_by_name(name)
        if event is None:
            return self, target
        return self.without(name), target & event

    def matches(self, other: EventCatenation) -> bool:
        """Pairwise match of equally long catenations."""
        if len(self) != len(other):
            return False
        return all(mine.matches(theirs) for mine, theirs in zip(self._events, other._events))

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self):
        return iter(self._events)

    def __bool__(self) -> bool:
        return bool(self._events)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EventCatenation):
            return NotImplemented
        return self._events == other._events

    def __lt__(self, other: EventCatenation) -> bool:
        if not isinstance(other, EventCatenation):
            return NotImplemented
        return self._events < other._events

    def __hash__(self) -> int:
        return hash(self._events)

    def __str__(self) -> str:
        return ", ".join(str(e) for e in self._events)

    def __repr__(self) -> str:
        return f"<EventCatenation {self}>"


def _flatten(events: EventLike) -> list[Event]:
    if events is None:
        return []
    if isinstance(events, Event):
        return [events]
    if isinstance(events, EventCatenation):
        return list(events.events)
    return [e for e in events if e is not None]


# ============================================================================
# Conditional event
# ============================================================================

@functools.total_ordering
@dataclass(frozen=True, eq=False)
class CondEvent:
    """P(event | condition).

    Raises:
        EventListConflictError: either side, or the two sides against each
            other, contain conflicting events
    """
    event: EventCatenation = field(default_factory=EventCatenation)
    condition: EventCatenation = field(default_factory=EventCatenation)

    def __post_init__(self) -> None:
        if not isinstance(self.event, EventCatenation):
            object.__setattr__(self, "event", EventCatenation(self.event))
        if not isinstance(self.condition, EventCatenation):
            object.__setattr__(self, "condition", EventCatenation(self.condition))
        for e in self.event:
            for c in self.condition:
                if e.conflicts(c):
                    raise EventListConflictError(e, c)

    @property
    def event_size(self) -> int:
        return len(self.event)

    @property
    def condition_size(self) -> int:
        return len(self.condition)

    def contains_condition(self, name_or_event: Union[str, Event]) -> bool:
        return self.condition.has_event(name_or_event)

    def filter_conditions(self, names: Iterable[str]) -> CondEvent:
        """Keep the conditions named in names; add placeholders for names
        without a condition."""
        wanted = list(names)
        kept = [c for c in self.condition if c.name in wanted]
        present = {c.name for c in kept}
        missing = [Event.placeholder(n) for n in wanted if n not in present]
        return CondEvent(self.event, EventCatenation(kept + missing))

    def chain_rule(self, names: Optional[Iterable[str]] = None) -> list[CondEvent]:
        """Factor P(A1..An | C) into [P(A1 | A2..An, C), ..., P(An | C)].

        names fixes the order A1..An; event names not listed follow in
        catenation order. The product of the factors equals the joint.
        """
        order = [n for n in (names or []) if self.event.has_event(n)]
        order += [n for n in self.event.names() if n not in order]
        factors: list[CondEvent] = []
        condition = self.condition
        for name in reversed(order):
            event = self.event.event_by_name(name)
            factors.append(CondEvent(EventCatenation(event), condition))
            condition = condition & event
        factors.reverse()
        return factors

    def _key(self) -> tuple:
        return (self.condition, self.event)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CondEvent):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other: CondEvent) -> bool:
        if not isinstance(other, CondEvent):
            return NotImplemented
        return self._key() < other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __str__(self) -> str:
        if not self.condition:
            return f"P({self.event})"
        return f"P({self.event} | {self.condition})"

    def __repr__(self) -> str:
        return f"<CondEvent {self}>"


def make_condition(**values: Any) -> EventCatenation:
    """Equality catenation from keyword values: make_condition(Rain="heavy")."""
    return EventCatenation(Event(name, value) for name, value in values.items())
