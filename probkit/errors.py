"""
probkit failure taxonomy

Every failure raised by the library derives from ProbkitError so callers can
catch the whole family at one seam. Each subclass keeps the values that
describe the failure as attributes, not only in the message.
"""

from __future__ import annotations

from typing import Any, Optional


class ProbkitError(Exception):
    """Base class for all probkit failures."""


# ============================================================================
# Variant layer
# ============================================================================

class CastError(ProbkitError, TypeError):
    """A variant payload was requested at the wrong tag."""
    def __init__(self, from_tag: str, to_tag: str):
        super().__init__(f"Cannot cast variant of type '{from_tag}' to '{to_tag}'")
        self.from_tag = from_tag
        self.to_tag = to_tag


class BoolScanError(ProbkitError, ValueError):
    """A literal is not part of the boolean lexicon."""
    def __init__(self, literal: str):
        super().__init__(f"'{literal}' is not a boolean literal")
        self.literal = literal


# ============================================================================
# Bounded integers
# ============================================================================

class OutOfRangeError(ProbkitError, ValueError):
    """A bounded integer value violates [low, high]."""
    def __init__(self, low: int, high: int, value: Any):
        super().__init__(f"Value {value} is out of range [{low}, {high}]")
        self.low = low
        self.high = high
        self.value = value


# ============================================================================
# Graph
# ============================================================================

class GraphError(ProbkitError):
    """Base class for refused graph operations."""


class VertexExistenceError(GraphError):
    def __init__(self, vertex: Any, exists: bool = False):
        state = "already exists" if exists else "does not exist"
        super().__init__(f"Vertex {vertex!r} {state}")
        self.vertex = vertex
        self.exists = exists


class EdgeExistenceError(GraphError):
    def __init__(self, source: Any, target: Any):
        super().__init__(f"Edge {source!r} -> {target!r} does not exist")
        self.source = source
        self.target = target


class ParallelEdgeError(GraphError):
    def __init__(self, source: Any, target: Any):
        super().__init__(f"Edge {source!r} -> {target!r} already exists")
        self.source = source
        self.target = target


class CycleError(GraphError):
    def __init__(self, source: Any, target: Any):
        super().__init__(f"Edge {source!r} -> {target!r} would create a cycle")
        self.source = source
        self.target = target


# ============================================================================
# Events and distributions
# ============================================================================

class EventListConflictError(ProbkitError):
    """Two events in a conjunction share a name with incompatible value/op."""
    def __init__(self, first: Any, second: Any = None):
        detail = f"{first}" if second is None else f"{first} and {second}"
        super().__init__(f"Conflicting events: {detail}")
        self.first = first
        self.second = second


class EventError(ProbkitError):
    """An event cannot provide what was asked of it."""


class EventRangeError(ProbkitError):
    """A value lies outside the domain of a probability function."""

    EXPONENTIAL_RANGE = "ExponentialRange"
    FLOAT_RANGE = "FloatRange"

    def __init__(self, kind: str, value: Any):
        super().__init__(f"{kind}: value {value!r} is outside the allowed range")
        self.kind = kind
        self.value = value


class DistributionError(ProbkitError):
    """A probability table is malformed or a query does not fit it."""
    def __init__(self, explanation: str, value: Optional[Any] = None):
        if value is not None:
            explanation = f"{explanation} (bad value: {value!r})"
        super().__init__(explanation)
        self.value = value
