"""
probkit - typed probability toolkit
Variants, policy-driven directed graphs, probability functions and Bayesian networks.

Layer 1: Values - intervals, tagged variants, bounded integers
Layer 2: Structure - directed graphs, events, value ranges, tables
Layer 3: Inference - probability functions, Bayesian networks, Bayes-Ball
"""

__version__ = "0.1.0"

from probkit.interval import Bound, Interval, ScalarType
from probkit.variant import Operation, Var, scan_as, scan_bool
from probkit.bounded import (
    BoundedInt,
    ConvertCircularScale,
    ConvertScale,
    IntType,
    ResolveInvalid,
    ResolveModulo,
    ResolveThrow,
)
from probkit.graph import (
    DIRECTED_ACYCLIC_GRAPH,
    DIRECTED_ACYCLIC_PARALLEL_GRAPH,
    DIRECTED_GRAPH,
    DirectedGraph,
    GraphPolicy,
    VertexEdgePath,
)
from probkit.events import CondEvent, Event, EventCatenation, make_condition
from probkit.ranges import DistributionType, EventValueRange
from probkit.table import ColumnType, Table
from probkit.distributions import (
    DiscreteProbability,
    ExponentialFunction,
    GaussFunction,
    ProbabilityFunction,
    UniformFloatFunction,
    make_function,
)
from probkit.bayes import BayesNet, Dependency, Node
from probkit.errors import ProbkitError

__all__ = [
    "Bound",
    "Interval",
    "ScalarType",
    "Operation",
    "Var",
    "scan_as",
    "scan_bool",
    "BoundedInt",
    "ConvertCircularScale",
    "ConvertScale",
    "IntType",
    "ResolveInvalid",
    "ResolveModulo",
    "ResolveThrow",
    "DIRECTED_ACYCLIC_GRAPH",
    "DIRECTED_ACYCLIC_PARALLEL_GRAPH",
    "DIRECTED_GRAPH",
    "DirectedGraph",
    "GraphPolicy",
    "VertexEdgePath",
    "CondEvent",
    "Event",
    "EventCatenation",
    "make_condition",
    "DistributionType",
    "EventValueRange",
    "ColumnType",
    "Table",
    "DiscreteProbability",
    "ExponentialFunction",
    "GaussFunction",
    "ProbabilityFunction",
    "UniformFloatFunction",
    "make_function",
    "BayesNet",
    "Dependency",
    "Node",
    "ProbkitError",
]
