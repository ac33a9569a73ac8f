"""
probkit Bayesian Network

A BayesNet is a directed acyclic graph over named nodes. Each node owns a
probability function of its own variable conditioned on its parents, trained
from a table or shaped by hand (make_uniform / canonize / normalize).

    net = BayesNet()
    net.add_cause_effect("Cloud", "Rain")
    net.add_cause_effect("Rain", "WetGrass")
    net.train_with_csv(Table.read_csv("weather.csv"))
    net.P(CondEvent(Event("Rain", "heavy"), Event("Cloud", True)))

Queries are factored by the chain rule in reverse topological order. A
factor that fixes every parent of its node and observes none of its
descendants is read from the node's table. Any other query is answered by
summing the joint over the unspecified ancestors of the query and dividing
by the same sum over the condition alone.

The Bayes-Ball pass (Shachter 1998) reads d-separation off the graph: it
reports which nodes are irrelevant to P(J | K) and drops the observations
that cannot influence the answer.
"""

from __future__ import annotations

import copy
import itertools
import logging
import math
from collections import deque
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional, Union

from probkit.distributions import DiscreteProbability, ProbabilityFunction, make_function
from probkit.errors import DistributionError
from probkit.events import CondEvent, Event, EventCatenation
from probkit.graph import DIRECTED_ACYCLIC_GRAPH, DirectedGraph
from probkit.ranges import DistributionType, EventValueRange
from probkit.table import ColumnType, Table
from probkit.variant import Operation

logger = logging.getLogger(__name__)

NETWORK_POLICY = replace(
    DIRECTED_ACYCLIC_GRAPH,
    throw_on_error=True,
    overwrite_edge_property=False,
)

_COLUMN_DISTRIBUTIONS = {
    ColumnType.FLOAT: DistributionType.FLOAT_UNIFORM,
    ColumnType.GAUSSIAN: DistributionType.GAUSSIAN,
    ColumnType.EXPONENTIAL: DistributionType.EXPONENTIAL,
}


# ============================================================================
# Nodes and dependencies
# ============================================================================

@dataclass(eq=False)
class Node:
    """A network variable. Nodes compare and hash by name."""
    name: str
    description: str = ""
    range: EventValueRange = field(default_factory=EventValueRange)
    distribution: Optional[ProbabilityFunction] = None
    apriori: Optional[ProbabilityFunction] = None

    def train(
        self,
        table: Table,
        accumulative: bool = False,
        dist_type: Optional[DistributionType] = None,
    ) -> None:
        """Train a fresh function from [node, parents..., weight?] columns."""
        dist_type = dist_type or self.range.dist_type
        function = make_function(dist_type)
        function.train(table, accumulative)
        self.distribution = function
        if dist_type.is_continuous:
            self.range = function.event_value_ranges[self.name].copy()
        else:
            for value in table.column(0):
                self.range.add(value)
        self.apriori = None
        logger.debug("Trained node %s as %s", self.name, dist_type.value)

    def _discrete(self, action: str,
                  condition_ranges: dict[str, EventValueRange]) -> DiscreteProbability:
        if isinstance(self.distribution, DiscreteProbability):
            return self.distribution
        if self.range.empty():
            raise DistributionError(
                f"{action}: cannot modify distribution as node-distribution is empty "
                f"and range is empty"
            )
        self.distribution = DiscreteProbability({self.name: self.range}, condition_ranges)
        return self.distribution

    def make_uniform(self, condition_ranges: dict[str, EventValueRange]) -> None:
        self._discrete("Make uniform", condition_ranges).make_uniform()
        self.apriori = None

    def normalize(self, condition_ranges: dict[str, EventValueRange]) -> None:
        self._discrete("Normalise", condition_ranges).normalize()
        self.apriori = None

    def canonize(self, condition_ranges: dict[str, EventValueRange]) -> None:
        self._discrete("Canonise", condition_ranges).canonize()
        self.apriori = None

    def has_distribution(self) -> bool:
        if self.distribution is None:
            return False
        if isinstance(self.distribution, DiscreteProbability):
            return self.distribution.is_distribution()
        return bool(getattr(self.distribution, "params", None))

    def P(self, ce: CondEvent) -> float:
        if self.distribution is None:
            return 0.0
        return self.distribution.P(ce)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Node):
            return self.name == other.name
        if isinstance(other, str):
            return self.name == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.name)

    def __repr__(self) -> str:
        state = "defined" if self.has_distribution() else "undefined"
        return f"<Node {self.name} {self.range!r} {state}>"


@dataclass(frozen=True)
class Dependency:
    """Edge property: condition -> event."""
    condition: str
    event: str

    @property
    def name(self) -> str:
        return f"{self.condition}->{self.event}"

    def __repr__(self) -> str:
        return f"<Dependency {self.name}>"


# ============================================================================
# Network
# ============================================================================

class BayesNet:
    """Bayesian network over a directed acyclic graph of node names."""

    def __init__(self) -> None:
        self._graph = DirectedGraph(NETWORK_POLICY, vertex_type=str, edge_type=Dependency)
        self._nodes: dict[str, Node] = {}

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    def add_node(
        self,
        name: str,
        range: Optional[EventValueRange] = None,
        description: str = "",
    ) -> bool:
        """Add a node; False if the name is taken."""
        if name in self._nodes:
            return False
        self._graph.add_vertex(name)
        self._nodes[name] = Node(name, description, range.copy() if range else EventValueRange())
        return True

    def remove_node(self, name: str) -> bool:
        if name not in self._nodes:
            return False
        self._graph.remove_vertex(name)
        del self._nodes[name]
        return True

    def get_node(self, name: str) -> Optional[Node]:
        return self._nodes.get(name)

    def has_node(self, name: str) -> bool:
        return name in self._nodes

    @property
    def node_names(self) -> list[str]:
        return list(self._nodes)

    def add_cause_effect(self, cause: str, effect: str) -> bool:
        """Insert cause -> effect, creating missing nodes.

        Raises:
            CycleError: the edge would close a cycle
            ParallelEdgeError: the edge already exists
        """
        self.add_node(cause)
        self.add_node(effect)
        return self._graph.add_edge(cause, effect, Dependency(cause, effect))

    def dependencies(self) -> list[Dependency]:
        return [prop for _, prop, _ in self._graph.get_edges()]

    def clear(self) -> None:
        self._graph.clear()
        self._nodes.clear()

    # ------------------------------------------------------------------
    # Neighbourhood
    # ------------------------------------------------------------------

    def parent_names(self, name: str) -> list[str]:
        if name not in self._nodes:
            return []
        return sorted(self._graph.get_parents(name))

    def child_names(self, name: str) -> list[str]:
        if name not in self._nodes:
            return []
        return sorted(self._graph.get_children(name))

    def parent_nodes(self, name: str) -> set[Node]:
        return {self._nodes[n] for n in self.parent_names(name)}

    def children_nodes(self, name: str) -> set[Node]:
        return {self._nodes[n] for n in self.child_names(name)}

    def connected_nodes(self, name: str) -> set[Node]:
        return self.parent_nodes(name) | self.children_nodes(name)

    def condition_ranges(self, name: str) -> dict[str, EventValueRange]:
        """Value ranges of the parents of name."""
        return {p: self._nodes[p].range for p in self.parent_names(name)}

    def breadth_first_node_names(self) -> list[str]:
        """Topological order; among ready nodes, names in ascending order."""
        return self._graph.topological_order(key=lambda name: name)

    # ------------------------------------------------------------------
    # Training and shaping
    # ------------------------------------------------------------------

    def train_with_csv(
        self,
        data: Union[Table, str, Path],
        has_probability_column: bool = True,
        is_discrete: bool = True,
    ) -> None:
        """Train every node from its own column, its parents' columns and the
        weight column (when the table's last column is a float column).

        With is_discrete False, float, gaussian and exponential node columns
        train the matching continuous function.
        """
        table = data if isinstance(data, Table) else Table.read_csv(data)
        weighted = has_probability_column and table.has_weight_column
        for name in self.breadth_first_node_names():
            columns = [name] + self.parent_names(name)
            if weighted:
                columns.append(table.header[-1])
            sub = table.sub_table(columns)
            dist_type = DistributionType.DISCRETE
            if not is_discrete:
                dist_type = _COLUMN_DISTRIBUTIONS.get(sub.types[0], DistributionType.DISCRETE)
            self._nodes[name].train(sub, weighted, dist_type)
        logger.info("Trained %d nodes from %d rows", len(self._nodes), table.lines)

    def _selected(self, name: Optional[str]) -> list[str]:
        if name is None:
            return self.breadth_first_node_names()
        if name not in self._nodes:
            raise KeyError(f"Unknown node '{name}'. Nodes: {self.node_names}")
        return [name]

    def make_uniform(self, name: Optional[str] = None) -> None:
        for n in self._selected(name):
            self._nodes[n].make_uniform(self.condition_ranges(n))

    def normalize(self, name: Optional[str] = None) -> None:
        for n in self._selected(name):
            self._nodes[n].normalize(self.condition_ranges(n))

    def canonize(self, name: Optional[str] = None) -> None:
        for n in self._selected(name):
            self._nodes[n].canonize(self.condition_ranges(n))

    def fully_defined(self) -> bool:
        return all(node.has_distribution() for node in self._nodes.values())

    # ------------------------------------------------------------------
    # A-priori propagation
    # ------------------------------------------------------------------

    def calculate_apriori_distributions(self) -> bool:
        """Marginal distribution of every node, in topological order:

            P_apriori(X) = sum over parent values pi of
                           P(X | pi) * prod_i P_apriori(Pa_i = pi_i)

        Root nodes copy their distribution. Nodes whose own or parents'
        functions are continuous get no a-priori; the result is False then.
        """
        complete = True
        for name in self.breadth_first_node_names():
            node = self._nodes[name]
            node.apriori = None
            if not node.has_distribution():
                complete = False
                continue
            parents = self.parent_names(name)
            if not parents:
                node.apriori = copy.deepcopy(node.distribution)
                continue
            parent_nodes = [self._nodes[p] for p in parents]
            if not isinstance(node.distribution, DiscreteProbability) or any(
                not isinstance(p.apriori, DiscreteProbability) for p in parent_nodes
            ):
                logger.info("No a-priori distribution for %s", name)
                complete = False
                continue
            node.apriori = self._propagate(node, parent_nodes)
        return complete

    def _propagate(self, node: Node, parents: list[Node]) -> DiscreteProbability:
        event_range = node.distribution.event_value_ranges[node.name]
        apriori = DiscreteProbability({node.name: event_range})
        parent_events = [p.apriori.event_value_ranges[p.name].make_event_collection(p.name)
                         for p in parents]
        for event in event_range.make_event_collection(node.name):
            total = 0.0
            for combo in itertools.product(*parent_events):
                weight = math.prod(
                    p.apriori.probability(CondEvent(e)) for p, e in zip(parents, combo)
                )
                if weight:
                    total += node.distribution.probability(CondEvent(event, combo)) * weight
            apriori[CondEvent(event)] = total
        apriori.normalize()
        return apriori

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def P(self, ce: CondEvent) -> float:
        """P(event | condition).

        The query is factored by the chain rule in reverse topological
        order. When every factor gives a value to each parent of its node and
        observes none of its descendants, the product of table lookups is
        the answer. Otherwise the answer is enumerated:

            P(J | K) = sum_h P(J, K, h) / sum_h P(K, h)

        where h ranges over the unspecified ancestors of the query.

        Raises:
            DistributionError: the network is not fully defined, an event
                names an unknown node, the query does not fit a node's
                ranges, a continuous node would have to be summed out, or
                the condition has probability zero
        """
        if not self.fully_defined():
            raise DistributionError("Network is not fully defined")
        if ce.event_size == 0:
            raise DistributionError("Query has no event")
        for event in itertools.chain(ce.event, ce.condition):
            if event.name not in self._nodes:
                raise DistributionError(f"Unknown node '{event.name}'. Nodes: {self.node_names}")

        factors = ce.chain_rule(list(reversed(self.breadth_first_node_names())))
        if all(self._is_local(f) for f in factors):
            return math.prod(self._local_probability(f) for f in factors)

        evidence = {c.name: c for c in ce.condition if not c.is_placeholder}
        query = dict(evidence)
        query.update((e.name, e) for e in ce.event)
        joint = self._enumerate(query)
        if not evidence:
            return joint
        marginal = self._enumerate(evidence)
        if marginal == 0.0:
            raise DistributionError(f"Condition of {ce} has probability zero")
        return joint / marginal

    def _is_local(self, ce: CondEvent) -> bool:
        """Whether the event node's own table answers ce: every parent has
        a value and no descendant is observed."""
        name = ce.event.events[0].name
        given = {c.name: c for c in ce.condition if not c.is_placeholder}
        for parent in self.parent_names(name):
            if parent not in given or given[parent].op is not Operation.EQUALS:
                return False
        return given.keys().isdisjoint(self._graph.get_descendants(name))

    def _local_probability(self, ce: CondEvent) -> float:
        name = ce.event.events[0].name
        return self._nodes[name].P(ce.filter_conditions(self.parent_names(name)))

    def _enumerate(self, fixed: dict[str, Event]) -> float:
        """Sum of the joint over the assignments of the fixed nodes and their
        ancestors that agree with the fixed events. Nodes outside that
        ancestral set sum to 1 and are left out."""
        closure = set(fixed)
        for name in fixed:
            closure |= self._graph.get_ancestors(name)
        names = [n for n in self.breadth_first_node_names() if n in closure]
        parents = {n: self.parent_names(n) for n in names}
        choices = [self._choices(n, fixed.get(n), closure) for n in names]

        total = 0.0
        for combo in itertools.product(*choices):
            assignment = dict(zip(names, combo))
            p = 1.0
            for name in names:
                condition = EventCatenation([assignment[q] for q in parents[name]])
                p *= self._nodes[name].P(CondEvent(assignment[name], condition))
                if p == 0.0:
                    break
            total += p
        return total

    def _choices(self, name: str, event: Optional[Event], closure: set[str]) -> list[Event]:
        """Events node name takes during enumeration."""
        node = self._nodes[name]
        if not isinstance(node.distribution, DiscreteProbability):
            if event is None:
                raise DistributionError(f"Cannot sum out continuous node '{name}'")
            if event.op is not Operation.EQUALS and closure.intersection(self.child_names(name)):
                raise DistributionError(f"Cannot condition the children of '{name}' on {event}")
            return [event]
        if event is not None and event.op is Operation.EQUALS:
            return [event]
        values = node.range.make_event_collection(name)
        if event is None:
            return values
        return [v for v in values if v.matches(event)]

    def apriori(self, name: str) -> Optional[ProbabilityFunction]:
        node = self._nodes.get(name)
        return None if node is None else node.apriori

    # ------------------------------------------------------------------
    # Bayes-Ball
    # ------------------------------------------------------------------

    def bayes_ball(self, ce: CondEvent) -> tuple[CondEvent, EventCatenation]:
        """Requisite query and irrelevant nodes for P(J | K).

        Balls start at every query node as if sent from a child. An
        unobserved node passes a ball from a child to its parents and
        children, and a ball from a parent to its children; an observed node
        bounces a ball from a parent back to its parents and blocks balls
        from children. Nodes never marked on the bottom are irrelevant,
        except observations the balls reached, which stay requisite.

        Returns:
            (the query with unreached observations removed,
             events of the irrelevant nodes; placeholders for unobserved ones)
        """
        observed = {c.name for c in ce.condition}
        visited: set[str] = set()
        top: set[str] = set()
        bottom: set[str] = set()
        schedule: deque[tuple[str, bool]] = deque(
            (name, True) for name in ce.event.names() if name in self._nodes
        )

        while schedule:
            name, from_child = schedule.popleft()
            visited.add(name)
            if from_child:
                if name in observed:
                    continue
                if name not in top:
                    top.add(name)
                    schedule.extend((p, True) for p in self.parent_names(name))
                if name not in bottom:
                    bottom.add(name)
                    schedule.extend((c, False) for c in self.child_names(name))
            elif name in observed:
                if name not in top:
                    top.add(name)
                    schedule.extend((p, True) for p in self.parent_names(name))
            elif name not in bottom:
                bottom.add(name)
                schedule.extend((c, False) for c in self.child_names(name))

        requisite = [c for c in ce.condition if c.name in visited]
        irrelevant = []
        for name in self._nodes:
            if name in bottom or (name in observed and name in visited):
                continue
            if ce.event.has_event(name):
                continue
            event = ce.condition.event_by_name(name)
            irrelevant.append(event if event is not None else Event.placeholder(name))
        logger.debug("Bayes-Ball for %s: irrelevant %s", ce, [e.name for e in irrelevant])
        return CondEvent(ce.event, EventCatenation(requisite)), EventCatenation(irrelevant)

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, name: str) -> bool:
        return name in self._nodes

    def __repr__(self) -> str:
        return f"<BayesNet: {len(self._nodes)} nodes, {self._graph.edge_count} dependencies>"

    def __str__(self) -> str:
        lines = [repr(self)]
        for name in self.breadth_first_node_names():
            node = self._nodes[name]
            parents = self.parent_names(name)
            lines.append(f"{name} <- {', '.join(parents) if parents else '(root)'}")
            if node.distribution is not None:
                for line in str(node.distribution).splitlines():
                    lines.append(f"    {line}")
        return "\n".join(lines)
