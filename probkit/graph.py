"""
probkit Directed Graph

A directed graph whose vertices and edges carry user properties, backed by a
networkx MultiDiGraph. What the graph accepts is fixed by a GraphPolicy at
construction time:

- allow_multiple_vertices: several vertices may carry equal properties
- allow_parallel_edges: several edges may join the same (source, target)
- allow_cycles: edges closing a directed cycle (or self-loops) are accepted
- throw_on_error: refusals raise a GraphError instead of returning False
- overwrite_edge_property: with parallel edges disallowed, adding an
  existing (source, target) replaces its property instead of refusing

Vertices are addressed by their property. When several vertices share a
property, operations act on the one inserted first.

Beyond insertion the graph offers cycle detection by tentative insertion,
enumeration of all simple paths as (vertex, edge, vertex) steps, a
topological order, and decomposition into weakly-connected subgraphs.
"""

from __future__ import annotations

import bisect
import itertools
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Iterable, Iterator, Optional

import networkx as nx

from probkit.errors import (
    CycleError,
    EdgeExistenceError,
    GraphError,
    ParallelEdgeError,
    VertexExistenceError,
)

logger = logging.getLogger(__name__)

_ANY = object()


# ============================================================================
# Policy
# ============================================================================

class StorageKind(Enum):
    """Container kind a property type admits.

    Vertex properties are indexed in a container of this kind. For edges the
    kind is only reported as edge_storage: edge properties live in the
    networkx adjacency keyed by (source, target, key) and are matched by
    equality there.
    """
    HASH_SET = "hash_set"
    HASH_MULTISET = "hash_multiset"
    ORDERED_SET = "ordered_set"
    ORDERED_MULTISET = "ordered_multiset"
    VECTOR = "vector"


def is_hashable_type(prop_type: type) -> bool:
    return getattr(prop_type, "__hash__", None) is not None


def is_ordered_type(prop_type: type) -> bool:
    return (getattr(prop_type, "__lt__", object.__lt__) is not object.__lt__
            and getattr(prop_type, "__eq__", object.__eq__) is not object.__eq__)


def select_storage(prop_type: Optional[type], allow_multiple: bool) -> StorageKind:
    """Pick a container kind from the capabilities of a property type.

    Hashable types get a hash container, otherwise equality- and
    order-comparable types get an ordered container, otherwise a vector.
    """
    if prop_type is None:
        return StorageKind.VECTOR
    if is_hashable_type(prop_type):
        return StorageKind.HASH_MULTISET if allow_multiple else StorageKind.HASH_SET
    if is_ordered_type(prop_type):
        return StorageKind.ORDERED_MULTISET if allow_multiple else StorageKind.ORDERED_SET
    return StorageKind.VECTOR


@dataclass(frozen=True)
class GraphPolicy:
    """Construction-time options of a DirectedGraph."""
    allow_multiple_vertices: bool = True
    allow_parallel_edges: bool = True
    allow_cycles: bool = True
    throw_on_error: bool = False
    overwrite_edge_property: bool = True
    vertex_storage: Optional[StorageKind] = None
    edge_storage: Optional[StorageKind] = None

    def with_throw(self) -> GraphPolicy:
        return replace(self, throw_on_error=True)


DIRECTED_GRAPH = GraphPolicy()
DIRECTED_ACYCLIC_GRAPH = GraphPolicy(
    allow_multiple_vertices=False,
    allow_parallel_edges=False,
    allow_cycles=False,
)
DIRECTED_ACYCLIC_PARALLEL_GRAPH = GraphPolicy(
    allow_multiple_vertices=False,
    allow_parallel_edges=True,
    allow_cycles=False,
)


# ============================================================================
# Vertex index
# ============================================================================

class _VertexIndex:
    """Maps vertex properties to vertex ids in insertion order.

    The container follows the selected StorageKind: a dict for hashable
    properties, a sorted list searched with bisect for ordered ones, and a
    plain list scanned linearly otherwise.
    """

    def __init__(self, kind: StorageKind) -> None:
        self.kind = kind
        self._hashed: dict[Any, list[int]] = {}
        self._ordered: list[tuple[Any, int]] = []
        self._keys: list[Any] = []
        self._items: list[tuple[Any, int]] = []

    @property
    def _is_hash(self) -> bool:
        return self.kind in (StorageKind.HASH_SET, StorageKind.HASH_MULTISET)

    @property
    def _is_ordered(self) -> bool:
        return self.kind in (StorageKind.ORDERED_SET, StorageKind.ORDERED_MULTISET)

    def add(self, prop: Any, vid: int) -> None:
        if self._is_hash:
            self._hashed.setdefault(prop, []).append(vid)
        elif self._is_ordered:
            pos = bisect.bisect_right(self._keys, prop)
            self._keys.insert(pos, prop)
            self._ordered.insert(pos, (prop, vid))
        else:
            self._items.append((prop, vid))

    def find(self, prop: Any) -> list[int]:
        if self._is_hash:
            return list(self._hashed.get(prop, ()))
        if self._is_ordered:
            lo = bisect.bisect_left(self._keys, prop)
            hi = bisect.bisect_right(self._keys, prop)
            return sorted(vid for _, vid in self._ordered[lo:hi])
        return [vid for p, vid in self._items if p == prop]

    def remove(self, prop: Any, vid: int) -> None:
        if self._is_hash:
            ids = self._hashed.get(prop, [])
            if vid in ids:
                ids.remove(vid)
            if not ids:
                self._hashed.pop(prop, None)
        elif self._is_ordered:
            lo = bisect.bisect_left(self._keys, prop)
            hi = bisect.bisect_right(self._keys, prop)
            for pos in range(lo, hi):
                if self._ordered[pos][1] == vid:
                    del self._ordered[pos]
                    del self._keys[pos]
                    return
            raise ValueError(f"Vertex {prop!r} is not indexed")
        else:
            self._items.remove((prop, vid))

    def clear(self) -> None:
        self._hashed.clear()
        self._ordered.clear()
        self._keys.clear()
        self._items.clear()


# ============================================================================
# Paths
# ============================================================================

@dataclass(frozen=True)
class VertexEdgePath:
    """A path as consecutive (source, edge property, target) steps."""
    steps: tuple[tuple[Any, Any, Any], ...]

    def vertices(self) -> list[Any]:
        if not self.steps:
            return []
        return [self.steps[0][0]] + [target for _, _, target in self.steps]

    def edges(self) -> list[Any]:
        return [edge for _, edge, _ in self.steps]

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self) -> Iterator[tuple[Any, Any, Any]]:
        return iter(self.steps)

    def __repr__(self) -> str:
        return f"<Path {'-'.join(str(v) for v in self.vertices())}>"


# ============================================================================
# Directed Graph
# ============================================================================

class DirectedGraph:
    """Policy-driven directed graph over user vertex and edge properties."""

    def __init__(
        self,
        policy: GraphPolicy = DIRECTED_GRAPH,
        vertex_type: Optional[type] = None,
        edge_type: Optional[type] = None,
    ) -> None:
        self.policy = policy
        self.vertex_type = vertex_type
        self.edge_type = edge_type
        self.vertex_storage = policy.vertex_storage or select_storage(
            vertex_type, policy.allow_multiple_vertices
        )
        self.edge_storage = policy.edge_storage or select_storage(
            edge_type, policy.allow_parallel_edges
        )
        self._graph = nx.MultiDiGraph()
        self._index = _VertexIndex(self.vertex_storage)
        self._ids = itertools.count()

    # ------------------------------------------------------------------
    # Error reporting
    # ------------------------------------------------------------------

    def _refuse(self, error: GraphError) -> bool:
        if self.policy.throw_on_error:
            raise error
        logger.warning("Graph operation refused: %s", error)
        return False

    def _vid(self, vertex: Any) -> Optional[int]:
        ids = self._index.find(vertex)
        return ids[0] if ids else None

    def _prop(self, vid: int) -> Any:
        return self._graph.nodes[vid]["prop"]

    # ------------------------------------------------------------------
    # Vertices
    # ------------------------------------------------------------------

    def add_vertex(self, vertex: Any) -> bool:
        if not self.policy.allow_multiple_vertices and self.has_vertex(vertex):
            return self._refuse(VertexExistenceError(vertex, exists=True))
        vid = next(self._ids)
        self._graph.add_node(vid, prop=vertex)
        self._index.add(vertex, vid)
        logger.debug("Added vertex %r", vertex)
        return True

    def add_vertices(self, vertices: Iterable[Any]) -> bool:
        """Add every vertex; True only if all were accepted."""
        results = [self.add_vertex(v) for v in vertices]
        return all(results)

    def has_vertex(self, vertex: Any) -> bool:
        return bool(self._index.find(vertex))

    def get_vertices(self) -> list[Any]:
        return [data["prop"] for _, data in self._graph.nodes(data=True)]

    def remove_vertex(self, vertex: Any) -> bool:
        """Remove a vertex together with its incident edges."""
        vid = self._vid(vertex)
        if vid is None:
            return self._refuse(VertexExistenceError(vertex))
        self._graph.remove_node(vid)
        self._index.remove(vertex, vid)
        logger.debug("Removed vertex %r", vertex)
        return True

    @property
    def vertex_count(self) -> int:
        return self._graph.number_of_nodes()

    @property
    def edge_count(self) -> int:
        return self._graph.number_of_edges()

    def __len__(self) -> int:
        return self.vertex_count

    def __contains__(self, vertex: Any) -> bool:
        return self.has_vertex(vertex)

    # ------------------------------------------------------------------
    # Edges
    # ------------------------------------------------------------------

    def add_edge(self, source: Any, target: Any, prop: Any = None) -> bool:
        """Insert source -> target carrying prop, subject to the policy."""
        sid = self._vid(source)
        if sid is None:
            return self._refuse(VertexExistenceError(source))
        tid = self._vid(target)
        if tid is None:
            return self._refuse(VertexExistenceError(target))

        if not self.policy.allow_parallel_edges and self._graph.has_edge(sid, tid):
            if self.policy.overwrite_edge_property:
                for key in self._graph[sid][tid]:
                    self._graph[sid][tid][key]["prop"] = prop
                logger.debug("Overwrote edge %r -> %r", source, target)
                return True
            return self._refuse(ParallelEdgeError(source, target))

        if not self.policy.allow_cycles and (sid == tid or self._creates_cycle(sid, tid)):
            return self._refuse(CycleError(source, target))

        self._graph.add_edge(sid, tid, prop=prop)
        logger.debug("Added edge %r -> %r", source, target)
        return True

    def has_edge(self, source: Any, target: Any, prop: Any = _ANY) -> bool:
        """Whether source -> target exists, optionally with an equal property."""
        sid, tid = self._vid(source), self._vid(target)
        if sid is None or tid is None or not self._graph.has_edge(sid, tid):
            return False
        if prop is _ANY:
            return True
        return any(data["prop"] == prop for data in self._graph[sid][tid].values())

    def get_edge_properties(self, source: Any, target: Any) -> list[Any]:
        sid, tid = self._vid(source), self._vid(target)
        if sid is None or tid is None or not self._graph.has_edge(sid, tid):
            return []
        return [data["prop"] for data in self._graph[sid][tid].values()]

    def get_edges(self) -> list[tuple[Any, Any, Any]]:
        """All edges as (source, property, target)."""
        return [
            (self._prop(s), data["prop"], self._prop(t))
            for s, t, data in self._graph.edges(data=True)
        ]

    def remove_edge(self, source: Any, target: Any, prop: Any = _ANY) -> bool:
        """Remove one source -> target edge (the first with an equal property
        when prop is given)."""
        sid, tid = self._vid(source), self._vid(target)
        if sid is None or tid is None or not self._graph.has_edge(sid, tid):
            return self._refuse(EdgeExistenceError(source, target))
        for key, data in list(self._graph[sid][tid].items()):
            if prop is _ANY or data["prop"] == prop:
                self._graph.remove_edge(sid, tid, key)
                logger.debug("Removed edge %r -> %r", source, target)
                return True
        return self._refuse(EdgeExistenceError(source, target))

    def find_parallel_edges(self) -> list[tuple[Any, Any]]:
        """(source, target) pairs joined by more than one edge."""
        found = []
        for sid, tid in {(s, t) for s, t in self._graph.edges()}:
            if self._graph.number_of_edges(sid, tid) > 1:
                found.append((self._prop(sid), self._prop(tid)))
        return sorted(found, key=repr)

    # ------------------------------------------------------------------
    # Neighbourhood
    # ------------------------------------------------------------------

    def get_children(self, vertex: Any) -> list[Any]:
        vid = self._vid(vertex)
        if vid is None:
            self._refuse(VertexExistenceError(vertex))
            return []
        return [self._prop(t) for t in dict.fromkeys(self._graph.successors(vid))]

    def get_parents(self, vertex: Any) -> list[Any]:
        vid = self._vid(vertex)
        if vid is None:
            self._refuse(VertexExistenceError(vertex))
            return []
        return [self._prop(s) for s in dict.fromkeys(self._graph.predecessors(vid))]

    def in_degree(self, vertex: Any) -> int:
        vid = self._vid(vertex)
        return 0 if vid is None else self._graph.in_degree(vid)

    def out_degree(self, vertex: Any) -> int:
        vid = self._vid(vertex)
        return 0 if vid is None else self._graph.out_degree(vid)

    # ------------------------------------------------------------------
    # Cycle detection
    # ------------------------------------------------------------------

    def creates_cycle(self, source: Any, target: Any) -> bool:
        """Whether adding source -> target would close a directed cycle."""
        sid, tid = self._vid(source), self._vid(target)
        if sid is None or tid is None:
            return False
        return sid == tid or self._creates_cycle(sid, tid)

    def _creates_cycle(self, sid: int, tid: int) -> bool:
        key = self._graph.add_edge(sid, tid)
        try:
            return self._has_cycle_from(sid)
        finally:
            self._graph.remove_edge(sid, tid, key)

    def _has_cycle_from(self, start: int) -> bool:
        """Depth-first search from start; a back-edge into the recursion
        stack is a cycle."""
        visited: set[int] = set()
        on_stack: set[int] = {start}
        stack: list[tuple[int, Iterator[int]]] = [(start, iter(self._graph.successors(start)))]
        visited.add(start)
        while stack:
            node, children = stack[-1]
            for child in children:
                if child in on_stack:
                    return True
                if child not in visited:
                    visited.add(child)
                    on_stack.add(child)
                    stack.append((child, iter(self._graph.successors(child))))
                    break
            else:
                stack.pop()
                on_stack.discard(node)
        return False

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def apply_vertices(
        self,
        func: Callable[[Any], Any],
        predicate: Optional[Callable[[Any], bool]] = None,
    ) -> int:
        """Call func on every vertex property passing predicate. Returns the count."""
        count = 0
        for vertex in self.get_vertices():
            if predicate is None or predicate(vertex):
                func(vertex)
                count += 1
        return count

    def apply_edges(
        self,
        func: Callable[[Any, Any, Any], Any],
        predicate: Optional[Callable[[Any, Any, Any], bool]] = None,
    ) -> int:
        """Call func(source, prop, target) on every edge passing predicate."""
        count = 0
        for source, prop, target in self.get_edges():
            if predicate is None or predicate(source, prop, target):
                func(source, prop, target)
                count += 1
        return count

    def get_all_paths(self, source: Any, target: Any) -> list[VertexEdgePath]:
        """Every simple path from source to target.

        Paths through shared vertices are all reported, and parallel edges
        yield distinct paths since each step carries its edge key.
        """
        sid, tid = self._vid(source), self._vid(target)
        if sid is None or tid is None or sid == tid:
            return []
        paths = []
        for edge_path in nx.all_simple_edge_paths(self._graph, sid, tid):
            steps = tuple(
                (self._prop(u), self._graph[u][v][k]["prop"], self._prop(v))
                for u, v, k in edge_path
            )
            paths.append(VertexEdgePath(steps))
        return paths

    def get_ancestors(self, vertex: Any) -> set[Any]:
        """Properties of every vertex with a directed path to vertex."""
        vid = self._vid(vertex)
        if vid is None:
            return set()
        return {self._prop(a) for a in nx.ancestors(self._graph, vid)}

    def get_descendants(self, vertex: Any) -> set[Any]:
        """Properties of every vertex reachable from vertex."""
        vid = self._vid(vertex)
        if vid is None:
            return set()
        return {self._prop(d) for d in nx.descendants(self._graph, vid)}

    def topological_order(self, key: Optional[Callable[[Any], Any]] = None) -> list[Any]:
        """Kahn order over vertex properties.

        Among ready vertices the smallest key (insertion order when key is
        None) is emitted first.

        Raises:
            CycleError: the graph contains a cycle
        """
        def rank(vid: int) -> Any:
            return vid if key is None else (key(self._prop(vid)), vid)

        try:
            order = list(nx.lexicographical_topological_sort(self._graph, key=rank))
        except nx.NetworkXUnfeasible as exc:
            raise CycleError("<graph>", "<graph>") from exc
        return [self._prop(vid) for vid in order]

    def get_disconnected_subgraphs(self) -> list[DirectedGraph]:
        """Split into weakly-connected components, each a graph of its own
        with the original directed edges and the same policy."""
        mirror = self._graph.to_undirected(as_view=True)
        components = sorted(nx.connected_components(mirror), key=min)
        subgraphs = []
        for component in components:
            sub = DirectedGraph(self.policy, self.vertex_type, self.edge_type)
            mapping: dict[int, int] = {}
            for vid in sorted(component):
                new_id = next(sub._ids)
                sub._graph.add_node(new_id, prop=self._prop(vid))
                sub._index.add(self._prop(vid), new_id)
                mapping[vid] = new_id
            for s, t, data in self._graph.edges(data=True):
                if s in component:
                    sub._graph.add_edge(mapping[s], mapping[t], prop=data["prop"])
            subgraphs.append(sub)
        return subgraphs

    def clear(self) -> None:
        self._graph.clear()
        self._index.clear()

    def __repr__(self) -> str:
        return f"<DirectedGraph: {self.vertex_count} vertices, {self.edge_count} edges>"
