"""
probkit graph tests

Tests the policy-driven directed graph:
1. Storage selection from property types
2. Vertex insertion under each policy
3. Edge insertion, parallel edges and property overwrite
4. Cycle refusal, throwing and non-throwing
5. Neighbourhood queries and removal
6. Paths, topological order and connected components
"""

import sys

import pytest

from probkit.errors import CycleError, EdgeExistenceError, ParallelEdgeError, VertexExistenceError
from probkit.graph import (
    DIRECTED_ACYCLIC_GRAPH,
    DIRECTED_ACYCLIC_PARALLEL_GRAPH,
    DIRECTED_GRAPH,
    DirectedGraph,
    GraphPolicy,
    StorageKind,
    select_storage,
)


def make_diamond() -> DirectedGraph:
    """A -> B -> D, A -> C -> D, B -> C"""
    g = DirectedGraph(DIRECTED_ACYCLIC_GRAPH, vertex_type=str, edge_type=str)
    g.add_vertices("ABCD")
    for s, t in ("AB", "BD", "AC", "CD", "BC"):
        g.add_edge(s, t, s + t)
    return g


class Unhashable:
    __hash__ = None

    def __init__(self, key):
        self.key = key

    def __eq__(self, other):
        return isinstance(other, Unhashable) and self.key == other.key

    def __lt__(self, other):
        return self.key < other.key


class Opaque:
    __hash__ = None


# ============================================================================
# 1. Storage selection
# ============================================================================

def test_select_storage():
    assert select_storage(str, False) is StorageKind.HASH_SET
    assert select_storage(str, True) is StorageKind.HASH_MULTISET
    assert select_storage(Unhashable, False) is StorageKind.ORDERED_SET
    assert select_storage(Unhashable, True) is StorageKind.ORDERED_MULTISET
    assert select_storage(Opaque, False) is StorageKind.VECTOR
    assert select_storage(None, False) is StorageKind.VECTOR


def test_ordered_storage_finds_vertices():
    g = DirectedGraph(DIRECTED_ACYCLIC_GRAPH, vertex_type=Unhashable)
    assert g.vertex_storage is StorageKind.ORDERED_SET
    g.add_vertices([Unhashable(3), Unhashable(1), Unhashable(2)])
    assert g.add_edge(Unhashable(1), Unhashable(3))
    assert g.get_children(Unhashable(1)) == [Unhashable(3)]


def test_edge_storage_is_reported_from_edge_type():
    assert DirectedGraph(DIRECTED_ACYCLIC_GRAPH, edge_type=str).edge_storage is StorageKind.HASH_SET
    assert DirectedGraph(edge_type=str).edge_storage is StorageKind.HASH_MULTISET
    assert DirectedGraph(edge_type=Unhashable).edge_storage is StorageKind.ORDERED_MULTISET
    g = DirectedGraph(edge_type=Opaque)
    assert g.edge_storage is StorageKind.VECTOR
    assert g.vertex_storage is StorageKind.VECTOR


def test_ordered_storage_keeps_sorted_index():
    g = DirectedGraph(DIRECTED_GRAPH, vertex_type=Unhashable)
    assert g.vertex_storage is StorageKind.ORDERED_MULTISET
    for key in (5, 1, 4, 1, 3):
        g.add_vertex(Unhashable(key))
    assert g.has_vertex(Unhashable(4))
    assert not g.has_vertex(Unhashable(2))
    assert g.remove_vertex(Unhashable(1))
    assert g.has_vertex(Unhashable(1))
    assert g.remove_vertex(Unhashable(1))
    assert not g.has_vertex(Unhashable(1))
    assert sorted(v.key for v in g.get_vertices()) == [3, 4, 5]


def test_vector_storage_finds_vertices():
    g = DirectedGraph()
    a, b = Opaque(), Opaque()
    g.add_vertex(a)
    g.add_vertex(b)
    assert g.add_edge(a, b)
    assert g.get_parents(b) == [a]


# ============================================================================
# 2. Vertices
# ============================================================================

def test_multiple_vertices_allowed_by_default():
    g = DirectedGraph(vertex_type=str)
    assert g.add_vertex("x")
    assert g.add_vertex("x")
    assert g.vertex_count == 2


def test_multiple_vertices_refused():
    g = DirectedGraph(DIRECTED_ACYCLIC_GRAPH, vertex_type=str)
    assert g.add_vertex("x")
    assert not g.add_vertex("x")
    assert g.vertex_count == 1


def test_multiple_vertices_throw():
    g = DirectedGraph(DIRECTED_ACYCLIC_GRAPH.with_throw(), vertex_type=str)
    g.add_vertex("x")
    with pytest.raises(VertexExistenceError) as info:
        g.add_vertex("x")
    assert info.value.exists


def test_shared_property_acts_on_first_vertex():
    g = DirectedGraph(vertex_type=str)
    g.add_vertices(["x", "x", "y"])
    g.add_edge("x", "y")
    assert g.out_degree("x") == 1
    assert g.edge_count == 1


# ============================================================================
# 3. Edges
# ============================================================================

def test_edge_to_unknown_vertex():
    g = DirectedGraph(vertex_type=str)
    g.add_vertex("a")
    assert not g.add_edge("a", "missing")
    with pytest.raises(VertexExistenceError):
        DirectedGraph(DIRECTED_GRAPH.with_throw()).add_edge("a", "b")


def test_parallel_edges_allowed():
    g = DirectedGraph(DIRECTED_ACYCLIC_PARALLEL_GRAPH, vertex_type=str, edge_type=str)
    g.add_vertices("ab")
    assert g.add_edge("a", "b", "first")
    assert g.add_edge("a", "b", "second")
    assert sorted(g.get_edge_properties("a", "b")) == ["first", "second"]
    assert g.find_parallel_edges() == [("a", "b")]


def test_parallel_edge_overwrites_property():
    g = make_diamond()
    assert g.add_edge("A", "B", "renamed")
    assert g.get_edge_properties("A", "B") == ["renamed"]
    assert g.edge_count == 5


def test_parallel_edge_refused_without_overwrite():
    policy = GraphPolicy(allow_parallel_edges=False, overwrite_edge_property=False)
    g = DirectedGraph(policy, vertex_type=str)
    g.add_vertices("ab")
    assert g.add_edge("a", "b")
    assert not g.add_edge("a", "b")

    strict = DirectedGraph(policy.with_throw(), vertex_type=str)
    strict.add_vertices("ab")
    strict.add_edge("a", "b")
    with pytest.raises(ParallelEdgeError):
        strict.add_edge("a", "b")


def test_has_edge_with_property():
    g = make_diamond()
    assert g.has_edge("A", "B")
    assert g.has_edge("A", "B", "AB")
    assert not g.has_edge("A", "B", "XX")
    assert not g.has_edge("B", "A")


# ============================================================================
# 4. Cycles
# ============================================================================

def test_cycle_refused():
    g = make_diamond()
    assert g.creates_cycle("D", "A")
    assert not g.add_edge("D", "A")
    assert not g.add_edge("C", "C")
    assert not g.has_edge("D", "A")
    assert g.edge_count == 5


def test_cycle_throw():
    g = DirectedGraph(DIRECTED_ACYCLIC_GRAPH.with_throw(), vertex_type=str)
    g.add_vertices("xyz")
    g.add_edge("x", "y")
    g.add_edge("y", "z")
    with pytest.raises(CycleError) as info:
        g.add_edge("z", "x")
    assert (info.value.source, info.value.target) == ("z", "x")
    assert g.edge_count == 2


def test_cycles_allowed_in_plain_graph():
    g = DirectedGraph(vertex_type=str)
    g.add_vertices("xy")
    assert g.add_edge("x", "y")
    assert g.add_edge("y", "x")
    assert g.creates_cycle("x", "y")


# ============================================================================
# 5. Neighbourhood and removal
# ============================================================================

def test_children_and_parents():
    g = make_diamond()
    assert sorted(g.get_children("A")) == ["B", "C"]
    assert sorted(g.get_parents("D")) == ["B", "C"]
    assert sorted(g.get_parents("C")) == ["A", "B"]
    assert g.in_degree("A") == 0
    assert g.out_degree("B") == 2


def test_remove_vertex_removes_incident_edges():
    g = make_diamond()
    assert g.remove_vertex("B")
    assert not g.has_vertex("B")
    assert g.edge_count == 2
    assert not g.remove_vertex("B")


def test_remove_edge():
    g = make_diamond()
    assert g.remove_edge("A", "B")
    assert not g.has_edge("A", "B")
    assert not g.remove_edge("A", "B")
    strict = DirectedGraph(DIRECTED_GRAPH.with_throw(), vertex_type=str)
    strict.add_vertices("ab")
    with pytest.raises(EdgeExistenceError):
        strict.remove_edge("a", "b")


def test_apply_vertices_and_edges():
    g = make_diamond()
    seen = []
    assert g.apply_vertices(seen.append, lambda v: v in "AD") == 2
    assert sorted(seen) == ["A", "D"]
    edges = []
    assert g.apply_edges(lambda s, p, t: edges.append(p), lambda s, p, t: s == "A") == 2
    assert sorted(edges) == ["AB", "AC"]


# ============================================================================
# 6. Traversal
# ============================================================================

def test_all_paths():
    g = make_diamond()
    paths = g.get_all_paths("A", "D")
    found = sorted("".join(p.vertices()) for p in paths)
    assert found == ["ABCD", "ABD", "ACD"]
    longest = max(paths, key=len)
    assert longest.edges() == ["AB", "BC", "CD"]


def test_parallel_edges_give_distinct_paths():
    g = DirectedGraph(DIRECTED_ACYCLIC_PARALLEL_GRAPH, vertex_type=str, edge_type=str)
    g.add_vertices("XYZ")
    g.add_edge("X", "Y", "fast")
    g.add_edge("X", "Y", "slow")
    g.add_edge("Y", "Z", "last")
    paths = g.get_all_paths("X", "Z")
    assert sorted(p.edges() for p in paths) == [["fast", "last"], ["slow", "last"]]
    assert g.get_all_paths("X", "X") == []


def test_paths_along_a_long_chain():
    length = sys.getrecursionlimit() + 100
    g = DirectedGraph(DIRECTED_ACYCLIC_GRAPH, vertex_type=int, edge_type=int)
    g.add_vertices(range(length))
    for v in range(length - 1):
        g.add_edge(v, v + 1, v)
    paths = g.get_all_paths(0, length - 1)
    assert len(paths) == 1
    assert len(paths[0]) == length - 1
    assert paths[0].vertices() == list(range(length))
    assert g.topological_order() == list(range(length))


def test_ancestors_and_descendants():
    g = make_diamond()
    assert g.get_ancestors("D") == {"A", "B", "C"}
    assert g.get_ancestors("A") == set()
    assert g.get_descendants("B") == {"C", "D"}
    assert g.get_descendants("Q") == set()


def test_no_path_backwards():
    assert make_diamond().get_all_paths("D", "A") == []


def test_topological_order():
    g = make_diamond()
    assert g.topological_order() == ["A", "B", "C", "D"]


def test_topological_order_with_key():
    g = DirectedGraph(vertex_type=str)
    g.add_vertices(["zeta", "beta", "alpha"])
    g.add_edge("zeta", "alpha")
    assert g.topological_order() == ["zeta", "beta", "alpha"]
    assert g.topological_order(key=lambda v: v) == ["beta", "zeta", "alpha"]


def test_topological_order_of_cyclic_graph():
    g = DirectedGraph(vertex_type=str)
    g.add_vertices("xy")
    g.add_edge("x", "y")
    g.add_edge("y", "x")
    with pytest.raises(CycleError):
        g.topological_order()


def test_disconnected_subgraphs():
    g = make_diamond()
    g.add_vertices("XY")
    g.add_edge("X", "Y", "XY")
    g.add_vertex("Z")
    parts = g.get_disconnected_subgraphs()
    assert [sorted(p.get_vertices()) for p in parts] == [["A", "B", "C", "D"], ["X", "Y"], ["Z"]]
    assert parts[1].get_edges() == [("X", "XY", "Y")]
    assert parts[0].policy == g.policy


def test_clear():
    g = make_diamond()
    g.clear()
    assert g.vertex_count == 0
    assert not g.has_vertex("A")
