"""
K-shortest path search tests
"""

import networkx as nx
import pytest

from metroroute.exceptions import GraphInvariantError
from metroroute.graph_builder import GraphEdge, add_edge
from metroroute.models import EdgeKind
from metroroute.path_search import count_transfers, k_shortest_paths, make_candidate


def walk(source, target, weight):
    return GraphEdge(source=source, target=target, kind=EdgeKind.WALK, weight=weight, duration=weight)


def ride(source, target, weight, line):
    return GraphEdge(source=source, target=target, kind=EdgeKind.TRANSIT, weight=weight, duration=weight, line_id=line)


def change(source, target, weight):
    return GraphEdge(source=source, target=target, kind=EdgeKind.INTERCHANGE, weight=weight, duration=weight)


def graph_of(*edges):
    graph = nx.DiGraph()
    for edge in edges:
        add_edge(graph, edge)
    return graph


class TestShortestPaths:
    def test_single_path(self):
        graph = graph_of(walk("s", "a", 1), walk("a", "t", 1))
        paths = k_shortest_paths(graph, "s", "t")

        assert len(paths) == 1
        assert paths[0].nodes == ["s", "a", "t"]
        assert paths[0].weight == 2

    def test_ascending_by_weight(self):
        graph = graph_of(
            walk("s", "a", 1), walk("a", "t", 1),
            walk("s", "b", 2), walk("b", "t", 2),
            walk("s", "c", 3), walk("c", "t", 3),
            walk("a", "b", 0.5),
        )
        paths = k_shortest_paths(graph, "s", "t", k=5)

        weights = [p.weight for p in paths]
        assert weights == sorted(weights)
        assert paths[0].nodes == ["s", "a", "t"]
        assert len({tuple(p.nodes) for p in paths}) == len(paths)
        assert len(paths) == 4

    def test_k_limits_results(self):
        graph = graph_of(*(e for n in "abcdefg" for e in (walk("s", n, 1), walk(n, "t", 1))))
        assert len(k_shortest_paths(graph, "s", "t", k=5)) == 5
        assert k_shortest_paths(graph, "s", "t", k=0) == []

    def test_paths_are_simple(self):
        graph = graph_of(
            walk("s", "a", 1), walk("a", "b", 1), walk("b", "a", 1),
            walk("b", "t", 1), walk("a", "t", 5),
        )
        for path in k_shortest_paths(graph, "s", "t", k=5):
            assert len(path.nodes) == len(set(path.nodes))

    def test_unreachable(self):
        graph = graph_of(walk("s", "a", 1), walk("b", "t", 1))
        assert k_shortest_paths(graph, "s", "t") == []

    def test_missing_nodes(self):
        graph = graph_of(walk("s", "a", 1))
        assert k_shortest_paths(graph, "s", "t") == []


class TestTieBreaks:
    def test_fewer_transfers_first(self):
        graph = graph_of(
            ride("s", "a", 5, "red"), ride("a", "t", 5, "green"),
            ride("s", "b", 5, "red"), ride("b", "t", 5, "red"),
        )
        paths = k_shortest_paths(graph, "s", "t", k=2)

        assert paths[0].nodes == ["s", "b", "t"]
        assert paths[0].transfers == 0
        assert paths[1].transfers == 1

    def test_fewer_edges_first(self):
        graph = graph_of(
            walk("s", "b", 3), walk("b", "c", 3), walk("c", "t", 4),
            walk("s", "z", 5), walk("z", "t", 5),
        )
        assert k_shortest_paths(graph, "s", "t", k=1)[0].nodes == ["s", "z", "t"]

    def test_station_order_last(self):
        graph = graph_of(
            walk("s", "b", 5), walk("b", "t", 5),
            walk("s", "a", 5), walk("a", "t", 5),
        )
        paths = k_shortest_paths(graph, "s", "t", k=2)
        assert [p.nodes for p in paths] == [["s", "a", "t"], ["s", "b", "t"]]

    def test_station_ids_used_for_ordering(self):
        graph = graph_of(
            walk("s", "p1", 5), walk("p1", "t", 5),
            walk("s", "p2", 5), walk("p2", "t", 5),
        )
        graph.nodes["p1"]["station_id"] = "zeta"
        graph.nodes["p2"]["station_id"] = "alpha"
        assert k_shortest_paths(graph, "s", "t", k=1)[0].nodes == ["s", "p2", "t"]


class TestInterchangeRule:
    def test_interchange_only_between_rides(self):
        # the interchange right after the access walk would be cheapest
        graph = graph_of(
            walk("s", "x@red", 0), change("x@red", "x@green", 1), ride("x@green", "y@green", 10, "green"),
            ride("x@red", "y@red", 20, "red"), walk("y@green", "t", 0), walk("y@red", "t", 0),
        )
        paths = k_shortest_paths(graph, "s", "t", k=5)
        assert [p.nodes for p in paths] == [["s", "x@red", "y@red", "t"]]

    def test_interchange_between_rides(self):
        graph = graph_of(
            walk("s", "a@red", 0), ride("a@red", "b@red", 10, "red"),
            change("b@red", "b@green", 2), ride("b@green", "c@green", 10, "green"),
            walk("c@green", "t", 0),
        )
        paths = k_shortest_paths(graph, "s", "t")
        assert len(paths) == 1
        assert paths[0].transfers == 1
        assert paths[0].weight == 22


    def test_shortcuts_not_chained(self):
        def shortcut(source, target, weight):
            return GraphEdge(
                source=source, target=target, kind=EdgeKind.WALK,
                weight=weight, duration=weight, is_shortcut=True,
            )

        graph = graph_of(
            walk("s", "a@red", 0), ride("a@red", "b@red", 5, "red"),
            shortcut("b@red", "c@green", 1), shortcut("c@green", "d@red", 1),
            ride("d@red", "e@red", 5, "red"), ride("b@red", "x@red", 20, "red"), ride("x@red", "e@red", 20, "red"),
            walk("e@red", "t", 0),
        )
        paths = k_shortest_paths(graph, "s", "t", k=5)
        assert [p.nodes for p in paths] == [["s", "a@red", "b@red", "x@red", "e@red", "t"]]


class TestLimits:
    def test_expansion_limit_stops_search(self):
        graph = graph_of(*(e for n in "abcdefg" for e in (walk("s", n, 1), walk(n, "t", 1))))
        assert k_shortest_paths(graph, "s", "t", k=5, max_expansions=1) == []

    def test_partial_results_kept(self):
        graph = graph_of(*(e for n in "abcdefg" for e in (walk("s", n, 1), walk(n, "t", 1))))
        full = k_shortest_paths(graph, "s", "t", k=5)
        limited = k_shortest_paths(graph, "s", "t", k=5, max_expansions=12)
        assert 1 <= len(limited) < len(full)
        assert limited == full[: len(limited)]


class TestCandidate:
    def test_count_transfers(self):
        edges = [
            walk("s", "a", 1), ride("a", "b", 1, "red"), ride("b", "c", 1, "red"),
            change("c", "c2", 1), ride("c2", "d", 1, "green"), walk("d", "e", 1), ride("e", "f", 1, "blue"),
        ]
        assert count_transfers(edges) == 2

    def test_missing_edge_is_invariant_error(self):
        graph = graph_of(walk("s", "a", 1))
        with pytest.raises(GraphInvariantError):
            make_candidate(graph, ["s", "a", "t"])

    def test_derived_totals(self):
        graph = graph_of(walk("s", "a", 2), ride("a", "b", 7, "red"), walk("b", "t", 3))
        candidate = make_candidate(graph, ["s", "a", "b", "t"])
        assert candidate.duration == 12
        assert candidate.walking_distance == 0
        assert candidate.station_ids == ("s", "a", "b", "t")
