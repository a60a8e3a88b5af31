"""K-shortest simple paths (Yen) over the request graph.

Ties on total weight go to fewer transfers, then fewer edges, then the
lexicographically smaller station-id sequence, so results are reproducible.
An interchange edge is only ever taken between two transit rides, and two
walking shortcuts are never chained.
"""

import heapq
import logging
from dataclasses import dataclass, field
from typing import Optional

import networkx as nx

from metroroute.config import MAX_PATHS_TO_FIND, MAX_SEARCH_EXPANSIONS
from metroroute.exceptions import GraphInvariantError
from metroroute.graph_builder import GraphEdge
from metroroute.models import EdgeKind

logger = logging.getLogger("metroroute.search")


class SearchLimitReached(Exception):
    pass


@dataclass
class CandidatePath:
    nodes: list[str]
    edges: list[GraphEdge]
    weight: float
    transfers: int
    station_ids: tuple[str, ...] = field(default=())

    @property
    def duration(self) -> float:
        return sum(e.duration for e in self.edges)

    @property
    def walking_distance(self) -> float:
        return sum(e.distance_meters for e in self.edges if e.kind == EdgeKind.WALK)

    def sort_key(self) -> tuple:
        return (round(self.weight, 6), self.transfers, len(self.edges), self.station_ids, tuple(self.nodes))


class ExpansionBudget:
    """Heap pops shared by every Dijkstra run of one search."""

    def __init__(self, limit: int):
        self.limit = limit
        self.used = 0

    def spend(self) -> None:
        self.used += 1
        if self.used > self.limit:
            raise SearchLimitReached(f"Search stopped after {self.limit} expansions")


def _station_of(graph: nx.DiGraph, node: str) -> str:
    if node not in graph:
        raise GraphInvariantError(f"Path references unknown node {node}")
    return graph.nodes[node].get("station_id") or node


def _edge_allowed(prev: Optional[GraphEdge], edge: GraphEdge) -> bool:
    prev_kind = prev.kind if prev is not None else None
    if edge.kind == EdgeKind.INTERCHANGE:
        return prev_kind == EdgeKind.TRANSIT
    if prev_kind == EdgeKind.INTERCHANGE:
        return edge.kind == EdgeKind.TRANSIT
    if edge.is_shortcut and prev is not None and prev.is_shortcut:
        return False
    return True


def _step_tag(prev: Optional[GraphEdge]) -> Optional[tuple]:
    return None if prev is None else (prev.kind, prev.is_shortcut)


def count_transfers(edges: list[GraphEdge]) -> int:
    """Line changes between consecutive transit rides."""
    transfers = 0
    last_line = None
    for edge in edges:
        if edge.kind != EdgeKind.TRANSIT:
            continue
        if last_line is not None and edge.line_id != last_line:
            transfers += 1
        last_line = edge.line_id
    return transfers


def make_candidate(graph: nx.DiGraph, nodes: list[str]) -> CandidatePath:
    edges = []
    for u, v in zip(nodes, nodes[1:]):
        if not graph.has_edge(u, v):
            raise GraphInvariantError(f"Path uses missing edge {u} -> {v}")
        edges.append(graph[u][v]["edge"])
    return CandidatePath(
        nodes=list(nodes),
        edges=edges,
        weight=sum(e.weight for e in edges),
        transfers=count_transfers(edges),
        station_ids=tuple(_station_of(graph, n) for n in nodes),
    )


def shortest_path(
    graph: nx.DiGraph,
    source: str,
    target: str,
    budget: ExpansionBudget,
    blocked_nodes: frozenset = frozenset(),
    blocked_edges: frozenset = frozenset(),
    prev_edge: Optional[GraphEdge] = None,
    last_line: Optional[str] = None,
) -> Optional[list[str]]:
    """Label-setting Dijkstra; returns the node list or None.

    State is (node, kind of the edge taken into it, last transit line) so
    that transfer counting and the edge-sequence rules stay exact. Labels are
    (cost, transfers, edges, station sequence), which only grow when a path
    is extended.
    """
    if source not in graph or target not in graph:
        return None

    start = (0.0, 0, 0, (_station_of(graph, source),), (source,), last_line, prev_edge)
    heap = [start]
    settled = set()

    while heap:
        budget.spend()
        cost, transfers, n_edges, stations, path, line, prev = heapq.heappop(heap)
        node = path[-1]

        if node == target:
            return list(path)

        state = (node, _step_tag(prev), line)
        if state in settled:
            continue
        settled.add(state)

        for neighbor, data in graph.succ[node].items():
            if neighbor in path or neighbor in blocked_nodes or (node, neighbor) in blocked_edges:
                continue
            edge: GraphEdge = data["edge"]
            if not _edge_allowed(prev, edge):
                continue

            next_line = line
            next_transfers = transfers
            if edge.kind == EdgeKind.TRANSIT:
                if line is not None and edge.line_id != line:
                    next_transfers += 1
                next_line = edge.line_id

            heapq.heappush(heap, (
                round(cost + data["weight"], 6),
                next_transfers,
                n_edges + 1,
                stations + (_station_of(graph, neighbor),),
                path + (neighbor,),
                next_line,
                edge,
            ))

    return None


def k_shortest_paths(
    graph: nx.DiGraph,
    source: str,
    target: str,
    k: int = MAX_PATHS_TO_FIND,
    max_expansions: int = MAX_SEARCH_EXPANSIONS,
) -> list[CandidatePath]:
    """Up to k simple paths, best first. Empty when the target is unreachable."""
    if k <= 0:
        return []

    budget = ExpansionBudget(max_expansions)
    found: list[CandidatePath] = []
    try:
        first = shortest_path(graph, source, target, budget)
        if first is None:
            return []
        found.append(make_candidate(graph, first))

        candidates: list[tuple] = []
        seen = {tuple(first)}

        while len(found) < k:
            previous = found[-1]
            for i in range(len(previous.nodes) - 1):
                root = previous.nodes[: i + 1]
                spur_node = root[-1]

                blocked_edges = frozenset(
                    (p.nodes[i], p.nodes[i + 1])
                    for p in found
                    if len(p.nodes) > i + 1 and p.nodes[: i + 1] == root
                )
                blocked_nodes = frozenset(root[:-1])

                root_edges = previous.edges[:i]
                spur = shortest_path(
                    graph,
                    spur_node,
                    target,
                    budget,
                    blocked_nodes=blocked_nodes,
                    blocked_edges=blocked_edges,
                    prev_edge=root_edges[-1] if root_edges else None,
                    last_line=next(
                        (e.line_id for e in reversed(root_edges) if e.kind == EdgeKind.TRANSIT), None
                    ),
                )
                if spur is None:
                    continue

                nodes = root[:-1] + spur
                if tuple(nodes) in seen:
                    continue
                seen.add(tuple(nodes))
                candidate = make_candidate(graph, nodes)
                heapq.heappush(candidates, (candidate.sort_key(), len(seen), candidate))

            if not candidates:
                break
            found.append(heapq.heappop(candidates)[2])

    except SearchLimitReached as e:
        logger.warning(f"{e}; returning {len(found)} path(s)")

    logger.debug(f"Path search: {len(found)} path(s), {budget.used} expansions")
    return found
