"""Weighted transit graph for route search.

Nodes are station platforms ("{station_id}@{line_id}") plus two per-request
access nodes. The base graph (transit, interchange and walking shortcut
edges) only depends on the static network and is shared between requests;
each request works on a copy with its access edges added.
"""

import asyncio
import itertools
import logging
from dataclasses import dataclass
from typing import Optional

import networkx as nx

from metroroute.config import (
    CLOSEST_STATION_MULTIPLIER,
    DEFAULT_INTERCHANGE_MULTIPLIER,
    DURATION_BONUS,
    INTERCHANGE_MULTIPLIERS,
    LINE_PAIR_IMPORTANCE,
    MAX_DESTINATION_WALKING_DISTANCE,
    MAX_ORIGIN_WALKING_DISTANCE,
    MAX_WALKING_DISTANCE,
    PROVIDER_WALKING_CUTOFF_METERS,
    STATION_INTERCHANGE_IMPORTANCE,
    STOP_WAIT_TIME_SECONDS,
    TRANSFER_TIME_BASE,
    TRANSFER_TIME_PER_LINE,
    TRANSIT_SPEED_MPS,
    VIRTUAL_NODE_DISTANCE_MULTIPLIER,
    WALKING_SHORTCUT_MAX_DISTANCE,
)
from metroroute.geo import distance_meters, estimate_walking_seconds
from metroroute.models import Coordinate, EdgeKind, TravelEstimate, TravelMode
from metroroute.station_index import StationIndex
from metroroute.travel_time import TravelTimeService

logger = logging.getLogger("metroroute.graph")

ORIGIN_NODE = "origin-access"
DESTINATION_NODE = "destination-access"


def platform_node(station_id: str, line_id: str) -> str:
    return f"{station_id}@{line_id}"


@dataclass(frozen=True)
class GraphEdge:
    source: str
    target: str
    kind: EdgeKind
    weight: float  # seconds, cost-adjusted (what the search minimises)
    duration: float  # seconds, real travel time
    distance_meters: float = 0.0
    line_id: Optional[str] = None
    wait_time: float = 0.0
    is_shortcut: bool = False
    is_access: bool = False


@dataclass(frozen=True)
class Endpoint:
    """One side of a request: a point, optionally pinned to a station."""

    coordinates: Coordinate
    station_id: Optional[str] = None


def _importance_for(station_id: str, line_a: str, line_b: str) -> Optional[str]:
    for key in ((station_id, line_a, line_b), (station_id, line_b, line_a)):
        if key in STATION_INTERCHANGE_IMPORTANCE:
            return STATION_INTERCHANGE_IMPORTANCE[key]
    for key in ((line_a, line_b), (line_b, line_a)):
        if key in LINE_PAIR_IMPORTANCE:
            return LINE_PAIR_IMPORTANCE[key]
    return None


def interchange_multiplier(station_id: str, line_a: str, line_b: str) -> float:
    """Station override first, then the generic line pair, then no reduction."""
    importance = _importance_for(station_id, line_a, line_b)
    if importance is None:
        return DEFAULT_INTERCHANGE_MULTIPLIER
    return INTERCHANGE_MULTIPLIERS[importance]


def interchange_duration(line_count: int) -> float:
    return float(TRANSFER_TIME_BASE + TRANSFER_TIME_PER_LINE * line_count)


def add_edge(graph: nx.DiGraph, edge: GraphEdge) -> None:
    """Add an edge, keeping the cheaper one when the node pair is already linked."""
    if graph.has_edge(edge.source, edge.target):
        if graph[edge.source][edge.target]["weight"] <= edge.weight:
            return
    graph.add_edge(edge.source, edge.target, weight=edge.weight, edge=edge)


def _walk_estimate(estimate: Optional[TravelEstimate], straight_meters: float) -> tuple[float, float]:
    """(duration, distance) from the provider, or the tiered straight-line estimate."""
    if estimate is not None:
        return estimate.duration_seconds, estimate.distance_meters
    return estimate_walking_seconds(straight_meters), straight_meters


class TransitGraphBuilder:
    def __init__(self, index: StationIndex, travel_times: TravelTimeService):
        self.index = index
        self.travel_times = travel_times
        self._base_graph: Optional[nx.DiGraph] = None
        self._lock = asyncio.Lock()

    @property
    def has_cached_base_graph(self) -> bool:
        return self._base_graph is not None

    def invalidate(self) -> None:
        self._base_graph = None

    async def get_base_graph(self) -> nx.DiGraph:
        if self._base_graph is not None:
            return self._base_graph

        async with self._lock:
            if self._base_graph is not None:
                return self._base_graph

            graph, fully_resolved = await self._build_base_graph()
            if fully_resolved:
                self._base_graph = graph
            else:
                logger.warning("Some transit edges used fallback weights; base graph not cached")
            return graph

    async def build_request_graph(self, origin: Endpoint, destination: Endpoint) -> nx.DiGraph:
        """Copy of the base graph with both access nodes connected."""
        graph = (await self.get_base_graph()).copy()

        graph.add_node(ORIGIN_NODE, station_id=None, line_id=None, coordinates=origin.coordinates)
        graph.add_node(DESTINATION_NODE, station_id=None, line_id=None, coordinates=destination.coordinates)

        await asyncio.gather(
            self._connect_access(graph, ORIGIN_NODE, origin, MAX_ORIGIN_WALKING_DISTANCE, outbound=True),
            self._connect_access(graph, DESTINATION_NODE, destination, MAX_DESTINATION_WALKING_DISTANCE, outbound=False),
        )

        logger.debug(
            f"Request graph: {graph.number_of_nodes()} nodes, {graph.number_of_edges()} edges, "
            f"{graph.out_degree(ORIGIN_NODE)} origin / {graph.in_degree(DESTINATION_NODE)} destination access edges"
        )
        return graph

    def _platforms(self, station_id: str) -> list[str]:
        return [platform_node(station_id, line_id) for line_id in sorted(self.index.get_lines_for_station(station_id))]

    # ── Base graph ──────────────────────────────────────────────

    async def _build_base_graph(self) -> tuple[nx.DiGraph, bool]:
        graph = nx.DiGraph()
        for station_id, station in self.index.stations.items():
            for line_id in sorted(self.index.get_lines_for_station(station_id)):
                graph.add_node(
                    platform_node(station_id, line_id),
                    station_id=station_id,
                    line_id=line_id,
                    coordinates=station.coordinates,
                )

        fully_resolved = await self._add_transit_edges(graph)
        interchange_count = self._add_interchange_edges(graph)
        shortcut_count = await self._add_walking_shortcuts(graph)

        logger.info(
            f"Base graph built: {graph.number_of_nodes()} platforms, {graph.number_of_edges()} edges "
            f"({interchange_count} interchange, {shortcut_count} shortcut)"
        )
        return graph, fully_resolved

    async def _add_transit_edges(self, graph: nx.DiGraph) -> bool:
        hops: list[tuple[str, str, str]] = []
        for line_id in self.index.lines:
            for a, b in self.index.adjacent_pairs(line_id):
                hops.append((line_id, a, b))
                hops.append((line_id, b, a))

        pairs = sorted({(a, b) for _, a, b in hops})
        estimates = await self.travel_times.estimate_many([
            (self.index.get_station(a).coordinates, self.index.get_station(b).coordinates, TravelMode.DRIVING)
            for a, b in pairs
        ])
        by_pair = dict(zip(pairs, estimates))

        fully_resolved = True
        for line_id, a, b in hops:
            estimate = by_pair[(a, b)]
            if estimate is not None:
                ride_seconds, meters = estimate.duration_seconds, estimate.distance_meters
            else:
                fully_resolved = False
                meters = distance_meters(self.index.get_station(a).coordinates, self.index.get_station(b).coordinates)
                ride_seconds = meters / TRANSIT_SPEED_MPS

            duration = ride_seconds + STOP_WAIT_TIME_SECONDS
            add_edge(graph, GraphEdge(
                source=platform_node(a, line_id),
                target=platform_node(b, line_id),
                kind=EdgeKind.TRANSIT,
                weight=duration,
                duration=duration,
                distance_meters=meters,
                line_id=line_id,
                wait_time=STOP_WAIT_TIME_SECONDS,
            ))

        if not fully_resolved:
            missing = sum(1 for e in estimates if e is None)
            logger.warning(f"{missing}/{len(pairs)} transit hops used the distance fallback")
        return fully_resolved

    def _add_interchange_edges(self, graph: nx.DiGraph) -> int:
        count = 0
        for station_id in self.index.stations:
            lines = sorted(self.index.get_lines_for_station(station_id))
            if len(lines) < 2:
                continue
            duration = interchange_duration(len(lines))
            for line_a, line_b in itertools.permutations(lines, 2):
                add_edge(graph, GraphEdge(
                    source=platform_node(station_id, line_a),
                    target=platform_node(station_id, line_b),
                    kind=EdgeKind.INTERCHANGE,
                    weight=duration * interchange_multiplier(station_id, line_a, line_b),
                    duration=duration,
                ))
                count += 1
        return count

    async def _add_walking_shortcuts(self, graph: nx.DiGraph) -> int:
        served = [sid for sid in sorted(self.index.stations) if self.index.get_lines_for_station(sid)]

        nearby: dict[tuple[str, str], float] = {}
        for a, b in itertools.combinations(served, 2):
            meters = distance_meters(self.index.get_station(a).coordinates, self.index.get_station(b).coordinates)
            if meters < WALKING_SHORTCUT_MAX_DISTANCE:
                nearby[(a, b)] = meters

        explicit: dict[tuple[str, str], float] = {}
        for shortcut in self.index.network.shortcuts:
            a, b = sorted((shortcut.from_station, shortcut.to_station))
            if a == b or not self.index.get_lines_for_station(a) or not self.index.get_lines_for_station(b):
                continue
            meters = distance_meters(self.index.get_station(a).coordinates, self.index.get_station(b).coordinates)
            if meters <= MAX_WALKING_DISTANCE:
                explicit[(a, b)] = meters

        pairs = sorted(set(nearby) | set(explicit))
        if not pairs:
            return 0

        estimates = await self.travel_times.estimate_many([
            (self.index.get_station(a).coordinates, self.index.get_station(b).coordinates, TravelMode.WALKING)
            for a, b in pairs
        ])

        # closest shortcut neighbour of every station
        closest: dict[str, tuple[float, str]] = {}
        for (a, b), meters in nearby.items():
            for here, there in ((a, b), (b, a)):
                if here not in closest or (meters, there) < closest[here]:
                    closest[here] = (meters, there)

        count = 0
        for (a, b), estimate in zip(pairs, estimates):
            straight = nearby.get((a, b), explicit.get((a, b)))
            duration, meters = _walk_estimate(estimate, straight)

            for here, there in ((a, b), (b, a)):
                weights = []
                if (a, b) in nearby:
                    weight = duration * VIRTUAL_NODE_DISTANCE_MULTIPLIER
                    if closest[here][1] == there:
                        weight /= CLOSEST_STATION_MULTIPLIER
                    weights.append(weight)
                if (a, b) in explicit:
                    weights.append(duration * DURATION_BONUS)

                for from_node, to_node in itertools.product(self._platforms(here), self._platforms(there)):
                    if graph.nodes[from_node]["line_id"] == graph.nodes[to_node]["line_id"]:
                        continue
                    add_edge(graph, GraphEdge(
                        source=from_node,
                        target=to_node,
                        kind=EdgeKind.WALK,
                        weight=min(weights),
                        duration=duration,
                        distance_meters=meters,
                        is_shortcut=True,
                    ))
                    count += 1
        return count

    # ── Per-request overlay ─────────────────────────────────────

    async def _connect_access(
        self,
        graph: nx.DiGraph,
        access_node: str,
        endpoint: Endpoint,
        envelope_meters: float,
        outbound: bool,
    ) -> None:
        """Walking edges between an access node and the stations around it.

        outbound: edges run access -> platform (origin) instead of
        platform -> access (destination).
        """

        def link(platform: str, duration: float, meters: float) -> None:
            source, target = (access_node, platform) if outbound else (platform, access_node)
            add_edge(graph, GraphEdge(
                source=source,
                target=target,
                kind=EdgeKind.WALK,
                weight=duration,
                duration=duration,
                distance_meters=meters,
                is_access=True,
            ))

        if endpoint.station_id is not None:
            for platform in self._platforms(endpoint.station_id):
                link(platform, 0.0, 0.0)
            return

        max_km = min(envelope_meters, MAX_WALKING_DISTANCE) / 1000.0
        nearby = self.index.find_nearest_stations(
            endpoint.coordinates,
            n=len(self.index.stations),
            max_distance_km=max_km,
            include_lines=False,
            station_filter=lambda s: bool(self.index.get_lines_for_station(s.id)),
        )

        lookups = []
        for candidate in nearby:
            if candidate.distance_km * 1000.0 > PROVIDER_WALKING_CUTOFF_METERS:
                continue
            station_point = candidate.station.coordinates
            if outbound:
                lookups.append((endpoint.coordinates, station_point, TravelMode.WALKING))
            else:
                lookups.append((station_point, endpoint.coordinates, TravelMode.WALKING))
        estimates = iter(await self.travel_times.estimate_many(lookups))

        for candidate in nearby:
            straight = candidate.distance_km * 1000.0
            estimate = next(estimates) if straight <= PROVIDER_WALKING_CUTOFF_METERS else None
            duration, meters = _walk_estimate(estimate, straight)
            for platform in self._platforms(candidate.station.id):
                link(platform, duration, meters)
