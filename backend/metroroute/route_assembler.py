"""Turn candidate paths into public Route objects."""

import logging
from typing import Optional

import networkx as nx

from metroroute.config import ACCESS_MIN_DISTANCE_METERS, ACCESS_WALK_THRESHOLD_METERS
from metroroute.cost_calculator import calculate_total_fare, segment_fare
from metroroute.exceptions import GraphInvariantError
from metroroute.geo import distance_meters, same_point
from metroroute.graph_builder import DESTINATION_NODE, ORIGIN_NODE
from metroroute.models import (
    AccessRecommendation,
    AccessRecommendations,
    Coordinate,
    EdgeKind,
    LineInfo,
    Route,
    RouteStation,
    TransitSegment,
    WalkSegment,
)
from metroroute.path_search import CandidatePath
from metroroute.station_index import StationIndex

logger = logging.getLogger("metroroute.assembler")

ACCESS_LABELS = {
    ORIGIN_NODE: "Origin",
    DESTINATION_NODE: "Destination",
}

GOOGLE_MAPS_DIRECTIONS_URL = "https://www.google.com/maps/dir/?api=1"


def google_maps_url(origin: Coordinate, destination: Coordinate, travel_mode: str) -> str:
    return (
        f"{GOOGLE_MAPS_DIRECTIONS_URL}"
        f"&origin={origin.lat},{origin.lng}"
        f"&destination={destination.lat},{destination.lng}"
        f"&travelmode={travel_mode}"
    )


def access_recommendation(point: Coordinate, station_point: Coordinate, outbound: bool = True) -> Optional[AccessRecommendation]:
    """How to get between an endpoint and its station; None when it is right there."""
    meters = distance_meters(point, station_point)
    if meters <= ACCESS_MIN_DISTANCE_METERS:
        return None

    access_type = "walk" if meters <= ACCESS_WALK_THRESHOLD_METERS else "public_transport"
    start, end = (point, station_point) if outbound else (station_point, point)
    return AccessRecommendation(
        type=access_type,
        distance=round(meters),
        google_maps_url=google_maps_url(start, end, "walking" if access_type == "walk" else "transit"),
    )


def _route_station(graph: nx.DiGraph, index: StationIndex, node: str) -> RouteStation:
    if node not in graph:
        raise GraphInvariantError(f"Path references unknown node {node}")
    data = graph.nodes[node]
    station_id = data.get("station_id")

    if station_id is None:
        if node not in ACCESS_LABELS:
            raise GraphInvariantError(f"Node {node} has no station")
        return RouteStation(id=node, name=ACCESS_LABELS[node], coordinates=data["coordinates"])

    station = index.get_station(station_id)
    if station is None:
        raise GraphInvariantError(f"Path references unknown station {station_id}")
    return RouteStation(id=station.id, name=station.name, coordinates=station.coordinates)


def _line_info(index: StationIndex, line_id: str) -> LineInfo:
    line = index.get_line(line_id)
    if line is None:
        raise GraphInvariantError(f"Transit edge on unknown line {line_id}")
    return LineInfo(id=line.id, name=line.name, color=line.color)


def _finish(segment: dict):
    if segment["type"] == "transit":
        return TransitSegment(
            line=segment["line"],
            stations=segment["stations"],
            duration=round(segment["duration"], 1),
            distance=round(segment["distance"], 1),
            stop_wait_time=round(segment["stop_wait_time"], 1),
            fare=segment["fare"],
        )
    return WalkSegment(
        stations=segment["stations"],
        duration=round(segment["duration"], 1),
        walking_time=round(segment["duration"], 1),
        walking_distance=round(segment["distance"], 1),
        is_shortcut=segment["is_shortcut"],
    )


def build_segments(path: CandidatePath, graph: nx.DiGraph, index: StationIndex) -> list:
    """Merge the path's edges into transit/walk segments.

    An interchange closes the current ride; its time is carried as waiting
    time into the next ride. Walks between identical coordinates are dropped.
    """
    segments: list[dict] = []
    current: Optional[dict] = None
    pending_transfer = 0.0

    for edge in path.edges:
        if edge.kind == EdgeKind.INTERCHANGE:
            current = None
            pending_transfer += edge.duration
            continue

        start = _route_station(graph, index, edge.source)
        end = _route_station(graph, index, edge.target)

        if edge.kind == EdgeKind.TRANSIT:
            if current and current["type"] == "transit" and current["line"].id == edge.line_id:
                current["stations"].append(end)
                current["duration"] += edge.duration
                current["distance"] += edge.distance_meters
                current["stop_wait_time"] += edge.wait_time
                continue

            current = {
                "type": "transit",
                "line": _line_info(index, edge.line_id),
                "stations": [start, end],
                "duration": edge.duration + pending_transfer,
                "distance": edge.distance_meters,
                "stop_wait_time": edge.wait_time + pending_transfer,
                "fare": segment_fare(index.get_line(edge.line_id)),
            }
            pending_transfer = 0.0
            segments.append(current)
            continue

        if pending_transfer:
            raise GraphInvariantError(f"Interchange followed by a walk at {edge.source}")

        if same_point(start.coordinates, end.coordinates):
            continue

        if current and current["type"] == "walk":
            current["stations"].append(end)
            current["duration"] += edge.duration
            current["distance"] += edge.distance_meters
            current["is_shortcut"] = current["is_shortcut"] or edge.is_shortcut
            continue

        current = {
            "type": "walk",
            "stations": [start, end],
            "duration": edge.duration,
            "distance": edge.distance_meters,
            "is_shortcut": edge.is_shortcut,
        }
        segments.append(current)

    if pending_transfer:
        raise GraphInvariantError("Path ends with an interchange")

    return [_finish(s) for s in segments]


def _summarize(route_id: str, segments: list, access: Optional[AccessRecommendations] = None) -> Route:
    transit = [s for s in segments if isinstance(s, TransitSegment)]
    transfers = sum(1 for prev, nxt in zip(transit, transit[1:]) if prev.line.id != nxt.line.id)

    return Route(
        id=route_id,
        segments=segments,
        total_duration=round(sum(s.duration for s in segments), 1),
        total_distance=round(
            sum(s.distance if isinstance(s, TransitSegment) else s.walking_distance for s in segments), 1
        ),
        total_stops=sum(len(s.stations) - 1 for s in transit),
        transfers=transfers,
        total_fare=calculate_total_fare(segments),
        access=access,
    )


def assemble_route(path: CandidatePath, graph: nx.DiGraph, index: StationIndex, route_id: str) -> Route:
    segments = build_segments(path, graph, index)
    logger.debug(f"{route_id}: {len(path.edges)} edges -> {len(segments)} segments")

    access = None
    if len(path.nodes) >= 3:
        origin_point = graph.nodes[path.nodes[0]]["coordinates"]
        destination_point = graph.nodes[path.nodes[-1]]["coordinates"]
        first_station = _route_station(graph, index, path.nodes[1])
        last_station = _route_station(graph, index, path.nodes[-2])
        access = AccessRecommendations(
            origin=access_recommendation(origin_point, first_station.coordinates, outbound=True),
            destination=access_recommendation(destination_point, last_station.coordinates, outbound=False),
        )

    return _summarize(route_id, segments, access)


def direct_walk_route(
    start: RouteStation,
    end: RouteStation,
    duration: float,
    meters: float,
    route_id: str = "route-1",
) -> Route:
    """Single walk, kept even when both ends are the same point."""
    segment = WalkSegment(
        stations=[start, end],
        duration=round(duration, 1),
        walking_time=round(duration, 1),
        walking_distance=round(meters, 1),
    )
    return _summarize(route_id, [segment])
