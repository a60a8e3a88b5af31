"""Route cost, similarity and the final ranking pipeline."""

import logging

from metroroute.config import (
    DURATION_MULTIPLIER,
    MAX_ROUTES_TO_RETURN,
    MAX_TRANSFERS,
    MAX_WALKING_DISTANCE,
    ROUTE_SIMILARITY_THRESHOLD,
    SIMILARITY_WEIGHTS,
    TRANSFER_PENALTIES,
    TRANSFER_WEIGHT,
    WALK_ONLY_SIMILARITY,
    WALKING_WEIGHT,
)
from metroroute.models import Route, TransitSegment, WalkSegment

logger = logging.getLogger("metroroute.scoring")


def transfer_penalty(transfers: int) -> float:
    """Penalty table lookup, saturating at the last entry."""
    return TRANSFER_PENALTIES[min(max(transfers, 0), len(TRANSFER_PENALTIES) - 1)]


def walking_distance(route: Route) -> float:
    return sum(s.walking_distance for s in route.segments if isinstance(s, WalkSegment))


def normalized_walking_distance(meters: float) -> float:
    return min(100.0, meters / MAX_WALKING_DISTANCE * 100.0)


def compute_route_cost(route: Route) -> float:
    return round(
        TRANSFER_WEIGHT * transfer_penalty(route.transfers)
        + WALKING_WEIGHT * normalized_walking_distance(walking_distance(route)),
        4,
    )


def _transit_segments(route: Route) -> list[TransitSegment]:
    return [s for s in route.segments if isinstance(s, TransitSegment)]


def _overlap(a: set, b: set) -> float:
    """Jaccard index; 0.0 when both sets are empty."""
    union = a | b
    if not union:
        return 0.0
    return len(a & b) / len(union)


def key_stations(route: Route) -> set[str]:
    """Boarding and alighting stations of every transit ride."""
    keys = set()
    for segment in _transit_segments(route):
        keys.add(segment.stations[0].id)
        keys.add(segment.stations[-1].id)
    return keys


def route_similarity(a: Route, b: Route) -> float:
    rides_a, rides_b = _transit_segments(a), _transit_segments(b)
    if not rides_a or not rides_b:
        return WALK_ONLY_SIMILARITY if not rides_a and not rides_b else 0.0

    lines_a = {s.line.id for s in rides_a}
    lines_b = {s.line.id for s in rides_b}

    count_a, count_b = len(rides_a), len(rides_b)
    segment_closeness = 1.0 - abs(count_a - count_b) / max(count_a, count_b)

    return (
        SIMILARITY_WEIGHTS["line"] * _overlap(lines_a, lines_b)
        + SIMILARITY_WEIGHTS["key_station"] * _overlap(key_stations(a), key_stations(b))
        + SIMILARITY_WEIGHTS["segment_count"] * segment_closeness
    )


def _order(routes: list[Route]) -> list[Route]:
    return sorted(routes, key=lambda r: (r.cost, r.total_duration))


def filter_by_duration(routes: list[Route], multiplier: float = DURATION_MULTIPLIER) -> list[Route]:
    """Drop routes slower than multiplier x the fastest one."""
    if not routes:
        return []
    best = min(r.total_duration for r in routes)
    return [r for r in routes if r.total_duration <= best * multiplier]


def deduplicate_routes(routes: list[Route], threshold: float = ROUTE_SIMILARITY_THRESHOLD) -> list[Route]:
    """Greedy over ascending cost: a route survives unless it is too similar to a kept one."""
    kept: list[Route] = []
    for route in _order(routes):
        if all(route_similarity(route, other) <= threshold for other in kept):
            kept.append(route)
    return kept


def rank_routes(routes: list[Route], max_routes: int = MAX_ROUTES_TO_RETURN) -> list[Route]:
    """Score, filter, deduplicate and truncate; result is ordered by (cost, duration)."""
    scored = [r.model_copy(update={"cost": compute_route_cost(r)}) for r in routes]

    within_transfers = [r for r in scored if r.transfers <= MAX_TRANSFERS]
    if scored and not within_transfers:
        fastest = min(scored, key=lambda r: (r.total_duration, r.cost))
        logger.debug(f"Every candidate exceeds {MAX_TRANSFERS} transfers, keeping the fastest ({fastest.id})")
        within_transfers = [fastest]
    fast_enough = filter_by_duration(within_transfers)
    unique = deduplicate_routes(fast_enough)
    ranked = _order(unique)[:max_routes]

    logger.debug(
        f"Ranking: {len(routes)} candidates -> {len(within_transfers)} within transfer limit "
        f"-> {len(fast_enough)} after duration filter -> {len(unique)} unique -> {len(ranked)} returned"
    )
    return ranked
