import logging

from fastapi import APIRouter, HTTPException, Query

from metroroute.config import NEAREST_STATION_MAX_DISTANCE_KM, settings
from metroroute.exceptions import InvalidInputError
from metroroute.models import (
    Coordinate,
    LineSummary,
    LinesResponse,
    NearbyStationsResponse,
    RouteRequest,
    RouteResponse,
)

logger = logging.getLogger("metroroute.routes")

router = APIRouter()


def _get_state():
    from metroroute.main import app_state
    return app_state


def _get_planner():
    planner = _get_state().get("planner")
    if planner is None:
        raise HTTPException(status_code=503, detail="Route planner not initialized")
    return planner


@router.get("/health")
async def health():
    state = _get_state()
    return {
        "status": "ok",
        "service": settings.PROJECT_NAME,
        "provider": state.get("provider_name", "unknown"),
    }


@router.get("/lines", response_model=LinesResponse)
async def get_lines():
    """All transit lines with their ordered stations."""
    index = _get_planner().index
    return LinesResponse(lines=[
        LineSummary(
            id=line.id,
            name=line.name,
            color=line.color,
            mode=line.mode,
            fare=line.fare,
            station_ids=list(line.station_ids),
        )
        for line in index.lines.values()
    ])


@router.get("/stations/nearest", response_model=NearbyStationsResponse)
async def get_nearest_stations(
    lat: float = Query(..., description="Latitude"),
    lng: float = Query(..., description="Longitude"),
    limit: int = Query(5, ge=0, le=50),
    max_distance_km: float = Query(NEAREST_STATION_MAX_DISTANCE_KM, gt=0),
):
    """Stations closest to a point, nearest first."""
    index = _get_planner().index
    try:
        stations = index.find_nearest_stations(Coordinate(lat=lat, lng=lng), limit, max_distance_km=max_distance_km)
    except InvalidInputError as e:
        raise HTTPException(status_code=422, detail=e.message)
    return NearbyStationsResponse(stations=stations)


@router.post("/routes", response_model=RouteResponse)
async def get_routes(request: RouteRequest):
    """Plan up to three ranked journeys between two points or stations."""
    planner = _get_planner()
    try:
        result = await planner.plan(request)
    except InvalidInputError as e:
        raise HTTPException(status_code=422, detail=e.message)

    logger.info(f"Route request -> {result.status.value} ({len(result.routes)} routes)")
    return result.to_response()
