from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class TravelMode(str, Enum):
    WALKING = "walking"
    DRIVING = "driving"


class EdgeKind(str, Enum):
    TRANSIT = "transit"
    WALK = "walk"
    INTERCHANGE = "interchange"


class RoutingStatus(str, Enum):
    OK = "ok"
    NO_NEARBY_STATION = "no_nearby_station"
    NO_ROUTE_FOUND = "no_route_found"


class Coordinate(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float


class Station(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    coordinates: Coordinate


class TransitLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    color: str = "#4A5568"
    station_ids: tuple[str, ...]
    mode: str = "BRT"  # "BRT", "FEEDER"
    fare: float = 0.0


class NearestStation(BaseModel):
    station: Station
    distance_km: float
    lines: list[str] = Field(default_factory=list)


class TravelEstimate(BaseModel):
    duration_seconds: float
    distance_meters: float


class RouteStation(BaseModel):
    id: str
    name: str
    coordinates: Coordinate


class LineInfo(BaseModel):
    id: str
    name: str
    color: str


class TransitSegment(BaseModel):
    type: Literal["transit"] = "transit"
    line: LineInfo
    stations: list[RouteStation]
    duration: float  # seconds
    distance: float = 0.0  # meters
    stop_wait_time: float = 0.0  # seconds
    fare: float = 0.0


class WalkSegment(BaseModel):
    type: Literal["walk"] = "walk"
    stations: list[RouteStation]
    duration: float  # seconds
    walking_time: float
    walking_distance: float  # meters
    is_shortcut: bool = False


RouteSegment = Annotated[Union[TransitSegment, WalkSegment], Field(discriminator="type")]


class AccessRecommendation(BaseModel):
    type: Literal["walk", "public_transport"]
    distance: float  # meters
    google_maps_url: Optional[str] = None


class AccessRecommendations(BaseModel):
    origin: Optional[AccessRecommendation] = None
    destination: Optional[AccessRecommendation] = None


class Route(BaseModel):
    id: str
    segments: list[RouteSegment]
    total_duration: float
    total_distance: float
    total_stops: int
    transfers: int
    total_fare: float = 0.0
    cost: float = 0.0
    access: Optional[AccessRecommendations] = None


class RouteRequest(BaseModel):
    from_station_id: Optional[str] = None
    to_station_id: Optional[str] = None
    from_location: Optional[Coordinate] = None
    to_location: Optional[Coordinate] = None


class RouteResponse(BaseModel):
    status: RoutingStatus
    routes: list[Route] = Field(default_factory=list)
    side: Optional[str] = None  # "origin" / "destination" for no_nearby_station


class NearbyStationsResponse(BaseModel):
    stations: list[NearestStation]


class LineSummary(BaseModel):
    id: str
    name: str
    color: str
    mode: str
    fare: float
    station_ids: list[str]


class LinesResponse(BaseModel):
    lines: list[LineSummary]
