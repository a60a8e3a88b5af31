import logging
from contextlib import asynccontextmanager

import httpx
from dotenv import load_dotenv

load_dotenv()  # Load .env before any other imports that read env vars

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from metroroute.config import settings

logger = logging.getLogger("metroroute")
logging.basicConfig(level=settings.LOG_LEVEL)

# Global state populated during startup
app_state: dict = {}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load the network, wire the travel-time provider and build the planner."""
    from metroroute.network_data import load_network
    from metroroute.planner import RoutePlanner
    from metroroute.station_index import StationIndex
    from metroroute.travel_time import (
        GoogleDistanceMatrixProvider,
        StraightLineProvider,
        TravelTimeService,
    )

    logger.info("Loading network dataset...")
    network = load_network()
    index = StationIndex(network)
    app_state["index"] = index

    # Shared httpx client for connection pooling across provider calls
    http_client = httpx.AsyncClient(
        timeout=settings.TRAVEL_TIME_TIMEOUT_SECONDS,
        limits=httpx.Limits(max_connections=50, max_keepalive_connections=20),
    )
    app_state["http_client"] = http_client

    if settings.has_google_key:
        provider = GoogleDistanceMatrixProvider(settings.GOOGLE_MAPS_API_KEY, http_client=http_client)
    else:
        logger.warning(
            "GOOGLE_MAPS_API_KEY is missing or placeholder in backend/.env; "
            "travel times will use the straight-line fallback."
        )
        provider = StraightLineProvider()
    app_state["provider_name"] = provider.name

    planner = RoutePlanner(index, TravelTimeService(provider))
    app_state["planner"] = planner
    logger.info(f"Route planner ready (provider: {provider.name})")

    yield

    logger.info("Shutting down...")
    await http_client.aclose()
    app_state.clear()
    logger.info("Shared HTTP client closed")


app = FastAPI(title=settings.PROJECT_NAME, version=settings.VERSION, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

from metroroute.routes import router  # noqa: E402

app.include_router(router, prefix="/api")
