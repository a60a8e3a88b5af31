"""Walking/driving travel times from an external provider.

Providers: Google Distance Matrix API (needs GOOGLE_MAPS_API_KEY), or a
straight-line estimate when no key is configured.
TravelTimeService wraps a provider with a process-wide cache, per-call
timeouts, bounded retries and a concurrency limit.
"""

import asyncio
import logging
from typing import Optional, Sequence

import httpx

from metroroute.config import (
    PROVIDER_WALKING_CUTOFF_METERS,
    TRANSIT_SPEED_MPS,
    WALKING_SPEED_MPS,
    settings,
)
from metroroute.exceptions import ProviderUnavailableError
from metroroute.geo import distance_meters
from metroroute.models import Coordinate, TravelEstimate, TravelMode

logger = logging.getLogger("metroroute.travel_time")

# (origin lat, origin lng, dest lat, dest lng, mode) -> successful estimate.
# Append-only for the process lifetime; failures are never stored.
_travel_time_cache: dict[tuple, TravelEstimate] = {}

CACHE_KEY_PRECISION = 5


def _cache_key(origin: Coordinate, destination: Coordinate, mode: TravelMode) -> tuple:
    return (
        round(origin.lat, CACHE_KEY_PRECISION),
        round(origin.lng, CACHE_KEY_PRECISION),
        round(destination.lat, CACHE_KEY_PRECISION),
        round(destination.lng, CACHE_KEY_PRECISION),
        mode.value,
    )


def clear_travel_time_cache() -> None:
    _travel_time_cache.clear()


def travel_time_cache_size() -> int:
    return len(_travel_time_cache)


class TravelTimeProvider:
    """Interface: return an estimate, None for "no route", or raise ProviderUnavailableError."""

    name = "base"

    async def estimate(
        self, origin: Coordinate, destination: Coordinate, mode: TravelMode
    ) -> Optional[TravelEstimate]:
        raise NotImplementedError


class StraightLineProvider(TravelTimeProvider):
    """Deterministic great-circle estimate at a fixed speed per mode."""

    name = "straight-line"

    SPEEDS_MPS = {
        TravelMode.WALKING: WALKING_SPEED_MPS,
        TravelMode.DRIVING: TRANSIT_SPEED_MPS,
    }

    async def estimate(self, origin, destination, mode):
        meters = distance_meters(origin, destination)
        return TravelEstimate(
            duration_seconds=round(meters / self.SPEEDS_MPS[mode]),
            distance_meters=round(meters, 1),
        )


class GoogleDistanceMatrixProvider(TravelTimeProvider):
    name = "google-distance-matrix"

    def __init__(
        self,
        api_key: str,
        http_client: Optional[httpx.AsyncClient] = None,
        base_url: str = settings.DISTANCE_MATRIX_API_URL,
        timeout: float = settings.TRAVEL_TIME_TIMEOUT_SECONDS,
    ):
        self.api_key = api_key
        self.http_client = http_client
        self.base_url = base_url
        self.timeout = timeout

    async def estimate(self, origin, destination, mode):
        params = {
            "origins": f"{origin.lat},{origin.lng}",
            "destinations": f"{destination.lat},{destination.lng}",
            "mode": mode.value,
            "key": self.api_key,
        }

        try:
            if self.http_client:
                resp = await self.http_client.get(self.base_url, params=params, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    resp = await client.get(self.base_url, params=params)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise ProviderUnavailableError(
                f"Distance Matrix request failed: {type(e).__name__}: {e}"
            ) from e

        if not isinstance(data, dict):
            logger.warning(f"Malformed Distance Matrix response: {type(data).__name__} body")
            return None

        status = data.get("status")
        if status != "OK":
            logger.warning(f"Distance Matrix returned status {status} ({mode.value})")
            return None

        try:
            element = data["rows"][0]["elements"][0]
            if element.get("status") != "OK":
                return None
            return TravelEstimate(
                duration_seconds=float(element["duration"]["value"]),
                distance_meters=float(element["distance"]["value"]),
            )
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            logger.warning(f"Malformed Distance Matrix response: {type(e).__name__}: {e}")
            return None


class TravelTimeService:
    def __init__(
        self,
        provider: TravelTimeProvider,
        max_concurrency: int = settings.TRAVEL_TIME_MAX_CONCURRENCY,
        timeout: float = settings.TRAVEL_TIME_TIMEOUT_SECONDS,
        max_attempts: int = settings.TRAVEL_TIME_MAX_ATTEMPTS,
        retry_delay: float = 0.5,
        walking_cutoff_meters: float = PROVIDER_WALKING_CUTOFF_METERS,
    ):
        self.provider = provider
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        self.retry_delay = retry_delay
        self.walking_cutoff_meters = walking_cutoff_meters
        self._semaphore = asyncio.Semaphore(max_concurrency)

    def _apply_policy(self, estimate: TravelEstimate, mode: TravelMode) -> Optional[TravelEstimate]:
        if mode == TravelMode.WALKING and estimate.distance_meters > self.walking_cutoff_meters:
            return None
        return estimate

    async def estimate(
        self,
        origin: Coordinate,
        destination: Coordinate,
        mode: TravelMode = TravelMode.WALKING,
    ) -> Optional[TravelEstimate]:
        """Cached estimate, or None when the provider has no usable result."""
        key = _cache_key(origin, destination, mode)
        cached = _travel_time_cache.get(key)
        if cached is not None:
            return self._apply_policy(cached, mode)

        result = await self._fetch(origin, destination, mode)
        if result is None:
            return None

        _travel_time_cache[key] = result
        return self._apply_policy(result, mode)

    async def estimate_many(
        self, requests: Sequence[tuple[Coordinate, Coordinate, TravelMode]]
    ) -> list[Optional[TravelEstimate]]:
        """Fan out lookups concurrently; results keep request order."""
        if not requests:
            return []
        return list(await asyncio.gather(*(self.estimate(o, d, m) for o, d, m in requests)))

    async def _fetch(self, origin, destination, mode) -> Optional[TravelEstimate]:
        for attempt in range(1, self.max_attempts + 1):
            try:
                async with self._semaphore:
                    return await asyncio.wait_for(
                        self.provider.estimate(origin, destination, mode),
                        timeout=self.timeout,
                    )
            except asyncio.TimeoutError:
                logger.warning(
                    f"{self.provider.name} lookup timed out ({mode.value}, "
                    f"attempt {attempt}/{self.max_attempts})"
                )
            except ProviderUnavailableError as e:
                logger.warning(
                    f"{self.provider.name} lookup failed ({mode.value}, "
                    f"attempt {attempt}/{self.max_attempts}): {e.message}"
                )
            if attempt < self.max_attempts and self.retry_delay > 0:
                await asyncio.sleep(self.retry_delay)
        return None
