"""Travel-time lookups against the Mapbox geocoding and directions APIs."""

import logging
import math
from typing import Optional, Protocol
from urllib.parse import quote

import httpx

from booking.config import get_settings
from booking.errors import TravelLookupError
from booking.schema import TransportationMode, TravelStatus, TravelTimeResult

logger = logging.getLogger(__name__)

# Transit has no Mapbox profile; it is estimated from the driving route.
TRANSIT_MULTIPLIER = 1.5

# Shown to providers when a lookup fails. The validator does not enforce these.
FALLBACK_BUFFER_MINUTES = {
    TransportationMode.DRIVING: 15,
    TransportationMode.WALKING: 30,
    TransportationMode.CYCLING: 20,
    TransportationMode.TRANSIT: 25,
}

_PROFILES = {
    TransportationMode.DRIVING: "driving-traffic",
    TransportationMode.WALKING: "walking",
    TransportationMode.CYCLING: "cycling",
}


class TravelTimeEstimator(Protocol):
    async def calculate_travel_time(
        self,
        origin: str,
        destination: str,
        mode: TransportationMode = TransportationMode.DRIVING,
    ) -> TravelTimeResult:
        ...


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def fallback_buffer_minutes(mode: TransportationMode, grace_minutes: int = 0) -> int:
    """Default buffer for a transportation mode when no route is available."""
    return FALLBACK_BUFFER_MINUTES[mode] + grace_minutes


def _error(message: str) -> TravelTimeResult:
    return TravelTimeResult(status=TravelStatus.ERROR, error_message=message)


class MapboxClient:
    """Geocodes both addresses, then asks Mapbox Directions for a route.

    Every failure comes back as an ERROR result, never as an exception and
    never as a zero duration.
    """

    def __init__(
        self,
        access_token: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        settings = get_settings()
        self.access_token = access_token if access_token is not None else settings.mapbox_access_token
        self.base_url = (base_url or settings.mapbox_base_url).rstrip("/")
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    async def _get_json(self, client: httpx.AsyncClient, url: str, params: dict) -> dict:
        resp = await client.get(url, params={"access_token": self.access_token, **params})
        resp.raise_for_status()
        return resp.json()

    async def _geocode(self, client: httpx.AsyncClient, address: str) -> tuple[float, float]:
        """Return (longitude, latitude) of the best match for address."""
        data = await self._get_json(
            client,
            f"{self.base_url}/geocoding/v5/mapbox.places/{quote(address, safe='')}.json",
            {"limit": 1},
        )
        features = data.get("features") or []
        if not features:
            raise TravelLookupError(f"Unable to geocode address {address!r}")
        lng, lat = features[0]["center"]
        return float(lng), float(lat)

    async def _route(
        self,
        client: httpx.AsyncClient,
        origin: str,
        destination: str,
        profile: str,
    ) -> tuple[float, float]:
        """Return (duration seconds, distance meters) of the first route."""
        o_lng, o_lat = await self._geocode(client, origin)
        d_lng, d_lat = await self._geocode(client, destination)
        data = await self._get_json(
            client,
            f"{self.base_url}/directions/v5/mapbox/{profile}/{o_lng},{o_lat};{d_lng},{d_lat}",
            {"geometries": "geojson", "steps": "false", "overview": "false"},
        )
        routes = data.get("routes") or []
        if data.get("code") != "Ok" or not routes:
            raise TravelLookupError(data.get("message") or "No route found")
        return float(routes[0]["duration"]), float(routes[0]["distance"])

    async def calculate_travel_time(
        self,
        origin: str,
        destination: str,
        mode: TransportationMode = TransportationMode.DRIVING,
    ) -> TravelTimeResult:
        """One route lookup from origin to destination."""
        if not self.access_token:
            logger.warning("MAPBOX_ACCESS_TOKEN not set, travel time unavailable")
            return _error("Mapbox access token not configured")

        profile = _PROFILES[TransportationMode.DRIVING if mode == TransportationMode.TRANSIT else mode]
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                seconds, meters = await self._route(client, origin, destination, profile)
        except TravelLookupError as e:
            logger.warning("Travel lookup failed %r -> %r: %s", origin, destination, e)
            return _error(str(e))
        except httpx.HTTPStatusError as e:
            logger.warning("Mapbox API error (%s) for %r -> %r", e.response.status_code, origin, destination)
            return _error(f"Mapbox API error ({e.response.status_code})")
        except httpx.HTTPError as e:
            logger.warning("Mapbox request failed for %r -> %r: %s", origin, destination, e)
            return _error("Failed to connect to mapping service")
        except (KeyError, IndexError, TypeError, ValueError) as e:
            logger.warning("Unexpected Mapbox response for %r -> %r: %s", origin, destination, e)
            return _error("Unexpected response from mapping service")

        minutes = _round_half_up(seconds / 60)
        if mode == TransportationMode.TRANSIT:
            minutes = _round_half_up(minutes * TRANSIT_MULTIPLIER)
        return TravelTimeResult(
            status=TravelStatus.OK,
            duration_minutes=minutes,
            distance_meters=meters,
        )
