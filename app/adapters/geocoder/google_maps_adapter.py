"""Google Maps geocoder adapter — implements GeocoderPort."""

from __future__ import annotations

import logging

import httpx

from app.application.ports.geocoder_port import GeocoderPort
from app.domain.value_objects.geo_point import GeoPoint

logger = logging.getLogger(__name__)

GOOGLE_GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"


class GoogleMapsAdapter(GeocoderPort):
    """Resolves job addresses for dispatch task destinations.

    Results (including misses) are cached per normalized address for the
    lifetime of the adapter.
    """

    def __init__(self, api_key: str, transport: httpx.AsyncBaseTransport | None = None):
        self._api_key = api_key
        self._transport = transport
        self._cache: dict[str, GeoPoint | None] = {}

    async def geocode(self, address: str) -> GeoPoint | None:
        if not self._api_key:
            logger.warning("Google Maps API key is not set. Skipping geocoding.")
            return None

        cache_key = address.strip().lower()
        if cache_key in self._cache:
            return self._cache[cache_key]

        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.get(
                    GOOGLE_GEOCODE_URL,
                    params={"address": address, "key": self._api_key},
                    timeout=10.0,
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError:
            logger.exception("Google Maps API error for '%s'", address)
            return None
        except ValueError:
            logger.error("Google Maps returned a non-JSON body for '%s'", address)
            return None

        if data.get("status") == "OK" and data.get("results"):
            try:
                loc = data["results"][0]["geometry"]["location"]
                point = GeoPoint(latitude=loc["lat"], longitude=loc["lng"])
            except (KeyError, IndexError, TypeError):
                logger.error("Google Maps returned a malformed result for '%s'", address)
                return None
            logger.info("Google Maps resolved '%s' → (%f, %f)", address, point.latitude, point.longitude)
            self._cache[cache_key] = point
            return point

        logger.warning("Google Maps could not resolve '%s': %s", address, data.get("status"))
        self._cache[cache_key] = None
        return None
