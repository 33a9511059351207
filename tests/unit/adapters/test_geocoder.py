"""Tests for GoogleMapsAdapter — response parsing and caching (no network)."""

import httpx
import pytest

from app.adapters.geocoder.google_maps_adapter import GoogleMapsAdapter

OK = {
    "status": "OK",
    "results": [{"geometry": {"location": {"lat": 37.7936, "lng": -122.3958}}}],
}


def _counting(payload):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json=payload)

    return calls, httpx.MockTransport(handler)


@pytest.mark.asyncio
async def test_resolves_first_result():
    calls, transport = _counting(OK)
    point = await GoogleMapsAdapter("key", transport=transport).geocode("1 Market St")
    assert (point.latitude, point.longitude) == (37.7936, -122.3958)
    assert calls[0].url.params["address"] == "1 Market St"


@pytest.mark.asyncio
async def test_cache_deduplicates():
    """Same address (after normalizing) hits the API once."""
    calls, transport = _counting(OK)
    adapter = GoogleMapsAdapter("key", transport=transport)
    r1 = await adapter.geocode("1 Market St")
    r2 = await adapter.geocode("  1 market st ")
    assert r1 == r2
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_miss_is_cached_too():
    calls, transport = _counting({"status": "ZERO_RESULTS", "results": []})
    adapter = GoogleMapsAdapter("key", transport=transport)
    assert await adapter.geocode("nowhere") is None
    assert await adapter.geocode("nowhere") is None
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_http_error_returns_none():
    transport = httpx.MockTransport(lambda request: httpx.Response(500))
    assert await GoogleMapsAdapter("key", transport=transport).geocode("x") is None


@pytest.mark.asyncio
async def test_non_json_body_returns_none():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>quota</html>"))
    assert await GoogleMapsAdapter("key", transport=transport).geocode("x") is None


@pytest.mark.asyncio
async def test_no_api_key_skips_lookup():
    calls, transport = _counting(OK)
    assert await GoogleMapsAdapter("", transport=transport).geocode("x") is None
    assert calls == []
