"""Tests for OnfleetAdapter against an httpx MockTransport (no network)."""

import json
from datetime import datetime, timezone

import httpx
import pytest

from app.adapters.dispatch.onfleet_adapter import OnfleetAdapter, payload_to_body
from app.application.exceptions import DispatchPlatformError
from app.application.ports.dispatch_platform_port import TaskPayload
from app.domain.value_objects.enums import ContainerType
from app.domain.value_objects.geo_point import GeoPoint

AFTER = datetime(2025, 6, 2, 9, 0, tzinfo=timezone.utc)
BEFORE = datetime(2025, 6, 2, 10, 0, tzinfo=timezone.utc)


def _payload(**overrides):
    fields = dict(
        container_type=ContainerType.TEAM,
        container_id="team-1",
        complete_after=AFTER,
        complete_before=BEFORE,
        address="500 Market St, San Francisco, CA",
        location=GeoPoint(37.79, -122.40),
        notes="Storage Unit: A-1",
        metadata={"step": "1"},
    )
    fields.update(overrides)
    return TaskPayload(**fields)


def _adapter(handler):
    return OnfleetAdapter(
        api_key="key", base_url="https://onfleet.test/api/v2",
        transport=httpx.MockTransport(handler), retry_delay=0,
    )


# ─── Body shape ──────────────────────────────────────────────────────


def test_body_uses_millis_and_lon_lat():
    body = payload_to_body(_payload())
    assert body["completeAfter"] == 1748854800000
    assert body["completeBefore"] == 1748858400000
    assert body["destination"]["location"] == [-122.40, 37.79]
    assert body["container"] == {"type": "TEAM", "team": "team-1"}
    assert body["metadata"] == [
        {"name": "step", "type": "string", "value": "1", "visibility": ["api"]}
    ]


def test_body_without_container_or_location():
    body = payload_to_body(_payload(container_type=None, container_id=None, location=None))
    assert "container" not in body
    assert "location" not in body["destination"]


# ─── Retries ─────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_server_error_is_retried_then_succeeds():
    attempts = []

    def handler(request):
        attempts.append(request)
        if len(attempts) < 3:
            return httpx.Response(503)
        return httpx.Response(200, json={"id": "abc", "shortId": "a1"})

    remote = await _adapter(handler).create_task(_payload())

    assert remote.id == "abc"
    assert remote.short_id == "a1"
    assert len(attempts) == 3
    assert attempts[0].method == "POST"
    assert attempts[0].url.path == "/api/v2/tasks"
    assert json.loads(attempts[0].content)["notes"] == "Storage Unit: A-1"


@pytest.mark.asyncio
async def test_client_error_is_not_retried():
    attempts = []

    def handler(request):
        attempts.append(request)
        return httpx.Response(400, text="bad container")

    with pytest.raises(DispatchPlatformError, match="400"):
        await _adapter(handler).update_task("abc", _payload())
    assert len(attempts) == 1


@pytest.mark.asyncio
async def test_gives_up_after_max_retries():
    attempts = []

    def handler(request):
        attempts.append(request)
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(DispatchPlatformError, match="after 3 attempts"):
        await _adapter(handler).delete_task("abc")
    assert len(attempts) == 3


# ─── Reads and container moves ───────────────────────────────────────


@pytest.mark.asyncio
async def test_get_task_returns_none_on_error():
    assert await _adapter(lambda request: httpx.Response(404)).get_task("abc") is None


@pytest.mark.asyncio
async def test_get_task_returns_none_on_unreadable_body():
    maintenance = _adapter(lambda request: httpx.Response(200, text="<html>maintenance</html>"))
    assert await maintenance.get_task("abc") is None

    no_id = _adapter(lambda request: httpx.Response(200, json={"shortId": "a1"}))
    assert await no_id.get_task("abc") is None


@pytest.mark.asyncio
async def test_create_task_with_unreadable_body_is_a_platform_error():
    adapter = _adapter(lambda request: httpx.Response(200, text="<html>maintenance</html>"))
    with pytest.raises(DispatchPlatformError, match="unreadable body"):
        await adapter.create_task(_payload())


@pytest.mark.asyncio
async def test_get_task_reads_notes():
    def handler(request):
        return httpx.Response(200, json={"id": "abc", "shortId": "a1", "notes": "hello"})

    remote = await _adapter(handler).get_task("abc")
    assert remote.notes == "hello"


@pytest.mark.asyncio
async def test_assign_container_sends_only_container():
    seen = []

    def handler(request):
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={})

    await _adapter(handler).assign_container("abc", ContainerType.TEAM, "pool")
    assert seen == [{"container": {"type": "TEAM", "team": "pool"}}]
