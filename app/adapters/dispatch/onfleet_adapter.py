"""Onfleet REST adapter — implements DispatchPlatformPort."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

import httpx
from pydantic import BaseModel, Field

from app.application.exceptions import DispatchPlatformError
from app.application.ports.dispatch_platform_port import (
    DispatchPlatformPort,
    RemoteTask,
    TaskPayload,
)
from app.domain.value_objects.enums import ContainerType

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
RETRY_DELAY_SECONDS = 1.0


# ─── Wire models ─────────────────────────────────────────────────────


class ContainerBody(BaseModel):
    type: str
    team: str | None = None
    worker: str | None = None
    organization: str | None = None

    @classmethod
    def of(cls, container_type: ContainerType, container_id: str) -> "ContainerBody":
        key = container_type.value.lower()
        return cls(type=container_type.value, **{key: container_id})


class AddressBody(BaseModel):
    unparsed: str


class DestinationBody(BaseModel):
    address: AddressBody
    location: list[float] | None = None


class MetadataEntry(BaseModel):
    name: str
    type: str = "string"
    value: str
    visibility: list[str] = Field(default_factory=lambda: ["api"])


class TaskBody(BaseModel):
    destination: DestinationBody
    notes: str
    completeAfter: int
    completeBefore: int
    container: ContainerBody | None = None
    metadata: list[MetadataEntry] = Field(default_factory=list)


def _millis(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


def payload_to_body(payload: TaskPayload) -> dict:
    """Serialize a TaskPayload to the Onfleet task JSON shape."""
    container = None
    if payload.container_type is not None and payload.container_id:
        container = ContainerBody.of(payload.container_type, payload.container_id)
    body = TaskBody(
        destination=DestinationBody(
            address=AddressBody(unparsed=payload.address),
            location=payload.location.to_location() if payload.location else None,
        ),
        notes=payload.notes,
        completeAfter=_millis(payload.complete_after),
        completeBefore=_millis(payload.complete_before),
        container=container,
        metadata=[MetadataEntry(name=k, value=v) for k, v in payload.metadata.items()],
    )
    return body.model_dump(exclude_none=True)


class OnfleetAdapter(DispatchPlatformPort):
    """Onfleet API client with retry on server errors.

    Client errors (4xx) are raised immediately. Server errors and transport
    failures are retried up to MAX_RETRIES times with a linear backoff.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://onfleet.com/api/v2",
        transport: httpx.AsyncBaseTransport | None = None,
        retry_delay: float = RETRY_DELAY_SECONDS,
    ):
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._transport = transport
        self._retry_delay = retry_delay

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            auth=(self._api_key, ""),
            timeout=15.0,
            transport=self._transport,
        )

    async def _request(self, method: str, path: str, json: dict | None = None) -> dict:
        last_error: str = "unknown error"
        for attempt in range(1, MAX_RETRIES + 1):
            try:
                async with self._client() as client:
                    response = await client.request(method, path, json=json)
            except httpx.HTTPError as e:
                last_error = f"{type(e).__name__}: {e}"
                logger.warning(
                    "Onfleet %s %s failed (attempt %d/%d): %s",
                    method, path, attempt, MAX_RETRIES, last_error,
                )
            else:
                if response.is_success:
                    if not response.content:
                        return {}
                    try:
                        return response.json()
                    except ValueError as e:
                        raise DispatchPlatformError(
                            f"Onfleet {method} {path} returned an unreadable body: {e}"
                        ) from e
                if response.status_code < 500:
                    raise DispatchPlatformError(
                        f"Onfleet {method} {path} rejected with {response.status_code}: "
                        f"{response.text}"
                    )
                last_error = f"server error {response.status_code}"
                logger.warning(
                    "Onfleet %s %s returned %d (attempt %d/%d)",
                    method, path, response.status_code, attempt, MAX_RETRIES,
                )
            if attempt < MAX_RETRIES:
                await asyncio.sleep(self._retry_delay * attempt)

        raise DispatchPlatformError(
            f"Onfleet {method} {path} failed after {MAX_RETRIES} attempts: {last_error}"
        )

    async def get_task(self, external_id: str) -> RemoteTask | None:
        try:
            async with self._client() as client:
                response = await client.get(f"/tasks/{external_id}")
                response.raise_for_status()
                data = response.json()
                return RemoteTask(
                    id=data["id"], short_id=data.get("shortId"), notes=data.get("notes")
                )
        except httpx.HTTPError as e:
            logger.error("Failed to fetch Onfleet task %s: %s", external_id, e)
        except (ValueError, KeyError, TypeError) as e:
            logger.error("Unreadable Onfleet task %s: %r", external_id, e)
        return None

    async def create_task(self, payload: TaskPayload) -> RemoteTask:
        data = await self._request("POST", "/tasks", json=payload_to_body(payload))
        if not isinstance(data, dict) or "id" not in data:
            raise DispatchPlatformError("Onfleet POST /tasks returned no task id")
        logger.info("Created Onfleet task %s", data.get("shortId") or data.get("id"))
        return RemoteTask(id=data["id"], short_id=data.get("shortId"), notes=data.get("notes"))

    async def update_task(self, external_id: str, payload: TaskPayload) -> None:
        await self._request("PUT", f"/tasks/{external_id}", json=payload_to_body(payload))

    async def assign_container(
        self, external_id: str, container_type: ContainerType, container_id: str
    ) -> None:
        body = {
            "container": ContainerBody.of(container_type, container_id).model_dump(exclude_none=True)
        }
        await self._request("PUT", f"/tasks/{external_id}", json=body)

    async def delete_task(self, external_id: str) -> None:
        await self._request("DELETE", f"/tasks/{external_id}")
