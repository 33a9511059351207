"""Port interface for the external dispatch platform."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime

from app.domain.value_objects.enums import ContainerType
from app.domain.value_objects.geo_point import GeoPoint


@dataclass(frozen=True)
class RemoteTask:
    id: str
    short_id: str | None = None
    notes: str | None = None


@dataclass
class TaskPayload:
    container_type: ContainerType | None
    container_id: str | None
    complete_after: datetime
    complete_before: datetime
    address: str
    location: GeoPoint | None
    notes: str
    metadata: dict[str, str] = field(default_factory=dict)


class DispatchPlatformPort(ABC):
    @abstractmethod
    async def get_task(self, external_id: str) -> RemoteTask | None:
        """Fetch a task. Returns None if it cannot be read."""
        ...

    @abstractmethod
    async def create_task(self, payload: TaskPayload) -> RemoteTask:
        ...

    @abstractmethod
    async def update_task(self, external_id: str, payload: TaskPayload) -> None:
        ...

    @abstractmethod
    async def assign_container(
        self, external_id: str, container_type: ContainerType, container_id: str
    ) -> None:
        ...

    @abstractmethod
    async def delete_task(self, external_id: str) -> None:
        ...
