"""Port interface for dispatch task persistence."""

from abc import ABC, abstractmethod

from app.domain.entities.dispatch_task import DispatchTask


class TaskRepository(ABC):
    @abstractmethod
    async def get_by_appointment(self, appointment_id: int) -> list[DispatchTask]:
        """All tasks of an appointment ordered by (unit_number, step)."""
        ...

    @abstractmethod
    async def save(self, task: DispatchTask) -> DispatchTask:
        ...

    @abstractmethod
    async def update(self, task: DispatchTask) -> DispatchTask:
        """Write worker link, notification bookkeeping and unit number."""
        ...

    @abstractmethod
    async def delete(self, task_ids: list[int]) -> int:
        ...
