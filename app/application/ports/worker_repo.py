"""Port interface for worker lookups."""

from abc import ABC, abstractmethod
from datetime import date

from app.domain.entities.dispatch_task import Worker


class WorkerRepository(ABC):
    @abstractmethod
    async def get_by_id(self, worker_id: int) -> Worker | None:
        ...

    @abstractmethod
    async def get_offer_candidates(
        self, delivery_date: date, exclude_ids: list[int]
    ) -> list[Worker]:
        """Active directly-managed workers free on the given date, excluding ids."""
        ...
