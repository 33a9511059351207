"""Port interface for route offer persistence."""

from abc import ABC, abstractmethod
from datetime import datetime

from app.domain.entities.route_offer import RouteOffer
from app.domain.value_objects.enums import OfferStatus


class RouteOfferRepository(ABC):
    @abstractmethod
    async def get_by_route_id(self, route_id: str) -> RouteOffer | None:
        ...

    @abstractmethod
    async def try_accept(self, route_id: str, worker_id: int, now: datetime) -> RouteOffer | None:
        """Atomically claim the route for the worker.

        Succeeds only if status is sent, the offer has not expired, no worker is
        assigned and the worker holds the offer. On success the route's line
        items are assigned and the worker's completed-job counter incremented
        in the same transaction. Returns None when the condition did not hold.
        """
        ...

    @abstractmethod
    async def record_offer_sent(
        self, route_id: str, worker_id: int, sent_at: datetime, expires_at: datetime
    ) -> None:
        ...

    @abstractmethod
    async def set_offer_status(self, route_id: str, status: OfferStatus) -> None:
        ...

    @abstractmethod
    async def flag_manual_assignment(self, route_id: str) -> None:
        ...

    @abstractmethod
    async def get_expired_offers(self, now: datetime) -> list[RouteOffer]:
        """Routes with status sent, expiry passed and no worker assigned."""
        ...
