"""Delivery route offered to one candidate worker at a time."""

from dataclasses import dataclass, field
from datetime import date, datetime

from app.domain.value_objects.enums import OfferStatus, RouteStatus


@dataclass
class RouteOffer:
    id: int | None
    route_id: str
    delivery_date: date
    total_stops: int
    offer_status: OfferStatus = OfferStatus.UNSENT
    route_status: RouteStatus = RouteStatus.PENDING
    offer_sent_at: datetime | None = None
    offer_expires_at: datetime | None = None
    offered_worker_ids: list[int] = field(default_factory=list)
    candidate_worker_id: int | None = None  # holder of the outstanding offer
    worker_id: int | None = None
    delivery_area: str | None = None

    def was_offered_to(self, worker_id: int) -> bool:
        return worker_id in self.offered_worker_ids
