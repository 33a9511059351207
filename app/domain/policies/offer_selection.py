"""OfferSelectionPolicy — candidate ordering and accept-failure diagnosis."""

from __future__ import annotations

from datetime import datetime, timedelta

from app.domain.entities.dispatch_task import Worker
from app.domain.entities.route_offer import RouteOffer
from app.domain.value_objects.enums import AcceptOutcome, OfferStatus

OFFER_TIMEOUT_MINUTES = 20


def offer_expiry(sent_at: datetime, timeout_minutes: int = OFFER_TIMEOUT_MINUTES) -> datetime:
    return sent_at + timedelta(minutes=timeout_minutes)


def next_candidate(candidates: list[Worker], offered_ids: list[int]) -> Worker | None:
    """Best-rated unoffered worker; completed jobs break ties, then lowest id."""
    eligible = [w for w in candidates if w.id not in offered_ids]
    if not eligible:
        return None
    return min(eligible, key=lambda w: (-w.rating, -w.completed_jobs, w.id))


def can_accept(route: RouteOffer, worker_id: int, now: datetime) -> bool:
    """The compare-and-set condition for accepting an offer.

    The SQL repository puts the same predicate in the WHERE clause of its
    conditional UPDATE.
    """
    return (
        route.offer_status == OfferStatus.SENT
        and route.offer_expires_at is not None
        and route.offer_expires_at > now
        and route.worker_id is None
        and route.candidate_worker_id == worker_id
    )


def diagnose_failed_accept(route: RouteOffer | None, now: datetime) -> AcceptOutcome:
    """Explain why an accept did not go through, checked in a fixed order."""
    if route is None:
        return AcceptOutcome.NOT_FOUND
    if route.worker_id is not None:
        return AcceptOutcome.ALREADY_ACCEPTED
    if route.offer_expires_at is not None and route.offer_expires_at <= now:
        return AcceptOutcome.EXPIRED
    if route.offer_status != OfferStatus.SENT:
        return AcceptOutcome.NOT_SENT
    return AcceptOutcome.WRONG_DRIVER
