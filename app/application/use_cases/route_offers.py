"""RouteOfferService — one-at-a-time route offers with an atomic claim."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from app.application.ports.link_signer_port import LinkSignerPort
from app.application.ports.route_offer_repo import RouteOfferRepository
from app.application.ports.worker_repo import WorkerRepository
from app.application.templates import ROUTE_OFFER
from app.application.use_cases.effects import MessageEffectExecutor
from app.application.use_cases.notifications import InAppNotificationService, InAppRequest
from app.domain.entities.route_offer import RouteOffer
from app.domain.policies.offer_selection import (
    OFFER_TIMEOUT_MINUTES,
    diagnose_failed_accept,
    next_candidate,
    offer_expiry,
)
from app.domain.value_objects.enums import (
    AcceptOutcome,
    NotificationType,
    OfferStatus,
    RecipientType,
)
from app.domain.value_objects.outbound_message import Channel, OutboundMessage

logger = logging.getLogger(__name__)

OFFER_PURPOSE = "route_offer"
OFFER_PATH = "/driver/route-offer"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class AcceptResult:
    outcome: AcceptOutcome
    route: RouteOffer | None = None

    @property
    def success(self) -> bool:
        return self.outcome == AcceptOutcome.ACCEPTED


@dataclass
class SendOfferResult:
    success: bool
    worker_id: int | None = None
    expires_at: datetime | None = None
    error: str | None = None


@dataclass
class SweepResult:
    route_id: str
    action: str  # "reoffered" | "admin_notified" | "error"
    worker_id: int | None = None
    error: str | None = None


class RouteOfferService:
    def __init__(
        self,
        route_repo: RouteOfferRepository,
        worker_repo: WorkerRepository,
        signer: LinkSignerPort,
        effects: MessageEffectExecutor,
        in_app: InAppNotificationService,
        ops_admin_id: int,
        timeout_minutes: int = OFFER_TIMEOUT_MINUTES,
        clock=_utcnow,
    ):
        self._routes = route_repo
        self._workers = worker_repo
        self._signer = signer
        self._effects = effects
        self._in_app = in_app
        self._ops_admin_id = ops_admin_id
        self._timeout = timeout_minutes
        self._clock = clock

    async def accept(self, route_id: str, worker_id: int) -> AcceptResult:
        """Claim the route. Losing a race is an outcome, not an error."""
        now = self._clock()
        route = await self._routes.try_accept(route_id, worker_id, now)
        if route is not None:
            logger.info("Route %s accepted by worker %d", route_id, worker_id)
            return AcceptResult(outcome=AcceptOutcome.ACCEPTED, route=route)

        current = await self._routes.get_by_route_id(route_id)
        outcome = diagnose_failed_accept(current, now)
        logger.info("Route %s accept by worker %d refused: %s", route_id, worker_id, outcome.value)
        return AcceptResult(outcome=outcome, route=current)

    def verify_offer_token(self, token: str) -> dict | None:
        return self._signer.verify(token, OFFER_PURPOSE, self._timeout * 60)

    async def send_offer(self, route_id: str, worker_id: int) -> SendOfferResult:
        route = await self._routes.get_by_route_id(route_id)
        if route is None:
            return SendOfferResult(success=False, error="Route not found")
        if route.was_offered_to(worker_id):
            return SendOfferResult(success=False, error="Route was already offered to this worker")
        worker = await self._workers.get_by_id(worker_id)
        if worker is None or not worker.phone:
            return SendOfferResult(success=False, error="Worker not found or has no phone number")

        token = self._signer.sign(
            {"route_id": route_id, "worker_id": worker_id, "action": OFFER_PURPOSE},
            OFFER_PURPOSE,
        )
        message = OutboundMessage(
            channel=Channel.SMS,
            to=worker.phone,
            template=ROUTE_OFFER.name,
            variables={
                "delivery_date": f"{route.delivery_date:%a, %b} {route.delivery_date.day}",
                "total_stops": str(route.total_stops),
                "delivery_area": route.delivery_area or "your area",
                "timeout_minutes": str(self._timeout),
                "offer_url": self._signer.build_url(OFFER_PATH, token),
            },
            key=f"worker:{worker_id}:route_offer:{route_id}",
        )
        failure = await self._effects.send(message)
        if failure is not None:
            return SendOfferResult(success=False, worker_id=worker_id, error=failure.error)

        sent_at = self._clock()
        expires_at = offer_expiry(sent_at, self._timeout)
        await self._routes.record_offer_sent(route_id, worker_id, sent_at, expires_at)
        logger.info("Route %s offered to worker %d until %s", route_id, worker_id, expires_at)
        return SendOfferResult(success=True, worker_id=worker_id, expires_at=expires_at)

    async def offer_next(self, route: RouteOffer) -> SendOfferResult | None:
        """Offer to the best unoffered candidate. None when nobody is left."""
        candidates = await self._workers.get_offer_candidates(
            route.delivery_date, route.offered_worker_ids
        )
        candidate = next_candidate(candidates, route.offered_worker_ids)
        if candidate is None:
            return None
        return await self.send_offer(route.route_id, candidate.id)

    async def decline(self, route_id: str, worker_id: int) -> SweepResult:
        route = await self._routes.get_by_route_id(route_id)
        if route is None:
            return SweepResult(route_id=route_id, action="error", error="Route not found")
        if route.offer_status != OfferStatus.SENT or route.candidate_worker_id != worker_id:
            return SweepResult(
                route_id=route_id, action="error", error="No open offer for this worker"
            )
        await self._routes.set_offer_status(route_id, OfferStatus.DECLINED)
        logger.info("Route %s declined by worker %d", route_id, worker_id)
        return await self._offer_or_escalate(route)

    async def sweep_expired(self) -> list[SweepResult]:
        """Expire stale offers and move each route to its next candidate."""
        now = self._clock()
        expired = await self._routes.get_expired_offers(now)
        logger.info("Sweeping %d expired route offer(s)", len(expired))

        results = []
        for route in expired:
            try:
                await self._routes.set_offer_status(route.route_id, OfferStatus.EXPIRED)
                results.append(await self._offer_or_escalate(route))
            except Exception as e:
                logger.exception("Error processing expired offer for route %s", route.route_id)
                results.append(SweepResult(route_id=route.route_id, action="error", error=str(e)))
        return results

    async def _offer_or_escalate(self, route: RouteOffer) -> SweepResult:
        offered = await self.offer_next(route)
        if offered is not None and offered.success:
            return SweepResult(route_id=route.route_id, action="reoffered", worker_id=offered.worker_id)

        await self._routes.flag_manual_assignment(route.route_id)
        _, failures = await self._in_app.create_batch(
            [
                InAppRequest(
                    recipient_id=self._ops_admin_id,
                    recipient_type=RecipientType.ADMIN,
                    notification_type=NotificationType.ROUTE_OFFER_EXHAUSTED,
                    variables={
                        "route_id": route.route_id,
                        "delivery_date": route.delivery_date.isoformat(),
                    },
                    route_id=route.route_id,
                )
            ]
        )
        logger.warning("Route %s has no candidates left, flagged for manual assignment",
                       route.route_id)
        return SweepResult(
            route_id=route.route_id,
            action="admin_notified",
            error=failures[0].error if failures else None,
        )
