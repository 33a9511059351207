"""Route offer endpoints — driver accept/decline via signed link, expiry sweep."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from app.application.use_cases.route_offers import RouteOfferService
from app.domain.entities.route_offer import RouteOffer
from app.domain.value_objects.enums import AcceptOutcome
from app.infrastructure.api.dependencies import get_route_offer_service

router = APIRouter(prefix="/routes", tags=["route offers"])

ACCEPT_STATUS = {
    AcceptOutcome.NOT_FOUND: 404,
    AcceptOutcome.ALREADY_ACCEPTED: 409,
    AcceptOutcome.WRONG_DRIVER: 409,
    AcceptOutcome.EXPIRED: 410,
    AcceptOutcome.NOT_SENT: 400,
}


class OfferResponseBody(BaseModel):
    token: str


def _worker_from_token(service: RouteOfferService, route_id: str, token: str) -> int:
    payload = service.verify_offer_token(token)
    if payload is None:
        raise HTTPException(status_code=400, detail="Invalid or expired offer link")
    if payload.get("route_id") != route_id:
        raise HTTPException(status_code=400, detail="Offer link does not match this route")
    return int(payload["worker_id"])


def _serialize_route(r: RouteOffer) -> dict:
    return {
        "route_id": r.route_id,
        "delivery_date": r.delivery_date.isoformat(),
        "total_stops": r.total_stops,
        "offer_status": r.offer_status.value,
        "route_status": r.route_status.value,
        "worker_id": r.worker_id,
        "offer_expires_at": r.offer_expires_at.isoformat() if r.offer_expires_at else None,
    }


@router.post("/{route_id}/offers/accept")
async def accept_offer(
    route_id: str,
    body: OfferResponseBody,
    service: RouteOfferService = Depends(get_route_offer_service),
):
    worker_id = _worker_from_token(service, route_id, body.token)
    result = await service.accept(route_id, worker_id)
    if not result.success:
        raise HTTPException(
            status_code=ACCEPT_STATUS.get(result.outcome, 400), detail=result.outcome.value
        )
    return {"outcome": result.outcome.value, "route": _serialize_route(result.route)}


@router.post("/{route_id}/offers/decline")
async def decline_offer(
    route_id: str,
    body: OfferResponseBody,
    service: RouteOfferService = Depends(get_route_offer_service),
):
    worker_id = _worker_from_token(service, route_id, body.token)
    result = await service.decline(route_id, worker_id)
    if result.action == "error":
        status = 404 if result.error == "Route not found" else 409
        raise HTTPException(status_code=status, detail=result.error)
    return {"route_id": result.route_id, "action": result.action, "next_worker_id": result.worker_id}


@router.post("/offers/sweep")
async def sweep_expired_offers(service: RouteOfferService = Depends(get_route_offer_service)):
    """Expire stale offers and move each route on. Intended for a scheduler."""
    results = await service.sweep_expired()
    return {
        "processed": len(results),
        "results": [
            {"route_id": r.route_id, "action": r.action, "worker_id": r.worker_id, "error": r.error}
            for r in results
        ],
    }
