"""Tests for RouteOfferService: offering, the atomic claim and the expiry sweep."""

import asyncio
from datetime import timedelta

import pytest

from fakes import NOW as T0
from fakes import OfferDesk

from app.domain.value_objects.enums import (
    AcceptOutcome,
    NotificationType,
    OfferStatus,
    RecipientType,
    RouteStatus,
)

ADMIN_ID = OfferDesk.ADMIN_ID


# ─── Sending ─────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_first_offer_goes_to_best_network_worker():
    desk = OfferDesk()
    result = await desk.service.offer_next(desk.route())

    assert result.success
    assert result.worker_id == 10
    assert result.expires_at == T0 + timedelta(minutes=20)
    route = desk.route()
    assert route.offer_status == OfferStatus.SENT
    assert route.candidate_worker_id == 10
    assert route.offered_worker_ids == [10]
    (sms,) = desk.messaging.sent
    assert sms[2] == "route_offer"
    assert "6 stops in SoMa" in sms[3]
    assert "https://app.test/driver/route-offer/tok1" in sms[3]


@pytest.mark.asyncio
async def test_never_offers_twice_to_the_same_worker():
    desk = OfferDesk()
    assert (await desk.service.send_offer("R-100", 10)).success
    again = await desk.service.send_offer("R-100", 10)
    assert not again.success
    assert desk.route().offered_worker_ids == [10]
    assert len(desk.messaging.sent) == 1


@pytest.mark.asyncio
async def test_failed_sms_does_not_record_the_offer():
    desk = OfferDesk(fail_to={"+15550000010"})
    result = await desk.service.send_offer("R-100", 10)
    assert not result.success
    assert desk.route().offer_status == OfferStatus.UNSENT
    assert desk.route().offered_worker_ids == []


@pytest.mark.asyncio
async def test_offer_token_verifies_for_offer_purpose():
    desk = OfferDesk()
    await desk.service.send_offer("R-100", 10)
    assert desk.service.verify_offer_token("tok1") == {
        "route_id": "R-100", "worker_id": 10, "action": "route_offer",
    }
    assert desk.service.verify_offer_token("forged") is None


# ─── Accepting ───────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_accept_assigns_route_and_counts_job():
    desk = OfferDesk()
    await desk.service.send_offer("R-100", 10)

    result = await desk.service.accept("R-100", 10)

    assert result.success
    assert result.route.worker_id == 10
    assert desk.route().route_status == RouteStatus.ASSIGNED
    assert desk.routes.assigned_orders == {"R-100": 10}
    assert desk.routes.completed_jobs == {10: 1}


@pytest.mark.asyncio
async def test_concurrent_accepts_have_exactly_one_winner():
    desk = OfferDesk()
    await desk.service.send_offer("R-100", 10)

    results = await asyncio.gather(
        desk.service.accept("R-100", 10),
        desk.service.accept("R-100", 10),
        desk.service.accept("R-100", 11),
    )

    outcomes = [r.outcome for r in results]
    assert outcomes.count(AcceptOutcome.ACCEPTED) == 1
    assert set(outcomes) - {AcceptOutcome.ACCEPTED} <= {
        AcceptOutcome.ALREADY_ACCEPTED, AcceptOutcome.WRONG_DRIVER,
    }
    assert desk.route().worker_id == 10
    assert desk.routes.completed_jobs == {10: 1}


@pytest.mark.asyncio
async def test_accept_outcomes_for_refused_claims():
    desk = OfferDesk()
    assert (await desk.service.accept("R-404", 10)).outcome == AcceptOutcome.NOT_FOUND
    assert (await desk.service.accept("R-100", 10)).outcome == AcceptOutcome.NOT_SENT

    await desk.service.send_offer("R-100", 10)
    assert (await desk.service.accept("R-100", 11)).outcome == AcceptOutcome.WRONG_DRIVER

    desk.clock.advance(21)
    assert (await desk.service.accept("R-100", 10)).outcome == AcceptOutcome.EXPIRED
    assert desk.route().worker_id is None


@pytest.mark.asyncio
async def test_accept_after_acceptance_reports_already_accepted():
    desk = OfferDesk()
    await desk.service.send_offer("R-100", 10)
    await desk.service.accept("R-100", 10)
    assert (await desk.service.accept("R-100", 10)).outcome == AcceptOutcome.ALREADY_ACCEPTED


# ─── Decline and sweep ───────────────────────────────────────────────


@pytest.mark.asyncio
async def test_decline_moves_offer_to_next_candidate():
    desk = OfferDesk()
    await desk.service.send_offer("R-100", 10)

    result = await desk.service.decline("R-100", 10)

    assert result.action == "reoffered"
    assert result.worker_id == 11
    assert desk.route().offered_worker_ids == [10, 11]
    assert desk.route().candidate_worker_id == 11


@pytest.mark.asyncio
async def test_decline_without_open_offer_is_an_error():
    desk = OfferDesk()
    await desk.service.send_offer("R-100", 10)
    result = await desk.service.decline("R-100", 11)
    assert result.action == "error"
    assert desk.route().offer_status == OfferStatus.SENT


@pytest.mark.asyncio
async def test_sweep_reoffers_expired_route():
    desk = OfferDesk()
    await desk.service.offer_next(desk.route())

    desk.clock.advance(10)
    assert await desk.service.sweep_expired() == []

    desk.clock.advance(11)
    (result,) = await desk.service.sweep_expired()

    assert result.action == "reoffered"
    assert result.worker_id == 11
    route = desk.route()
    assert route.offer_status == OfferStatus.SENT
    assert route.offer_expires_at == T0 + timedelta(minutes=41)
    assert route.offered_worker_ids == [10, 11]


@pytest.mark.asyncio
async def test_exhausted_candidates_escalate_to_admin():
    desk = OfferDesk()
    await desk.service.offer_next(desk.route())
    desk.clock.advance(21)
    await desk.service.sweep_expired()
    desk.clock.advance(21)

    (result,) = await desk.service.sweep_expired()

    assert result.action == "admin_notified"
    route = desk.route()
    assert route.route_status == RouteStatus.NEEDS_MANUAL_ASSIGNMENT
    assert route.offer_status == OfferStatus.EXPIRED
    (notice,) = desk.notifications.for_recipient(RecipientType.ADMIN, ADMIN_ID)
    assert notice.notification_type == NotificationType.ROUTE_OFFER_EXHAUSTED
    assert "R-100" in notice.message
