"""HTTP tests for the API routers, with use cases wired to in-memory fakes."""

from datetime import datetime, timedelta, timezone

from fakes import SCHEDULED, AppointmentWorld, OfferDesk, make_appointment, make_route

from app.adapters.persistence.database import get_session
from app.domain.value_objects.enums import OfferStatus
from app.infrastructure.api.dependencies import (
    get_route_offer_service,
    get_update_appointment_uc,
)
from app.infrastructure.api.routes_appointments import AppointmentEditBody


def _offered_desk():
    """A desk starting at the current time whose route is already offered to worker 10."""
    now = datetime.now(timezone.utc)
    route = make_route(
        offer_status=OfferStatus.SENT,
        offered_worker_ids=[10],
        candidate_worker_id=10,
        offer_sent_at=now,
        offer_expires_at=now + timedelta(minutes=20),
    )
    desk = OfferDesk(routes=[route], now=now)
    token = desk.signer.sign({"route_id": "R-100", "worker_id": 10}, "route_offer")
    return desk, token


# ─── Appointments ────────────────────────────────────────────────────


def test_patch_applies_edit(client_for):
    world = AppointmentWorld(make_appointment())
    client = client_for({get_update_appointment_uc: world.use_case})

    response = client.patch("/api/appointments/1", json={"address": "1 Main St"})

    assert response.status_code == 200
    body = response.json()
    assert body["appointment"]["address"] == "1 Main St"
    assert body["changes"]["details_changed"] is True
    assert len(body["task_results"]) == 3


def test_patch_unknown_appointment_is_404(client_for):
    client = client_for({get_update_appointment_uc: AppointmentWorld().use_case})
    assert client.patch("/api/appointments/5", json={"address": "x"}).status_code == 404


def test_patch_zero_units_is_422(client_for):
    world = AppointmentWorld(make_appointment(unit_count=2))
    client = client_for({get_update_appointment_uc: world.use_case})

    response = client.patch("/api/appointments/1", json={"unit_count": 0})

    assert response.status_code == 422
    assert "at least one" in response.json()["detail"]


def test_patch_rejects_malformed_body(client_for):
    client = client_for({get_update_appointment_uc: AppointmentWorld().use_case})
    assert client.patch("/api/appointments/1", json={"unit_count": -1}).status_code == 422


def test_explicit_null_partner_differs_from_omitted():
    assert AppointmentEditBody(partner_id=None).to_edit().supplies_partner
    assert not AppointmentEditBody().to_edit().supplies_partner
    edit = AppointmentEditBody(scheduled_at=SCHEDULED, selected_unit_ids=[1, 2]).to_edit()
    assert edit.selected_unit_ids == (1, 2)


# ─── Route offers ────────────────────────────────────────────────────


def test_accept_then_second_accept_conflicts(client_for):
    desk, token = _offered_desk()
    client = client_for({get_route_offer_service: desk.service})

    first = client.post("/api/routes/R-100/offers/accept", json={"token": token})
    second = client.post("/api/routes/R-100/offers/accept", json={"token": token})

    assert first.status_code == 200
    assert first.json()["route"]["worker_id"] == 10
    assert second.status_code == 409
    assert second.json()["detail"] == "already_accepted"


def test_accept_with_bad_token_is_400(client_for):
    desk, _ = _offered_desk()
    client = client_for({get_route_offer_service: desk.service})
    response = client.post("/api/routes/R-100/offers/accept", json={"token": "forged"})
    assert response.status_code == 400


def test_token_for_another_route_is_400(client_for):
    desk, token = _offered_desk()
    client = client_for({get_route_offer_service: desk.service})
    response = client.post("/api/routes/R-999/offers/accept", json={"token": token})
    assert response.status_code == 400
    assert desk.route().worker_id is None


def test_accept_after_expiry_is_410(client_for):
    desk, token = _offered_desk()
    desk.clock.advance(21)
    client = client_for({get_route_offer_service: desk.service})
    response = client.post("/api/routes/R-100/offers/accept", json={"token": token})
    assert response.status_code == 410


def test_decline_reoffers(client_for):
    desk, token = _offered_desk()
    client = client_for({get_route_offer_service: desk.service})

    response = client.post("/api/routes/R-100/offers/decline", json={"token": token})

    assert response.status_code == 200
    assert response.json() == {"route_id": "R-100", "action": "reoffered", "next_worker_id": 11}


def test_sweep_reports_each_route(client_for):
    desk, _ = _offered_desk()
    desk.clock.advance(30)
    client = client_for({get_route_offer_service: desk.service})

    response = client.post("/api/routes/offers/sweep")

    assert response.status_code == 200
    body = response.json()
    assert body["processed"] == 1
    assert body["results"][0]["action"] == "reoffered"


# ─── Health ──────────────────────────────────────────────────────────


class _DeadSession:
    async def execute(self, statement):
        raise ConnectionRefusedError("database is down")


def test_health_degraded_without_database(client_for):
    client = client_for({get_session: _DeadSession()})

    body = client.get("/api/health").json()

    assert body["status"] == "degraded"
    assert "database is down" in body["database"]
    assert set(body["integrations"]) == {
        "dispatch_platform", "default_pool", "sms", "email", "geocoder",
    }
