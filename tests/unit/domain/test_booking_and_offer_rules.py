"""Tests for booking availability and route-offer selection rules."""

from datetime import datetime, timedelta, timezone

from fakes import SCHEDULED, make_route, make_worker

from app.domain.entities.booking import AvailabilitySlot
from app.domain.policies.booking_rules import booking_interval, slot_covers, weekday_of
from app.domain.policies.offer_selection import (
    can_accept,
    diagnose_failed_accept,
    next_candidate,
    offer_expiry,
)
from app.domain.value_objects.enums import AcceptOutcome, OfferStatus

MONDAY_SLOT = AvailabilitySlot(id=1, partner_id=7, weekday=0, start_time="08:00", end_time="17:00")

# ─── Booking ────────────────────────────────────────────────────────


def test_booking_interval_pads_one_hour():
    assert booking_interval(SCHEDULED) == (
        SCHEDULED - timedelta(hours=1),
        SCHEDULED + timedelta(hours=1),
    )


def test_slot_covers_time_inside():
    assert slot_covers(MONDAY_SLOT, SCHEDULED)


def test_slot_bounds_are_inclusive():
    assert slot_covers(MONDAY_SLOT, SCHEDULED.replace(hour=17, minute=0))
    assert not slot_covers(MONDAY_SLOT, SCHEDULED.replace(hour=17, minute=1))


def test_slot_rejects_other_weekday():
    assert not slot_covers(MONDAY_SLOT, SCHEDULED + timedelta(days=1))


def test_weekday_uses_utc():
    # Sunday 20:00 in UTC-7 is Monday 03:00 UTC
    local = datetime(2025, 6, 1, 20, 0, tzinfo=timezone(timedelta(hours=-7)))
    assert weekday_of(local) == 0


def test_naive_datetime_treated_as_utc():
    assert slot_covers(MONDAY_SLOT, datetime(2025, 6, 2, 9, 30))


# ─── Offer selection ────────────────────────────────────────────────


def test_offer_expiry_default_twenty_minutes():
    assert offer_expiry(SCHEDULED) == SCHEDULED + timedelta(minutes=20)


def test_next_candidate_prefers_rating_then_jobs_then_id():
    a = make_worker(1, rating=4.8, completed_jobs=3)
    b = make_worker(2, rating=4.9, completed_jobs=1)
    c = make_worker(3, rating=4.9, completed_jobs=5)
    d = make_worker(4, rating=4.9, completed_jobs=5)
    assert next_candidate([a, b, c, d], []).id == 3


def test_next_candidate_skips_already_offered():
    a = make_worker(1, rating=5.0)
    b = make_worker(2, rating=4.0)
    assert next_candidate([a, b], [1]).id == 2
    assert next_candidate([a, b], [1, 2]) is None


def _sent_route(**overrides):
    fields = dict(
        offer_status=OfferStatus.SENT,
        offer_expires_at=SCHEDULED + timedelta(minutes=20),
        offered_worker_ids=[10],
        candidate_worker_id=10,
    )
    fields.update(overrides)
    return make_route(**fields)


def test_can_accept_only_for_candidate_before_expiry():
    route = _sent_route()
    assert can_accept(route, 10, SCHEDULED)
    assert not can_accept(route, 11, SCHEDULED)
    assert not can_accept(route, 10, SCHEDULED + timedelta(minutes=20))


def test_diagnose_order():
    now = SCHEDULED
    assert diagnose_failed_accept(None, now) == AcceptOutcome.NOT_FOUND
    assert diagnose_failed_accept(_sent_route(worker_id=10), now) == AcceptOutcome.ALREADY_ACCEPTED
    assert (
        diagnose_failed_accept(_sent_route(), now + timedelta(minutes=25))
        == AcceptOutcome.EXPIRED
    )
    assert diagnose_failed_accept(make_route(), now) == AcceptOutcome.NOT_SENT
    assert diagnose_failed_accept(_sent_route(), now) == AcceptOutcome.WRONG_DRIVER
