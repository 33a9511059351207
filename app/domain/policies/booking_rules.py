"""BookingRules — partner reservation interval and availability fit."""

from datetime import datetime, timedelta, timezone

from app.domain.entities.booking import AvailabilitySlot

BOOKING_PADDING = timedelta(hours=1)


def booking_interval(scheduled_at: datetime) -> tuple[datetime, datetime]:
    return scheduled_at - BOOKING_PADDING, scheduled_at + BOOKING_PADDING


def _as_utc(moment: datetime) -> datetime:
    # Naive datetimes are stored as UTC
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def weekday_of(scheduled_at: datetime) -> int:
    return _as_utc(scheduled_at).weekday()


def slot_covers(slot: AvailabilitySlot, scheduled_at: datetime) -> bool:
    """True when the appointment's HH:MM (UTC) falls inside the slot."""
    moment = _as_utc(scheduled_at)
    if moment.weekday() != slot.weekday:
        return False
    hhmm = moment.strftime("%H:%M")
    return slot.start_time <= hhmm <= slot.end_time
