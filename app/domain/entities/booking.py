"""Partner and worker time reservations."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class AvailabilitySlot:
    """A partner's declared weekly availability for one weekday (0 = Monday)."""

    id: int
    partner_id: int
    weekday: int
    start_time: str  # "HH:MM"
    end_time: str  # "HH:MM"


@dataclass
class BookingWindow:
    id: int | None
    appointment_id: int
    availability_slot_id: int
    starts_at: datetime
    ends_at: datetime


@dataclass
class WorkerBooking:
    id: int | None
    worker_id: int
    appointment_id: int
    unit_number: int
    starts_at: datetime
    ends_at: datetime
