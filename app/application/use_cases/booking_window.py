"""BookingWindowManager — the partner reservation and worker time-slot bookings."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from app.application.ports.booking_repo import BookingRepository
from app.domain.entities.booking import BookingWindow, WorkerBooking
from app.domain.policies.booking_rules import booking_interval, slot_covers, weekday_of

logger = logging.getLogger(__name__)


@dataclass
class BookingResult:
    success: bool
    action: str  # "created" | "deleted" | "unchanged" | "skipped"
    window: BookingWindow | None = None
    error: str | None = None


class BookingWindowManager:
    def __init__(self, bookings: BookingRepository):
        self._bookings = bookings

    async def reconcile(
        self,
        appointment_id: int,
        scheduled_at: datetime,
        partner_id: int | None,
        previous_partner_id: int | None = None,
    ) -> BookingResult:
        """Make the appointment's booking match its partner and time.

        At most one window exists per appointment. No partner means no window.
        A time outside the partner's weekly availability leaves no window; that
        is logged but still reported as success.
        """
        if partner_id is None:
            deleted = await self._bookings.delete_window(appointment_id)
            if deleted:
                logger.info(
                    "Appointment %d: partner %s removed, booking deleted",
                    appointment_id, previous_partner_id,
                )
            return BookingResult(success=True, action="deleted" if deleted else "unchanged")

        await self._bookings.delete_window(appointment_id)

        slot = await self._bookings.find_availability_slot(partner_id, weekday_of(scheduled_at))
        if slot is None or not slot_covers(slot, scheduled_at):
            logger.warning(
                "Appointment %d: %s is outside partner %d availability, no booking created",
                appointment_id, scheduled_at.isoformat(), partner_id,
            )
            return BookingResult(success=True, action="skipped")

        starts_at, ends_at = booking_interval(scheduled_at)
        window = await self._bookings.save_window(
            BookingWindow(
                id=None,
                appointment_id=appointment_id,
                availability_slot_id=slot.id,
                starts_at=starts_at,
                ends_at=ends_at,
            )
        )
        logger.info("Appointment %d: booking %s-%s created", appointment_id, starts_at, ends_at)
        return BookingResult(success=True, action="created", window=window)

    async def delete(self, appointment_id: int) -> bool:
        return await self._bookings.delete_window(appointment_id)

    async def rebook_worker(
        self, appointment_id: int, unit_number: int, worker_id: int, arrival: datetime
    ) -> WorkerBooking:
        """Move (or create) a worker's booking for a unit to the new arrival time."""
        starts_at, ends_at = booking_interval(arrival)
        booking = await self._bookings.get_worker_booking(appointment_id, unit_number)
        if booking is None:
            booking = WorkerBooking(
                id=None,
                worker_id=worker_id,
                appointment_id=appointment_id,
                unit_number=unit_number,
                starts_at=starts_at,
                ends_at=ends_at,
            )
        else:
            booking.worker_id = worker_id
            booking.starts_at = starts_at
            booking.ends_at = ends_at
        return await self._bookings.save_worker_booking(booking)

    async def release_worker(self, appointment_id: int, worker_id: int) -> int:
        count = await self._bookings.delete_worker_bookings(appointment_id, worker_id)
        if count:
            logger.info("Appointment %d: released %d booking(s) of worker %d",
                        appointment_id, count, worker_id)
        return count

    async def drop_unit_bookings(self, appointment_id: int, unit_numbers: list[int]) -> int:
        """Delete worker bookings left on unit slots that no longer exist."""
        count = await self._bookings.delete_unit_bookings(appointment_id, unit_numbers)
        if count:
            logger.info("Appointment %d: dropped %d booking(s) on vacated unit(s) %s",
                        appointment_id, count, unit_numbers)
        return count
