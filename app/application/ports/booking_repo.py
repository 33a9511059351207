"""Port interface for partner booking windows and worker bookings."""

from abc import ABC, abstractmethod

from app.domain.entities.booking import AvailabilitySlot, BookingWindow, WorkerBooking


class BookingRepository(ABC):
    @abstractmethod
    async def get_window(self, appointment_id: int) -> BookingWindow | None:
        ...

    @abstractmethod
    async def save_window(self, window: BookingWindow) -> BookingWindow:
        ...

    @abstractmethod
    async def delete_window(self, appointment_id: int) -> bool:
        """Delete the appointment's booking window. Returns False if there was none."""
        ...

    @abstractmethod
    async def find_availability_slot(self, partner_id: int, weekday: int) -> AvailabilitySlot | None:
        ...

    @abstractmethod
    async def get_worker_booking(
        self, appointment_id: int, unit_number: int
    ) -> WorkerBooking | None:
        ...

    @abstractmethod
    async def save_worker_booking(self, booking: WorkerBooking) -> WorkerBooking:
        """Insert or update the booking for (appointment, unit)."""
        ...

    @abstractmethod
    async def delete_worker_bookings(self, appointment_id: int, worker_id: int) -> int:
        ...

    @abstractmethod
    async def delete_unit_bookings(self, appointment_id: int, unit_numbers: list[int]) -> int:
        """Delete worker bookings held for the given unit slots."""
        ...
