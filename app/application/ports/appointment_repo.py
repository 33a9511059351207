"""Port interface for appointment persistence."""

from abc import ABC, abstractmethod

from app.domain.entities.appointment import Appointment


class AppointmentRepository(ABC):
    @abstractmethod
    async def get_with_relations(self, appointment_id: int) -> Appointment | None:
        """Load an appointment with tasks (and their workers), partner, customer and units."""
        ...

    @abstractmethod
    async def commit(self) -> None:
        """Make every write issued so far durable.

        Called after each step of an edit that mirrored a call to an external
        system, so a later failure cannot roll back local state for work the
        dispatch platform or a recipient has already seen.
        """
        ...

    @abstractmethod
    async def update(
        self, appointment: Appointment, selected_unit_ids: tuple[int, ...] | None = None
    ) -> Appointment:
        """Persist appointment fields and, if given, the unit selection in one committed transaction.

        Returns the reloaded appointment.
        """
        ...
