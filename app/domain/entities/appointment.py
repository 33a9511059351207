"""Appointment aggregate — a scheduled storage job and the parties around it."""

from dataclasses import dataclass, field
from datetime import datetime

from app.domain.entities.dispatch_task import DispatchTask
from app.domain.value_objects.enums import AppointmentType, PlanType


@dataclass
class Partner:
    """A partner moving company with its own dispatch team."""

    id: int
    name: str
    phone: str | None = None
    email: str | None = None
    container_id: str | None = None


@dataclass
class Customer:
    id: int
    first_name: str
    last_name: str = ""
    phone: str | None = None


@dataclass(frozen=True)
class StorageUnitRef:
    id: int
    label: str


@dataclass
class Appointment:
    id: int | None
    appointment_type: AppointmentType
    scheduled_at: datetime
    address: str
    plan_type: PlanType
    unit_count: int
    customer_id: int | None = None
    zipcode: str | None = None
    description: str | None = None
    partner_id: int | None = None
    third_party_partner_id: int | None = None
    selected_units: list[StorageUnitRef] = field(default_factory=list)
    loading_help_price: float = 0.0
    partner: Partner | None = None
    customer: Customer | None = None
    tasks: list[DispatchTask] = field(default_factory=list)

    @property
    def selected_unit_ids(self) -> list[int]:
        return [u.id for u in self.selected_units]

    def unit_label(self, unit_number: int) -> str | None:
        """Label of the storage unit serviced by the given 1-based unit slot."""
        idx = unit_number - 1
        if 0 <= idx < len(self.selected_units):
            return self.selected_units[idx].label
        return None

    def tasks_for_unit(self, unit_number: int) -> list[DispatchTask]:
        return [t for t in self.tasks if t.unit_number == unit_number]

    def highest_unit_number(self) -> int:
        return max((t.unit_number for t in self.tasks), default=0)
