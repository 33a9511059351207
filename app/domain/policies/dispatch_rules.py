"""DispatchRules — container resolution, time windows and notes for platform tasks."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta

from app.domain.entities.appointment import Appointment, Partner
from app.domain.entities.dispatch_task import DispatchTask
from app.domain.policies.reassignment import DEFAULT_UNIT_STAGGER_MINUTES, unit_arrival_time
from app.domain.value_objects.change_set import ChangeSet
from app.domain.value_objects.enums import PlanType, TaskStep

# Minutes relative to the unit's arrival time
STEP_WINDOWS: dict[TaskStep, tuple[int, int]] = {
    TaskStep.PICKUP: (-60, 0),
    TaskStep.CUSTOMER_STOP: (0, 60),
    TaskStep.RETURN: (60, 180),
}

_UNIT_SEGMENT = re.compile(r"(Storage Unit(?: Access)?:[ \t]*)#?[^\n]*")


@dataclass(frozen=True)
class TaskWindow:
    complete_after: datetime
    complete_before: datetime


def task_window(
    scheduled_at: datetime,
    step: TaskStep,
    unit_number: int,
    stagger_minutes: int = DEFAULT_UNIT_STAGGER_MINUTES,
) -> TaskWindow:
    arrival = unit_arrival_time(scheduled_at, unit_number, stagger_minutes)
    start, end = STEP_WINDOWS[TaskStep(step)]
    return TaskWindow(
        complete_after=arrival + timedelta(minutes=start),
        complete_before=arrival + timedelta(minutes=end),
    )


def resolve_container(
    plan: PlanType,
    unit_number: int,
    partner: Partner | None,
    default_pool_id: str,
) -> str:
    """Unit 1 of a full-service job goes to the partner's team when it has one."""
    if plan == PlanType.FULL_SERVICE and unit_number == 1 and partner and partner.container_id:
        return partner.container_id
    return default_pool_id


def needs_container_reassignment(changes: ChangeSet, task: DispatchTask) -> bool:
    """Workers already on a task are left alone unless plan or partner changed."""
    return changes.plan_changed or changes.partner_changed or task.worker_id is None


def default_notes(appointment: Appointment) -> str:
    kind = appointment.appointment_type.value.replace("_", " ").title()
    return f"{kind} - {appointment.description or 'No added info'}"


def rewrite_unit_notes(notes: str, unit_label: str | None) -> str:
    """Replace only the storage-unit segment; everything else stays verbatim."""
    if not unit_label:
        return notes
    if _UNIT_SEGMENT.search(notes):
        return _UNIT_SEGMENT.sub(lambda m: f"{m.group(1)}{unit_label}", notes, count=1)
    return f"{notes}\nStorage Unit: {unit_label}"


def uses_customer_destination(step: TaskStep) -> bool:
    """Steps 1 and 3 happen at the warehouse, step 2 at the customer."""
    return TaskStep(step) == TaskStep.CUSTOMER_STOP
