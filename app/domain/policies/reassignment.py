"""WorkerReassignmentPolicy — keep, shift or remove workers after a plan or unit change."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from app.domain.entities.dispatch_task import DispatchTask, Worker
from app.domain.value_objects.enums import PlanSwitch, PlanType, WorkerType

DEFAULT_UNIT_STAGGER_MINUTES = 45


@dataclass(frozen=True)
class UnitAssignment:
    unit_number: int
    worker: Worker


@dataclass(frozen=True)
class WorkerShift:
    """A worker who stays on the job, possibly on a different unit."""

    worker: Worker
    current_unit: int
    new_unit: int
    new_arrival: datetime

    @property
    def shifted(self) -> bool:
        return self.current_unit != self.new_unit


@dataclass(frozen=True)
class WorkerRemoval:
    worker: Worker
    unit_number: int
    reason: str


@dataclass(frozen=True)
class UnitSlot:
    unit_number: int
    required_type: WorkerType


@dataclass(frozen=True)
class ReassignmentPlan:
    workers_to_keep: tuple[WorkerShift, ...]
    workers_to_remove: tuple[WorkerRemoval, ...]
    unit_slots: tuple[UnitSlot, ...]  # units that still need a worker

    def shifted_workers(self) -> list[WorkerShift]:
        return [k for k in self.workers_to_keep if k.shifted]


@dataclass(frozen=True)
class PendingReconfirmation:
    """A unit-shift reconfirmation waiting for the target unit's tasks to exist."""

    worker: Worker
    new_unit: int
    new_arrival: datetime


def plan_switch(old_plan: PlanType, new_plan: PlanType) -> PlanSwitch | None:
    if old_plan == PlanType.SELF_SERVICE and new_plan == PlanType.FULL_SERVICE:
        return PlanSwitch.SELF_TO_FULL
    if old_plan == PlanType.FULL_SERVICE and new_plan == PlanType.SELF_SERVICE:
        return PlanSwitch.FULL_TO_SELF
    return None


def required_worker_type(plan: PlanType, unit_number: int) -> WorkerType:
    """Full service: the partner crew runs unit 1, network workers run the rest."""
    if plan == PlanType.FULL_SERVICE and unit_number == 1:
        return WorkerType.PARTNER
    return WorkerType.NETWORK


def unit_arrival_time(
    scheduled_at: datetime,
    unit_number: int,
    stagger_minutes: int = DEFAULT_UNIT_STAGGER_MINUTES,
) -> datetime:
    return scheduled_at + timedelta(minutes=(unit_number - 1) * stagger_minutes)


def assignments_from_tasks(tasks: list[DispatchTask]) -> list[UnitAssignment]:
    """One entry per (unit, worker) pair, ordered by unit number."""
    seen: dict[tuple[int, int], UnitAssignment] = {}
    for task in sorted(tasks, key=lambda t: (t.unit_number, t.step)):
        if task.worker is None:
            continue
        key = (task.unit_number, task.worker.id)
        if key not in seen:
            seen[key] = UnitAssignment(unit_number=task.unit_number, worker=task.worker)
    return list(seen.values())


def plan_reassignment(
    assignments: list[UnitAssignment],
    old_plan: PlanType,
    new_plan: PlanType,
    old_unit_count: int,
    new_unit_count: int,
    scheduled_at: datetime,
    partner_id: int | None = None,
    stagger_minutes: int = DEFAULT_UNIT_STAGGER_MINUTES,
) -> ReassignmentPlan:
    """Classify every assigned worker as kept, shifted or removed.

    Pass 1 keeps workers whose unit still exists and still wants their
    worker type. Pass 2 moves the rest to the lowest open unit wanting their
    type, recomputing the arrival time for that unit. Anyone left over is
    removed. Units nobody could fill are returned as open slots.
    """
    needed = {u: required_worker_type(new_plan, u) for u in range(1, new_unit_count + 1)}
    open_units = set(needed)

    keep: list[WorkerShift] = []
    remove: list[WorkerRemoval] = []
    unplaced: list[UnitAssignment] = []

    for a in sorted(assignments, key=lambda x: x.unit_number):
        if a.unit_number > new_unit_count:
            remove.append(
                WorkerRemoval(
                    worker=a.worker,
                    unit_number=a.unit_number,
                    reason=f"unit count reduced from {old_unit_count} to {new_unit_count}",
                )
            )
        elif a.unit_number in open_units and needed[a.unit_number] == a.worker.worker_type:
            keep.append(
                WorkerShift(
                    worker=a.worker,
                    current_unit=a.unit_number,
                    new_unit=a.unit_number,
                    new_arrival=unit_arrival_time(scheduled_at, a.unit_number, stagger_minutes),
                )
            )
            open_units.discard(a.unit_number)
        else:
            unplaced.append(a)

    for a in unplaced:
        target = min(
            (u for u in open_units if needed[u] == a.worker.worker_type),
            default=None,
        )
        if target is None:
            reason = f"plan changed from {old_plan.value} to {new_plan.value}"
            if a.worker.worker_type == WorkerType.PARTNER and partner_id is None:
                reason = "partner company removed from appointment"
            remove.append(WorkerRemoval(worker=a.worker, unit_number=a.unit_number, reason=reason))
            continue
        keep.append(
            WorkerShift(
                worker=a.worker,
                current_unit=a.unit_number,
                new_unit=target,
                new_arrival=unit_arrival_time(scheduled_at, target, stagger_minutes),
            )
        )
        open_units.discard(target)

    return ReassignmentPlan(
        workers_to_keep=tuple(keep),
        workers_to_remove=tuple(remove),
        unit_slots=tuple(UnitSlot(u, needed[u]) for u in sorted(open_units)),
    )
